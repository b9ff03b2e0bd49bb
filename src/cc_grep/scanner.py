"""Session file discovery and bounded-concurrency processing."""

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

# Claude Code sessions location
SESSIONS_DIR = Path.home() / ".claude" / "projects"
SESSION_SUFFIX = ".jsonl"

# Caps open files and concurrent git processes.
MAX_WORKERS = 20

T = TypeVar("T")


class SessionsDirError(Exception):
    """The sessions directory could not be read."""

    def __init__(self, path: Path, reason: OSError):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read sessions directory: {path} ({reason.strerror or reason})")


def discover_sessions(root: Path) -> list[Path]:
    """Discover all JSONL session files below ``root``.

    Raises:
        SessionsDirError: If ``root`` itself cannot be read.
    """
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise SessionsDirError(root, exc) from exc

    return sorted(p for p in root.rglob(f"*{SESSION_SUFFIX}") if p.is_file())


def scan(
    paths: Iterable[Path],
    worker: Callable[[Path], T],
    max_workers: int = MAX_WORKERS,
    on_done: Callable[[Path], None] | None = None,
) -> Iterator[T]:
    """Run ``worker`` over ``paths`` with at most ``max_workers`` in flight.

    Results are yielded in completion order. A worker raising OSError for a
    file is logged and skipped; other exceptions propagate.
    """
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = {pool.submit(worker, path): path for path in paths}
        for future in as_completed(futures):
            path = futures[future]
            try:
                result = future.result()
            except OSError as exc:
                logger.debug("Skipping unreadable session %s: %s", path, exc)
                continue
            finally:
                if on_done is not None:
                    on_done(path)
            yield result
