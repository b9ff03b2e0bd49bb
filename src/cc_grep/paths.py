"""Project names and git remotes from encoded session directory names.

Claude Code stores sessions under ``~/.claude/projects/<slug>/`` where the
slug is the project's absolute path with every ``/`` replaced by ``-``:

    /Users/name/Code/my-app  ->  -Users-name-Code-my-app

The encoding is lossy, since a real ``-`` in a directory name looks exactly
like an encoded separator. Recovering the path therefore means probing the
filesystem for a split of the slug whose directories actually exist.
"""

import logging
import subprocess
import threading
from collections.abc import Callable
from concurrent.futures import Future
from pathlib import Path

from cc_grep.models import ProjectIdentity

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 2.0  # seconds

ExistsCheck = Callable[[Path], bool]


def encode_path(path: Path | str) -> str:
    """Encode an absolute path the way session directories are named."""
    return str(path).replace("/", "-")


def home_prefix(home: Path | None = None) -> str:
    """Encoded home directory followed by the separator, e.g. ``-Users-name-``."""
    return encode_path(home or Path.home()) + "-"


def project_dir_name(sessions_dir: Path, file_path: Path) -> str:
    """First path segment of ``file_path`` below ``sessions_dir``."""
    return file_path.relative_to(sessions_dir).parts[0]


def decode_project_name(slug: str, home: Path | None = None) -> str:
    """Readable project name for a slug.

    -Users-name-Projects-my-app -> Projects-my-app (home stripped)
    -opt-work-tool              -> opt-work-tool
    """
    prefix = home_prefix(home)
    if slug.startswith(prefix):
        return slug[len(prefix):]
    return slug[1:] if slug.startswith("-") else slug


def project_name(sessions_dir: Path, file_path: Path, home: Path | None = None) -> str:
    """Readable project name for a session file."""
    return decode_project_name(project_dir_name(sessions_dir, file_path), home)


def _probe(base: Path, tokens: list[str], exists: ExistsCheck) -> Path | None:
    if not tokens:
        return base

    # Shortest grouping first: "Projects" before "Projects-my" before ...
    for size in range(1, len(tokens) + 1):
        segment = "-".join(tokens[:size])
        if not segment:
            continue
        candidate = base / segment
        if not exists(candidate):
            continue
        found = _probe(candidate, tokens[size:], exists)
        if found is not None:
            return found
    return None


def reconstruct_path(
    slug: str,
    exists: ExistsCheck | None = None,
    home: Path | None = None,
) -> Path | None:
    """Recover the real directory a slug was encoded from.

    Tokens are regrouped depth-first, trying the shortest grouping that
    exists at each level, until every token is consumed. Returns None when
    no grouping maps onto existing directories.
    """
    exists = exists or Path.is_dir
    home = home or Path.home()

    prefix = home_prefix(home)
    if slug.startswith(prefix):
        base, remainder = home, slug[len(prefix):]
    elif slug.startswith("-"):
        base, remainder = Path("/"), slug[1:]
    else:
        return None

    if not remainder:
        return None
    return _probe(base, remainder.split("-"), exists)


def read_git_remote(path: Path, timeout: float = GIT_TIMEOUT) -> str | None:
    """URL of the ``origin`` remote of the repository at ``path``, if any."""
    if not (path / ".git").exists():
        return None

    try:
        result = subprocess.run(
            ["git", "-C", str(path), "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.debug("git remote lookup timed out for %s", path)
        return None
    except OSError as exc:
        logger.debug("git unavailable for %s: %s", path, exc)
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


class RemoteResolver:
    """Compute-once cache of project paths and git remotes.

    Keys are session directory names (slugs). The first caller for a key
    reserves a Future under the lock and runs the lookup; concurrent callers
    for the same key wait on that Future, so git runs once per project.
    Lives for one search invocation.
    """

    def __init__(
        self,
        exists: ExistsCheck | None = None,
        home: Path | None = None,
        git_lookup: Callable[[Path], str | None] | None = None,
    ):
        self._exists = exists
        self._home = home
        self._git_lookup = git_lookup or read_git_remote
        self._lock = threading.Lock()
        self._paths: dict[str, Future] = {}
        self._remotes: dict[str, Future] = {}

    def _once(self, cache: dict[str, Future], key: str, compute: Callable[[], object]):
        with self._lock:
            future = cache.get(key)
            owner = future is None
            if owner:
                future = Future()
                cache[key] = future

        if owner:
            try:
                future.set_result(compute())
            except BaseException as exc:
                future.set_exception(exc)
                raise
        return future.result()

    def resolve_path(self, slug: str) -> Path | None:
        """Real directory for a slug, or None."""
        return self._once(
            self._paths,
            slug,
            lambda: reconstruct_path(slug, exists=self._exists, home=self._home),
        )

    def _lookup_remote(self, slug: str) -> str | None:
        path = self.resolve_path(slug)
        if path is None:
            logger.debug("Could not reconstruct a path for %s", slug)
            return None
        return self._git_lookup(path)

    def resolve_remote(self, slug: str) -> str | None:
        """Git origin URL for a slug, or None."""
        return self._once(self._remotes, slug, lambda: self._lookup_remote(slug))

    def identify(self, slug: str) -> ProjectIdentity:
        """Display name plus git remote for a slug."""
        return ProjectIdentity(
            name=decode_project_name(slug, self._home),
            remote_url=self.resolve_remote(slug),
        )
