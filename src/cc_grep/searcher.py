"""Search across all session files, ranked by recency."""

import calendar
import logging
import re
import subprocess
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cc_grep.matcher import match_session
from cc_grep.models import Match, SearchOptions, SearchResults, SessionDetails
from cc_grep.paths import RemoteResolver, decode_project_name, project_dir_name
from cc_grep.scanner import SESSIONS_DIR, discover_sessions, scan
from cc_grep.store import extract_text, load_session, message_content, parse_timestamp

logger = logging.getLogger(__name__)

RESUME_BINARY = "claude"

SINCE_RE = re.compile(
    r"^(\d+)\s+(minute|hour|day|week|month|year)s?\s+ago$", re.IGNORECASE
)


class InvalidSinceError(ValueError):
    """A --since value matched neither the relative nor the date grammar."""


def _months_ago(now: datetime, months: int) -> datetime:
    total = now.year * 12 + (now.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def parse_since(since: str | None, now: datetime | None = None) -> datetime | None:
    """Parse a since string into a UTC-aware datetime.

    Supports:
    - Relative: "30 minutes ago", "1 day ago", "2 weeks ago", "3 months ago"
    - Absolute: "2024-01-15", "2024-01-15T10:00:00"

    Raises:
        InvalidSinceError: If the value matches neither form.
    """
    if not since or not since.strip():
        return None

    value = since.strip()
    now = now or datetime.now(tz=timezone.utc)

    match = SINCE_RE.match(value)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()

        if unit == "minute":
            return now - timedelta(minutes=amount)
        elif unit == "hour":
            return now - timedelta(hours=amount)
        elif unit == "day":
            return now - timedelta(days=amount)
        elif unit == "week":
            return now - timedelta(weeks=amount)
        elif unit == "month":
            return _months_ago(now, amount)
        else:
            return _months_ago(now, amount * 12)

    # ISO date or datetime
    dt = parse_timestamp(value)
    if dt is None:
        raise InvalidSinceError(
            f'Cannot parse --since value: "{since}". '
            'Use a date like "2024-01-15" or a relative time like "2 weeks ago".'
        )
    return dt


def rank_matches(matches: list[Match]) -> list[Match]:
    """Newest first; matches without a timestamp go last."""
    return sorted(
        matches,
        key=lambda m: (m.timestamp is None, -m.timestamp.timestamp() if m.timestamp else 0.0),
    )


def search(
    query: str,
    sessions_dir: Path = SESSIONS_DIR,
    options: SearchOptions | None = None,
    resolver: RemoteResolver | None = None,
    on_progress: Callable[[int, int], None] | None = None,
) -> SearchResults:
    """Search every session below ``sessions_dir`` for ``query``.

    Args:
        query: Substring to look for.
        sessions_dir: Root of the per-project session directories.
        options: Filters and limits; defaults to SearchOptions().
        resolver: Path/remote cache, shared by all workers of this call.
        on_progress: Called with (files done, files total) as files finish.

    Raises:
        SessionsDirError: If ``sessions_dir`` cannot be read.
    """
    options = options or SearchOptions()
    resolver = resolver or RemoteResolver()
    sessions_dir = Path(sessions_dir)

    files = discover_sessions(sessions_dir)

    if options.project:
        needle = options.project.lower()
        files = [
            path
            for path in files
            if needle in decode_project_name(project_dir_name(sessions_dir, path)).lower()
        ]

    def process(path: Path) -> list[Match]:
        slug = project_dir_name(sessions_dir, path)
        session = load_session(path)
        found = match_session(session, query, options, project=decode_project_name(slug))
        if found and options.resolve_remotes:
            remote = resolver.resolve_remote(slug)
            if remote:
                found = [replace(m, remote_url=remote) for m in found]
        return found

    done = 0

    def file_done(_path: Path) -> None:
        nonlocal done
        done += 1
        if on_progress is not None:
            on_progress(done, len(files))

    matches: list[Match] = []
    for found in scan(files, process, max_workers=options.max_workers, on_done=file_done):
        matches.extend(found)

    ranked = rank_matches(matches)
    limit = max(0, options.limit)
    return SearchResults(matches=ranked[:limit], total=len(ranked))


def resume_command(session_id: str) -> str:
    return f"{RESUME_BINARY} --resume {session_id}"


def find_session_file(session_id: str, sessions_dir: Path = SESSIONS_DIR) -> Path | None:
    """Newest session file whose id starts with ``session_id``."""
    candidates = [
        path
        for path in discover_sessions(Path(sessions_dir))
        if path.stem.startswith(session_id)
    ]
    if not candidates:
        return None

    def mtime(path: Path) -> float:
        try:
            return path.stat().st_mtime
        except OSError:
            return 0.0

    return max(candidates, key=mtime)


def session_details(
    session_id: str,
    sessions_dir: Path = SESSIONS_DIR,
    resolver: RemoteResolver | None = None,
) -> SessionDetails | None:
    """Metadata and resume hint for one session, or None if it doesn't exist.

    Raises:
        SessionsDirError: If ``sessions_dir`` cannot be read.
        OSError: If the session file exists but cannot be read.
    """
    sessions_dir = Path(sessions_dir)
    resolver = resolver or RemoteResolver()

    path = find_session_file(session_id, sessions_dir)
    if path is None:
        return None

    session = load_session(path)
    slug = project_dir_name(sessions_dir, path)
    identity = resolver.identify(slug)

    timestamps = [
        ts for ts in (parse_timestamp(r.get("timestamp")) for r in session.records) if ts
    ]
    roles = [m.get("type") for m in session.messages]
    first_prompt = next(
        (
            text
            for text in (
                extract_text(message_content(m))
                for m in session.messages
                if m.get("type") == "user"
            )
            if text.strip()
        ),
        None,
    )

    return SessionDetails(
        session_id=session.session_id,
        file_path=path,
        project=identity.name,
        project_path=resolver.resolve_path(slug),
        remote_url=identity.remote_url,
        first_timestamp=min(timestamps) if timestamps else None,
        last_timestamp=max(timestamps) if timestamps else None,
        user_messages=roles.count("user"),
        assistant_messages=roles.count("assistant"),
        first_prompt=first_prompt,
        resume_command=resume_command(session.session_id),
    )


def open_session(
    match: Match, sessions_dir: Path = SESSIONS_DIR, resolver: RemoteResolver | None = None
) -> int:
    """Resume the session of ``match`` in Claude Code.

    Runs in the project's directory when it can be reconstructed, so the
    resumed session picks up the right working tree.
    """
    resolver = resolver or RemoteResolver()
    cwd = resolver.resolve_path(project_dir_name(Path(sessions_dir), match.file_path))
    logger.debug("Resuming %s in %s", match.session_id, cwd or Path.cwd())
    return subprocess.run(
        [RESUME_BINARY, "--resume", match.session_id],
        cwd=str(cwd) if cwd else None,
    ).returncode
