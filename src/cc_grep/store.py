"""JSONL session loading."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cc_grep.models import Record, TextBlock, parse_content_blocks

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ("user", "assistant")


@dataclass
class LoadedSession:
    """All records of one session file plus the user/assistant subset."""

    path: Path
    records: list[Record] = field(default_factory=list)
    messages: list[Record] = field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.path.stem

    @property
    def first_timestamp(self) -> datetime | None:
        if not self.records:
            return None
        return parse_timestamp(self.records[0].get("timestamp"))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Anything unparseable gives None.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def load_session(path: Path) -> LoadedSession:
    """Parse a JSONL session file.

    Lines that are not valid JSON objects are skipped: sessions are
    append-only logs and the last line may be cut off mid-write.

    Raises:
        OSError: If the file cannot be read.
    """
    session = LoadedSession(path=path)
    dropped = 0

    with open(path, encoding="utf-8", errors="replace") as f:
        raw = f.read()

    for line in raw.split("\n"):
        line = line.strip()
        if not line:
            continue

        try:
            record = json.loads(line)
        except (ValueError, RecursionError):
            # JSONDecodeError, oversized integers and deeply nested values.
            dropped += 1
            continue

        if not isinstance(record, dict):
            dropped += 1
            continue

        session.records.append(record)
        if record.get("type") in MESSAGE_TYPES:
            session.messages.append(record)

    if dropped:
        logger.debug("Dropped %d unparseable line(s) in %s", dropped, path)

    return session


def message_content(record: Record) -> Any:
    message = record.get("message")
    if not isinstance(message, dict):
        return None
    return message.get("content")


def message_role(record: Record) -> str:
    """Role of a message record, falling back to its type tag."""
    message = record.get("message")
    if isinstance(message, dict) and message.get("role"):
        return message["role"]
    return record.get("type") or "unknown"


def extract_text(content: Any) -> str:
    """Searchable text of a message's content.

    Plain strings are returned verbatim. For block lists the ``text`` blocks
    are joined with newlines and the result trimmed.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts = [b.text for b in parse_content_blocks(content) if isinstance(b, TextBlock)]
    return "\n".join(parts).strip()
