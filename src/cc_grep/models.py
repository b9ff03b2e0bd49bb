"""Data models for cc-grep."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

# One parsed JSONL line, kept as-is.
Record = dict[str, Any]


@dataclass(frozen=True)
class TextBlock:
    """A user-facing text block."""

    text: str
    type: str = "text"


@dataclass(frozen=True)
class ThinkingBlock:
    """A reasoning block, separate from the visible reply."""

    thinking: str
    type: str = "thinking"


@dataclass(frozen=True)
class OpaqueBlock:
    """Any other block (tool_use, tool_result, image...), passed through untouched."""

    type: str | None
    data: dict[str, Any]


ContentBlock = TextBlock | ThinkingBlock | OpaqueBlock


def parse_content_blocks(content: Any) -> list[ContentBlock]:
    """Map ``message.content`` to typed blocks.

    A plain string is a single text block. Non-dict list items are ignored.
    """
    if isinstance(content, str):
        return [TextBlock(text=content)]
    if not isinstance(content, list):
        return []

    blocks: list[ContentBlock] = []
    for item in content:
        if not isinstance(item, dict):
            continue
        block_type = item.get("type")
        if block_type == "text":
            text = item.get("text")
            blocks.append(TextBlock(text=text if isinstance(text, str) else ""))
        elif block_type == "thinking":
            thinking = item.get("thinking")
            blocks.append(
                ThinkingBlock(thinking=thinking if isinstance(thinking, str) else "")
            )
        else:
            blocks.append(OpaqueBlock(type=block_type, data=item))
    return blocks


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code region found in message text."""

    lang: str
    code: str


@dataclass
class ReasoningSnippet:
    """A window of thinking lines around the first hit."""

    lines: list[str]
    hit_index: int  # index into ``lines``
    truncated_before: bool
    truncated_after: bool


@dataclass
class ProjectIdentity:
    """Display name and git remote of a session's project."""

    name: str
    remote_url: str | None = None


@dataclass
class Match:
    """A single matching message with its surroundings."""

    file_path: Path
    project: str
    session_id: str
    timestamp: datetime | None
    role: str
    text: str
    remote_url: str | None = None
    code_blocks: list[CodeBlock] = field(default_factory=list)
    reasoning: ReasoningSnippet | None = None
    before: list[Record] = field(default_factory=list)
    after: list[Record] = field(default_factory=list)


@dataclass
class SearchOptions:
    """Knobs for a single search invocation."""

    limit: int = 20
    project: str | None = None
    context: int = 1
    case_sensitive: bool = False
    since: datetime | None = None
    code_only: bool = False
    show_reasoning: bool = False
    reasoning_window: int = 3
    max_workers: int = 20
    resolve_remotes: bool = True


@dataclass
class SearchResults:
    """Ordered, truncated matches plus the count before truncation."""

    matches: list[Match]
    total: int


@dataclass
class SessionDetails:
    """Metadata for one session, used by the ``session`` command."""

    session_id: str
    file_path: Path
    project: str
    project_path: Path | None
    remote_url: str | None
    first_timestamp: datetime | None
    last_timestamp: datetime | None
    user_messages: int
    assistant_messages: int
    first_prompt: str | None
    resume_command: str
