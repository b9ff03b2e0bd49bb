"""Per-session match extraction."""

import re
from typing import Any

from cc_grep.models import (
    CodeBlock,
    Match,
    ReasoningSnippet,
    Record,
    SearchOptions,
    ThinkingBlock,
    parse_content_blocks,
)
from cc_grep.store import (
    LoadedSession,
    extract_text,
    message_content,
    message_role,
    parse_timestamp,
)

REASONING_WINDOW = 3

# ```lang\n...``` with an optional language tag on the opening fence.
CODE_FENCE_RE = re.compile(r"```([^\s`]*)[^\n]*\n(.*?)```", re.DOTALL)


def contains(haystack: str, query: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return query in haystack
    return query.lower() in haystack.lower()


def extract_code_blocks(content: Any) -> list[CodeBlock]:
    """Fenced code blocks in message text, in source order.

    ``content`` may be a string or a list of content blocks, of which only
    the text blocks are considered.
    """
    text = content if isinstance(content, str) else extract_text(content)
    return [
        CodeBlock(lang=m.group(1) or "text", code=m.group(2).rstrip())
        for m in CODE_FENCE_RE.finditer(text)
    ]


def find_reasoning(
    content: Any,
    query: str,
    case_sensitive: bool = False,
    window: int = REASONING_WINDOW,
) -> ReasoningSnippet | None:
    """Lines of the first thinking block around its first line containing ``query``."""
    thinking = next(
        (b for b in parse_content_blocks(content) if isinstance(b, ThinkingBlock)),
        None,
    )
    if thinking is None:
        return None

    lines = thinking.thinking.split("\n")
    hit = next(
        (i for i, line in enumerate(lines) if contains(line, query, case_sensitive)),
        None,
    )
    if hit is None:
        return None

    start = max(0, hit - window)
    end = min(len(lines), hit + window + 1)
    return ReasoningSnippet(
        lines=lines[start:end],
        hit_index=hit - start,
        truncated_before=start > 0,
        truncated_after=end < len(lines),
    )


def context_slice(
    messages: list[Record], index: int, context: int
) -> tuple[list[Record], list[Record]]:
    """Up to ``context`` messages before and after ``messages[index]``."""
    context = max(0, context)
    before = messages[max(0, index - context):index]
    after = messages[index + 1:index + 1 + context]
    return before, after


def match_session(
    session: LoadedSession,
    query: str,
    options: SearchOptions,
    project: str,
    remote_url: str | None = None,
) -> list[Match]:
    """All messages of ``session`` that contain ``query``."""
    first_timestamp = session.first_timestamp

    # Session-level cutoff on the first record's timestamp.
    if options.since is not None and first_timestamp is not None:
        if first_timestamp < options.since:
            return []

    matches: list[Match] = []
    for i, msg in enumerate(session.messages):
        content = message_content(msg)
        text = extract_text(content)
        if not contains(text, query, options.case_sensitive):
            continue

        code_blocks = extract_code_blocks(text)
        if options.code_only and not any(
            contains(block.code, query, options.case_sensitive) for block in code_blocks
        ):
            continue

        reasoning = None
        if options.show_reasoning:
            reasoning = find_reasoning(
                content, query, options.case_sensitive, options.reasoning_window
            )

        before, after = context_slice(session.messages, i, options.context)
        matches.append(
            Match(
                file_path=session.path,
                project=project,
                session_id=session.session_id,
                timestamp=parse_timestamp(msg.get("timestamp")) or first_timestamp,
                role=message_role(msg),
                text=text,
                remote_url=remote_url,
                code_blocks=code_blocks,
                reasoning=reasoning,
                before=before,
                after=after,
            )
        )

    return matches
