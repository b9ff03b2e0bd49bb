"""Terminal and JSON output for search results."""

import re
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.text import Text

from cc_grep.matcher import contains
from cc_grep.models import Match, Record, SearchResults, SessionDetails
from cc_grep.searcher import resume_command
from cc_grep.store import extract_text, message_content, message_role

console = Console()

SNIPPET_RADIUS = 120
CONTEXT_PREVIEW = 140


def format_date(ts: datetime | None) -> str:
    if ts is None:
        return ""
    return ts.strftime("%b %d, %Y")


def snippet(
    text: str, query: str, radius: int = SNIPPET_RADIUS, case_sensitive: bool = False
) -> str:
    """Part of ``text`` centred on the first occurrence of ``query``."""
    idx = text.find(query) if case_sensitive else text.lower().find(query.lower())
    if idx == -1:
        return text[: radius * 2]
    start = max(0, idx - radius)
    end = min(len(text), idx + len(query) + radius)
    return ("…" if start > 0 else "") + text[start:end] + ("…" if end < len(text) else "")


def highlight_matches(text: str, query: str, case_sensitive: bool = False) -> Text:
    """Rich Text with every occurrence of ``query`` highlighted."""
    rendered = Text(text)
    if query:
        flags = 0 if case_sensitive else re.IGNORECASE
        rendered.highlight_regex(re.compile(re.escape(query), flags), style="bold yellow")
    return rendered


def _role_label(role: str, dim: bool) -> Text:
    label = "  Assistant  " if role == "assistant" else "  User       "
    if dim:
        return Text(label, style="dim")
    return Text(label, style="blue" if role == "assistant" else "green")


def print_context_message(record: Record) -> None:
    text = extract_text(message_content(record))
    preview = text[:CONTEXT_PREVIEW] + ("…" if len(text) > CONTEXT_PREVIEW else "")
    line = _role_label(message_role(record), dim=True)
    line.append(preview, style="dim")
    console.print(line)


def print_match(match: Match, query: str, case_sensitive: bool, code_only: bool) -> None:
    for record in match.before:
        print_context_message(record)

    line = _role_label(match.role, dim=False)
    preview = snippet(match.text, query, case_sensitive=case_sensitive)
    line.append_text(highlight_matches(preview, query, case_sensitive))
    console.print(line)

    blocks = match.code_blocks
    if code_only:
        blocks = [b for b in blocks if contains(b.code, query, case_sensitive)]
    for block in blocks:
        console.print(Syntax(block.code, block.lang, line_numbers=False, word_wrap=True))

    if match.reasoning is not None:
        console.print(Text("  Reasoning", style="magenta"))
        if match.reasoning.truncated_before:
            console.print(Text("    …", style="dim"))
        for i, reasoning_line in enumerate(match.reasoning.lines):
            if i == match.reasoning.hit_index:
                hit = Text("  ▶ ", style="bold magenta")
                hit.append_text(highlight_matches(reasoning_line, query, case_sensitive))
                console.print(hit)
            else:
                console.print(Text(f"    {reasoning_line}", style="dim"))
        if match.reasoning.truncated_after:
            console.print(Text("    …", style="dim"))

    for record in match.after:
        print_context_message(record)


def print_results(
    results: SearchResults,
    query: str,
    case_sensitive: bool = False,
    code_only: bool = False,
) -> None:
    """Human-readable results, grouped by session file."""
    if not results.matches:
        console.print(f'\n[yellow]No matches found for "{escape(query)}"[/yellow]')
        return

    shown = len(results.matches)
    total = results.total
    extra = f" — showing first {shown}" if total > shown else ""
    console.print(f"\n[dim]{total} match{'' if total == 1 else 'es'} found{extra}[/dim]\n")

    last_file = None
    for match in results.matches:
        if match.file_path != last_file:
            header = Text(match.project, style="bold cyan")
            if match.remote_url:
                header.append(f"  ({match.remote_url})", style="cyan")
            header.append(
                f"  ›  {match.session_id[:8]}  ·  {format_date(match.timestamp)}", style="dim"
            )
            console.print(header)
            console.print(Text(f"  → {resume_command(match.session_id)}", style="dim"))
            console.print("[dim]" + "─" * 70 + "[/dim]")
            last_file = match.file_path

        print_match(match, query, case_sensitive, code_only)
        console.print("[dim]  " + "╌" * 34 + "[/dim]")

    console.print()


def format_json_output(results: SearchResults, query: str) -> None:
    """Results as JSON for programmatic use."""
    output = {
        "results": [
            {
                "rank": i + 1,
                "project": match.project,
                "remote_url": match.remote_url,
                "session_id": match.session_id,
                "session_path": str(match.file_path),
                "timestamp": match.timestamp.isoformat() if match.timestamp else None,
                "role": match.role,
                "text": match.text,
                "code_blocks": [{"lang": b.lang, "code": b.code} for b in match.code_blocks],
                "reasoning": (
                    {
                        "lines": match.reasoning.lines,
                        "hit_index": match.reasoning.hit_index,
                        "truncated_before": match.reasoning.truncated_before,
                        "truncated_after": match.reasoning.truncated_after,
                    }
                    if match.reasoning
                    else None
                ),
                "before": [
                    {"role": message_role(r), "text": extract_text(message_content(r))}
                    for r in match.before
                ],
                "after": [
                    {"role": message_role(r), "text": extract_text(message_content(r))}
                    for r in match.after
                ],
            }
            for i, match in enumerate(results.matches)
        ],
        "query": query,
        "total": results.total,
        "shown": len(results.matches),
    }
    console.print_json(data=output)


def print_session_details(details: SessionDetails) -> None:
    """Session metadata and how to resume it."""
    console.print(Text(details.project, style="bold cyan"))
    rows = [("Session", details.session_id), ("File", details.file_path)]
    if details.project_path:
        rows.append(("Directory", details.project_path))
    if details.remote_url:
        rows.append(("Remote", details.remote_url))
    if details.first_timestamp:
        rows.append(("Started", details.first_timestamp.isoformat()))
    if details.last_timestamp:
        rows.append(("Last", details.last_timestamp.isoformat()))
    rows.append(
        ("Messages", f"{details.user_messages} user, {details.assistant_messages} assistant")
    )
    for label, value in rows:
        console.print(f"  {label + ':':<12}{value}", markup=False, highlight=False)
    if details.first_prompt:
        prompt = details.first_prompt.strip().replace("\n", " ")
        preview = prompt[:CONTEXT_PREVIEW] + ("…" if len(prompt) > CONTEXT_PREVIEW else "")
        console.print(Text(f"  First:      {preview}", style="dim"))

    console.print()
    if details.project_path:
        command = f"cd {details.project_path} && {details.resume_command}"
    else:
        command = details.resume_command
    console.print(f"[green]{escape(command)}[/green]")
