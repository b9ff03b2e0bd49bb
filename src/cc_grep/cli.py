"""CLI for cc-grep."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from cc_grep import __version__
from cc_grep.models import SearchOptions
from cc_grep.scanner import SESSIONS_DIR, SessionsDirError

app = typer.Typer(
    name="cc-grep",
    help="Search Claude Code session history for exact text.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cc-grep {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Search Claude Code session history."""
    pass


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to search for")],
    sessions_dir: Annotated[
        Path, typer.Option("--dir", "-d", help="Sessions directory to search")
    ] = SESSIONS_DIR,
    limit: Annotated[int, typer.Option("--limit", "-l", help="Max matches to show")] = 20,
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Filter by project name (partial match)")
    ] = None,
    context: Annotated[
        int, typer.Option("--context", "-C", help="Context messages around each match")
    ] = 1,
    case_sensitive: Annotated[
        bool, typer.Option("--case-sensitive", "-s", help="Case-sensitive search")
    ] = False,
    since: Annotated[
        str | None,
        typer.Option(
            "--since", help='Only sessions after this date (e.g. "2 weeks ago", "2024-01-15")'
        ),
    ] = None,
    code_only: Annotated[
        bool, typer.Option("--code-only", help="Only show code blocks containing the match")
    ] = False,
    reasoning: Annotated[
        bool, typer.Option("--reasoning", help="Show thinking lines around the match")
    ] = False,
    open_first: Annotated[
        bool, typer.Option("--open", help="Resume the first matching session in Claude Code")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log skipped files")] = False,
) -> None:
    """Search sessions for a query."""
    configure_logging(verbose)

    if not query.strip():
        err_console.print("[red]Error: Query required[/red]")
        raise typer.Exit(1)

    from cc_grep.display import format_json_output, print_results
    from cc_grep.paths import RemoteResolver
    from cc_grep.searcher import InvalidSinceError, open_session, parse_since
    from cc_grep.searcher import search as run_search

    try:
        since_dt = parse_since(since)
    except InvalidSinceError as exc:
        err_console.print(f"[red]Error: {escape(str(exc))}[/red]", highlight=False)
        raise typer.Exit(1) from exc

    options = SearchOptions(
        limit=limit,
        project=project,
        context=context,
        case_sensitive=case_sensitive,
        since=since_dt,
        code_only=code_only,
        show_reasoning=reasoning,
    )
    resolver = RemoteResolver()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=err_console,
            transient=True,
            disable=json_output,
        ) as progress:
            task = progress.add_task("Scanning sessions...", total=None)

            def on_progress(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            results = run_search(
                query, sessions_dir, options, resolver=resolver, on_progress=on_progress
            )
    except SessionsDirError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]", highlight=False)
        raise typer.Exit(1) from exc

    if json_output:
        format_json_output(results, query)
    else:
        print_results(results, query, case_sensitive=case_sensitive, code_only=code_only)

    if open_first and results.matches:
        first = results.matches[0]
        err_console.print(f"[dim]Resuming session {first.session_id}...[/dim]")
        try:
            open_session(first, sessions_dir, resolver=resolver)
        except OSError as exc:
            err_console.print(
                f"[red]Could not start Claude Code: {escape(str(exc))}[/red]", highlight=False
            )
            raise typer.Exit(1) from exc


@app.command()
def session(
    session_id: Annotated[str, typer.Argument(help="Session ID (or prefix)")],
    sessions_dir: Annotated[
        Path, typer.Option("--dir", "-d", help="Sessions directory")
    ] = SESSIONS_DIR,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")] = False,
) -> None:
    """Show details for a session and how to resume it."""
    configure_logging(verbose)

    from cc_grep.display import print_session_details
    from cc_grep.searcher import session_details

    try:
        details = session_details(session_id, sessions_dir)
    except SessionsDirError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]", highlight=False)
        raise typer.Exit(1) from exc
    except OSError as exc:
        err_console.print(
            f"[red]Cannot read session {escape(session_id)}: {escape(str(exc))}[/red]",
            highlight=False,
        )
        raise typer.Exit(1) from exc

    if details is None:
        err_console.print(f"[yellow]No session found matching '{escape(session_id)}'[/yellow]")
        raise typer.Exit(1)

    print_session_details(details)


if __name__ == "__main__":
    app()
