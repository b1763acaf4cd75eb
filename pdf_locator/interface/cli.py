# pdf_locator/interface/cli.py

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from pdf_locator.domain.models import SearchQuery, SearchState, SearchStatus


console = Console()


def display_welcome_banner(file_name: str, page_count: int) -> None:
    console.print(Panel.fit(
        "[bold cyan]🔎 PDF Product Locator[/bold cyan]\n"
        f"[dim]{file_name} · {page_count} page(s)[/dim]",
        box=box.DOUBLE,
        border_style="cyan",
    ))


def prompt_for_page(page_count: int, default: int = 1) -> int:
    while True:
        page = IntPrompt.ask("\n[bold yellow]📄 Page[/bold yellow]", default=default)
        if 1 <= page <= page_count:
            return page
        display_error(f"Page must be between 1 and {page_count}.")


def prompt_for_query() -> SearchQuery:
    text = Prompt.ask("[bold yellow]❓ Product name[/bold yellow]")
    isbn = Prompt.ask("[dim]ISBN (optional)[/dim]", default="")
    subject = Prompt.ask("[dim]Subject (optional)[/dim]", default="")
    return SearchQuery(text=text, isbn=isbn or None, subject=subject or None)


def display_search_state(state: SearchState) -> None:
    if state.status is SearchStatus.IDLE:
        console.print("\n[dim]Nothing to search.[/dim]\n")
        return

    query_text = state.query.text if state.query else ""
    if state.status is SearchStatus.NOT_FOUND:
        console.print(f"\n[bold red]✗ Not found:[/bold red] [italic]\"{query_text}\"[/italic]\n")
        return
    if state.status is SearchStatus.SEARCHING:
        console.print(f"\n[yellow]… searching for[/yellow] [italic]\"{query_text}\"[/italic]\n")
        return

    table = Table(
        title=f"Matches for \"{query_text}\" ({state.current_index + 1}/{state.total_matches})",
        box=box.ROUNDED,
    )
    table.add_column("", width=2)
    table.add_column("Type")
    table.add_column("Similarity", justify="right")
    table.add_column("Left %", justify="right")
    table.add_column("Top %", justify="right")
    table.add_column("Width %", justify="right")
    table.add_column("Height %", justify="right")
    table.add_column("Text", overflow="fold")

    for index, match in enumerate(state.matches):
        candidate = match.candidate
        color = _quality_to_color(candidate.display_quality)
        marker = "▶" if index == state.current_index else ""
        table.add_row(
            marker,
            f"[{color}]{candidate.match_type.value}[/{color}]",
            f"[{color}]{candidate.similarity:.2f}[/{color}]",
            f"{match.rect.left:.1f}",
            f"{match.rect.top:.1f}",
            f"{match.rect.width:.1f}",
            f"{match.rect.height:.1f}",
            candidate.matched_text,
        )

    console.print()
    console.print(table)


def display_error(message: str) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}\n")


def ask_action(has_many_matches: bool) -> str:
    """n = next, p = previous, s = new search, q = quit."""
    choices = ["n", "p", "s", "q"] if has_many_matches else ["s", "q"]
    return Prompt.ask(
        "\n[dim]Next, previous, new search or quit?[/dim]",
        choices=choices,
        default="s",
    )


def _quality_to_color(quality: Optional[str]) -> str:
    return "green" if quality == "exact" else "yellow"
