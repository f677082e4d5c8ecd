import os
import json
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel

# Environment variable controlling CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "QUOTEVAULT_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode
    # Unknown values are ignored and the current mode is kept


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_books_result(books: List[Any], counts: Optional[Dict[str, int]] = None,
                       empty_message: str = "No books in library.") -> None:
    """Print books in the current output mode.
    - plain: 'ID - Title by Author (n quotes)' lines
    - json: array of id, title, author, quote_count
    - rich: table
    """
    mode = get_output_mode()
    counts = counts or {}

    if not books:
        print(empty_message)
        return

    if mode == "json":
        payload = [
            {"id": b.id, "title": b.title, "author": b.author, "quote_count": counts.get(b.id, 0)}
            for b in books
        ]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Quotes", justify="right")
        for b in books:
            table.add_row(b.id, escape(b.title), escape(b.author), str(counts.get(b.id, 0)))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} ({counts.get(b.id, 0)} quotes)")


def print_quotes_result(quotes: List[Any], books_by_id: Dict[str, Any],
                        empty_message: str = "No quotes yet.") -> None:
    """Print quotes with their book attribution in the current output mode."""
    mode = get_output_mode()

    if not quotes:
        print(empty_message)
        return

    def attribution(q) -> str:
        book = books_by_id.get(q.book_id)
        return f"{book.author}, {book.title}" if book else ""

    if mode == "json":
        payload = []
        for q in quotes:
            item = q.to_dict()
            item["book"] = attribution(q)
            payload.append(item)
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="💬 Quotes", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("★", justify="center")
        table.add_column("Quote", style="italic")
        table.add_column("From", style="white")
        table.add_column("Page", justify="right")
        for q in quotes:
            table.add_row(
                q.id,
                "★" if q.is_favorite else "",
                escape(q.content),
                escape(attribution(q)),
                "" if q.page is None else str(q.page),
            )
        _console.print(table)
    else:
        for q in quotes:
            star = "* " if q.is_favorite else ""
            page = f" (Page {q.page})" if q.page is not None else ""
            print(f'{q.id} - {star}"{q.content}" — {attribution(q)}{page}')


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {stats.get('total_books', 0)}\n"
            f"[bold]Total Quotes:[/] {stats.get('total_quotes', 0)}\n"
            f"[bold]Favorite Quotes:[/] {stats.get('favorite_quotes', 0)}\n"
            f"[bold]Unique Authors:[/] {stats.get('unique_authors', 0)}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total Books: {stats.get('total_books', 0)}")
        print(f"Total Quotes: {stats.get('total_quotes', 0)}")
        print(f"Favorite Quotes: {stats.get('favorite_quotes', 0)}")
        print(f"Unique Authors: {stats.get('unique_authors', 0)}")


def print_share_result(text: str, title: str = "Share") -> None:
    """Share text is printed verbatim except in rich mode, where it is framed."""
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"text": text}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel.fit(escape(text), title=title, border_style="green"))
    else:
        print(text)
