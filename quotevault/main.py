import logging
import os
from pathlib import Path
from typing import List, Optional

import typer

from quotevault.config import settings
from quotevault.database import PersistenceError
from quotevault.library import BookNotFoundError, Library
from quotevault.utils.ui_helpers import (
    print_books_result,
    print_quotes_result,
    print_share_result,
    print_stats_result,
    set_output_mode,
)

APP_NAME = "QuoteVault CLI"

logger = logging.getLogger(__name__)


def _current_db_file() -> str:
    return os.environ.get("QUOTEVAULT_DB_FILE") or settings.data_file


# Single Library instance per database file
class LibraryManager:
    _instance: Optional[Library] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Library:
        """Return the shared Library, reopening it if the database file changed."""
        current_db = _current_db_file()
        if cls._instance is None or current_db != cls._db_file_snapshot:
            if cls._instance is not None:
                cls._instance.close()
            cls._instance = Library(db_file=current_db)
            cls._db_file_snapshot = current_db
            logger.debug(f"Library opened from {current_db}")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None
        cls._db_file_snapshot = None


def _fail(message: str) -> None:
    print(f"Error: {message}")
    raise typer.Exit(code=1)


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (output mode)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)


@app.command("books")
def cli_books():
    """List all books in the order they were added."""
    lib = LibraryManager.get_instance()
    books = lib.list_books()
    print_books_result(books, {b.id: lib.quote_count(b.id) for b in books})


@app.command("add-book")
def cli_add_book(
    title: str,
    author: str,
    cover: Optional[Path] = typer.Option(None, "--cover", help="Path to a cover image"),
):
    """Add a book to the library."""
    lib = LibraryManager.get_instance()
    cover_image = None
    if cover is not None:
        try:
            cover_image = cover.read_bytes()
        except OSError as e:
            _fail(f"Could not read cover image: {e}")
    try:
        book = lib.add_book(title, author, cover_image=cover_image)
    except ValueError as e:
        _fail(str(e))
    except PersistenceError as e:
        _fail(f"Book added but could not be saved: {e}")
    print(f"Successfully added: {book.title} by {book.author} [{book.id}]")


@app.command("remove-book")
def cli_remove_book(book_id: str):
    """Remove a book and every quote attached to it."""
    lib = LibraryManager.get_instance()
    removed_quotes = lib.quote_count(book_id)
    if lib.delete_book(book_id):
        print(f"Book {book_id} has been removed along with {removed_quotes} quote(s).")
    else:
        print(f"Book {book_id} not found.")


@app.command("find-book")
def cli_find_book(book_id: str):
    """Show a single book."""
    lib = LibraryManager.get_instance()
    book = lib.get_book(book_id)
    if not book:
        print(f"Book {book_id} not found.")
        return
    print("Book Found")
    print(f"Title: {book.title}")
    print(f"Author: {book.author}")
    print(f"Added: {book.created_at:%Y-%m-%d}")
    print(f"Cover: {'yes' if book.has_cover else 'no'}")
    print(f"Quotes: {lib.quote_count(book.id)}")


@app.command("search-books")
def cli_search_books(query: str = typer.Argument(..., help="Text to look for in title or author")):
    """Search books by title or author."""
    lib = LibraryManager.get_instance()
    books = lib.search_books(query)
    print_books_result(books, {b.id: lib.quote_count(b.id) for b in books}, empty_message="No matching books.")


@app.command("quotes")
def cli_quotes(
    book: Optional[str] = typer.Option(None, "--book", "-b", help="Only quotes from this book"),
    favorites: bool = typer.Option(False, "--favorites", "-f", help="Only favorite quotes"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by text, title or author"),
):
    """List quotes, most recent first (stored order within one book)."""
    lib = LibraryManager.get_instance()
    if book is not None and not lib.get_book(book):
        print(f"Book {book} not found.")
        return
    quotes = lib.search_quotes(search or "", book_id=book, favorites_only=favorites)
    filtered = bool(search) or favorites
    print_quotes_result(
        quotes,
        {b.id: b for b in lib.list_books()},
        empty_message="No matching quotes." if filtered else "No quotes yet.",
    )


@app.command("add-quote")
def cli_add_quote(
    book_id: str,
    content: str,
    page: Optional[int] = typer.Option(None, "--page", "-p", help="Page number"),
    chapter: Optional[str] = typer.Option(None, "--chapter", "-c", help="Chapter label"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Your thoughts about this quote"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
):
    """Add a quote to an existing book."""
    lib = LibraryManager.get_instance()
    try:
        quote = lib.add_quote(content, book_id, page=page, chapter=chapter, notes=notes, tags=tag)
    except BookNotFoundError:
        _fail(f"Book {book_id} not found.")
    except ValueError as e:
        _fail(str(e))
    except PersistenceError as e:
        _fail(f"Quote added but could not be saved: {e}")
    print(f"Quote added [{quote.id}]")


@app.command("remove-quote")
def cli_remove_quote(quote_id: str):
    """Delete a quote."""
    lib = LibraryManager.get_instance()
    if lib.delete_quote(quote_id):
        print(f"Quote {quote_id} has been removed.")
    else:
        print(f"Quote {quote_id} not found.")


@app.command("favorite")
def cli_favorite(quote_id: str):
    """Toggle the favorite flag of a quote."""
    lib = LibraryManager.get_instance()
    quote = lib.toggle_favorite(quote_id)
    if not quote:
        print(f"Quote {quote_id} not found.")
        return
    state = "added to" if quote.is_favorite else "removed from"
    print(f"Quote {quote_id} {state} favorites.")


@app.command("share")
def cli_share(quote_id: str):
    """Print a quote in its shareable form."""
    lib = LibraryManager.get_instance()
    text = lib.share_text(quote_id)
    if text is None:
        print(f"Quote {quote_id} not found.")
        return
    print_share_result(text)


@app.command("daily")
def cli_daily():
    """Show a random quote, picked from favorites when there are any."""
    lib = LibraryManager.get_instance()
    quote = lib.daily_quote()
    if not quote:
        print("No quotes available. Add some books and quotes to get started.")
        return
    print_share_result(lib.share_text(quote.id), title="✨ Daily Quote")


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(LibraryManager.get_instance().get_statistics())


if __name__ == "__main__":
    app()
