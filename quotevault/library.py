import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from quotevault.book import Book
from quotevault.config import settings
from quotevault.database import BOOKS_KEY, QUOTES_KEY, KeyValueStore, MemoryStore, PersistenceError
from quotevault.ids import IdGenerator, UUIDGenerator
from quotevault.quote import Quote, format_share_text
from quotevault.utils.validators import PageValidator, TextValidator

logger = logging.getLogger(__name__)

BOOK_ADDED = "book_added"
BOOK_UPDATED = "book_updated"
BOOK_DELETED = "book_deleted"
QUOTE_ADDED = "quote_added"
QUOTE_UPDATED = "quote_updated"
QUOTE_DELETED = "quote_deleted"


class BookNotFoundError(LookupError):
    """A quote referenced a book that is not in the library."""


@dataclass
class Change:
    """Delta describing one completed mutation."""

    kind: str
    books: List[Book] = field(default_factory=list)
    quotes: List[Quote] = field(default_factory=list)


Listener = Callable[[Change], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Library:
    """Owns the book and quote collections and keeps them persisted."""

    def __init__(self, db_file: Optional[str] = None, *, storage=None,
                 id_generator: Optional[IdGenerator] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 rng: Optional[random.Random] = None,
                 strict_persistence: Optional[bool] = None) -> None:
        self.strict_persistence = settings.strict_persistence if strict_persistence is None else strict_persistence
        # An explicit storage wins; otherwise open the SQLite file from args or settings
        self.storage = storage if storage is not None else self._open_storage(db_file or settings.data_file)
        self.id_generator = id_generator or UUIDGenerator()
        self.clock = clock or _utcnow
        self.rng = rng or random.Random()
        self._listeners: List[Listener] = []

        self.books: List[Book] = []
        self.quotes: List[Quote] = []
        self.reload()

    def _open_storage(self, db_file: str):
        """Open the SQLite store; an unusable file leaves the library empty and in memory only."""
        try:
            return KeyValueStore(db_file, namespace=settings.namespace)
        except PersistenceError as e:
            if self.strict_persistence:
                raise
            logger.error(f"Storage unavailable, starting empty and unsaved: {e}")
            return MemoryStore(namespace=settings.namespace)

    # ------------------------- Books ------------------------- #
    def add_book(self, title: str, author: str, cover_image: Optional[bytes] = None) -> Book:
        """Create a book with a fresh id and timestamp, append it and persist."""
        if not TextValidator.validate_title(title):
            raise ValueError("Title cannot be empty.")
        if not TextValidator.validate_author(author):
            raise ValueError("Author cannot be empty.")

        book = Book(
            id=self._next_id(self.books),
            title=title,
            author=author,
            cover_image=cover_image or None,
            created_at=self.clock(),
        )
        self.books.append(book)
        self._commit(Change(BOOK_ADDED, books=[book]), BOOKS_KEY)
        return book

    def get_book(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def list_books(self) -> List[Book]:
        return list(self.books)

    def update_book(self, book_id: str, *, title: Optional[str] = None, author: Optional[str] = None,
                    cover_image: Optional[bytes] = None, remove_cover: bool = False) -> Optional[Book]:
        """Edit a book in place. Returns the updated book or None if not found."""
        book = self.get_book(book_id)
        if not book:
            return None
        if title is not None and not TextValidator.validate_title(title):
            raise ValueError("Title cannot be empty.")
        if author is not None and not TextValidator.validate_author(author):
            raise ValueError("Author cannot be empty.")

        if title is not None:
            book.title = title.strip()
        if author is not None:
            book.author = author.strip()
        if remove_cover:
            book.cover_image = None
        elif cover_image is not None:
            book.cover_image = cover_image

        self._commit(Change(BOOK_UPDATED, books=[book]), BOOKS_KEY)
        return book

    def delete_book(self, book_id: str) -> bool:
        """Remove a book together with all of its quotes."""
        book = self.get_book(book_id)
        if not book:
            return False
        self._remove_books([book])
        return True

    def delete_book_at(self, position: int) -> bool:
        if not 0 <= position < len(self.books):
            return False
        self._remove_books([self.books[position]])
        return True

    def _remove_books(self, doomed: List[Book]) -> None:
        doomed_ids = {b.id for b in doomed}
        remaining_books = [b for b in self.books if b.id not in doomed_ids]
        remaining_ids = {b.id for b in remaining_books}
        removed_quotes = [q for q in self.quotes if q.book_id not in remaining_ids]

        # Both collections are swapped before anything is saved or announced
        self.books = remaining_books
        self.quotes = [q for q in self.quotes if q.book_id in remaining_ids]
        self._commit(Change(BOOK_DELETED, books=doomed, quotes=removed_quotes), BOOKS_KEY, QUOTES_KEY)

    def search_books(self, query: str) -> List[Book]:
        """Books whose title or author contains the query (case-insensitive)."""
        q = (query or "").strip().casefold()
        if not q:
            return self.list_books()
        return [b for b in self.books if q in b.title.casefold() or q in b.author.casefold()]

    # ------------------------- Quotes ------------------------- #
    def add_quote(self, content: str, book_id: str, page: Optional[int] = None,
                  chapter: Optional[str] = None, notes: Optional[str] = None,
                  tags: Optional[List[str]] = None) -> Quote:
        """Attach a new quote to an existing book and persist it."""
        if not TextValidator.validate_content(content):
            raise ValueError("Quote content cannot be empty.")
        if not PageValidator.is_valid_page(page):
            raise ValueError("Page must be a non-negative integer.")
        if not self.get_book(book_id):
            raise BookNotFoundError(f"Book {book_id} not found.")

        quote = Quote(
            id=self._next_id(self.quotes),
            content=content,
            book_id=book_id,
            page=page,
            chapter=TextValidator.clean_optional(chapter),
            notes=TextValidator.clean_optional(notes),
            created_at=self.clock(),
            tags=TextValidator.normalize_tags(tags),
        )
        self.quotes.append(quote)
        self._commit(Change(QUOTE_ADDED, quotes=[quote]), QUOTES_KEY)
        return quote

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        for quote in self.quotes:
            if quote.id == quote_id:
                return quote
        return None

    def list_quotes(self) -> List[Quote]:
        return list(self.quotes)

    def get_quotes(self, book_id: str) -> List[Quote]:
        return [q for q in self.quotes if q.book_id == book_id]

    def quote_count(self, book_id: str) -> int:
        return sum(1 for q in self.quotes if q.book_id == book_id)

    def update_quote(self, quote_id: str, *, content: Optional[str] = None, page: Optional[int] = None,
                     chapter: Optional[str] = None, notes: Optional[str] = None,
                     tags: Optional[List[str]] = None, remove_page: bool = False) -> Optional[Quote]:
        """Edit a quote in place. ``None`` leaves a field untouched; blank chapter/notes clear it,
        and ``remove_page`` clears the page number."""
        quote = self.get_quote(quote_id)
        if not quote:
            return None
        if content is not None and not TextValidator.validate_content(content):
            raise ValueError("Quote content cannot be empty.")
        if not PageValidator.is_valid_page(page):
            raise ValueError("Page must be a non-negative integer.")

        if content is not None:
            quote.content = content.strip()
        if remove_page:
            quote.page = None
        elif page is not None:
            quote.page = page
        if chapter is not None:
            quote.chapter = TextValidator.clean_optional(chapter)
        if notes is not None:
            quote.notes = TextValidator.clean_optional(notes)
        if tags is not None:
            quote.tags = TextValidator.normalize_tags(tags)

        self._commit(Change(QUOTE_UPDATED, quotes=[quote]), QUOTES_KEY)
        return quote

    def delete_quote(self, quote_id: str) -> bool:
        quote = self.get_quote(quote_id)
        if not quote:
            return False
        self.quotes = [q for q in self.quotes if q.id != quote_id]
        self._commit(Change(QUOTE_DELETED, quotes=[quote]), QUOTES_KEY)
        return True

    def delete_quote_at(self, position: int) -> bool:
        if not 0 <= position < len(self.quotes):
            return False
        return self.delete_quote(self.quotes[position].id)

    def toggle_favorite(self, quote_id: str) -> Optional[Quote]:
        quote = self.get_quote(quote_id)
        if not quote:
            return None
        quote.is_favorite = not quote.is_favorite
        self._commit(Change(QUOTE_UPDATED, quotes=[quote]), QUOTES_KEY)
        return quote

    def favorite_quotes(self) -> List[Quote]:
        return [q for q in self.quotes if q.is_favorite]

    def recent_quotes(self) -> List[Quote]:
        """All quotes, newest first. Stored order is left alone."""
        return sorted(self.quotes, key=lambda q: q.created_at, reverse=True)

    def search_quotes(self, query: str = "", *, book_id: Optional[str] = None,
                      favorites_only: bool = False) -> List[Quote]:
        """Match quote content or the owning book's title/author; newest first.

        Scoped to one book, only content is matched and stored order is kept.
        """
        q = (query or "").strip().casefold()
        books_by_id = {b.id: b for b in self.books}
        candidates = self.get_quotes(book_id) if book_id is not None else self.recent_quotes()
        result = []
        for quote in candidates:
            if favorites_only and not quote.is_favorite:
                continue
            if q:
                book = None if book_id is not None else books_by_id.get(quote.book_id)
                in_book = book is not None and (q in book.title.casefold() or q in book.author.casefold())
                if q not in quote.content.casefold() and not in_book:
                    continue
            result.append(quote)
        return result

    def daily_quote(self) -> Optional[Quote]:
        """Pick a random quote, preferring favorites when there are any."""
        pool = self.favorite_quotes() or self.quotes
        if not pool:
            return None
        return self.rng.choice(pool)

    def share_text(self, quote_id: str) -> Optional[str]:
        quote = self.get_quote(quote_id)
        if not quote:
            return None
        book = self.get_book(quote.book_id)
        if not book:
            return None
        return format_share_text(quote, book)

    def tag_counts(self) -> List[Tuple[str, int]]:
        """All quote tags with usage counts, most used first."""
        counts: Dict[str, int] = {}
        for quote in self.quotes:
            for tag in quote.tags:
                counts[tag] = counts.get(tag, 0) + 1
        return sorted(counts.items(), key=lambda x: (-x[1], x[0]))

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_books": len(self.books),
            "total_quotes": len(self.quotes),
            "favorite_quotes": len(self.favorite_quotes()),
            "unique_authors": len({b.author for b in self.books}),
        }

    # ------------------------- Observers ------------------------- #
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a ``Change`` after every mutation.

        Returns a callable that unsubscribes the listener.
        """
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: Change) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"Listener failed while handling {change.kind}")

    # ------------------------- Persistence ------------------------- #
    def reload(self) -> None:
        """Replace in-memory state with what storage currently holds."""
        books = self._load(BOOKS_KEY, Book)
        quotes = self._load(QUOTES_KEY, Quote)

        known = {b.id for b in books}
        orphans = [q for q in quotes if q.book_id not in known]
        if orphans:
            logger.warning(f"Dropping {len(orphans)} stored quote(s) whose book no longer exists")
        self.books = books
        self.quotes = [q for q in quotes if q.book_id in known]

    def _load(self, collection_name: str, entity_cls) -> list:
        items = []
        for record in self.storage.load(collection_name):
            try:
                items.append(entity_cls.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed record in {collection_name}: {e}")
        return items

    def _commit(self, change: Change, *collection_names: str) -> None:
        """Persist the named collections, then announce the change.

        Save failures never roll back the in-memory mutation; they are logged,
        and re-raised only in strict mode once observers have been told.
        """
        errors = []
        for name in collection_names:
            items = self.books if name == BOOKS_KEY else self.quotes
            try:
                self.storage.save(name, items)
            except PersistenceError as e:
                logger.error(f"Failed to save {name}: {e}")
                errors.append(e)

        self._notify(change)
        if errors and self.strict_persistence:
            raise errors[0]

    def _next_id(self, existing: list) -> str:
        new_id = self.id_generator.next()
        if any(item.id == new_id for item in existing):
            raise ValueError(f"Identifier {new_id} is already in use.")
        return new_id

    def close(self) -> None:
        """Compatibility helper: storage opens connections per operation, so nothing to release."""
        return None
