from __future__ import annotations

from datetime import datetime, timezone

from quotevault.book import Book, parse_timestamp, require_text


class Quote:
    """A text excerpt attributed to a book, with optional locator and annotations."""

    def __init__(self, id: str, content: str, book_id: str, page: int | None = None,
                 chapter: str | None = None, notes: str | None = None,
                 created_at: datetime | None = None, is_favorite: bool = False,
                 tags: list | None = None) -> None:
        self.id = id
        self.content = content.strip()
        self.book_id = book_id
        self.page = page
        self.chapter = chapter
        self.notes = notes
        self.created_at = created_at or datetime.now(timezone.utc)
        self.is_favorite = is_favorite
        self.tags = list(tags) if tags else []

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f'"{self.content}"'

    def __repr__(self) -> str:  # pragma: no cover
        return f"Quote(id={self.id!r}, book_id={self.book_id!r}, is_favorite={self.is_favorite!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quote):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "book_id": self.book_id,
            "page": self.page,
            "chapter": self.chapter,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "is_favorite": self.is_favorite,
            "tags": list(self.tags),
        }

    @staticmethod
    def from_dict(data: dict) -> "Quote":
        page = data.get("page")
        if page is not None:
            page = int(page)

        return Quote(
            id=data["id"],
            content=require_text(data, "content"),
            book_id=require_text(data, "book_id"),
            page=page,
            chapter=data.get("chapter"),
            notes=data.get("notes"),
            created_at=parse_timestamp(data.get("created_at")),
            is_favorite=bool(data.get("is_favorite", False)),
            tags=data.get("tags") or [],
        )


def format_share_text(quote: Quote, book: Book) -> str:
    """Render the text handed to share targets.

    The layout is consumed by other apps, so it must stay exactly:
    the quoted content, a blank line, then the attribution with an
    optional page suffix.
    """
    page_text = f" (Page {quote.page})" if quote.page is not None else ""
    return f'"{quote.content}"\n\n— {book.author}, {book.title}{page_text}'
