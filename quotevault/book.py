from __future__ import annotations

import base64
from datetime import datetime, timezone


def parse_timestamp(value) -> datetime:
    """Read a stored timestamp; values without an offset are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif value:
        parsed = datetime.fromisoformat(value)
    else:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def require_text(data: dict, field: str) -> str:
    """Fetch a required text field from a stored record."""
    value = data[field]
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string, got {type(value).__name__}")
    return value


class Book:
    """A single catalogued book in the library."""

    def __init__(self, id: str, title: str, author: str, cover_image: bytes | None = None,
                 created_at: datetime | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.cover_image = cover_image
        self.created_at = created_at or datetime.now(timezone.utc)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author}"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, author={self.author!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def has_cover(self) -> bool:
        return bool(self.cover_image)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            # Binary cover travels as base64 inside the JSON blob
            "cover_image": base64.b64encode(self.cover_image).decode("ascii") if self.cover_image else None,
            "created_at": self.created_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        cover = data.get("cover_image")
        if isinstance(cover, str):
            cover = base64.b64decode(cover)

        return Book(
            id=data["id"],
            title=require_text(data, "title"),
            author=require_text(data, "author"),
            cover_image=cover or None,
            created_at=parse_timestamp(data.get("created_at")),
        )
