from typing import Optional


class TextValidator:
    """Basic checks for the free-text fields of books and quotes."""

    @staticmethod
    def _is_non_empty(text: Optional[str]) -> bool:
        if text is None:
            return False
        return bool(text.strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return TextValidator._is_non_empty(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return TextValidator._is_non_empty(author)

    @staticmethod
    def validate_content(content: Optional[str]) -> bool:
        return TextValidator._is_non_empty(content)

    @staticmethod
    def clean_optional(text: Optional[str]) -> Optional[str]:
        """Strip optional text; blank values become None."""
        if text is None:
            return None
        cleaned = text.strip()
        return cleaned or None

    @staticmethod
    def normalize_tags(tags) -> list:
        # Order and duplicates are kept as given; only blanks are dropped
        if not tags:
            return []
        return [t.strip() for t in tags if t and t.strip()]


class PageValidator:
    """Page numbers are optional non-negative integers."""

    @staticmethod
    def is_valid_page(page) -> bool:
        if page is None:
            return True
        if isinstance(page, bool) or not isinstance(page, int):
            return False
        return page >= 0
