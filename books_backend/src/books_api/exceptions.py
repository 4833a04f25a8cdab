from __future__ import annotations

from typing import List


class BookStoreError(Exception):
    """Base class for errors raised by book storage backends."""


class BookValidationError(BookStoreError):
    """Raised when a write is missing one or more required book fields."""

    def __init__(self, missing: List[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required book fields: {', '.join(self.missing)}")


class InvalidBookId(BookStoreError):
    """Raised when a book identifier is not syntactically valid for the store."""

    def __init__(self, book_id: str) -> None:
        self.book_id = book_id
        super().__init__(f"Invalid book id: {book_id!r}")


class StoreFailure(BookStoreError):
    """Raised when the storage backend itself fails."""
