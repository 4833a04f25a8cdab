from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import List, Optional

from .models import BookEntity, new_book_id, require_book_fields, validate_book_id
from .schemas import BookIn
from .settings import Settings

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract repository contract for book storage backends.

    Lookups by id return None when no record matches and raise InvalidBookId
    when the id is malformed. Writes raise BookValidationError when a business
    field is missing. Backend errors surface as StoreFailure.
    """

    @abstractmethod
    def insert(self, data: BookIn) -> BookEntity:
        """Persist a new book and return it with id and timestamps assigned."""

    @abstractmethod
    def list_all(self) -> List[BookEntity]:
        """Return every stored book. No ordering is guaranteed."""

    @abstractmethod
    def get_by_id(self, book_id: str) -> Optional[BookEntity]:
        """Return a book by id, or None if not found."""

    @abstractmethod
    def replace_by_id(self, book_id: str, data: BookIn) -> Optional[BookEntity]:
        """
        Replace the four business fields of a book and refresh updated_at.
        Return the updated book or None if not found.
        """

    @abstractmethod
    def delete_by_id(self, book_id: str) -> Optional[BookEntity]:
        """Delete a book and return the deleted snapshot, or None if not found."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, BookEntity] = {}

    def _allocate_id(self) -> str:
        with self._lock:
            book_id = new_book_id()
            while book_id in self._items:
                book_id = new_book_id()
            return book_id

    def insert(self, data: BookIn) -> BookEntity:
        require_book_fields(data.field_values())
        now = utcnow()
        with self._lock:
            entity: BookEntity = {
                "id": self._allocate_id(),
                "title": data.title,  # type: ignore[typeddict-item]
                "author": data.author,  # type: ignore[typeddict-item]
                "published_year": data.published_year,  # type: ignore[typeddict-item]
                "price": data.price,  # type: ignore[typeddict-item]
                "created_at": now,
                "updated_at": now,
            }
            self._items[entity["id"]] = entity
            return entity.copy()

    def list_all(self) -> List[BookEntity]:
        with self._lock:
            # Return copies to avoid external mutation
            return [b.copy() for b in self._items.values()]

    def get_by_id(self, book_id: str) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        with self._lock:
            item = self._items.get(key)
            return None if item is None else item.copy()

    def replace_by_id(self, book_id: str, data: BookIn) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        require_book_fields(data.field_values())
        with self._lock:
            existing = self._items.get(key)
            if existing is None:
                return None

            updated = existing.copy()
            updated["title"] = data.title  # type: ignore[typeddict-item]
            updated["author"] = data.author  # type: ignore[typeddict-item]
            updated["published_year"] = data.published_year  # type: ignore[typeddict-item]
            updated["price"] = data.price  # type: ignore[typeddict-item]
            updated["updated_at"] = utcnow()

            self._items[key] = updated
            return updated.copy()

    def delete_by_id(self, book_id: str) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        with self._lock:
            return self._items.pop(key, None)


# PUBLIC_INTERFACE
def build_repository(settings: Settings) -> Repository:
    """
    Construct the repository selected by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Using SQLite book store at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory book store")
    return InMemoryRepository()
