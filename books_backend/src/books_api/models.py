from __future__ import annotations

import re
import secrets
import time
from datetime import datetime
from typing import Any, List, Mapping, Tuple, TypedDict

from .exceptions import BookValidationError, InvalidBookId

# (attribute name, JSON name) of the business fields, in declaration order
BOOK_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("title", "title"),
    ("author", "author"),
    ("published_year", "publishedYear"),
    ("price", "price"),
)

_BOOK_ID_RE = re.compile(r"[0-9a-fA-F]{24}")


# PUBLIC_INTERFACE
class BookEntity(TypedDict):
    """
    A stored book record as handed out by the storage backends.

    Fields:
    - id: 24 hex chars, assigned by the store on insert
    - title, author: non-empty text
    - published_year: non-empty text (integers are stored as their text form)
    - price: number, negatives allowed
    - created_at: UTC timestamp of the insert, never changed
    - updated_at: UTC timestamp of the last successful write
    """

    id: str
    title: str
    author: str
    published_year: str
    price: float
    created_at: datetime
    updated_at: datetime


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


# PUBLIC_INTERFACE
def missing_book_fields(values: Mapping[str, Any]) -> List[str]:
    """
    Return the JSON names of the business fields missing from ``values``.

    ``values`` is keyed by attribute name. A field counts as missing when it is
    absent, None, or a blank string; 0 is a present value.
    """
    return [json_name for attr, json_name in BOOK_FIELDS if _is_missing(values.get(attr))]


def require_book_fields(values: Mapping[str, Any]) -> None:
    """Raise BookValidationError unless every business field is present."""
    missing = missing_book_fields(values)
    if missing:
        raise BookValidationError(missing)


def new_book_id() -> str:
    """Return a fresh id: creation epoch seconds followed by 64 random bits, as hex."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def validate_book_id(book_id: str) -> str:
    """Return the normalised (lowercase) form of ``book_id`` or raise InvalidBookId."""
    if not isinstance(book_id, str) or not _BOOK_ID_RE.fullmatch(book_id):
        raise InvalidBookId(str(book_id))
    return book_id.lower()
