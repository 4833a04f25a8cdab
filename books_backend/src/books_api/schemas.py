from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import BookEntity, missing_book_fields

# Incoming publishedYear may be a JSON string or integer; it is stored as text
PublishedYearInput = Union[str, int]


def _strip(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


# PUBLIC_INTERFACE
class BookIn(BaseModel):
    """
    Request body for creating or replacing a book.

    Every field is optional at parse level so that an incomplete body reaches
    the presence check and gets the "Please fill all the fields" answer.
    Wrongly typed values (e.g. a non-numeric price) fail parsing instead.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "publishedYear": "1965",
                "price": 15,
            }
        },
    )

    title: Optional[str] = Field(default=None, description="Book title")
    author: Optional[str] = Field(default=None, description="Book author")
    published_year: Optional[str] = Field(
        default=None,
        alias="publishedYear",
        description="Year of publication; free text, integers are accepted and stored as text",
    )
    price: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Price; must be finite, negative values are not rejected",
    )

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("published_year", mode="before")
    @classmethod
    def normalize_published_year(cls, v: Optional[PublishedYearInput]) -> Any:
        """
        Keep strings (stripped) and turn integers into their text form.
        """
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return _strip(v)

    def field_values(self) -> Dict[str, Any]:
        """Return the business fields keyed by attribute name."""
        return {
            "title": self.title,
            "author": self.author,
            "published_year": self.published_year,
            "price": self.price,
        }

    def missing_fields(self) -> List[str]:
        """Return the JSON names of the fields that are absent or blank."""
        return missing_book_fields(self.field_values())


# PUBLIC_INTERFACE
class BookOut(BaseModel):
    """
    JSON representation of a stored book.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "6710f3a2c1d4e5f60718293a",
                "title": "Dune",
                "author": "Frank Herbert",
                "publishedYear": "1965",
                "price": 15.0,
                "createdAt": "2026-10-17T10:15:30.123456+00:00",
                "updatedAt": "2026-10-17T10:15:30.123456+00:00",
            }
        },
    )

    id: str = Field(..., alias="_id", description="Unique identifier of the book")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    published_year: str = Field(..., alias="publishedYear", description="Year of publication")
    price: float = Field(..., description="Price")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: BookEntity) -> "BookOut":
        return cls(**entity)


class BookResponse(BaseModel):
    """Success envelope carrying a single book."""

    success: bool = True
    data: BookOut


class BookListResponse(BaseModel):
    """Success envelope carrying every stored book."""

    success: bool = True
    count: int = Field(..., description="Number of books returned")
    data: List[BookOut]


class MessageResponse(BaseModel):
    """Success envelope carrying only a message."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error envelope; errors lists request validation details when present."""

    success: bool = False
    message: str
    errors: Optional[List[Any]] = None
