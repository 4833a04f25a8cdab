from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..exceptions import BookValidationError, InvalidBookId
from ..repositories import Repository
from ..schemas import (
    BookIn,
    BookListResponse,
    BookOut,
    BookResponse,
    ErrorResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please fill all the fields"
NOT_FOUND_MESSAGE = "Book not found"
INVALID_ID_MESSAGE = "Invalid book id"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"
DELETED_MESSAGE = "Book deleted successfully"

router = APIRouter(
    prefix="/books",
    tags=["books"],
)

_BAD_REQUEST = {"model": ErrorResponse, "description": "Missing field, malformed body or malformed id"}
_NOT_FOUND = {"model": ErrorResponse, "description": NOT_FOUND_MESSAGE}
_SERVER_ERROR = {"model": ErrorResponse, "description": INTERNAL_ERROR_MESSAGE}


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """
    Dependency returning the repository bound to the running application.
    """
    return request.app.state.repository


def _require_fields(payload: BookIn) -> None:
    missing = payload.missing_fields()
    if missing:
        logger.warning("Rejected book write, missing fields: %s", ", ".join(missing))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS_MESSAGE)


def _raise_store_error(action: str, exc: Exception) -> NoReturn:
    """
    Translate a repository exception into the matching HTTP error.
    Anything unexpected becomes a 500 without internal detail.
    """
    if isinstance(exc, InvalidBookId):
        logger.warning("Cannot %s: %s", action, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ID_MESSAGE) from exc
    if isinstance(exc, BookValidationError):
        logger.warning("Cannot %s: %s", action, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS_MESSAGE) from exc
    logger.error("Failed to %s", action, exc_info=exc)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_MESSAGE) from exc


def _not_found(book_id: str) -> HTTPException:
    logger.warning("Book %s not found", book_id)
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Book",
    description="Create a new book. title, author, publishedYear and price are required.",
    responses={
        201: {"description": "Book created successfully"},
        400: _BAD_REQUEST,
        500: _SERVER_ERROR,
    },
)
def create_book(payload: BookIn, repo: Repository = Depends(get_repository)) -> BookResponse:
    """
    Create a new Book.
    """
    _require_fields(payload)
    try:
        created = repo.insert(payload)
    except Exception as exc:
        _raise_store_error("create book", exc)
    logger.info("Created book %s", created["id"])
    return BookResponse(data=BookOut.from_entity(created))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=BookListResponse,
    summary="List Books",
    description="Return every stored book. No pagination and no ordering guarantee.",
    responses={
        200: {"description": "List retrieved successfully"},
        500: _SERVER_ERROR,
    },
)
def list_books(repo: Repository = Depends(get_repository)) -> BookListResponse:
    try:
        books = repo.list_all()
    except Exception as exc:
        _raise_store_error("list books", exc)
    return BookListResponse(count=len(books), data=[BookOut.from_entity(b) for b in books])


# PUBLIC_INTERFACE
@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get Book",
    description="Get a single book by ID.",
    responses={
        200: {"description": "Book found"},
        400: _BAD_REQUEST,
        404: _NOT_FOUND,
        500: _SERVER_ERROR,
    },
)
def get_book(book_id: str, repo: Repository = Depends(get_repository)) -> BookResponse:
    """
    Retrieve a single Book by its ID.
    """
    try:
        book = repo.get_by_id(book_id)
    except Exception as exc:
        _raise_store_error(f"get book {book_id}", exc)
    if book is None:
        raise _not_found(book_id)
    return BookResponse(data=BookOut.from_entity(book))


# PUBLIC_INTERFACE
@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Replace Book",
    description=(
        "Replace the title, author, publishedYear and price of an existing book. "
        "All four fields are required; the id and createdAt never change."
    ),
    responses={
        200: {"description": "Book updated"},
        400: _BAD_REQUEST,
        404: _NOT_FOUND,
        500: _SERVER_ERROR,
    },
)
def update_book(book_id: str, payload: BookIn, repo: Repository = Depends(get_repository)) -> BookResponse:
    """
    Full replace of a Book. Replaying the same payload leaves the stored fields unchanged.
    """
    _require_fields(payload)
    try:
        updated = repo.replace_by_id(book_id, payload)
    except Exception as exc:
        _raise_store_error(f"update book {book_id}", exc)
    if updated is None:
        raise _not_found(book_id)
    logger.info("Updated book %s", updated["id"])
    return BookResponse(data=BookOut.from_entity(updated))


# PUBLIC_INTERFACE
@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    summary="Delete Book",
    description="Delete a book by ID permanently.",
    responses={
        200: {"description": "Book deleted"},
        400: _BAD_REQUEST,
        404: _NOT_FOUND,
        500: _SERVER_ERROR,
    },
)
def delete_book(book_id: str, repo: Repository = Depends(get_repository)) -> MessageResponse:
    """
    Delete a Book. Returns 404 if it does not exist (including when already deleted).
    """
    try:
        deleted = repo.delete_by_id(book_id)
    except Exception as exc:
        _raise_store_error(f"delete book {book_id}", exc)
    if deleted is None:
        raise _not_found(book_id)
    logger.info("Deleted book %s", deleted["id"])
    return MessageResponse(message=DELETED_MESSAGE)
