from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, List, Optional

from .exceptions import StoreFailure
from .models import BookEntity, new_book_id, require_book_fields, validate_book_id
from . import repositories
from .repositories import Repository
from .schemas import BookIn


@dataclass(frozen=True)
class _Cols:
    table: str = "books"
    id: str = "id"
    title: str = "title"
    author: str = "author"
    published_year: str = "published_year"
    price: str = "price"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreFailure(f"Cannot open book store at {self._db_path}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreFailure(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.author} TEXT NOT NULL,
                    {_COLS.published_year} TEXT NOT NULL,
                    {_COLS.price} REAL NOT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_author ON {_COLS.table}({_COLS.author})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_title ON {_COLS.table}({_COLS.title})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> BookEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "author": str(row[_COLS.author]),
            "published_year": str(row[_COLS.published_year]),
            "price": float(row[_COLS.price]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
            "updated_at": datetime.fromisoformat(row[_COLS.updated_at]),
        }

    def _select(self, conn: sqlite3.Connection, book_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (book_id,)
        ).fetchone()

    def insert(self, data: BookIn) -> BookEntity:
        require_book_fields(data.field_values())
        now = repositories.utcnow().isoformat()
        book_id = new_book_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.author},
                    {_COLS.published_year}, {_COLS.price}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (book_id, data.title, data.author, data.published_year, data.price, now, now),
            )
            row = self._select(conn, book_id)
            assert row is not None
            return self._row_to_entity(row)

    def list_all(self) -> List[BookEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.created_at} ASC"
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def get_by_id(self, book_id: str) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        with self._conn() as conn:
            row = self._select(conn, key)
            return self._row_to_entity(row) if row else None

    def replace_by_id(self, book_id: str, data: BookIn) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        require_book_fields(data.field_values())
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.author} = ?, {_COLS.published_year} = ?,
                    {_COLS.price} = ?, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ?
                """,
                (
                    data.title,
                    data.author,
                    data.published_year,
                    data.price,
                    repositories.utcnow().isoformat(),
                    key,
                ),
            )
            if cur.rowcount == 0:
                return None
            row = self._select(conn, key)
            assert row is not None
            return self._row_to_entity(row)

    def delete_by_id(self, book_id: str) -> Optional[BookEntity]:
        key = validate_book_id(book_id)
        with self._conn() as conn:
            row = self._select(conn, key)
            if row is None:
                return None
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (key,))
            return self._row_to_entity(row)
