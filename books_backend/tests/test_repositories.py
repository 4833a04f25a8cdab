import pytest
from pydantic import ValidationError

from src.books_api.db import SQLiteRepository
from src.books_api.exceptions import BookValidationError, InvalidBookId, StoreFailure
from src.books_api.models import missing_book_fields, new_book_id, validate_book_id
from src.books_api.repositories import InMemoryRepository, build_repository
from src.books_api.schemas import BookIn

UNKNOWN_ID = "0123456789abcdef01234567"


def book_in(**overrides) -> BookIn:
    data = {"title": "Dune", "author": "Herbert", "publishedYear": "1965", "price": 15}
    data.update(overrides)
    return BookIn.model_validate(data)


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "books.db"))
    return InMemoryRepository()


class TestRepositoryContract:
    def test_insert_assigns_id_and_timestamps(self, repository):
        book = repository.insert(book_in())
        assert len(book["id"]) == 24
        assert book["title"] == "Dune"
        assert book["author"] == "Herbert"
        assert book["published_year"] == "1965"
        assert book["price"] == 15
        assert book["created_at"] == book["updated_at"]
        assert book["created_at"].tzinfo is not None

    def test_insert_rejects_missing_fields(self, repository):
        with pytest.raises(BookValidationError) as exc_info:
            repository.insert(book_in(author=None, price=None))
        assert exc_info.value.missing == ["author", "price"]
        assert repository.list_all() == []

    def test_ids_are_unique(self, repository):
        ids = [repository.insert(book_in())["id"] for _ in range(20)]
        assert len(set(ids)) == 20

    def test_get_by_id(self, repository):
        book = repository.insert(book_in())
        assert repository.get_by_id(book["id"]) == book
        assert repository.get_by_id(book["id"].upper()) == book

    def test_get_unknown_returns_none(self, repository):
        assert repository.get_by_id(UNKNOWN_ID) is None

    def test_malformed_id_raises(self, repository):
        for bad in ["", "abc", "zz" * 12, UNKNOWN_ID + "0"]:
            with pytest.raises(InvalidBookId):
                repository.get_by_id(bad)
        with pytest.raises(InvalidBookId):
            repository.replace_by_id("abc", book_in())
        with pytest.raises(InvalidBookId):
            repository.delete_by_id("abc")

    def test_replace_keeps_identity_and_refreshes_updated_at(self, repository, stepping_clock):
        book = repository.insert(book_in())
        updated = repository.replace_by_id(book["id"], book_in(title="Children of Dune", price=20))
        assert updated is not None
        assert updated["id"] == book["id"]
        assert updated["title"] == "Children of Dune"
        assert updated["price"] == 20
        assert updated["created_at"] == book["created_at"]
        assert updated["updated_at"] > book["updated_at"]
        assert repository.get_by_id(book["id"]) == updated

    def test_replace_requires_every_field(self, repository):
        book = repository.insert(book_in())
        with pytest.raises(BookValidationError):
            repository.replace_by_id(book["id"], book_in(title=" "))
        assert repository.get_by_id(book["id"]) == book

    def test_replace_unknown_returns_none(self, repository):
        assert repository.replace_by_id(UNKNOWN_ID, book_in()) is None

    def test_delete_returns_snapshot(self, repository):
        book = repository.insert(book_in())
        assert repository.delete_by_id(book["id"]) == book
        assert repository.get_by_id(book["id"]) is None
        assert repository.delete_by_id(book["id"]) is None

    def test_list_all_matches_stored_set(self, repository):
        assert repository.list_all() == []
        books = [repository.insert(book_in(title=f"Book {i}")) for i in range(4)]
        repository.delete_by_id(books[0]["id"])
        listed = repository.list_all()
        assert sorted(b["id"] for b in listed) == sorted(b["id"] for b in books[1:])

    def test_returned_records_are_copies(self, repository):
        book = repository.insert(book_in())
        book["title"] = "Mutated"
        assert repository.get_by_id(book["id"])["title"] == "Dune"


class TestSQLiteRepository:
    def test_records_survive_reopening(self, tmp_path):
        path = str(tmp_path / "nested" / "books.db")
        book = SQLiteRepository(path).insert(book_in())
        assert SQLiteRepository(path).get_by_id(book["id"]) == book

    def test_unopenable_store_raises_store_failure(self, tmp_path):
        # A directory cannot be opened as a database file
        with pytest.raises(StoreFailure):
            SQLiteRepository(str(tmp_path))


class TestBuildRepository:
    def test_memory_backend(self, settings):
        assert isinstance(build_repository(settings), InMemoryRepository)

    def test_sqlite_backend(self, settings, tmp_path):
        from dataclasses import replace

        sqlite_settings = replace(settings, persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "b.db"))
        assert isinstance(build_repository(sqlite_settings), SQLiteRepository)


class TestBookFields:
    def test_missing_book_fields(self):
        assert missing_book_fields({"title": "a", "author": "b", "published_year": "c", "price": 1}) == []
        assert missing_book_fields({"title": "a", "author": "b", "published_year": "c", "price": 0}) == []
        assert missing_book_fields({"title": "", "author": None, "published_year": "  "}) == [
            "title",
            "author",
            "publishedYear",
            "price",
        ]

    def test_book_ids(self):
        book_id = new_book_id()
        assert validate_book_id(book_id) == book_id
        assert validate_book_id(book_id.upper()) == book_id
        with pytest.raises(InvalidBookId):
            validate_book_id("not-an-id")
        with pytest.raises(InvalidBookId):
            validate_book_id(book_id + "\n")

    @pytest.mark.parametrize("price", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_price_fails_parsing(self, price):
        with pytest.raises(ValidationError):
            book_in(price=price)
