"""Tests for the library domain operations."""

import pytest
from datetime import date

from bookrental.library import (
    Book,
    BookStatus,
    Library,
    Member,
    Rental,
    sample_document,
)
from bookrental.sync import LocalState

TODAY = date(2026, 3, 2)


@pytest.fixture
def state():
    """LocalState seeded with the sample catalog."""
    return LocalState(initial=sample_document())


@pytest.fixture
def library(state):
    return Library(state)


class TestModels:
    """Tests for record serialization."""

    def test_book_to_dict_uses_document_keys(self):
        book = Book(
            id="b1",
            title="모순",
            author="양귀자",
            category="소설",
            status=BookStatus.BORROWED,
            reserved_by="alice@example.com",
            due_date=date(2026, 1, 15),
        )

        d = book.to_dict()

        assert d["coverImage"] == ""
        assert d["imageHint"] == "book cover"
        assert d["status"] == "borrowed"
        assert d["reservedBy"] == "alice@example.com"
        assert d["dueDate"] == "2026-01-15"

    def test_book_from_minimal_dict(self):
        book = Book.from_dict({"id": "b1", "title": "T"})

        assert book.status is BookStatus.AVAILABLE
        assert book.reserved_by is None
        assert book.due_date is None

    def test_rental_from_timestamp_dates(self):
        rental = Rental.from_dict({
            "id": "r1",
            "bookId": "b1",
            "memberId": "m1",
            "rentalDate": "2025-06-01T09:30:00.000Z",
            "returnDate": None,
            "bookTitle": "T",
            "memberName": "N",
        })

        assert rental.rental_date == date(2025, 6, 1)
        assert rental.is_open

    def test_member_roundtrip(self):
        member = Member(id="m1", name="Alice", email="alice@example.com")

        assert Member.from_dict(member.to_dict()) == member


class TestForeignRecords:
    """Tests for records this client cannot parse."""

    def test_views_skip_malformed_records(self, caplog):
        state = LocalState(initial={
            "books": [
                {"id": "b1", "title": "데미안"},
                {"id": "x", "status": "on-hold"},
                {"title": "no id"},
                "not a record",
            ],
            "members": [{"name": "no id"}, {"id": "m1", "email": "a@example.com"}],
            "rentals": [{"id": "r1", "bookId": "b1"}, {"id": "r2", "rentalDate": None}],
        })
        library = Library(state)

        assert [b.id for b in library.books()] == ["b1"]
        assert [m.id for m in library.members()] == ["m1"]
        assert library.rentals() == []
        assert "Skipping malformed books record" in caplog.text

    def test_operations_leave_foreign_records_in_place(self):
        doc = sample_document()
        doc["books"].append({"id": "x", "status": "on-hold"})
        doc["books"].append("not a record")
        state = LocalState(initial=doc)
        library = Library(state)

        library.toggle_borrow("book-1", "alice@example.com", today=TODAY)
        library.delete_book("book-2")

        books = state.get("books")
        assert {"id": "x", "status": "on-hold"} in books
        assert "not a record" in books
        assert library.get_book("book-1").status is BookStatus.BORROWED


class TestCatalog:
    """Tests for book management."""

    def test_sample_catalog(self, library):
        assert len(library.books()) == 8
        assert len(library.members()) == 4
        assert library.rentals() == []

    def test_add_book(self, library, state):
        book = library.add_book("행성1", "베르나르베르베르", "소설")

        assert book.id.startswith("book-")
        assert book.status is BookStatus.AVAILABLE
        assert state.get("books")[-1]["title"] == "행성1"

    def test_add_book_requires_title(self, library):
        with pytest.raises(ValueError):
            library.add_book("  ", "someone", "소설")

    def test_update_book(self, library):
        book = library.get_book("book-1")
        book.category = "고전"

        library.update_book(book)

        assert library.get_book("book-1").category == "고전"

    def test_update_book_not_out_clears_borrower(self, library):
        library.toggle_borrow("book-1", "alice@example.com", today=TODAY)
        book = library.get_book("book-1")
        book.status = BookStatus.LOST

        library.update_book(book)

        stored = library.get_book("book-1")
        assert stored.reserved_by is None
        assert stored.due_date is None

    def test_update_unknown_book(self, library):
        with pytest.raises(KeyError):
            library.update_book(Book(id="nope", title="x", author="y", category="z"))

    def test_delete_book(self, library):
        library.delete_book("book-2")

        assert all(b.id != "book-2" for b in library.books())
        with pytest.raises(KeyError):
            library.delete_book("book-2")


class TestRoster:
    """Tests for member management."""

    def test_add_member(self, library):
        member = library.add_member("Eve Yoon", "eve@example.com")

        assert library.find_member_by_email("eve@example.com") == member

    def test_add_duplicate_email(self, library):
        with pytest.raises(ValueError):
            library.add_member("Alice Again", "alice@example.com")

    def test_delete_member(self, library):
        library.delete_member("member-1")

        assert library.find_member_by_email("alice@example.com") is None
        with pytest.raises(KeyError):
            library.delete_member("member-1")


class TestBorrowing:
    """Tests for toggle_borrow."""

    def test_borrow_available_book(self, library):
        book = library.toggle_borrow("book-1", "alice@example.com", today=TODAY)

        assert book.status is BookStatus.BORROWED
        assert book.reserved_by == "alice@example.com"
        assert book.due_date == date(2026, 3, 16)

        rentals = library.rentals()
        assert len(rentals) == 1
        assert rentals[0].book_id == "book-1"
        assert rentals[0].member_id == "member-1"
        assert rentals[0].member_name == "Alice Kim"
        assert rentals[0].is_open

    def test_borrow_is_a_single_state_change(self, library, state):
        seen = []
        state.subscribe(seen.append)

        library.toggle_borrow("book-1", "alice@example.com", today=TODAY)

        assert len(seen) == 1
        assert seen[0].collections == ("books", "rentals")

    def test_return_own_book(self, library):
        library.toggle_borrow("book-1", "alice@example.com", today=TODAY)
        book = library.toggle_borrow("book-1", "alice@example.com", today=date(2026, 3, 10))

        assert book.status is BookStatus.AVAILABLE
        assert book.reserved_by is None
        rental = library.rentals()[0]
        assert rental.return_date == date(2026, 3, 10)

    def test_cannot_return_someone_elses_book(self, library):
        library.toggle_borrow("book-1", "alice@example.com", today=TODAY)

        with pytest.raises(PermissionError):
            library.toggle_borrow("book-1", "brian@example.com", today=TODAY)

        assert library.get_book("book-1").reserved_by == "alice@example.com"

    def test_lost_book(self, library):
        book = library.get_book("book-3")
        book.status = BookStatus.LOST
        library.update_book(book)

        with pytest.raises(ValueError):
            library.toggle_borrow("book-3", "alice@example.com")

    def test_reserved_book_is_not_returned(self, library, state):
        book = library.get_book("book-1")
        book.status = BookStatus.RESERVED
        book.reserved_by = "alice@example.com"
        library.update_book(book)
        version = state.version

        with pytest.raises(ValueError):
            library.toggle_borrow("book-1", "alice@example.com", today=TODAY)

        stored = library.get_book("book-1")
        assert stored.status is BookStatus.RESERVED
        assert stored.reserved_by == "alice@example.com"
        assert state.version == version

    def test_cannot_take_book_reserved_by_someone_else(self, library):
        book = library.get_book("book-1")
        book.status = BookStatus.RESERVED
        book.reserved_by = "alice@example.com"
        library.update_book(book)

        with pytest.raises(PermissionError):
            library.toggle_borrow("book-1", "brian@example.com", today=TODAY)

    def test_unknown_book(self, library):
        with pytest.raises(KeyError):
            library.toggle_borrow("book-999", "alice@example.com")

    def test_borrow_by_non_member(self, library):
        library.toggle_borrow("book-1", "guest@example.com", today=TODAY)

        rental = library.rentals()[0]
        assert rental.member_id == ""
        assert rental.member_name == "guest@example.com"
