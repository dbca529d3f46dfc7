"""Catalog, roster and borrowing operations on top of LocalState.

Every operation is a single LocalState change, so a running SyncManager
picks it up and pushes it after the debounce window.
"""

import logging
import uuid
from datetime import date, timedelta
from typing import Any, Callable, TypeVar

from ..sync.state import LocalState
from .models import Book, BookStatus, Member, Rental

logger = logging.getLogger(__name__)

LOAN_PERIOD_DAYS = 14

T = TypeVar("T")


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _field(record: Any, key: str) -> Any:
    return record.get(key) if isinstance(record, dict) else None


class Library:
    """Domain operations for the book rental app.

    Reads and writes go through a LocalState; the Library itself holds no
    data.
    """

    def __init__(self, state: LocalState):
        self.state = state

    # ==================== Views ====================

    def _records(self, collection: str, model: Callable[[Any], T]) -> list[T]:
        """Parse a collection, skipping records that do not fit the model.

        Other clients may write records this client does not understand;
        those stay in the document untouched.
        """
        parsed = []
        for record in self.state.get(collection):
            try:
                parsed.append(model(record))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed {collection} record {record!r}: {e}")
        return parsed

    def books(self) -> list[Book]:
        return self._records("books", Book.from_dict)

    def members(self) -> list[Member]:
        return self._records("members", Member.from_dict)

    def rentals(self) -> list[Rental]:
        return self._records("rentals", Rental.from_dict)

    def get_book(self, book_id: str) -> Book:
        """Look up a book by id.

        Raises:
            KeyError: If no book has this id.
        """
        for book in self.books():
            if book.id == book_id:
                return book
        raise KeyError(f"Book '{book_id}' not found")

    def find_member_by_email(self, email: str) -> Member | None:
        for member in self.members():
            if member.email == email:
                return member
        return None

    # ==================== Catalog ====================

    def add_book(
        self,
        title: str,
        author: str,
        category: str,
        cover_image: str = "",
        description: str = "",
    ) -> Book:
        """Add a new, available book to the catalog."""
        if not title.strip():
            raise ValueError("Book title must not be empty")

        book = Book(
            id=_new_id("book"),
            title=title,
            author=author,
            category=category,
            description=description,
            cover_image=cover_image,
        )
        self.state.update("books", lambda books: books + [book.to_dict()])
        logger.info(f"Added book {book.id}: {title}")
        return book

    def update_book(self, book: Book) -> Book:
        """Replace a catalog entry by id.

        Setting a status other than borrowed or reserved clears the borrower.

        Raises:
            KeyError: If the book is not in the catalog.
        """
        if not book.is_out:
            book.reserved_by = None
            book.due_date = None

        books = self.state.get("books")
        for i, existing in enumerate(books):
            if _field(existing, "id") == book.id:
                books[i] = book.to_dict()
                break
        else:
            raise KeyError(f"Book '{book.id}' not found")

        self.state.set("books", books)
        return book

    def delete_book(self, book_id: str) -> None:
        """Remove a book from the catalog.

        Raises:
            KeyError: If the book is not in the catalog.
        """
        books = self.state.get("books")
        remaining = [b for b in books if _field(b, "id") != book_id]
        if len(remaining) == len(books):
            raise KeyError(f"Book '{book_id}' not found")
        self.state.set("books", remaining)
        logger.info(f"Deleted book {book_id}")

    # ==================== Roster ====================

    def add_member(self, name: str, email: str) -> Member:
        """Add a member.

        Raises:
            ValueError: If the email is empty or already registered.
        """
        if not email.strip():
            raise ValueError("Member email must not be empty")
        if self.find_member_by_email(email):
            raise ValueError(f"Member with email '{email}' already exists")

        member = Member(id=_new_id("member"), name=name, email=email)
        self.state.update("members", lambda members: members + [member.to_dict()])
        logger.info(f"Added member {member.id}: {email}")
        return member

    def delete_member(self, member_id: str) -> None:
        """Remove a member.

        Raises:
            KeyError: If the member does not exist.
        """
        members = self.state.get("members")
        remaining = [m for m in members if _field(m, "id") != member_id]
        if len(remaining) == len(members):
            raise KeyError(f"Member '{member_id}' not found")
        self.state.set("members", remaining)
        logger.info(f"Deleted member {member_id}")

    # ==================== Borrowing ====================

    def toggle_borrow(self, book_id: str, email: str, today: date | None = None) -> Book:
        """Borrow an available book, or return one borrowed by ``email``.

        The book and the rental record change together in one state change.

        Args:
            book_id: Book to borrow or return.
            email: Email of the member acting.
            today: Date of the action; defaults to today.

        Returns:
            The updated book.

        Raises:
            KeyError: If the book does not exist.
            PermissionError: If someone else has the book.
            ValueError: If the book is lost, or reserved rather than
                borrowed by ``email``.
        """
        today = today or date.today()
        book = self.get_book(book_id)
        rentals = self.state.get("rentals")

        if book.status is BookStatus.LOST:
            raise ValueError(f"Book '{book.title}' is lost")

        if book.status is BookStatus.AVAILABLE:
            member = self.find_member_by_email(email)
            book.status = BookStatus.BORROWED
            book.reserved_by = email
            book.due_date = today + timedelta(days=LOAN_PERIOD_DAYS)
            rental = Rental(
                id=_new_id("rental"),
                book_id=book.id,
                member_id=member.id if member else "",
                rental_date=today,
                return_date=None,
                book_title=book.title,
                member_name=member.name if member else email,
            )
            rentals.append(rental.to_dict())
            logger.info(f"{email} borrowed {book.id}")

        elif book.reserved_by != email:
            raise PermissionError(
                f"Book '{book.title}' is {book.status.value} by another member"
            )

        elif book.status is not BookStatus.BORROWED:
            raise ValueError(f"Book '{book.title}' is reserved, not borrowed")

        else:
            book.status = BookStatus.AVAILABLE
            book.reserved_by = None
            book.due_date = None
            for record in reversed(rentals):
                if _field(record, "bookId") == book.id and not record.get("returnDate"):
                    record["returnDate"] = today.isoformat()
                    break
            logger.info(f"{email} returned {book.id}")

        books = [
            book.to_dict() if _field(b, "id") == book.id else b
            for b in self.state.get("books")
        ]
        self.state.set_many({"books": books, "rentals": rentals})
        return book
