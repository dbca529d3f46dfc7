"""Records stored in the book, member and rental collections.

Records are kept in the document with camelCase keys so documents written
by the web client stay readable.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any


class BookStatus(str, Enum):
    """Availability of a book."""

    AVAILABLE = "available"
    RESERVED = "reserved"
    BORROWED = "borrowed"
    LOST = "lost"


@dataclass
class Book:
    """A book in the catalog."""

    id: str
    title: str
    author: str
    category: str
    description: str = ""
    cover_image: str = ""
    image_hint: str = "book cover"
    status: BookStatus = BookStatus.AVAILABLE
    reserved_by: str | None = None  # Member email
    due_date: date | None = None

    @property
    def is_out(self) -> bool:
        """True while the book is borrowed or reserved."""
        return self.status in (BookStatus.BORROWED, BookStatus.RESERVED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "description": self.description,
            "coverImage": self.cover_image,
            "imageHint": self.image_hint,
            "status": self.status.value,
            "reservedBy": self.reserved_by,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Book":
        """Create from dictionary."""
        due = data.get("dueDate")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            author=data.get("author", ""),
            category=data.get("category", ""),
            description=data.get("description", ""),
            cover_image=data.get("coverImage", ""),
            image_hint=data.get("imageHint", "book cover"),
            status=BookStatus(data.get("status", "available")),
            reserved_by=data.get("reservedBy"),
            due_date=date.fromisoformat(due[:10]) if due else None,
        )


@dataclass
class Member:
    """A library member."""

    id: str
    name: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Member":
        return cls(id=data["id"], name=data.get("name", ""), email=data.get("email", ""))


@dataclass
class Rental:
    """One borrowing of a book by a member."""

    id: str
    book_id: str
    member_id: str
    rental_date: date
    return_date: date | None
    book_title: str
    member_name: str

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "bookId": self.book_id,
            "memberId": self.member_id,
            "rentalDate": self.rental_date.isoformat(),
            "returnDate": self.return_date.isoformat() if self.return_date else None,
            "bookTitle": self.book_title,
            "memberName": self.member_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rental":
        """Create from dictionary.

        Dates may be full ISO timestamps; only the date part is kept.
        """
        returned = data.get("returnDate")
        return cls(
            id=data["id"],
            book_id=data.get("bookId", ""),
            member_id=data.get("memberId", ""),
            rental_date=date.fromisoformat(data["rentalDate"][:10]),
            return_date=date.fromisoformat(returned[:10]) if returned else None,
            book_title=data.get("bookTitle", ""),
            member_name=data.get("memberName", ""),
        )
