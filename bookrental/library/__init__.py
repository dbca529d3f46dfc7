"""Book rental domain: catalog, roster, borrowing and reports."""

from .library import LOAN_PERIOD_DAYS, Library
from .models import Book, BookStatus, Member, Rental
from .reports import RentalStatusRow, rental_report, rental_status
from .seed import sample_document

__all__ = [
    "Book",
    "BookStatus",
    "LOAN_PERIOD_DAYS",
    "Library",
    "Member",
    "Rental",
    "RentalStatusRow",
    "rental_report",
    "rental_status",
    "sample_document",
]
