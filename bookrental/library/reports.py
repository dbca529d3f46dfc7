"""Rental status table and rental volume reports."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from .library import LOAN_PERIOD_DAYS, Library
from .models import Rental

UNKNOWN_MEMBER = "unknown"

# Number of most recent periods kept in a volume report
REPORT_PERIODS = 12


@dataclass
class RentalStatusRow:
    """A book that is currently out, with who has it."""

    book_id: str
    title: str
    status: str
    member_name: str
    member_email: str | None
    due_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "book_id": self.book_id,
            "title": self.title,
            "status": self.status,
            "member_name": self.member_name,
            "member_email": self.member_email,
            "due_date": self.due_date.isoformat(),
        }


def rental_status(library: Library, today: date | None = None) -> list[RentalStatusRow]:
    """List borrowed and reserved books, sorted by member name.

    Books without a recorded due date are given one a loan period from
    ``today``.
    """
    today = today or date.today()
    names = {m.email: m.name for m in library.members()}

    rows = []
    for book in library.books():
        if not book.is_out:
            continue
        rows.append(
            RentalStatusRow(
                book_id=book.id,
                title=book.title,
                status=book.status.value,
                member_name=names.get(book.reserved_by, UNKNOWN_MEMBER),
                member_email=book.reserved_by,
                due_date=book.due_date or today + timedelta(days=LOAN_PERIOD_DAYS),
            )
        )

    rows.sort(key=lambda r: r.member_name)
    return rows


def _period_key(rental: Rental, period: str) -> str:
    if period == "monthly":
        return rental.rental_date.strftime("%Y-%m")
    return str(rental.rental_date.year)


def rental_report(rentals: list[Rental], period: str = "monthly") -> list[dict[str, Any]]:
    """Count rentals per month or per year.

    Args:
        rentals: Rental records to aggregate.
        period: "monthly" or "yearly".

    Returns:
        ``{"name": period_key, "rentals": count}`` entries, oldest first,
        limited to the most recent periods.
    """
    if period not in ("monthly", "yearly"):
        raise ValueError(f"Unknown report period: {period}")

    counts: dict[str, int] = {}
    for rental in rentals:
        key = _period_key(rental, period)
        counts[key] = counts.get(key, 0) + 1

    # YYYY and YYYY-MM keys sort chronologically as strings
    return [
        {"name": key, "rentals": counts[key]} for key in sorted(counts)
    ][-REPORT_PERIODS:]
