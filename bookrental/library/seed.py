"""Sample catalog and roster for a fresh deployment."""

from ..document import DEFAULT_COLLECTIONS, Document, empty_document
from .models import Book, Member

SAMPLE_BOOKS = [
    ("데미안", "헤르만 헤세", "소설"),
    ("모순", "양귀자", "소설"),
    ("불편한 편의점 1", "김호연", "소설"),
    ("미움받을 용기 1", "기시미 이치로", "심리"),
    ("최소한의 한국사", "최태성", "한국사"),
    ("방구석 미술관 1", "조원재", "미술"),
    ("류수영의 평생 레시피", "류수영", "요리책"),
    ("마흔에 읽는 쇼펜 하우어", "강용수", "서양철학"),
]

SAMPLE_MEMBERS = [
    ("Alice Kim", "alice@example.com"),
    ("Brian Park", "brian@example.com"),
    ("Chloe Lee", "chloe@example.com"),
    ("Daniel Choi", "daniel@example.com"),
]


def sample_document() -> Document:
    """Build a document with the sample books and members and no rentals."""
    doc = empty_document(DEFAULT_COLLECTIONS)
    doc["books"] = [
        Book(
            id=f"book-{i}",
            title=title,
            author=author,
            category=category,
            description=f'"{title}" by {author} ({category})',
        ).to_dict()
        for i, (title, author, category) in enumerate(SAMPLE_BOOKS, start=1)
    ]
    doc["members"] = [
        Member(id=f"member-{i}", name=name, email=email).to_dict()
        for i, (name, email) in enumerate(SAMPLE_MEMBERS, start=1)
    ]
    return doc
