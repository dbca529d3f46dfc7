"""Helpers for the single JSON document shared between clients."""

import copy
import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DEFAULT_COLLECTIONS = ("books", "members", "rentals")

Document = dict[str, list[Any]]


def empty_document(collections: Iterable[str] = DEFAULT_COLLECTIONS) -> Document:
    """Build a document with every collection present and empty."""
    return {name: [] for name in collections}


def normalize_document(
    raw: Any,
    collections: Iterable[str] = DEFAULT_COLLECTIONS,
) -> Document:
    """Coerce a decoded document into a complete set of collections.

    Missing collections, and collections that are not lists, become empty
    lists. Anything that is not a mapping yields the empty document. Keys
    outside ``collections`` are dropped.

    Args:
        raw: Decoded JSON value.
        collections: Names of the collections to keep.

    Returns:
        A new document safe to hand to observers.
    """
    collections = list(collections)

    if not isinstance(raw, dict):
        logger.warning(
            f"Document is {type(raw).__name__}, not an object; using empty default"
        )
        return empty_document(collections)

    doc: Document = {}
    for name in collections:
        value = raw.get(name)
        if isinstance(value, list):
            doc[name] = copy.deepcopy(value)
        else:
            if value is not None:
                logger.warning(f"Collection '{name}' is not a list; using []")
            doc[name] = []
    return doc


def count_records(doc: Any) -> dict[str, int]:
    """Count records per collection (non-list values count as zero)."""
    if not isinstance(doc, dict):
        return {}
    return {
        name: len(value) if isinstance(value, list) else 0
        for name, value in doc.items()
    }
