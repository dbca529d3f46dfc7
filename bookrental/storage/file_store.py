"""JSON file backing the shared document.

The whole application state lives in one JSON file. Reads fail open to the
empty document; writes replace the file atomically.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from ..document import DEFAULT_COLLECTIONS, count_records, empty_document

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the document cannot be read or persisted."""


class JsonFileStore:
    """Single-document store backed by a JSON file on disk.

    There is no locking and no versioning: every write is a full overwrite
    and concurrent writers race, the last one wins.
    """

    def __init__(
        self,
        path: str | Path,
        collections: Iterable[str] = DEFAULT_COLLECTIONS,
    ):
        """Initialize the store.

        Args:
            path: Location of the JSON file. ``~`` is expanded.
            collections: Collections present in the empty default document.
        """
        self.path = Path(path).expanduser()
        self.collections = list(collections)

    def exists(self) -> bool:
        """Check whether a document has been written yet."""
        return self.path.is_file()

    def read(self, strict: bool = False) -> Any:
        """Read the persisted document.

        Args:
            strict: Raise instead of serving the empty default when the file
                exists but cannot be read or decoded.

        Returns:
            The decoded JSON value, or the empty default document when the
            file is missing (or, unless strict, unreadable or not valid JSON).

        Raises:
            StorageError: In strict mode, if the file cannot be read or decoded.
        """
        if not self.path.exists():
            return empty_document(self.collections)

        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            if strict:
                raise StorageError(f"Failed to read {self.path}: {e}") from e
            logger.warning(f"Failed to read {self.path}, serving empty document: {e}")
            return empty_document(self.collections)

    def write(self, doc: Any) -> None:
        """Atomically replace the persisted document.

        Args:
            doc: Any JSON-serializable value.

        Raises:
            StorageError: If the document cannot be serialized or the file
                cannot be written.
        """
        try:
            payload = json.dumps(doc, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document is not JSON serializable: {e}") from e

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

        logger.debug(f"Wrote document to {self.path}: {count_records(doc)}")

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with the file path, existence and per-collection counts.
        """
        doc = self.read()
        return {
            "data_path": str(self.path),
            "exists": self.exists(),
            "collections": count_records(doc),
        }
