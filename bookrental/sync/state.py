"""Observable in-memory mirror of the shared document."""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..document import DEFAULT_COLLECTIONS, Document, normalize_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChange:
    """Notification delivered to LocalState observers."""

    source: str  # "pull", "local"
    collections: tuple[str, ...]  # Names of the collections that changed
    version: int  # LocalState.version after the change


ChangeCallback = Callable[[StateChange], None]


class LocalState:
    """Observable container holding the tracked collections of the document.

    Values are compared by equality, so writing an identical value is not a
    change. Readers always get copies; the only way to change the state is
    through ``set``, ``update`` or ``replace``. Multi-collection replacement
    is applied in full before any observer runs.
    """

    def __init__(
        self,
        collections: Iterable[str] = DEFAULT_COLLECTIONS,
        initial: Any = None,
    ):
        """Initialize the state.

        Args:
            collections: Names of the tracked collections.
            initial: Optional starting document; normalized before use.
        """
        self._collections = tuple(collections)
        self._data: Document = normalize_document(initial or {}, self._collections)
        self._observers: list[ChangeCallback] = []
        self._version = 0

    @property
    def collections(self) -> tuple[str, ...]:
        """Names of the tracked collections."""
        return self._collections

    @property
    def version(self) -> int:
        """Number of changes applied since construction."""
        return self._version

    def get(self, name: str) -> list[Any]:
        """Get a copy of one collection.

        Raises:
            KeyError: If the collection is not tracked.
        """
        return copy.deepcopy(self._data[name])

    def snapshot(self) -> Document:
        """Get a copy of every tracked collection as a complete document."""
        return copy.deepcopy(self._data)

    def set(self, name: str, records: list[Any], source: str = "local") -> bool:
        """Replace one collection.

        Args:
            name: Tracked collection name.
            records: New records for the collection.
            source: Origin of the change, passed through to observers.

        Returns:
            True if the value changed and observers were notified.
        """
        if name not in self._collections:
            raise KeyError(f"Collection '{name}' is not tracked")
        if not isinstance(records, list):
            raise TypeError(f"Collection '{name}' must be a list")

        if records == self._data[name]:
            return False

        self._data[name] = copy.deepcopy(records)
        self._notify(source, (name,))
        return True

    def set_many(self, updates: dict[str, list[Any]], source: str = "local") -> bool:
        """Replace several collections in one change.

        Observers see either none or all of the updates.

        Args:
            updates: New records keyed by collection name.
            source: Origin of the change.

        Returns:
            True if any collection changed.
        """
        for name, records in updates.items():
            if name not in self._collections:
                raise KeyError(f"Collection '{name}' is not tracked")
            if not isinstance(records, list):
                raise TypeError(f"Collection '{name}' must be a list")

        changed = tuple(
            name for name, records in updates.items() if records != self._data[name]
        )
        if not changed:
            return False

        for name in changed:
            self._data[name] = copy.deepcopy(updates[name])
        self._notify(source, changed)
        return True

    def update(
        self,
        name: str,
        fn: Callable[[list[Any]], list[Any]],
        source: str = "local",
    ) -> bool:
        """Read-modify-write one collection.

        Args:
            name: Tracked collection name.
            fn: Receives a copy of the collection and returns the new list.
            source: Origin of the change.

        Returns:
            True if the value changed.
        """
        return self.set(name, fn(self.get(name)), source=source)

    def replace(self, document: Any, source: str = "pull") -> bool:
        """Replace every tracked collection at once.

        Args:
            document: Decoded document; normalized before it is applied.
            source: Origin of the change.

        Returns:
            True if any collection changed.
        """
        incoming = normalize_document(document, self._collections)
        changed = tuple(
            name for name in self._collections if incoming[name] != self._data[name]
        )
        if not changed:
            return False

        self._data = incoming
        self._notify(source, changed)
        return True

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register an observer.

        Args:
            callback: Called synchronously after every change.

        Returns:
            A function that removes the observer again.
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self, source: str, collections: tuple[str, ...]) -> None:
        self._version += 1
        change = StateChange(source=source, collections=collections, version=self._version)
        for callback in list(self._observers):
            try:
                callback(change)
            except Exception as e:
                logger.error(f"State observer failed: {e}", exc_info=True)
