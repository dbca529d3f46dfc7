"""Background synchronization between LocalState and the document store.

Pulls the whole document on a fixed interval and pushes a debounced
snapshot of LocalState after local changes. Both directions overwrite the
whole document; there is no locking and no version token, so the last
writer wins on either side.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from .state import LocalState, StateChange
from .transport import BlobStore

logger = logging.getLogger(__name__)


class SyncPhase(Enum):
    """Lifecycle phase of a SyncManager."""

    BOOTING = "booting"
    SYNCING = "syncing"
    STOPPED = "stopped"


class SyncManager:
    """Keeps a LocalState loosely in sync with a BlobStore.

    - Pull: read the document now and then every ``pull_interval`` seconds,
      replacing the tracked collections unconditionally.
    - Push: after a change to LocalState, wait for ``debounce`` seconds of
      quiet, then write a snapshot. Changes inside the window restart it.
    - The first change event after ``start()`` never pushes. It is the
      initial load of remote data into an empty client, and pushing it
      could clobber the remote document with a stale snapshot.
    """

    def __init__(
        self,
        state: LocalState,
        store: BlobStore,
        pull_interval: float = 30.0,
        debounce: float = 1.0,
        pause_when_hidden: bool = True,
    ):
        """Initialize the sync manager.

        Args:
            state: Local state container to keep in sync.
            store: Document store to pull from and push to.
            pull_interval: Seconds between pulls.
            debounce: Seconds of quiet required before a push runs.
            pause_when_hidden: Skip scheduled pulls while not visible.
        """
        self.state = state
        self.store = store
        self.pull_interval = pull_interval
        self.debounce = debounce
        self.pause_when_hidden = pause_when_hidden

        self._phase = SyncPhase.BOOTING
        self._running = False
        self._visible = True
        self._first_change_pending = False
        self._first_pull_done: asyncio.Event | None = None
        self._first_pull_ok = False

        self._unsubscribe: Callable[[], None] | None = None
        self._pull_task: asyncio.Task | None = None
        self._push_handle: asyncio.TimerHandle | None = None
        self._push_tasks: set[asyncio.Task] = set()

        self._pull_count = 0
        self._pull_failures = 0
        self._pulls_skipped = 0
        self._push_count = 0
        self._push_failures = 0
        self._pushes_suppressed = 0
        self._last_pull: datetime | None = None
        self._last_push: datetime | None = None

    @property
    def phase(self) -> SyncPhase:
        """Current lifecycle phase."""
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_pending_push(self) -> bool:
        """True while a debounced push is waiting for its window to elapse."""
        return self._push_handle is not None

    @property
    def visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        """Record whether the host client is currently visible.

        Args:
            visible: False to pause scheduled pulls (when enabled).
        """
        if visible != self._visible:
            logger.debug(f"Visibility changed to {'visible' if visible else 'hidden'}")
        self._visible = visible

    async def start(self) -> None:
        """Start syncing: subscribe to changes and launch the pull loop."""
        if self._running:
            return

        self._running = True
        self._first_change_pending = True
        self._first_pull_done = asyncio.Event()
        self._first_pull_ok = False
        self._unsubscribe = self.state.subscribe(self._on_change)
        self._phase = SyncPhase.SYNCING
        self._pull_task = asyncio.create_task(self._pull_loop())
        logger.info(
            f"Sync started (pull_interval={self.pull_interval}s, "
            f"debounce={self.debounce}s)"
        )

    async def stop(self) -> None:
        """Stop syncing and cancel every scheduled or in-flight operation."""
        self._running = False

        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        if self._push_handle:
            self._push_handle.cancel()
            self._push_handle = None

        tasks = list(self._push_tasks)
        if self._pull_task:
            tasks.append(self._pull_task)

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._pull_task = None
        self._push_tasks.clear()
        if self._phase is not SyncPhase.BOOTING:
            self._phase = SyncPhase.STOPPED
        logger.info("Sync stopped")

    async def wait_for_first_pull(self, timeout: float | None = None) -> bool:
        """Wait until the first pull after ``start()`` has been attempted.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely.

        Returns:
            True if the first pull succeeded.
        """
        if self._first_pull_done is None:
            return False
        try:
            await asyncio.wait_for(self._first_pull_done.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self._first_pull_ok

    async def _pull_loop(self) -> None:
        """Pull immediately, then on every interval until stopped."""
        while self._running:
            if self._visible or not self.pause_when_hidden:
                try:
                    ok = await self.pull()
                except Exception as e:
                    ok = False
                    logger.error(f"Pull loop error: {e}", exc_info=True)
                if self._first_pull_done and not self._first_pull_done.is_set():
                    self._first_pull_ok = ok
                    self._first_pull_done.set()
            else:
                self._pulls_skipped += 1
                logger.debug("Client hidden, skipping pull")

            await asyncio.sleep(self.pull_interval)

    async def pull(self) -> bool:
        """Read the document and replace the tracked collections.

        A failed read leaves LocalState untouched.

        Returns:
            True if the document was read.
        """
        try:
            doc = await self.store.read()
        except Exception as e:
            self._pull_failures += 1
            logger.warning(f"Pull failed, keeping local state: {e}")
            return False

        changed = self.state.replace(doc, source="pull")
        self._pull_count += 1
        self._last_pull = datetime.now()

        if changed:
            logger.debug(f"Pulled new document (version {self.state.version})")
        elif self._first_change_pending and self._running:
            # Remote already matches local state; nothing left to suppress.
            self._first_change_pending = False

        return True

    def _on_change(self, change: StateChange) -> None:
        if not self._running:
            return

        if self._first_change_pending:
            self._first_change_pending = False
            self._pushes_suppressed += 1
            logger.debug(f"First change after start ({change.source}), not pushing")
            return

        self._schedule_push()

    def _schedule_push(self) -> None:
        """(Re)start the debounce window."""
        if self._push_handle:
            self._push_handle.cancel()
        loop = asyncio.get_running_loop()
        self._push_handle = loop.call_later(self.debounce, self._fire_push)

    def _fire_push(self) -> None:
        self._push_handle = None
        if not self._running:
            return
        task = asyncio.create_task(self.push())
        self._push_tasks.add(task)
        task.add_done_callback(self._push_tasks.discard)

    async def push(self) -> bool:
        """Write a snapshot of LocalState to the store.

        A failed write is logged and leaves LocalState untouched; the next
        change schedules another attempt.

        Returns:
            True if the write succeeded.
        """
        snapshot = self.state.snapshot()
        try:
            await self.store.write(snapshot)
        except Exception as e:
            self._push_failures += 1
            logger.error(f"Push failed, remote document is stale: {e}")
            return False

        self._push_count += 1
        self._last_push = datetime.now()
        logger.debug(f"Pushed document (version {self.state.version})")
        return True

    async def flush(self) -> bool:
        """Run a pending push now instead of waiting for the window.

        Also waits for pushes already in flight.

        Returns:
            True if a pending push ran and succeeded.
        """
        in_flight = list(self._push_tasks)
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

        if self._push_handle is None:
            return False

        self._push_handle.cancel()
        self._push_handle = None
        return await self.push()

    def get_stats(self) -> dict[str, Any]:
        """Get sync statistics.

        Returns:
            Dictionary with phase, counters and timestamps.
        """
        return {
            "phase": self._phase.value,
            "visible": self._visible,
            "pull_interval": self.pull_interval,
            "debounce": self.debounce,
            "pulls": self._pull_count,
            "pull_failures": self._pull_failures,
            "pulls_skipped": self._pulls_skipped,
            "pushes": self._push_count,
            "push_failures": self._push_failures,
            "pushes_suppressed": self._pushes_suppressed,
            "push_pending": self.has_pending_push,
            "last_pull": self._last_pull.isoformat() if self._last_pull else None,
            "last_push": self._last_push.isoformat() if self._last_push else None,
            "state_version": self.state.version,
        }
