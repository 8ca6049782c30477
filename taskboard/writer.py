"""
Background snapshot writer.

Mutations hand their snapshot to submit() and return immediately. A single
worker thread writes to the slot, so writes land in issue order. The queue
holds at most one pending snapshot: a newer submit replaces an older one
that has not been picked up yet.

A crash between a mutation and the end of its write loses that mutation.
"""
import logging
import threading
from typing import Optional, Sequence

from .persistence import SnapshotSlot
from .schema import Board

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Single-thread, depth-1 writer in front of a SnapshotSlot."""

    def __init__(self, slot: SnapshotSlot, name: str = "taskboard-writer"):
        self.slot = slot
        self.failures = 0
        self.writes = 0
        self.superseded = 0
        self.dropped = 0
        self._cond = threading.Condition()
        self._pending: Optional[Sequence[Board]] = None
        self._has_pending = False
        self._busy = False
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, boards: Sequence[Board]) -> None:
        """Queue *boards* for writing, superseding any unwritten snapshot."""
        with self._cond:
            if self._closed:
                logger.warning("Snapshot writer is closed; dropping snapshot")
                self.dropped += 1
                return
            if self._has_pending:
                self.superseded += 1
            self._pending = boards
            self._has_pending = True
            self._cond.notify_all()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._has_pending and not self._closed:
                    self._cond.wait()
                if not self._has_pending:
                    return
                snapshot = self._pending
                self._pending = None
                self._has_pending = False
                self._busy = True
            try:
                ok = self.slot.persist(snapshot)
            except Exception:
                logger.exception("Unexpected error in snapshot writer")
                ok = False
            with self._cond:
                if ok:
                    self.writes += 1
                else:
                    # next submit writes a full snapshot again
                    self.failures += 1
                self._busy = False
                self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending or in flight. False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._has_pending and not self._busy, timeout
            )

    def close(self, timeout: Optional[float] = None) -> bool:
        """Write whatever is pending, then stop the worker thread."""
        with self._cond:
            if self._closed:
                return True
            self._closed = True
            self._cond.notify_all()
        self._thread.join(timeout)
        done = not self._thread.is_alive()
        if not done:
            logger.warning(f"Snapshot writer did not finish within {timeout}s")
        return done
