"""
Edit lock between the live booking feed and in-progress local edits.

LIVE:    every snapshot offered is applied straight away, in arrival order.
EDITING: snapshots are parked in a single slot; a newer one replaces the
         older one. When the last sensitive interaction ends the parked
         snapshot is applied exactly once and the slot is emptied.

Nothing offered is dropped: it is either applied now or, collapsed to the
latest, when the session ends.
"""
import logging
from contextlib import contextmanager
from enum import Enum

logger = logging.getLogger(__name__)

_EMPTY = object()


class LockState(str, Enum):
    LIVE = "live"
    EDITING = "editing"


class EditLockQueue:
    def __init__(self, apply):
        self._apply = apply
        self._holders = set()
        self._pending = _EMPTY
        self.suppressed_count = 0
        self.applied_count = 0

    @property
    def state(self):
        return LockState.EDITING if self._holders else LockState.LIVE

    @property
    def has_pending(self):
        return self._pending is not _EMPTY

    @property
    def pending(self):
        return None if self._pending is _EMPTY else self._pending

    def begin(self, token="edit"):
        """Mark a sensitive interaction as started. Tokens nest; each must be ended."""
        if not self._holders:
            logger.info("edit session started (%s), pausing live updates", token)
        self._holders.add(token)

    def end(self, token="edit"):
        if token not in self._holders:
            return
        self._holders.discard(token)
        if self._holders:
            return
        logger.info(
            "edit session ended, resuming live updates (%d suppressed)", self.suppressed_count
        )
        self.suppressed_count = 0
        if self._pending is not _EMPTY:
            snapshot, self._pending = self._pending, _EMPTY
            self._deliver(snapshot)

    def offer(self, snapshot):
        """Hand a snapshot from the feed to the lock. Returns True if it was applied now."""
        if self._holders:
            self._pending = snapshot
            self.suppressed_count += 1
            logger.debug("snapshot buffered while editing (%d suppressed)", self.suppressed_count)
            return False
        self._deliver(snapshot)
        return True

    def _deliver(self, snapshot):
        self.applied_count += 1
        self._apply(snapshot)

    @contextmanager
    def editing(self, token="edit"):
        self.begin(token)
        try:
            yield self
        finally:
            self.end(token)
