"""Debounced autosave on top of a :class:`BlueprintGateway`."""
from __future__ import annotations

import logging
import threading

from src.persistence.gateway import BlueprintGateway
from src.shared.constants import DEFAULT_AUTOSAVE_DEBOUNCE_MS
from src.shared.models.blueprint import BlueprintDocument

logger = logging.getLogger(__name__)


class DebouncedAutosaver:
    """Coalesces bursts of edits into a single write.

    Each :meth:`schedule` call replaces the pending snapshot and restarts the
    timer; the write happens once the document has been quiet for
    ``delay_ms``.  :meth:`flush` writes the pending snapshot immediately and
    is what stage transitions call before moving on.

    Args:
        gateway: Storage backend.
        delay_ms: Quiet period before a scheduled write fires.
        enabled: When False, :meth:`schedule` is a no-op.
    """

    def __init__(
        self,
        gateway: BlueprintGateway,
        delay_ms: int = DEFAULT_AUTOSAVE_DEBOUNCE_MS,
        enabled: bool = True,
    ) -> None:
        self.gateway = gateway
        self.delay_ms = delay_ms
        self._enabled = enabled
        self._lock = threading.Lock()
        # Held across take-and-save so writes land in the order snapshots were taken.
        self._write_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: tuple[str, BlueprintDocument] | None = None
        self.last_result: bool | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def set_enabled(self, enabled: bool) -> None:
        """Turn scheduling on or off; an already pending write is kept."""
        self._enabled = enabled

    def schedule(self, blueprint_id: str, doc: BlueprintDocument) -> None:
        """Queue a snapshot of *doc* for saving after the debounce delay."""
        if not self._enabled:
            return
        snapshot = doc.model_copy(deep=True)
        with self._lock:
            self._pending = (blueprint_id, snapshot)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay_ms / 1000.0, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _take_pending(self) -> tuple[str, BlueprintDocument] | None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            pending, self._pending = self._pending, None
            return pending

    def _write(self, blueprint_id: str, doc: BlueprintDocument) -> bool:
        try:
            ok = self.gateway.save(blueprint_id, doc)
        except Exception as exc:
            logger.warning("Autosave of %s failed (non-blocking): %s", blueprint_id, exc)
            ok = False
        self.last_result = ok
        if not ok:
            logger.warning("Autosave of %s did not complete; in-memory state kept", blueprint_id)
        return ok

    def _fire(self) -> None:
        with self._write_lock:
            pending = self._take_pending()
            if pending is not None:
                self._write(*pending)

    def flush(self) -> bool:
        """Write any pending snapshot now.

        Waits for a write already in progress on the timer thread, so an
        older snapshot can never land after the flushed one.

        Returns:
            True when nothing was pending or the write succeeded.
        """
        with self._write_lock:
            pending = self._take_pending()
            if pending is None:
                return True
            return self._write(*pending)

    def save_now(self, blueprint_id: str, doc: BlueprintDocument) -> bool:
        """Drop any pending snapshot and write *doc* straight away, in order
        with timer writes."""
        with self._write_lock:
            self._take_pending()
            return self._write(blueprint_id, doc)

    def cancel(self) -> bool:
        """Drop the pending snapshot without writing; True if one was dropped."""
        return self._take_pending() is not None

    def close(self) -> bool:
        return self.flush()
