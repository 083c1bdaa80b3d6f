"""Fire-and-forget progress sinks for execution notifications."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import Protocol

from hybrid_agent.orchestrator.models import ProgressEvent

logger = logging.getLogger(__name__)

_SENTINEL = object()


class ProgressSink(Protocol):
    """Receives progress notifications; must not block the caller."""

    def notify(self, event: ProgressEvent) -> None:
        """Accept one progress event."""


class NullProgressSink:
    """Discards every event."""

    def notify(self, event: ProgressEvent) -> None:
        return None


class CallbackProgressSink:
    """Invokes a callback inline; callback failures are logged and dropped."""

    def __init__(self, callback: Callable[[ProgressEvent], None]) -> None:
        self._callback = callback

    def notify(self, event: ProgressEvent) -> None:
        try:
            self._callback(event)
        except Exception:
            logger.exception("Progress callback failed for stage=%s", event.stage.value)


class QueuedProgressSink:
    """Hands events to a background thread so slow listeners never stall execution."""

    def __init__(
        self,
        callback: Callable[[ProgressEvent], None],
        *,
        max_pending: int = 1_000,
    ) -> None:
        self._callback = callback
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max_pending)
        self._thread = threading.Thread(
            target=self._drain,
            daemon=True,
            name="progress-sink",
        )
        self._thread.start()

    def notify(self, event: ProgressEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Progress queue full; dropping stage=%s event", event.stage.value)

    def close(self, timeout: float = 5.0) -> None:
        """Deliver pending events and stop the background thread."""

        self._queue.put(_SENTINEL)
        self._thread.join(timeout=timeout)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SENTINEL:
                return
            try:
                self._callback(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception("Queued progress callback failed")
