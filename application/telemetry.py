from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Dict, Optional

from infrastructure.logger import get_logger
from infrastructure.repository import MarketRepository

logger = get_logger(__name__)


class TelemetryEmitter:
    """
    Best-effort telemetry sink in front of the repository.

    emit() never raises. With background=True events are written on a
    single worker thread so the caller never waits on storage; otherwise
    they are written inline and failures are logged and dropped.
    """

    def __init__(self, repository: MarketRepository, *, background: bool = False):
        self._repo = repository
        self._executor: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="telemetry") if background else None
        )
        self._closed = False
        self._stats_lock = Lock()
        self._emitted = 0
        self._dropped = 0

    def emit(self, event_type: str, *, player_id: Optional[str] = None,
             metadata: Optional[Dict[str, Any]] = None) -> None:
        if self._executor is None:
            self._write(event_type, player_id, metadata)
            return
        try:
            future = self._executor.submit(self._write, event_type, player_id, metadata)
        except RuntimeError:
            # Executor already shut down
            self._record(ok=False)
            logger.warning("Telemetry %s dropped: emitter closed", event_type)
            return
        future.add_done_callback(self._on_done)

    def _write(self, event_type: str, player_id: Optional[str], metadata: Optional[Dict[str, Any]]) -> bool:
        try:
            self._repo.create_telemetry_event(event_type, player_id=player_id, metadata=metadata)
        except Exception as e:
            self._record(ok=False)
            logger.warning("Telemetry %s dropped: %s", event_type, e)
            return False
        self._record(ok=True)
        return True

    @staticmethod
    def _on_done(future: Future) -> None:
        if future.exception() is not None:
            logger.warning("Telemetry worker failed: %s", future.exception())

    def _record(self, *, ok: bool) -> None:
        with self._stats_lock:
            if ok:
                self._emitted += 1
            else:
                self._dropped += 1

    def flush(self) -> None:
        """Wait for queued events; the emitter stays usable afterwards."""
        if self._executor is None or self._closed:
            return
        try:
            self._executor.submit(lambda: None).result()
        except RuntimeError:
            # Closed concurrently; shutdown already drained the queue
            return

    def close(self) -> None:
        """Drain queued events and stop the worker. flush() is a no-op afterwards."""
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def get_stats(self) -> dict:
        with self._stats_lock:
            return {
                "emitted": self._emitted,
                "dropped": self._dropped,
                "background": self._executor is not None,
            }
