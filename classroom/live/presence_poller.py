from __future__ import annotations

import threading
import time
import uuid
from typing import Callable, Dict, Optional, Protocol

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_debug, log_module_import, log_warning
from classroom.live.errors import StoreUnavailable
from classroom.live.models import SESSION_KEY
from classroom.live.session_store import SessionStore

log_module_import(__name__)

DEFAULT_POLL_INTERVAL_MS = 5000


class Scheduler(Protocol):
    """Anything with Tk's ``after``/``after_cancel`` contract (a Tk root qualifies)."""

    def after(self, delay_ms: int, callback: Callable[[], None]) -> str: ...

    def after_cancel(self, after_id: str) -> None: ...


class ThreadingScheduler:
    """``after``-style scheduler backed by daemon ``threading.Timer`` objects."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: Dict[str, threading.Timer] = {}

    def after(self, delay_ms: int, callback: Callable[[], None]) -> str:
        after_id = uuid.uuid4().hex

        def _run():
            with self._lock:
                self._timers.pop(after_id, None)
            callback()

        timer = threading.Timer(max(0, delay_ms) / 1000.0, _run)
        timer.daemon = True
        with self._lock:
            self._timers[after_id] = timer
        timer.start()
        return after_id

    def after_cancel(self, after_id: str) -> None:
        with self._lock:
            timer = self._timers.pop(after_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


def configured_poll_interval_ms() -> int:
    return max(250, ConfigHelper.getint("LiveSession", "poll_interval_ms", fallback=DEFAULT_POLL_INTERVAL_MS))


class SessionPresencePoller:
    """Periodically fetches the singleton session record and hands it to the coordinator.

    Ticks never overlap: a tick that fires while the previous fetch is still
    in flight is skipped. Store requests block, so UI hosts should keep the
    default ThreadingScheduler rather than their event loop.
    """

    def __init__(
        self,
        coordinator,
        store: SessionStore,
        scheduler: Optional[Scheduler] = None,
        *,
        interval_ms: Optional[int] = None,
    ) -> None:
        self._coordinator = coordinator
        self._store = store
        self._scheduler = scheduler
        self._interval_ms = int(interval_ms) if interval_ms else configured_poll_interval_ms()
        self._after_id: Optional[str] = None
        self._running = False
        self._tick_guard = threading.Lock()
        self.store_online = True
        self.last_poll_ts: Optional[float] = None

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._running

    def set_scheduler(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._ensure_tick_loop()

    def start(self) -> None:
        """Begin polling; the first fetch is scheduled immediately, later ones every interval."""

        if self._running:
            return
        self._running = True
        if self._scheduler is not None and self._after_id is None:
            self._after_id = self._scheduler.after(0, self._tick)

    def stop(self) -> None:
        self._running = False
        after_id, self._after_id = self._after_id, None
        if after_id is not None and self._scheduler is not None:
            self._scheduler.after_cancel(after_id)

    def poll_now(self) -> bool:
        """Run one reconciliation pass; returns True if local state changed."""

        if not self._tick_guard.acquire(blocking=False):
            log_debug("Previous poll still running, skipping tick", func_name="SessionPresencePoller.poll_now")
            return False
        try:
            try:
                session = self._store.get(SESSION_KEY)
            except StoreUnavailable as exc:
                if self.store_online:
                    log_warning(f"Session store unavailable: {exc}", func_name="SessionPresencePoller.poll_now")
                self.store_online = False
                return False
            self.store_online = True
            self.last_poll_ts = time.monotonic()
            return self._coordinator.apply_remote_session(session)
        finally:
            self._tick_guard.release()

    def _tick(self) -> None:
        self._after_id = None
        if not self._running:
            return
        try:
            self.poll_now()
        finally:
            self._ensure_tick_loop()

    def _ensure_tick_loop(self) -> None:
        if self._scheduler is None or not self._running:
            return
        if self._after_id is not None:
            return
        self._after_id = self._scheduler.after(self._interval_ms, self._tick)
