"""
============================================================
 Blowout — One-shot Timer Scheduler
 Fire-and-forget delayed callbacks for the celebration
 sequence, with a single cancel_all() for teardown.
============================================================
"""

import threading


class TimerScheduler:
    """Schedules one-shot callbacks on daemon threading.Timer threads."""

    def __init__(self):
        self._timers: set = set()
        self._lock = threading.Lock()
        # Held while a callback runs, so cancel_all() cannot land mid-callback.
        self._run_lock = threading.RLock()
        self._closed = False

    def call_later(self, delay_ms: float, callback) -> None:
        """Run ``callback()`` once after ``delay_ms`` milliseconds."""
        with self._lock:
            if self._closed:
                return
            timer = threading.Timer(max(delay_ms, 0) / 1000.0, self._fire, args=(callback,))
            timer.daemon = True
            self._timers.add(timer)
        timer.start()

    def _fire(self, callback) -> None:
        with self._run_lock:
            with self._lock:
                if self._closed:
                    return
                self._timers = {t for t in self._timers if t is not threading.current_thread()}
            try:
                callback()
            except Exception as e:
                print(f"[TIMERS] Scheduled callback failed: {e}")

    def cancel_all(self) -> None:
        """Cancel every pending callback; later call_later() calls are ignored.

        Waits for a callback that is already running to finish.
        """
        with self._run_lock, self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._timers)
