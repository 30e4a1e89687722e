"""
============================================================
 Blowout — Celebration State Machine
 NOT_STARTED → SCANNING → TRIGGERED → MODAL_SHOWN
 One Party per session. Transitions are one-way; a restart
 builds a new Party.
============================================================
"""

import threading
import time
from enum import Enum

import config


class PartyState(str, Enum):
    NOT_STARTED = "not_started"
    SCANNING = "scanning"
    ALMOST_TRIGGERED = "almost_triggered"  # derived: scanning + hint
    TRIGGERED = "triggered"
    CAPTURED = "captured"  # derived: triggered + keepsake ready
    MODAL_SHOWN = "modal_shown"


# Stored states, in the only order they may occur.
_ORDER = (PartyState.NOT_STARTED, PartyState.SCANNING,
          PartyState.TRIGGERED, PartyState.MODAL_SHOWN)


class Party:
    """
    Owns the party state, its flags, and the trigger sequence.
    Listeners registered via subscribe() get a snapshot dict on
    every change.
    """

    def __init__(self, scheduler, capturer=None, confetti=None,
                 clock=time.monotonic,
                 candle_count: int = config.CANDLE_COUNT,
                 manual_override_delay_ms: int = config.MANUAL_OVERRIDE_DELAY_MS,
                 capture_delay_ms: int = config.CAPTURE_DELAY_MS,
                 side_burst_delay_ms: int = config.SIDE_BURST_DELAY_MS,
                 modal_delay_ms: int = config.MODAL_DELAY_MS):
        self.scheduler = scheduler
        self.capturer = capturer
        self.confetti = confetti
        self.clock = clock
        self.manual_override_delay_ms = manual_override_delay_ms
        self.capture_delay_ms = capture_delay_ms
        self.side_burst_delay_ms = side_burst_delay_ms
        self.modal_delay_ms = modal_delay_ms

        self._lock = threading.RLock()
        self._state = PartyState.NOT_STARTED
        self._triggered = False
        self._history = [PartyState.NOT_STARTED]
        self._listeners: list = []
        self._scan_started: float | None = None

        self.candles_lit = [True] * candle_count
        self.almost = False
        self.trigger_source: str | None = None
        self.artifact = None
        self.capture_attempted = False
        self.debug_info = {"ratio": "Scanning...", "sound": 0, "heartbeat": 0}

    # ═════════════════════════════════════════════════════════
    #  QUERIES
    # ═════════════════════════════════════════════════════════

    @property
    def state(self) -> PartyState:
        return self._state

    @property
    def history(self) -> list:
        return list(self._history)

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def is_scanning(self) -> bool:
        return self._state is PartyState.SCANNING and not self._triggered

    @property
    def is_blown(self) -> bool:
        return not any(self.candles_lit)

    @property
    def display_state(self) -> PartyState:
        """Stored state refined with the derived almost/captured states."""
        state = self._state
        if state is PartyState.SCANNING and self.almost:
            return PartyState.ALMOST_TRIGGERED
        if state is PartyState.TRIGGERED and self.artifact is not None:
            return PartyState.CAPTURED
        return state

    @property
    def manual_available(self) -> bool:
        if not self.is_scanning or self._scan_started is None:
            return False
        elapsed_ms = (self.clock() - self._scan_started) * 1000.0
        return elapsed_ms >= self.manual_override_delay_ms

    @property
    def status_text(self) -> str:
        if self._triggered:
            return config.STATUS_POOF
        if self.almost:
            return config.STATUS_ALMOST
        return config.STATUS_IDLE

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.display_state.value,
                "started": self._state is not PartyState.NOT_STARTED,
                "candles": list(self.candles_lit),
                "is_blown": self.is_blown,
                "almost": self.almost,
                "triggered": self._triggered,
                "trigger_source": self.trigger_source,
                "manual_available": self.manual_available,
                "show_modal": self._state is PartyState.MODAL_SHOWN,
                "has_screenshot": self.artifact is not None,
                "screenshot_name": self.artifact.filename if self.artifact else None,
                "status": self.status_text,
                "debug": dict(self.debug_info),
            }

    # ═════════════════════════════════════════════════════════
    #  OBSERVERS
    # ═════════════════════════════════════════════════════════

    def subscribe(self, listener):
        """Register ``listener(snapshot)``; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snap)
            except Exception as e:
                print(f"[PARTY] Listener error: {e}")

    # ═════════════════════════════════════════════════════════
    #  TRANSITIONS
    # ═════════════════════════════════════════════════════════

    def _advance(self, new_state: PartyState) -> bool:
        """Move forward along _ORDER; refuses anything else."""
        with self._lock:
            if _ORDER.index(new_state) != _ORDER.index(self._state) + 1:
                return False
            self._state = new_state
            self._history.append(new_state)
            return True

    def start_scanning(self) -> bool:
        """NOT_STARTED → SCANNING, after media acquisition succeeded."""
        with self._lock:
            if not self._advance(PartyState.SCANNING):
                return False
            self._scan_started = self.clock()
        print("[PARTY] Scanning — make a wish!")
        if self.manual_override_delay_ms > 0:
            self.scheduler.call_later(self.manual_override_delay_ms, self._reveal_manual)
        self._notify()
        return True

    def _reveal_manual(self) -> None:
        if self.is_scanning:
            print("[PARTY] Manual blow available.")
            self._notify()

    def manual_trigger(self) -> bool:
        """The 'Manual Blow' button. Same effects as a detected blow."""
        if not self.manual_available:
            return False
        return self.trigger("manual")

    def trigger(self, source: str = "manual") -> bool:
        """SCANNING → TRIGGERED. Runs the trigger sequence at most once."""
        with self._lock:
            if self._triggered or self._state is not PartyState.SCANNING:
                return False
            self._triggered = True  # guard goes up before any side effect
            self._advance(PartyState.TRIGGERED)
            self.trigger_source = source
            self.almost = False
            self.candles_lit = [False] * len(self.candles_lit)
        print(f"[PARTY] 🎂 Candles blown out (via {source})!")

        self.scheduler.call_later(self.capture_delay_ms, self._capture)
        self._burst(config.CONFETTI_MEGA_BURST)
        self._burst(config.CONFETTI_WIDE_BURST)
        self.scheduler.call_later(self.side_burst_delay_ms, self._side_bursts)
        self.scheduler.call_later(self.modal_delay_ms, self._show_modal)
        self._notify()
        return True

    def _side_bursts(self) -> None:
        self._burst(config.CONFETTI_LEFT_BURST)
        self._burst(config.CONFETTI_RIGHT_BURST)

    def _burst(self, burst: dict) -> None:
        if self.confetti is None:
            return
        try:
            self.confetti.burst(**burst)
        except Exception as e:
            print(f"[PARTY] Confetti burst failed: {e}")

    def _capture(self) -> None:
        with self._lock:
            if self.capture_attempted or self.capturer is None:
                return
            self.capture_attempted = True
        try:
            artifact = self.capturer.capture(self)
        except Exception as e:
            print(f"[PARTY] Screenshot failed: {e}")
            return
        with self._lock:
            self.artifact = artifact
        print(f"[PARTY] 📸 Keepsake captured ({len(artifact.png)} bytes)")
        self._notify()

    def _show_modal(self) -> None:
        if self._advance(PartyState.MODAL_SHOWN):
            print("[PARTY] Magical moment ready.")
            self._notify()

    # ═════════════════════════════════════════════════════════
    #  DETECTION FEEDBACK
    # ═════════════════════════════════════════════════════════

    def set_almost(self, almost: bool) -> None:
        """Near-pucker hint. No hysteresis; may flicker frame to frame."""
        with self._lock:
            if not self.is_scanning:
                return
            changed = self.almost != almost
            self.almost = almost
        if changed:
            self._notify()

    def update_debug(self, **info) -> None:
        with self._lock:
            self.debug_info.update(info)
