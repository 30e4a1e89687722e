"""
============================================================
 Blowout — Detection Loop
 Once per camera frame: pull a sample from both extractors,
 decide whether the candles were blown out, and hand the
 outcome to the Party. Stops the moment the party triggers.
============================================================
"""

import threading
import time
from dataclasses import dataclass

import config

TICK_MODULO = 100


@dataclass(frozen=True)
class DetectionSample:
    ratio: float | None  # None → no face this tick
    sound_level: float
    frame_tick: int


@dataclass(frozen=True)
class Thresholds:
    pucker: float = config.PUCKER_RATIO_THRESHOLD
    almost: float = config.ALMOST_RATIO_THRESHOLD
    sound: float = config.SOUND_LEVEL_THRESHOLD


@dataclass(frozen=True)
class Verdict:
    triggered: bool
    source: str | None  # "sound" | "pucker" | None
    almost: bool


def evaluate(sample: DetectionSample, thresholds: Thresholds = Thresholds()) -> Verdict:
    """Sound wins first and skips the ratio check; comparisons are strict."""
    if sample.sound_level > thresholds.sound:
        return Verdict(True, "sound", False)
    if sample.ratio is None:
        return Verdict(False, None, False)
    almost = sample.ratio < thresholds.almost
    if sample.ratio < thresholds.pucker:
        return Verdict(True, "pucker", almost)
    return Verdict(False, None, almost)


class DetectionLoop:
    """Per-frame detection worker bound to one Party."""

    def __init__(self, party, camera, microphone, extractor,
                 thresholds: Thresholds | None = None,
                 idle_sleep: float = config.LOOP_IDLE_SLEEP):
        self.party = party
        self.camera = camera
        self.microphone = microphone
        self.extractor = extractor
        self.thresholds = thresholds or Thresholds()
        self.idle_sleep = idle_sleep

        self.tick_count = 0
        self.last_sample: DetectionSample | None = None
        self._last_frame_id = None
        self._stop = threading.Event()
        self._thread = None

    # ═════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ═════════════════════════════════════════════════════════

    def start(self):
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, daemon=True, name="Detection")
        self._thread.start()
        print("[DETECT] Loop started ✓")
        return self

    def stop(self) -> None:
        """Stop rescheduling and wait for the in-flight tick to finish."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=3)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()

    def _run(self) -> None:
        while not self._stop.is_set():
            if self.party.triggered:
                print("[DETECT] Party triggered — loop finished.")
                break
            if not self._next_frame_ready():
                time.sleep(self.idle_sleep)
                continue
            self.tick()

    def _next_frame_ready(self) -> bool:
        frame_id = getattr(self.camera, "frame_id", None)
        if frame_id is None:
            return True
        if frame_id == self._last_frame_id:
            return False
        self._last_frame_id = frame_id
        return True

    # ═════════════════════════════════════════════════════════
    #  ONE TICK
    # ═════════════════════════════════════════════════════════

    def tick(self) -> DetectionSample | None:
        """Run one detection pass. Returns the sample, or None if skipped."""
        if self._stop.is_set() or not self.party.is_scanning:
            return None

        self.tick_count = (self.tick_count + 1) % TICK_MODULO
        sound = self._read_sound_level()

        if sound > self.thresholds.sound:
            sample = DetectionSample(None, sound, self.tick_count)
            self.last_sample = sample
            self.party.update_debug(sound=f"{sound:.1f}", heartbeat=self.tick_count)
            self.party.trigger("sound")
            return sample

        ok, frame = self.camera.read()
        if not ok or frame is None:
            return None

        try:
            ratio = self.extractor.ratio(frame)
        except Exception as e:
            print(f"[DETECT] Detection loop error: {e}")
            return None

        # Late result: teardown or trigger happened while inference ran.
        if self._stop.is_set() or not self.party.is_scanning:
            return None

        sample = DetectionSample(ratio, sound, self.tick_count)
        self.last_sample = sample
        verdict = evaluate(sample, self.thresholds)

        self.party.update_debug(
            ratio=f"{ratio:.3f}" if ratio is not None else config.RATIO_SEARCHING,
            sound=f"{sound:.1f}",
            heartbeat=self.tick_count,
        )
        if verdict.triggered:
            self.party.trigger(verdict.source)
        else:
            self.party.set_almost(verdict.almost)
        return sample

    def _read_sound_level(self) -> float:
        if self.microphone is None:
            return 0.0
        try:
            return float(self.microphone.level())
        except Exception as e:
            print(f"[DETECT] Microphone read failed: {e}")
            return 0.0
