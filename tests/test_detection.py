"""Trigger rules and the per-frame detection loop."""

import itertools
import threading

import pytest

import config
from blowout.detection import DetectionLoop, DetectionSample, Thresholds, evaluate
from blowout.party import PartyState
from blowout.signals import FacialRatioExtractor

from conftest import FakeCamera, FakeDetector, FakeMicrophone


# ═════════════════════════════════════════════════════════════
#  evaluate()
# ═════════════════════════════════════════════════════════════

@pytest.mark.parametrize("ratio", [None, 0.10, 0.40, 0.419, 0.42, 0.45, 0.489, 0.49, 0.55, 0.9])
@pytest.mark.parametrize("sound", [0.0, 10.0, 15.0, 15.01, 20.0, 200.0])
def test_trigger_iff_loud_or_puckered(ratio, sound):
    verdict = evaluate(DetectionSample(ratio, sound, 1))
    face = ratio is not None
    assert verdict.triggered == (sound > 15 or (face and ratio < 0.42))
    if sound > 15:
        assert verdict.source == "sound"
        assert verdict.almost is False
    else:
        assert verdict.almost == (face and ratio < 0.49)


def test_boundaries_are_strict():
    assert not evaluate(DetectionSample(0.42, 0.0, 0)).triggered
    assert not evaluate(DetectionSample(None, 15.0, 0)).triggered
    assert not evaluate(DetectionSample(0.49, 0.0, 0)).almost


def test_pucker_source_and_hint():
    verdict = evaluate(DetectionSample(0.40, 3.0, 0))
    assert verdict.triggered and verdict.source == "pucker"
    assert verdict.almost is True


def test_custom_thresholds():
    t = Thresholds(pucker=0.3, almost=0.35, sound=50)
    assert not evaluate(DetectionSample(0.32, 40.0, 0), t).triggered
    assert evaluate(DetectionSample(0.32, 40.0, 0), t).almost


# ═════════════════════════════════════════════════════════════
#  DetectionLoop.tick()
# ═════════════════════════════════════════════════════════════

def _loop(party, ratio=None, sound=0.0, error=None):
    camera = FakeCamera().start()
    detector = FakeDetector(ratio=ratio, error=error)
    loop = DetectionLoop(party, camera, FakeMicrophone(level=sound), FacialRatioExtractor(detector))
    return loop, detector


def test_quiet_room_neutral_mouth(party):
    party.start_scanning()
    loop, _ = _loop(party, ratio=0.55, sound=2.0)
    sample = loop.tick()
    assert sample.ratio == pytest.approx(0.55)
    assert not party.triggered
    assert party.candles_lit == [True] * config.CANDLE_COUNT
    assert party.almost is False
    assert party.debug_info["ratio"] == "0.550"


def test_ratio_drifts_to_almost(party):
    party.start_scanning()
    loop, _ = _loop(party, ratio=0.45)
    loop.tick()
    assert party.almost is True
    assert party.display_state is PartyState.ALMOST_TRIGGERED
    assert not party.triggered


def test_pucker_triggers_once(party, scheduler, capturer):
    party.start_scanning()
    loop, detector = _loop(party, ratio=0.40)
    loop.tick()
    assert party.triggered
    assert party.trigger_source == "pucker"
    assert party.candles_lit == [False] * config.CANDLE_COUNT

    assert loop.tick() is None
    assert detector.calls == 1
    scheduler.advance(2500)
    assert capturer.calls == 1
    assert party.state is PartyState.MODAL_SHOWN


def test_sound_triggers_without_face_and_skips_inference(party):
    party.start_scanning()
    loop, detector = _loop(party, ratio=None, sound=20.0)
    sample = loop.tick()
    assert party.triggered
    assert party.trigger_source == "sound"
    assert sample.ratio is None
    assert detector.calls == 0


def test_sound_trigger_reports_the_level_that_fired(party):
    party.start_scanning()
    loop, _ = _loop(party, ratio=0.6)
    loop.tick()
    assert party.debug_info["sound"] == "0.0"
    loop.microphone._level = 20.0
    loop.tick()
    assert party.triggered
    assert party.debug_info["sound"] == "20.0"
    assert party.debug_info["heartbeat"] == 2
    assert party.debug_info["ratio"] == "0.600"


def test_no_face_reports_searching(party):
    party.start_scanning()
    party.set_almost(True)
    loop, _ = _loop(party, ratio=None, sound=5.0)
    sample = loop.tick()
    assert sample.ratio is None
    assert party.almost is False
    assert party.debug_info["ratio"] == config.RATIO_SEARCHING
    assert not party.triggered


def test_inference_error_is_logged_and_loop_continues(party, capsys):
    party.start_scanning()
    loop, detector = _loop(party, error=RuntimeError("gpu lost"))
    assert loop.tick() is None
    assert "Detection loop error" in capsys.readouterr().out
    detector.error = None
    detector.ratio = 0.41
    loop.tick()
    assert party.triggered


def test_tick_skipped_until_scanning(party):
    loop, detector = _loop(party, ratio=0.30)
    assert loop.tick() is None
    assert detector.calls == 0
    assert not party.triggered


def test_heartbeat_wraps_at_100(party):
    party.start_scanning()
    loop, _ = _loop(party, ratio=0.6)
    for _ in range(100):
        loop.tick()
    assert loop.tick_count == 0
    assert party.debug_info["heartbeat"] == 0
    loop.tick()
    assert loop.tick_count == 1
    assert party.debug_info["heartbeat"] == 1


def test_result_after_trigger_is_discarded(party):
    party.start_scanning()
    loop, detector = _loop(party, ratio=0.45)
    original = detector.estimate_faces

    def slow_inference(frame):
        party.trigger("manual")  # lands while the model is busy
        return original(frame)

    detector.estimate_faces = slow_inference
    assert loop.tick() is None
    assert party.trigger_source == "manual"
    assert party.almost is False


def test_result_after_stop_is_discarded(party):
    party.start_scanning()
    loop, detector = _loop(party, ratio=0.30)
    original = detector.estimate_faces

    def slow_inference(frame):
        loop.stop()
        return original(frame)

    detector.estimate_faces = slow_inference
    assert loop.tick() is None
    assert not party.triggered


class TickingCamera(FakeCamera):
    """Reports a fresh frame id on every poll."""

    def __init__(self):
        super().__init__()
        self._ids = itertools.count(1)

    @property
    def frame_id(self):
        return next(self._ids)


def test_loop_thread_stops_after_trigger(party):
    party.start_scanning()
    camera = TickingCamera().start()
    loop = DetectionLoop(party, camera, FakeMicrophone(0.0),
                         FacialRatioExtractor(FakeDetector(ratio=0.35)))
    loop.start()
    thread = loop._thread
    thread.join(timeout=3)
    assert not thread.is_alive()
    assert party.triggered
    assert party.trigger_source == "pucker"


def test_loop_thread_stop_is_prompt(party):
    party.start_scanning()
    loop = DetectionLoop(party, FakeCamera().start(), FakeMicrophone(0.0),
                         FacialRatioExtractor(FakeDetector(ratio=0.6)))
    loop.start()
    assert loop.running
    loop.stop()
    assert not loop.running
    assert not party.triggered
    assert threading.active_count() >= 1
