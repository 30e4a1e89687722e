"""Shared fakes: no camera, microphone, speakers or model needed."""

import numpy as np
import pytest

from blowout.capture import CaptureArtifact
from blowout.errors import MediaAcquisitionError
from blowout.signals import Face


class FakeScheduler:
    """Deterministic call_later(): callbacks run when advance() passes them."""

    def __init__(self):
        self.now_ms = 0.0
        self._queue = []  # (due_ms, seq, callback)
        self._seq = 0
        self.cancelled = False

    def call_later(self, delay_ms, callback):
        if self.cancelled:
            return
        self._seq += 1
        self._queue.append((self.now_ms + delay_ms, self._seq, callback))

    def advance(self, ms):
        target = self.now_ms + ms
        while True:
            due = sorted(e for e in self._queue if e[0] <= target)
            if not due or self.cancelled:
                break
            entry = due[0]
            self._queue.remove(entry)
            self.now_ms = entry[0]
            entry[2]()
        self.now_ms = target

    def cancel_all(self):
        self.cancelled = True
        self._queue.clear()

    @property
    def pending(self):
        return len(self._queue)

    def delays(self):
        return sorted(e[0] - self.now_ms for e in self._queue)


class FakeClock:
    def __init__(self, scheduler=None):
        self.t = 0.0
        self.scheduler = scheduler

    def __call__(self):
        if self.scheduler is not None:
            return self.scheduler.now_ms / 1000.0
        return self.t


class FakeConfetti:
    def __init__(self):
        self.bursts = []

    def burst(self, **kwargs):
        self.bursts.append(kwargs)

    def draw(self, frame):
        pass

    def advance(self):
        pass

    def clear(self):
        pass


class FakeCapturer:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def capture(self, party):
        self.calls += 1
        if self.fail:
            raise RuntimeError("canvas exploded")
        return CaptureArtifact(png=b"\x89PNG fake", created_ms=1700000000000)


class FakeCamera:
    def __init__(self, fail=False):
        self.fail = fail
        self.frame = np.zeros((480, 640, 3), dtype=np.uint8)
        self.started = False
        self.stopped = 0

    def start(self):
        if self.fail:
            raise MediaAcquisitionError("camera denied")
        self.started = True
        return self

    def read(self):
        if not self.started:
            return False, None
        return True, self.frame

    def stop(self):
        self.started = False
        self.stopped += 1


class FakeMicrophone:
    def __init__(self, level=0.0, fail=False):
        self._level = level
        self.fail = fail
        self.started = False
        self.stopped = 0

    def start(self):
        if self.fail:
            raise MediaAcquisitionError("mic denied")
        self.started = True
        return self

    def level(self):
        return self._level

    def stop(self):
        self.started = False
        self.stopped += 1


class FakeSoundtrack:
    def __init__(self):
        self.playing = False
        self.stopped = 0

    def play(self):
        self.playing = True
        return True

    def stop(self):
        self.playing = False
        self.stopped += 1


def make_face(ratio, width=200.0):
    """A Face whose mouth corners sit ``ratio * width`` apart."""
    kps = np.zeros((478, 2), dtype=np.float64)
    kps[61] = (100.0, 300.0)
    kps[291] = (100.0 + ratio * width, 300.0)
    return Face(box=(50.0, 100.0, width, 260.0), keypoints=kps)


class FakeDetector:
    """estimate_faces() returns faces built from a ratio (None → no face)."""

    def __init__(self, ratio=None, error=None):
        self.ratio = ratio
        self.error = error
        self.calls = 0

    def estimate_faces(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.ratio is None:
            return []
        return [make_face(self.ratio)]

    def release(self):
        pass


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock(scheduler):
    return FakeClock(scheduler)


@pytest.fixture
def confetti():
    return FakeConfetti()


@pytest.fixture
def capturer():
    return FakeCapturer()


@pytest.fixture
def party(scheduler, clock, confetti, capturer):
    from blowout.party import Party
    return Party(scheduler, capturer=capturer, confetti=confetti, clock=clock,
                 manual_override_delay_ms=15000)
