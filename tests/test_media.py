"""Scoped device ownership, soundtrack fallbacks and the timer scheduler."""

import threading

import pytest

from blowout.errors import MediaAcquisitionError
from blowout.media import MediaSession
from blowout.soundtrack import Soundtrack
from blowout.timers import TimerScheduler

from conftest import FakeCamera, FakeMicrophone, FakeSoundtrack


def test_open_acquires_devices_and_starts_song():
    session = MediaSession(FakeCamera(), FakeMicrophone(), FakeSoundtrack())
    session.open()
    assert session.is_open
    assert session.camera.started and session.microphone.started
    assert session.soundtrack.playing


def test_denied_microphone_releases_camera():
    camera = FakeCamera()
    session = MediaSession(camera, FakeMicrophone(fail=True), FakeSoundtrack())
    with pytest.raises(MediaAcquisitionError):
        session.open()
    assert not session.is_open
    assert camera.stopped >= 1 and not camera.started
    assert not session.soundtrack.playing


def test_denied_camera_never_plays_song():
    session = MediaSession(FakeCamera(fail=True), FakeMicrophone(), FakeSoundtrack())
    with pytest.raises(MediaAcquisitionError):
        session.open()
    assert not session.soundtrack.playing


def test_unexpected_errors_become_acquisition_errors():
    class BrokenCamera(FakeCamera):
        def start(self):
            raise OSError("device busy")

    with pytest.raises(MediaAcquisitionError, match="device busy"):
        MediaSession(BrokenCamera(), FakeMicrophone(), FakeSoundtrack()).open()


def test_context_manager_always_releases():
    camera, mic, song = FakeCamera(), FakeMicrophone(), FakeSoundtrack()
    with pytest.raises(KeyError):
        with MediaSession(camera, mic, song):
            raise KeyError("boom")
    assert camera.stopped == 1 and mic.stopped == 1 and song.stopped == 1


def test_close_is_idempotent():
    session = MediaSession(FakeCamera(), FakeMicrophone(), FakeSoundtrack())
    session.open()
    session.close()
    session.close()
    assert not session.is_open


def test_missing_song_is_logged_not_raised(tmp_path, capsys):
    track = Soundtrack(path=str(tmp_path / "nope.mp3"))
    assert track.play() is False
    assert not track.playing
    assert "playback blocked or failed" in capsys.readouterr().out


def test_timer_fires_once():
    fired = threading.Event()
    scheduler = TimerScheduler()
    scheduler.call_later(10, fired.set)
    assert fired.wait(2)


def test_cancel_all_stops_pending_timers():
    fired = threading.Event()
    scheduler = TimerScheduler()
    scheduler.call_later(300, fired.set)
    scheduler.cancel_all()
    scheduler.call_later(0, fired.set)
    assert not fired.wait(0.5)
    assert scheduler.pending == 0


def test_timer_that_fires_after_cancel_all_does_nothing():
    ran = []
    scheduler = TimerScheduler()
    scheduler.cancel_all()
    scheduler._fire(lambda: ran.append(1))
    assert ran == []


def test_cancel_all_waits_for_running_callback():
    started = threading.Event()
    release = threading.Event()
    finished = []
    scheduler = TimerScheduler()

    def slow():
        started.set()
        release.wait(2)
        finished.append(1)

    scheduler.call_later(0, slow)
    assert started.wait(2)
    canceller = threading.Thread(target=scheduler.cancel_all)
    canceller.start()
    canceller.join(0.2)
    assert canceller.is_alive()
    release.set()
    canceller.join(2)
    assert not canceller.is_alive()
    assert finished == [1]


def test_failing_callback_is_logged(capsys):
    done = threading.Event()
    scheduler = TimerScheduler()

    def boom():
        done.set()
        raise RuntimeError("late render")

    scheduler.call_later(0, boom)
    assert done.wait(2)
    for t in list(threading.enumerate()):
        if isinstance(t, threading.Timer):
            t.join(1)
    assert "Scheduled callback failed" in capsys.readouterr().out
