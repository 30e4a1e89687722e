"""
============================================================
 Blowout — Party Engine
 Wires model, media, detection loop, state machine, scene
 and capture together for one browser session at a time.
 "Try Again" tears the whole session down and builds a new
 one, the same as reloading the page.
============================================================
"""

import threading

import numpy as np

import config
from blowout.capture import Capturer
from blowout.confetti import Confetti
from blowout.detection import DetectionLoop
from blowout.errors import MediaAcquisitionError, ModelLoadError
from blowout.media import MediaSession
from blowout.party import Party
from blowout.scene import C_BG, Scene
from blowout.signals import FacialRatioExtractor
from blowout.timers import TimerScheduler


def _load_face_detector():
    from blowout.landmarks import FaceDetector
    return FaceDetector()


class PartySession:
    """Everything that lives and dies with one party."""

    def __init__(self, engine):
        self.scheduler = engine.scheduler_factory()
        self.confetti = Confetti()
        self.scene = Scene(confetti=self.confetti)
        self.media = engine.media_factory()
        self.capturer = Capturer(self.media.camera, self.scene, mode=engine.capture_mode)
        self.party = Party(
            self.scheduler,
            capturer=self.capturer,
            confetti=self.confetti,
            manual_override_delay_ms=engine.manual_override_delay_ms,
        )
        self.loop = None
        self.starting = False
        self.closed = False
        self._unsubscribe = self.party.subscribe(engine._on_party_change)

    def close(self) -> None:
        self.closed = True
        self._unsubscribe()
        self.scheduler.cancel_all()
        if self.loop is not None:
            self.loop.stop()
        self.media.close()
        self.confetti.clear()


class Engine:
    """Owns the model and the current PartySession."""

    def __init__(self, socketio=None,
                 detector_factory=_load_face_detector,
                 media_factory=MediaSession,
                 scheduler_factory=TimerScheduler,
                 capture_mode: str = config.CAPTURE_MODE,
                 manual_override_delay_ms: int = config.MANUAL_OVERRIDE_DELAY_MS):
        if capture_mode not in config.CAPTURE_MODES:
            raise ValueError(f"Unknown capture mode {capture_mode!r}")
        self.socketio = socketio
        self.detector_factory = detector_factory
        self.media_factory = media_factory
        self.scheduler_factory = scheduler_factory
        self.capture_mode = capture_mode
        self.manual_override_delay_ms = manual_override_delay_ms

        self.detector = None
        self.model_ready = False
        self.loading_message = config.LOADING_MODEL
        self._lock = threading.Lock()
        self.session = PartySession(self)
        self._blank = np.full((config.CAMERA_HEIGHT, config.CAMERA_WIDTH, 3), C_BG, dtype=np.uint8)

    @property
    def party(self) -> Party:
        return self.session.party

    # ═════════════════════════════════════════════════════════
    #  MODEL
    # ═════════════════════════════════════════════════════════

    def load_model(self) -> bool:
        self._set_loading(config.LOADING_MODEL)
        try:
            self.detector = self.detector_factory()
        except ModelLoadError as e:
            print(f"[ENGINE] Model err: {e}")
            self.model_ready = False
            self._set_loading(config.LOADING_FAILED)
            return False
        self.model_ready = True
        self._set_loading(config.LOADING_READY)
        return True

    def _set_loading(self, message: str) -> None:
        self.loading_message = message
        self._emit("loading_status", {"message": message, "model_ready": self.model_ready})

    # ═════════════════════════════════════════════════════════
    #  ACTIONS
    # ═════════════════════════════════════════════════════════

    def start_party(self) -> tuple:
        """Acquire devices and start scanning. Returns (ok, message).

        Devices are opened outside the engine lock (the camera may take
        seconds to produce a frame), so restart and shutdown stay responsive.
        """
        with self._lock:
            if not self.model_ready:
                return False, self.loading_message
            session = self.session
            if session.starting:
                return True, "starting"
            if session.party.triggered or session.media.is_open:
                return True, "already started"
            session.starting = True
            self._set_loading(config.LOADING_SENSORS)

        try:
            session.media.open()
        except MediaAcquisitionError as e:
            print(f"[ENGINE] ✗ Media acquisition failed: {e}")
            with self._lock:
                session.starting = False
            self._set_loading(config.LOADING_READY)
            return False, config.ACQUISITION_FAILED

        with self._lock:
            session.starting = False
            if session.closed or self.session is not session:
                print("[ENGINE] Session ended while devices were opening — releasing them.")
                session.media.close()
                return False, "session ended"

            session.loop = DetectionLoop(
                session.party,
                session.media.camera,
                session.media.microphone,
                FacialRatioExtractor(self.detector),
            )
            session.party.start_scanning()
            session.loop.start()
            return True, "started"

    def manual_blow(self) -> bool:
        return self.party.manual_trigger()

    def restart(self) -> None:
        """Tear the session down and start a fresh one."""
        with self._lock:
            old = self.session
            self.session = PartySession(self)
        old.close()
        print("[ENGINE] Session restarted.")
        self._on_party_change(self.party.snapshot())

    def shutdown(self) -> None:
        with self._lock:
            self.session.close()
            if self.detector is not None and hasattr(self.detector, "release"):
                self.detector.release()
                self.detector = None
        print("[ENGINE] All resources released.")

    # ═════════════════════════════════════════════════════════
    #  OUTPUT
    # ═════════════════════════════════════════════════════════

    def render_frame(self) -> np.ndarray:
        """The current display frame: video (or backdrop) + party layers."""
        session = self.session
        frame = None
        if session.media.is_open:
            ok, frame = session.media.camera.read()
            if not ok:
                frame = None
        if frame is None:
            frame = self._blank
        session.confetti.advance()
        return session.scene.compose(frame, session.party)

    def screenshot(self):
        return self.party.artifact

    def state(self) -> dict:
        snap = self.party.snapshot()
        snap["model_ready"] = self.model_ready
        snap["loading_message"] = self.loading_message
        snap["capture_mode"] = self.capture_mode
        return snap

    def _on_party_change(self, snapshot: dict) -> None:
        self._emit("party_state", snapshot)

    def _emit(self, event: str, payload: dict) -> None:
        if self.socketio is None:
            return
        try:
            self.socketio.emit(event, payload)
        except Exception as e:
            print(f"[ENGINE] SocketIO emit failed: {e}")
