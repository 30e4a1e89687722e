"""
============================================================
 Blowout — Threaded Camera
 Latest-frame capture with atomic reference swaps; the
 detection loop and the MJPEG stream both read from here.
============================================================
"""

import sys
import time
import threading

import cv2

import config
from blowout.errors import MediaAcquisitionError


class Camera:
    """Background capture thread exposing the newest frame."""

    def __init__(self, src=None, width: int = config.CAMERA_WIDTH,
                 height: int = config.CAMERA_HEIGHT, flip: bool = config.CAMERA_FLIP_HORIZONTAL):
        self.src = src if src is not None else config.CAMERA_INDEX
        self.width = width
        self.height = height
        self.flip = flip
        self.cap = None
        self._current_frame = None    # atomic reference
        self.frame_id = 0             # bumps once per new frame
        self.running = False
        self._thread = None
        self.fps = 0.0
        self._frame_count = 0
        self._fps_timer = time.time()

    def start(self, timeout: float = config.CAMERA_OPEN_TIMEOUT):
        """Open the device, start the capture thread, wait for a first frame."""
        self._connect()
        if self.cap is None or not self.cap.isOpened():
            raise MediaAcquisitionError(f"camera source {self.src} could not be opened")

        self.running = True
        self._thread = threading.Thread(target=self._update, daemon=True, name="Camera")
        self._thread.start()

        deadline = time.time() + timeout
        while self._current_frame is None:
            if time.time() > deadline:
                self.stop()
                raise MediaAcquisitionError(f"camera source {self.src} produced no frames")
            time.sleep(0.02)
        print(f"[CAMERA] Capture thread started (source={self.src})")
        return self

    def _connect(self):
        """Open the camera device."""
        if sys.platform == "win32":
            cap = cv2.VideoCapture(self.src, cv2.CAP_DSHOW)  # lowest latency on Windows
        else:
            cap = cv2.VideoCapture(self.src)

        if not cap.isOpened():
            print(f"[CAMERA] ⚠ cv2.VideoCapture failed for source {self.src}")
            cap.release()
            return

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, config.CAMERA_FPS)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        print(f"[CAMERA] Opened source {self.src} ({actual_w}x{actual_h})")
        self.cap = cap

    def _update(self):
        """Continuously read frames in a background thread."""
        while self.running:
            ret, frame = self.cap.read()
            if not ret or frame is None:
                time.sleep(0.01)
                continue

            h, w = frame.shape[:2]
            if w != self.width or h != self.height:
                frame = cv2.resize(frame, (self.width, self.height), interpolation=cv2.INTER_LINEAR)
            if self.flip:
                frame = cv2.flip(frame, 1)

            self._current_frame = frame
            self.frame_id += 1

            self._frame_count += 1
            elapsed = time.time() - self._fps_timer
            if elapsed >= 1.0:
                self.fps = self._frame_count / elapsed
                self._frame_count = 0
                self._fps_timer = time.time()

    def read(self):
        """Return the latest frame (lock-free). Returns (ok, frame)."""
        frame = self._current_frame
        if frame is None:
            return False, None
        return True, frame

    def stop(self):
        """Stop the capture thread and release the camera."""
        self.running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=3)
        self._thread = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        print("[CAMERA] Stopped and released.")

    @property
    def is_opened(self):
        return self.cap is not None and self.cap.isOpened()
