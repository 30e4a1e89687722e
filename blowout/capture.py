"""
============================================================
 Blowout — Keepsake Capture
 Turns the celebratory moment into one PNG.

   rasterize   the live scene without chrome (status banner,
               sparkles), upscaled by CAPTURE_SCALE
   procedural  the fixed cake illustration + caption drawn
               straight onto the latest raw camera frame
============================================================
"""

import time
from dataclasses import dataclass

import cv2
import numpy as np

import config
from blowout.scene import _FONT, _AA, C_GOLD, _alpha_rect, draw_cake


@dataclass(frozen=True)
class CaptureArtifact:
    png: bytes
    created_ms: int

    @property
    def filename(self) -> str:
        return f"{config.CAPTURE_FILENAME_PREFIX}{self.created_ms}.png"


def encode_png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


class Capturer:
    """Builds the keepsake image from the camera and scene."""

    def __init__(self, camera, scene, mode: str = config.CAPTURE_MODE,
                 scale: int = config.CAPTURE_SCALE, clock_ms=None):
        if mode not in config.CAPTURE_MODES:
            raise ValueError(f"Unknown capture mode {mode!r} (expected one of {config.CAPTURE_MODES})")
        self.camera = camera
        self.scene = scene
        self.mode = mode
        self.scale = scale
        self.clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    def capture(self, party) -> CaptureArtifact:
        ok, frame = self.camera.read()
        if not ok or frame is None:
            raise RuntimeError("no camera frame available")
        if self.mode == "procedural":
            image = self._procedural(frame, party)
        else:
            image = self._rasterize(frame, party)
        return CaptureArtifact(png=encode_png(image), created_ms=self.clock_ms())

    def _rasterize(self, frame: np.ndarray, party) -> np.ndarray:
        image = self.scene.compose(frame, party, include_chrome=False)
        if self.scale != 1:
            h, w = image.shape[:2]
            image = cv2.resize(image, (w * self.scale, h * self.scale), interpolation=cv2.INTER_CUBIC)
        return image

    @staticmethod
    def _procedural(frame: np.ndarray, party) -> np.ndarray:
        image = frame.copy()
        draw_cake(image, party.candles_lit, 0.0, party.is_blown)
        h, w = image.shape[:2]
        _alpha_rect(image, 0, 0, w, 56, (0, 0, 0), 0.45)
        text = "Happy Birthday!"
        (tw, _), _ = cv2.getTextSize(text, _FONT, 1.2, 2)
        cv2.putText(image, text, ((w - tw) // 2, 40), _FONT, 1.2, C_GOLD, 2, _AA)
        return image
