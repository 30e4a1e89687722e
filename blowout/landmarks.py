"""
============================================================
 Blowout — Face Landmark Detector
 MediaPipe FaceLandmarker (478 refined landmarks) wrapped
 as estimate_faces(frame) → [Face].
============================================================
"""

import os
import shutil
import time
import urllib.request

import cv2
import mediapipe as mp
import numpy as np

import config
from blowout.errors import ModelLoadError
from blowout.signals import Face

# ── MediaPipe task API ──────────────────────────────────────
BaseOptions = mp.tasks.BaseOptions
FaceLandmarker = mp.tasks.vision.FaceLandmarker
FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
VisionRunningMode = mp.tasks.vision.RunningMode


def ensure_model(path: str = config.FACE_LANDMARKER_MODEL_PATH,
                 url: str = config.FACE_LANDMARKER_MODEL_URL) -> str:
    """Download the landmarker bundle once if it is not on disk."""
    if os.path.exists(path):
        return path
    print(f"[LANDMARKS] Downloading face landmarker model → {path}")
    # Only a complete download ever appears at ``path``.
    partial = path + ".part"
    try:
        with urllib.request.urlopen(url) as resp, open(partial, "wb") as out:
            shutil.copyfileobj(resp, out)
        os.replace(partial, path)
    except Exception as e:
        if os.path.exists(partial):
            os.remove(partial)
        raise ModelLoadError(f"could not download {url}: {e}") from e
    return path


class FaceDetector:
    """One-face landmark detector in VIDEO mode."""

    def __init__(self, model_path: str = config.FACE_LANDMARKER_MODEL_PATH):
        try:
            options = FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=ensure_model(model_path)),
                running_mode=VisionRunningMode.VIDEO,
                num_faces=1,
                min_face_detection_confidence=config.FACE_MIN_DETECTION_CONFIDENCE,
                min_face_presence_confidence=config.FACE_MIN_DETECTION_CONFIDENCE,
                min_tracking_confidence=config.FACE_MIN_TRACKING_CONFIDENCE,
                output_face_blendshapes=False,
                output_facial_transformation_matrixes=False,
            )
            self._landmarker = FaceLandmarker.create_from_options(options)
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(f"face landmarker failed to load: {e}") from e
        self._last_ts = 0
        print("[LANDMARKS] FaceLandmarker loaded ✓")

    def _timestamp_ms(self) -> int:
        # VIDEO mode needs strictly increasing timestamps
        ts = int(time.monotonic() * 1000)
        if ts <= self._last_ts:
            ts = self._last_ts + 1
        self._last_ts = ts
        return ts

    def estimate_faces(self, frame: np.ndarray) -> list:
        """BGR frame → list of Face with pixel box and keypoints."""
        h, w = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(mp_image, self._timestamp_ms())

        faces = []
        for landmarks in result.face_landmarks or []:
            coords = np.array([(lm.x, lm.y) for lm in landmarks], dtype=np.float64)
            coords *= np.array([w, h], dtype=np.float64)
            x_min, y_min = coords.min(axis=0)
            x_max, y_max = coords.max(axis=0)
            box = (float(x_min), float(y_min), float(x_max - x_min), float(y_max - y_min))
            faces.append(Face(box=box, keypoints=coords))
        return faces

    def release(self) -> None:
        self._landmarker.close()
        print("[LANDMARKS] Released resources.")
