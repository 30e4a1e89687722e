"""
============================================================
 Blowout — Signal Extractors
 Face keypoints → pucker ratio, microphone → loudness.
 Pure numpy; no temporal smoothing anywhere.
============================================================
"""

from dataclasses import dataclass

import numpy as np

import config

# ── Landmark indices (468/478-point face mesh topology) ─────
LEFT_MOUTH_CORNER = 61
RIGHT_MOUTH_CORNER = 291


@dataclass(frozen=True)
class Face:
    """One detected face: pixel bounding box and Nx2 pixel keypoints."""
    box: tuple  # (x, y, width, height)
    keypoints: np.ndarray

    @property
    def width(self) -> float:
        return float(self.box[2])


def mouth_ratio(face: Face) -> float | None:
    """Mouth-corner distance divided by face box width.

    A neutral or smiling mouth gives a large ratio, a pucker a small one.
    Returns None when the mouth corners are missing or the box is empty.
    """
    kps = face.keypoints
    if kps is None or len(kps) <= max(LEFT_MOUTH_CORNER, RIGHT_MOUTH_CORNER):
        return None
    if face.width <= 0:
        return None
    left = np.asarray(kps[LEFT_MOUTH_CORNER][:2], dtype=np.float64)
    right = np.asarray(kps[RIGHT_MOUTH_CORNER][:2], dtype=np.float64)
    mouth_width = float(np.linalg.norm(right - left))
    return mouth_width / face.width


class FacialRatioExtractor:
    """Runs the landmark detector on a frame and reduces it to one ratio."""

    def __init__(self, detector):
        self.detector = detector

    def ratio(self, frame: np.ndarray) -> float | None:
        faces = self.detector.estimate_faces(frame)
        if not faces:
            return None
        return mouth_ratio(faces[0])


def audio_level(bins) -> float:
    """Full-spectrum arithmetic mean of byte magnitudes (0-255)."""
    arr = np.asarray(bins, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


_WINDOW_CACHE: dict = {}


def _blackman(n: int) -> np.ndarray:
    window = _WINDOW_CACHE.get(n)
    if window is None:
        window = np.blackman(n)
        _WINDOW_CACHE[n] = window
    return window


def byte_frequency_data(samples,
                        fft_size: int = config.MIC_FFT_SIZE,
                        min_db: float = config.MIC_MIN_DECIBELS,
                        max_db: float = config.MIC_MAX_DECIBELS) -> np.ndarray:
    """Magnitude spectrum of the newest ``fft_size`` samples as uint8 bins.

    Follows the browser analyser convention: Blackman window, magnitude
    normalised by the FFT size, decibels mapped linearly from
    [min_db, max_db] onto 0..255. Returns ``fft_size // 2`` bins.
    """
    n_bins = fft_size // 2
    x = np.asarray(samples, dtype=np.float64).ravel()
    if x.size < fft_size:
        x = np.concatenate([np.zeros(fft_size - x.size), x])
    else:
        x = x[-fft_size:]

    spectrum = np.abs(np.fft.rfft(x * _blackman(fft_size)))[:n_bins] / fft_size
    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(spectrum)
    scaled = (db - min_db) * (255.0 / (max_db - min_db))
    scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)
