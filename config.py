"""
============================================================
 Blowout — Central Configuration
 All tunable thresholds and constants live here.
============================================================
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ── Camera ──────────────────────────────────────────────────
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", 0))
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
CAMERA_FPS = 30
CAMERA_OPEN_TIMEOUT = 5.0  # Seconds to wait for the first frame
CAMERA_JPEG_QUALITY = 70
CAMERA_FLIP_HORIZONTAL = True  # Mirror view, like a selfie camera

# ── Microphone ──────────────────────────────────────────────
MIC_SAMPLE_RATE = 44100
MIC_FFT_SIZE = 256  # 128 frequency bins
MIC_MIN_DECIBELS = -100.0
MIC_MAX_DECIBELS = -30.0

# ── Soundtrack ──────────────────────────────────────────────
SOUNDTRACK_PATH = os.getenv("SOUNDTRACK_PATH", "birthday_song.mp3")
SOUNDTRACK_VOLUME = 0.8

# ── Flask ───────────────────────────────────────────────────
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "change-me")
FLASK_HOST = "127.0.0.1"
FLASK_PORT = int(os.getenv("FLASK_PORT", 5000))
FLASK_DEBUG = False
SOCKETIO_EMIT_INTERVAL = 0.08
MJPEG_TARGET_FPS = 30

# ── MediaPipe Face Landmarker ───────────────────────────────
FACE_LANDMARKER_MODEL_PATH = os.getenv("FACE_LANDMARKER_MODEL_PATH", "face_landmarker.task")
FACE_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/latest/face_landmarker.task"
)
FACE_MIN_DETECTION_CONFIDENCE = 0.5
FACE_MIN_TRACKING_CONFIDENCE = 0.5

# ── Detection thresholds ────────────────────────────────────
# Fixed, empirically tuned. No smoothing, no debounce: one frame is enough.
PUCKER_RATIO_THRESHOLD = 0.42  # ratio < this → blown out
ALMOST_RATIO_THRESHOLD = 0.49  # ratio < this → "PUCKER UP!" hint
SOUND_LEVEL_THRESHOLD = 15.0  # mean byte magnitude > this → blown out
LOOP_IDLE_SLEEP = 0.005  # Seconds to wait when no new frame is ready

# ── Celebration timing (milliseconds) ───────────────────────
CAPTURE_DELAY_MS = 150  # Let the extinguished candles render first
SIDE_BURST_DELAY_MS = 400
MODAL_DELAY_MS = 2500
MANUAL_OVERRIDE_DELAY_MS = int(os.getenv("MANUAL_OVERRIDE_DELAY_MS", 15000))  # 0 = from the start

# ── Cake ────────────────────────────────────────────────────
CANDLE_COUNT = 6

# ── Capture ─────────────────────────────────────────────────
CAPTURE_MODE = os.getenv("CAPTURE_MODE", "rasterize")  # "rasterize" | "procedural"
CAPTURE_MODES = ("rasterize", "procedural")
CAPTURE_SCALE = 2
CAPTURE_FILENAME_PREFIX = "Birthday_Moment_"

# ── Confetti bursts ─────────────────────────────────────────
CONFETTI_MEGA_BURST = {
    "count": 300, "spread": 100, "origin": (0.5, 0.6),
    "colors": ["#FF69B4", "#00BFFF", "#FFD700", "#A364FF", "#FFFFFF"],
}
CONFETTI_WIDE_BURST = {
    "count": 150, "spread": 150, "origin": (0.5, 0.2),
    "colors": ["#FF1493", "#FFD700"],
}
CONFETTI_LEFT_BURST = {
    "count": 50, "angle": 60, "spread": 55, "origin": (0.0, 0.5),
    "colors": ["#FF1493", "#FFD700"],
}
CONFETTI_RIGHT_BURST = {
    "count": 50, "angle": 120, "spread": 55, "origin": (1.0, 0.5),
    "colors": ["#00BFFF", "#FFD700"],
}

# ── UI copy ─────────────────────────────────────────────────
STATUS_IDLE = "Make a wish, then blow until all the candles are out!"
STATUS_ALMOST = "PUCKER UP!"
STATUS_POOF = "POOF!"
RATIO_SEARCHING = "Seeking Face..."
LOADING_MODEL = "Lighting the candles for the birthday star! ✨"
LOADING_READY = "Magic Ready! Click Start."
LOADING_FAILED = "AI Error. Please Refresh."
LOADING_SENSORS = "Waking up sensors..."
ACQUISITION_FAILED = "Camera and Mic access required!"

# ── Version ─────────────────────────────────────────────────
VERSION = "1.0.0"
