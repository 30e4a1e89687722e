"""
============================================================
 Blowout — Scene Compositor
 Draws the party over each video frame, in layers:

   0  Party filter tint (scanning, candles still lit)
   1  Title banner (fades out once blown)
   2  Cake: plate, three layers, icing drips, candles,
      flames or smoke
   3  Confetti
   4  Chrome: status banner + sparkles (never captured)
============================================================
"""

import math
import time

import cv2
import numpy as np

import config
from blowout.party import PartyState

_AA = cv2.LINE_AA
_FONT = cv2.FONT_HERSHEY_DUPLEX

# ═════════════════════════════════════════════════════════════
#  COLOR PALETTE — all BGR
# ═════════════════════════════════════════════════════════════
C_WHITE = (255, 255, 255)
C_PINK = (180, 105, 255)
C_HOT_PINK = (147, 20, 255)
C_CREAM = (215, 240, 255)
C_CHOCOLATE = (45, 70, 120)
C_ICING = (230, 225, 255)
C_PLATE = (235, 235, 240)
C_CANDLE = (250, 220, 160)
C_STRIPE = (180, 105, 255)
C_FLAME_OUT = (0, 140, 255)
C_FLAME_IN = (120, 240, 255)
C_SMOKE = (190, 190, 190)
C_GOLD = (0, 215, 255)
C_PURPLE = (255, 100, 163)
C_BG = (40, 10, 50)

_SPARKLE_COLORS = [C_GOLD, C_PINK, C_WHITE, C_PURPLE, (255, 191, 0)]


# ═════════════════════════════════════════════════════════════
#  ALPHA HELPERS
# ═════════════════════════════════════════════════════════════

def _alpha_rect(f: np.ndarray, x1: int, y1: int, x2: int, y2: int,
                color: tuple, alpha: float = 0.3) -> None:
    """Draw a semi-transparent filled rectangle (ROI-based)."""
    fh, fw = f.shape[:2]
    x1c = max(0, min(x1, fw))
    y1c = max(0, min(y1, fh))
    x2c = max(0, min(x2, fw))
    y2c = max(0, min(y2, fh))
    if x2c <= x1c or y2c <= y1c:
        return
    roi = f[y1c:y2c, x1c:x2c]
    overlay = np.full_like(roi, color, dtype=np.uint8)
    cv2.addWeighted(overlay, alpha, roi, 1.0 - alpha, 0, roi)


def _centered_text(f: np.ndarray, text: str, cy: int, scale: float,
                   color: tuple, thickness: int = 2, shadow: bool = True) -> None:
    w = f.shape[1]
    (tw, th), _ = cv2.getTextSize(text, _FONT, scale, thickness)
    x = (w - tw) // 2
    if shadow:
        cv2.putText(f, text, (x + 2, cy + 2), _FONT, scale, (0, 0, 0), thickness + 1, _AA)
    cv2.putText(f, text, (x, cy), _FONT, scale, color, thickness, _AA)


# ═════════════════════════════════════════════════════════════
#  CAKE
# ═════════════════════════════════════════════════════════════

def draw_cake(f: np.ndarray, candles_lit, t: float = 0.0, blown: bool = False) -> None:
    """Paint the three-layer cake anchored at the bottom centre of ``f``."""
    h, w = f.shape[:2]
    s = w / float(config.CAMERA_WIDTH)
    cx = w // 2
    base_y = h - int(18 * s)

    def r(v):
        return int(round(v * s))

    # Plate
    cv2.ellipse(f, (cx, base_y), (r(150), r(16)), 0, 0, 360, C_PLATE, -1, _AA)

    # Layers, bottom to top: (half width, height, color)
    layers = [(125, 50, C_CHOCOLATE), (105, 42, C_PINK), (85, 36, C_CREAM)]
    y = base_y - r(6)
    tops = []
    for half, height, color in layers:
        x1, x2 = cx - r(half), cx + r(half)
        y1 = y - r(height)
        cv2.rectangle(f, (x1, y1), (x2, y), color, -1, _AA)
        cv2.ellipse(f, (cx, y1), (r(half), r(9)), 0, 0, 360, color, -1, _AA)
        tops.append((x1, x2, y1))
        y = y1

    # Icing drips over the middle layer
    mx1, mx2, my = tops[1]
    for i in range(5):
        dx = mx1 + int((i + 0.5) * (mx2 - mx1) / 5)
        depth = r(10 + (i % 2) * 8)
        cv2.ellipse(f, (dx, my + depth // 2), (r(9), depth), 0, 0, 360, C_ICING, -1, _AA)
    cv2.ellipse(f, (cx, my), (r(105), r(9)), 0, 0, 360, C_ICING, -1, _AA)

    # Candles
    tx1, tx2, ty = tops[2]
    n = len(candles_lit)
    for i, lit in enumerate(candles_lit):
        x = tx1 + int((i + 1) * (tx2 - tx1) / (n + 1))
        top = ty - r(34)
        cv2.rectangle(f, (x - r(4), top), (x + r(4), ty), C_CANDLE, -1, _AA)
        for k in range(3):
            sy = top + r(6 + k * 10)
            cv2.line(f, (x - r(4), sy), (x + r(4), sy + r(4)), C_STRIPE, max(1, r(2)), _AA)
        cv2.line(f, (x, top), (x, top - r(5)), (40, 40, 40), 1, _AA)
        if lit:
            flick = 1.0 + 0.15 * math.sin(t * 12.0 + i * 0.1 * 2 * math.pi)
            fh_out, fh_in = int(r(11) * flick), int(r(6) * flick)
            cv2.ellipse(f, (x, top - r(12)), (r(5), fh_out), 0, 0, 360, C_FLAME_OUT, -1, _AA)
            cv2.ellipse(f, (x, top - r(10)), (r(3), fh_in), 0, 0, 360, C_FLAME_IN, -1, _AA)
        elif blown:
            for k in range(3):
                drift = int(r(4) * math.sin(t * 3.0 + i + k))
                cy = top - r(10 + k * 10)
                cv2.circle(f, (x + drift, cy), r(3 + k), C_SMOKE, -1, _AA)


# ═════════════════════════════════════════════════════════════
#  SCENE
# ═════════════════════════════════════════════════════════════

class Scene:
    """Composites one display frame from the raw video and the party state."""

    def __init__(self, confetti=None, seed: int | None = None, clock=time.monotonic):
        self.confetti = confetti
        self.clock = clock
        self._t0 = clock()
        rng = np.random.default_rng(seed)
        # (x, y, size, phase) — normalised positions
        self._sparkles = [
            (rng.random(), rng.random(), 4 + rng.random() * 8, rng.random() * 5)
            for _ in range(6)
        ]

    def compose(self, frame: np.ndarray, party, include_chrome: bool = True) -> np.ndarray:
        """Return a new frame; ``frame`` itself is not modified."""
        out = frame.copy()
        t = self.clock() - self._t0
        started = party is not None and party.state is not PartyState.NOT_STARTED
        blown = party is not None and party.is_blown
        candles = party.candles_lit if party is not None else [True] * config.CANDLE_COUNT

        if started and not blown:
            self._draw_party_filter(out)
        if not blown:
            _centered_text(out, "Happy Birthday!", int(out.shape[0] * 0.12), 1.3 * out.shape[1] / 640.0, C_WHITE)
        draw_cake(out, candles, t, blown)
        if self.confetti is not None:
            self.confetti.draw(out)
        if include_chrome:
            self._draw_sparkles(out, t)
            if started:
                self._draw_status(out, party)
        return out

    # ─── Layer 0: Party filter ───────────────────────────────

    @staticmethod
    def _draw_party_filter(f: np.ndarray) -> None:
        h, w = f.shape[:2]
        _alpha_rect(f, 0, 0, w, h, C_PURPLE, 0.12)

    # ─── Layer 4: Chrome ─────────────────────────────────────

    def _draw_sparkles(self, f: np.ndarray, t: float) -> None:
        h, w = f.shape[:2]
        for i, (nx, ny, size, phase) in enumerate(self._sparkles):
            pulse = 0.5 + 0.5 * math.sin(t * 1.2 + phase)
            rad = max(2, int(size * (0.6 + 0.4 * pulse)))
            x, y = int(nx * w), int(((ny - t * 0.02) % 1.0) * h)
            color = _SPARKLE_COLORS[i % len(_SPARKLE_COLORS)]
            cv2.line(f, (x - rad, y), (x + rad, y), color, 2, _AA)
            cv2.line(f, (x, y - rad), (x, y + rad), color, 2, _AA)

    @staticmethod
    def _draw_status(f: np.ndarray, party) -> None:
        h, w = f.shape[:2]
        text = party.status_text
        if party.triggered:
            color = C_GOLD
        elif party.almost:
            color = C_HOT_PINK
        else:
            color = C_WHITE
        scale = 0.55 if len(text) > 20 else 0.9
        _alpha_rect(f, 0, int(h * 0.17), w, int(h * 0.17) + 34, C_BG, 0.55)
        _centered_text(f, text, int(h * 0.17) + 24, scale * w / 640.0, color, 1 if scale < 0.6 else 2)
