"""
============================================================
 Blowout — Confetti Particle Renderer
 Fire-and-forget bursts drawn onto video frames.
 Physics mirror the classic canvas confetti: every particle
 launches at angle ± spread/2, decays, falls, wobbles, fades.
============================================================
"""

import math
import threading
import time

import cv2
import numpy as np

_AA = cv2.LINE_AA

START_VELOCITY = 45.0
DECAY = 0.9
GRAVITY = 1.0
TICKS = 200  # Lifetime in 60 Hz ticks
TICK_RATE = 60.0
PARTICLE_SIZE = 6.0


def hex_to_bgr(color: str) -> tuple:
    """'#FF69B4' → (180, 105, 255)."""
    c = color.lstrip("#")
    if len(c) == 3:
        c = "".join(ch * 2 for ch in c)
    r, g, b = int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)
    return (b, g, r)


class Confetti:
    """Thread-safe particle system; burst() from any thread, draw() per frame."""

    def __init__(self, rng: np.random.Generator | None = None, clock=time.monotonic):
        self._rng = rng or np.random.default_rng()
        self._clock = clock
        self._lock = threading.Lock()
        self._last = None
        # Columns: x, y, angle, velocity, tick, wobble, wobble_speed, tilt
        self._p = np.zeros((0, 8), dtype=np.float64)
        self._colors = np.zeros((0, 3), dtype=np.int32)
        self._origins = np.zeros((0, 2), dtype=np.float64)  # normalised launch point

    @property
    def active(self) -> int:
        with self._lock:
            return len(self._p)

    def burst(self, count: int = 50, spread: float = 45.0, angle: float = 90.0,
              origin=(0.5, 0.5), colors=("#FFFFFF",)) -> None:
        """Queue ``count`` particles. ``origin`` is (x, y) in 0..1 of the frame."""
        if count <= 0:
            return
        rng = self._rng
        rad_angle = math.radians(angle)
        rad_spread = math.radians(spread)

        p = np.zeros((count, 8), dtype=np.float64)
        p[:, 2] = -rad_angle + (0.5 * rad_spread - rng.random(count) * rad_spread)
        p[:, 3] = START_VELOCITY * 0.5 + rng.random(count) * START_VELOCITY
        p[:, 5] = rng.random(count) * 10.0
        p[:, 6] = 0.05 + rng.random(count) * 0.06
        p[:, 7] = rng.random(count) * math.pi

        palette = np.array([hex_to_bgr(c) for c in colors], dtype=np.int32)
        picked = palette[rng.integers(0, len(palette), count)]
        org = np.tile(np.asarray(origin, dtype=np.float64), (count, 1))

        with self._lock:
            self._p = np.vstack([self._p, p])
            self._colors = np.vstack([self._colors, picked])
            self._origins = np.vstack([self._origins, org])

    def step(self, ticks: float = 1.0) -> None:
        """Advance physics by ``ticks`` 60 Hz steps and drop dead particles."""
        with self._lock:
            if len(self._p) == 0:
                return
            for _ in range(max(1, int(round(ticks)))):
                p = self._p
                p[:, 0] += np.cos(p[:, 2]) * p[:, 3]
                p[:, 1] += np.sin(p[:, 2]) * p[:, 3] + GRAVITY * 3.0
                p[:, 3] *= DECAY
                p[:, 5] += p[:, 6]
                p[:, 4] += 1
            alive = self._p[:, 4] < TICKS
            self._p = self._p[alive]
            self._colors = self._colors[alive]
            self._origins = self._origins[alive]

    def advance(self) -> None:
        """Step by wall-clock time since the previous call."""
        now = self._clock()
        if self._last is None:
            self._last = now
            return
        elapsed = now - self._last
        self._last = now
        ticks = elapsed * TICK_RATE
        if ticks >= 0.5:
            self.step(min(ticks, 10.0))

    def draw(self, frame: np.ndarray) -> None:
        """Paint every live particle onto ``frame`` in place."""
        with self._lock:
            if len(self._p) == 0:
                return
            p = self._p.copy()
            colors = self._colors.copy()
            origins = self._origins.copy()

        h, w = frame.shape[:2]
        xs = origins[:, 0] * w + p[:, 0]
        ys = origins[:, 1] * h + p[:, 1]
        for i in range(len(p)):
            x, y = xs[i], ys[i]
            if x < -10 or x > w + 10 or y < -10 or y > h + 10:
                continue
            fade = 1.0 - p[i, 4] / TICKS
            wob = PARTICLE_SIZE * math.cos(p[i, 5])
            tilt = p[i, 7] + p[i, 5]
            dx, dy = math.cos(tilt) * PARTICLE_SIZE, math.sin(tilt) * PARTICLE_SIZE
            quad = np.array([
                (x, y),
                (x + dx, y + dy * 0.5),
                (x + dx + wob * 0.3, y + dy + abs(wob)),
                (x + wob * 0.3, y + abs(wob)),
            ], dtype=np.int32)
            color = tuple(int(c * fade + 20 * (1 - fade)) for c in colors[i])
            cv2.fillConvexPoly(frame, quad, color, _AA)

    def clear(self) -> None:
        with self._lock:
            self._p = self._p[:0]
            self._colors = self._colors[:0]
            self._origins = self._origins[:0]
