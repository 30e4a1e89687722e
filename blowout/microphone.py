"""
============================================================
 Blowout — Microphone Analyser
 sounddevice input stream → rolling sample buffer →
 byte-scaled frequency bins on demand.
============================================================
"""

import threading

import numpy as np

import config
from blowout.errors import MediaAcquisitionError
from blowout.signals import audio_level, byte_frequency_data


class Microphone:
    """Keeps the newest FFT-sized window of mono samples."""

    def __init__(self, samplerate: int = config.MIC_SAMPLE_RATE,
                 fft_size: int = config.MIC_FFT_SIZE, device=None):
        self.samplerate = samplerate
        self.fft_size = fft_size
        self.device = device
        self.stream = None
        self._lock = threading.Lock()
        self._buffer = np.zeros(fft_size, dtype=np.float32)

    def start(self):
        """Open the default input device. Raises MediaAcquisitionError."""
        # PortAudio is loaded on import; keep it out of module import time.
        import sounddevice as sd

        try:
            self.stream = sd.InputStream(
                samplerate=self.samplerate,
                channels=1,
                blocksize=self.fft_size,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            self.stream.start()
        except Exception as e:
            self.stream = None
            raise MediaAcquisitionError(f"microphone unavailable: {e}") from e
        print(f"[MIC] ✓ Input stream started ({self.samplerate}Hz, fft={self.fft_size})")
        return self

    def _callback(self, indata, frames, time_info, status):
        if status:
            print(f"[MIC] Stream status: {status}")
        self.feed(indata[:, 0] if indata.ndim > 1 else indata)

    def feed(self, samples) -> None:
        """Append samples, keeping only the newest fft_size of them."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        n = self.fft_size
        with self._lock:
            if samples.size >= n:
                self._buffer = samples[-n:].copy()
            else:
                self._buffer = np.concatenate([self._buffer[samples.size:], samples])

    def frequency_data(self) -> np.ndarray:
        with self._lock:
            window = self._buffer.copy()
        return byte_frequency_data(window, self.fft_size)

    def level(self) -> float:
        return audio_level(self.frequency_data())

    def stop(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop()
                self.stream.close()
            finally:
                self.stream = None
            print("[MIC] Stopped and released.")
