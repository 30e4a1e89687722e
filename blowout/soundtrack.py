"""
============================================================
 Blowout — Birthday Soundtrack
 Loops the birthday song through the pygame mixer for the
 whole session. Playback problems never stop the party.
============================================================
"""

import os

import pygame

import config


class Soundtrack:
    """Looping background music."""

    def __init__(self, path: str = config.SOUNDTRACK_PATH, volume: float = config.SOUNDTRACK_VOLUME):
        self.path = path
        self.volume = volume
        self.playing = False
        self._mixer_ready = False

    def play(self) -> bool:
        """Start looping playback. Returns False (and logs) if it cannot."""
        try:
            if not os.path.exists(self.path):
                raise FileNotFoundError(self.path)
            pygame.mixer.init()
            self._mixer_ready = True
            pygame.mixer.music.load(self.path)
            pygame.mixer.music.set_volume(self.volume)
            pygame.mixer.music.play(loops=-1)
        except Exception as e:
            print(f"[SOUNDTRACK] Audio playback blocked or failed: {e}")
            self.stop()
            return False
        self.playing = True
        print(f"[SOUNDTRACK] 🔊 Looping {self.path}")
        return True

    def stop(self) -> None:
        if self._mixer_ready:
            try:
                pygame.mixer.music.stop()
                pygame.mixer.music.unload()
            except pygame.error:
                pass
            pygame.mixer.quit()
            self._mixer_ready = False
        self.playing = False
