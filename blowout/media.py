"""
============================================================
 Blowout — Media Session
 Scoped ownership of camera, microphone and soundtrack.
 open() either acquires both devices or releases whatever
 it managed to open and raises; close() always releases.
============================================================
"""

from blowout.camera import Camera
from blowout.errors import MediaAcquisitionError
from blowout.microphone import Microphone
from blowout.soundtrack import Soundtrack


class MediaSession:
    """Camera + microphone + soundtrack for one party."""

    def __init__(self, camera=None, microphone=None, soundtrack=None):
        self.camera = camera if camera is not None else Camera()
        self.microphone = microphone if microphone is not None else Microphone()
        self.soundtrack = soundtrack if soundtrack is not None else Soundtrack()
        self.is_open = False

    def open(self):
        """Acquire video then audio, then start the song."""
        try:
            self.camera.start()
            self.microphone.start()
        except MediaAcquisitionError:
            self.close()
            raise
        except Exception as e:
            self.close()
            raise MediaAcquisitionError(str(e)) from e
        self.is_open = True
        # The song starts as soon as the devices are ours, detection or not.
        self.soundtrack.play()
        return self

    def close(self) -> None:
        """Release every device. Safe to call more than once."""
        for name, release in (("soundtrack", self.soundtrack.stop),
                              ("microphone", self.microphone.stop),
                              ("camera", self.camera.stop)):
            try:
                release()
            except Exception as e:
                print(f"[MEDIA] Failed to release {name}: {e}")
        self.is_open = False

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
