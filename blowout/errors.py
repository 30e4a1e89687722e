"""Blowout exception types."""


class BlowoutError(Exception):
    """Base class for every error raised by Blowout."""


class MediaAcquisitionError(BlowoutError):
    """Camera or microphone could not be opened (denied or missing)."""


class ModelLoadError(BlowoutError):
    """The face landmark model could not be loaded."""
