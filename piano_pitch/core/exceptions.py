"""Exceptions raised by Piano Pitch."""


class UnsupportedWidthError(ValueError):
    """Transform width is not a power of two the spectrum engine supports."""


class SpectrumError(ArithmeticError):
    """Spectrum values could not be ordered (more than one NaN amplitude)."""


class KeyPressMismatchError(LookupError):
    """No stored key press matches the one asked to be removed."""


class AnalysisError(RuntimeError):
    """Analysis aborted; no partial result is produced."""
