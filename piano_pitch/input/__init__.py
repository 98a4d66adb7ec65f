"""Input layer - Audio decoding.

Hands the rest of the system a flat mono sample buffer plus sample rate.
"""

from .loader import AudioLoader

__all__ = ["AudioLoader"]
