"""Analysis layer - Spectral analysis and pitch detection.

This layer turns a decoded waveform into musical data:
- Window functions
- Windowed FFT spectra
- Sliding-window key detection and spectrogram
- Background analysis worker
"""

from .window import Window
from .spectrum import Spectrum, compute_spectrum
from .pitch import AnalysisOptions, AnalysisResult, PitchAnalyzer
from .worker import AnalysisWorker

__all__ = [
    "Window",
    "Spectrum",
    "compute_spectrum",
    "AnalysisOptions",
    "AnalysisResult",
    "PitchAnalyzer",
    "AnalysisWorker",
]
