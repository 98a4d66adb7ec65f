"""Pitch analysis - slide a window across a waveform and collect key presses."""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional
import numpy as np

from ..core import KeyPress, KeyPresses, PianoKey, Waveform
from ..core.constants import (
    DEFAULT_FFT_WIDTH,
    DEFAULT_STEP_FRACTION,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_FRACTION,
    MAX_IMAGE_DIMENSION,
)
from .spectrum import check_width, compute_spectrum
from .window import Window

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def _no_progress(_: float) -> None:
    pass


@dataclass
class AnalysisOptions:
    """Configuration for pitch analysis.

    Attributes:
        fft_width: Transform width, a power of two (default: 2048)
        window_fraction: Window width as a fraction of fft_width (default: 1.0)
        step_fraction: Hop as a fraction of the window width (default: 1.0)
        threshold: Minimum bucket amplitude that counts as a press (default: 50.0)
        window: Window function applied to each slice (default: Hann)
        max_image_dimension: Largest spectrogram side kept (default: 16384)
    """

    fft_width: int = DEFAULT_FFT_WIDTH
    window_fraction: float = DEFAULT_WINDOW_FRACTION
    step_fraction: float = DEFAULT_STEP_FRACTION
    threshold: float = DEFAULT_THRESHOLD
    window: Window = Window.HANN
    max_image_dimension: int = MAX_IMAGE_DIMENSION

    def __post_init__(self):
        check_width(self.fft_width)
        if not 0 < self.window_fraction <= 1:
            raise ValueError(f"window_fraction must be in (0, 1], got {self.window_fraction}")
        if not self.step_fraction > 0:
            raise ValueError(f"step_fraction must be > 0, got {self.step_fraction}")
        if self.threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {self.threshold}")

    @property
    def window_width(self) -> int:
        return math.ceil(self.fft_width * self.window_fraction)

    @property
    def step(self) -> int:
        return math.ceil(self.window_width * self.step_fraction)


@dataclass
class AnalysisResult:
    """Container for pitch analysis results.

    ``spectrogram`` is a uint8 image of ``fft_width/2`` rows (row 0 = DC) by
    one column per window. It is None when it would exceed the renderer's
    limit, with the reason in ``spectrogram_error``.
    """

    key_presses: Dict[PianoKey, KeyPresses] = field(default_factory=dict)
    spectrogram: Optional[np.ndarray] = None
    spectrogram_error: Optional[str] = None
    window_count: int = 0
    seconds_per_window: float = 0.0

    @property
    def press_count(self) -> int:
        return sum(len(presses) for presses in self.key_presses.values())


class PitchAnalyzer:
    """Detect piano keys from the spectrum of successive windows."""

    def __init__(self, options: Optional[AnalysisOptions] = None):
        self.options = options or AnalysisOptions()

    def window_count(self, waveform: Waveform) -> int:
        """Number of analysis windows that fit in ``waveform``."""
        window_width = self.options.window_width
        if len(waveform) < window_width:
            return 0
        return (len(waveform) - window_width) // self.options.step

    def analyze(
        self,
        waveform: Waveform,
        progress_callback: Optional[ProgressCallback] = None,
        spectrogram_callback: Optional[Callable[[], None]] = None,
    ) -> AnalysisResult:
        """
        Analyze a waveform into per-key presses and a spectrogram.

        Args:
            waveform: Decoded mono waveform
            progress_callback: Called with ``i / window_count`` before each window
            spectrogram_callback: Called once before the image is produced

        Returns:
            AnalysisResult; empty when the waveform is shorter than one window
        """
        progress = progress_callback or _no_progress
        options = self.options
        fft_width = options.fft_width
        window_width = options.window_width
        step = options.step
        rows = fft_width // 2

        window_count = self.window_count(waveform)
        seconds_per_window = window_width / waveform.sample_rate

        logger.info(
            "Analyzing %.2fs at %dHz: %d windows of %d samples (fft %d, step %d)",
            waveform.duration,
            waveform.sample_rate,
            window_count,
            window_width,
            fft_width,
            step,
        )

        amplitudes = np.zeros((rows, window_count), dtype=np.float32)
        keys: Dict[PianoKey, KeyPresses] = {}
        bucket_keys = self._bucket_keys(fft_width, waveform.sample_rate)

        for i in range(window_count):
            progress(i / window_count)

            start = i * step
            spectrum = compute_spectrum(
                waveform.slice(start, start + window_width), options.window, fft_width
            )
            column = spectrum.amplitudes_real()[:rows]
            amplitudes[:, i] = column

            press_start = round(i * seconds_per_window * 1000)
            press_end = round((i + 1) * seconds_per_window * 1000)

            for bucket in np.flatnonzero(column >= options.threshold):
                key = bucket_keys[bucket]
                if key is None:
                    continue
                keys.setdefault(key, KeyPresses()).add(
                    KeyPress(press_start, press_end - press_start, float(column[bucket]))
                )

        if spectrogram_callback is not None:
            spectrogram_callback()

        image, error = self._render(amplitudes)
        if error:
            logger.warning("Dropping spectrogram: %s", error)

        result = AnalysisResult(
            key_presses=dict(sorted(keys.items())),
            spectrogram=image,
            spectrogram_error=error,
            window_count=window_count,
            seconds_per_window=seconds_per_window,
        )
        logger.info(
            "Detected %d keys, %d presses", len(result.key_presses), result.press_count
        )
        return result

    def _bucket_keys(self, fft_width: int, sample_rate: int):
        """Piano key (or None) for each drawn bucket."""
        resolution = sample_rate / fft_width
        return [
            PianoKey.from_concert_pitch(bucket * resolution)
            for bucket in range(fft_width // 2)
        ]

    def _render(self, amplitudes: np.ndarray):
        """Grayscale image from amplitudes, or (None, reason) if too large."""
        rows, cols = amplitudes.shape
        limit = self.options.max_image_dimension
        if rows > limit or cols > limit:
            return None, (
                f"spectrogram of {cols}x{rows} pixels exceeds the maximum "
                f"texture dimension {limit}"
            )

        pixels = np.nan_to_num(np.round(255.0 * amplitudes), nan=0.0)
        return np.clip(pixels, 0, 255).astype(np.uint8), None
