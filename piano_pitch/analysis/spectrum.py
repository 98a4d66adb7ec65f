"""Spectrum engine - windowed FFT of a waveform slice and derived values."""

from typing import Optional, Tuple
import numpy as np

from ..core.constants import FFT_WIDTH_MAX, FFT_WIDTH_MIN
from ..core.exceptions import SpectrumError, UnsupportedWidthError
from ..core.waveform import Waveform
from .window import Window

SUPPORTED_WIDTHS = tuple(
    1 << exp
    for exp in range(FFT_WIDTH_MIN.bit_length() - 1, FFT_WIDTH_MAX.bit_length())
)


def check_width(width: int) -> int:
    """Validate a transform width, returning it unchanged."""
    if width not in SUPPORTED_WIDTHS:
        raise UnsupportedWidthError(
            f"Unsupported transform width {width}; "
            f"expected a power of two in [{FFT_WIDTH_MIN}, {FFT_WIDTH_MAX}]"
        )
    return width


class Spectrum:
    """Complex frequency-domain buckets from one waveform slice.

    Buckets ``0..width/2`` (inclusive) carry everything for a real input;
    the upper half is their conjugate mirror.
    """

    def __init__(self, buckets: np.ndarray, sample_rate: int):
        self._buckets = buckets
        self._buckets.flags.writeable = False
        self._sample_rate = sample_rate

    @property
    def width(self) -> int:
        return len(self._buckets)

    @property
    def buckets(self) -> np.ndarray:
        return self._buckets

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def real_width(self) -> int:
        """Number of non-redundant buckets (width/2 + 1)."""
        return self.width // 2 + 1

    def amplitudes(self) -> np.ndarray:
        return np.abs(self._buckets)

    def amplitudes_real(self) -> np.ndarray:
        return self.amplitudes()[: self.real_width]

    def phases(self) -> np.ndarray:
        return np.angle(self._buckets) / self.width

    def phases_real(self) -> np.ndarray:
        return self.phases()[: self.real_width]

    def main_frequency(self) -> Optional[Tuple[int, float]]:
        """
        Loudest bucket of the real half.

        NaN amplitudes rank below every number; among equal maxima the
        highest bucket wins.

        Returns:
            (bucket, amplitude), or None for an empty spectrum

        Raises:
            SpectrumError: If more than one amplitude is NaN
        """
        amps = self.amplitudes_real()
        if len(amps) == 0:
            return None

        nan_mask = np.isnan(amps)
        if np.count_nonzero(nan_mask) > 1:
            raise SpectrumError("encountered two NaN values")

        ranked = np.where(nan_mask, -np.inf, amps)
        bucket = len(ranked) - 1 - int(np.argmax(ranked[::-1]))
        return bucket, float(amps[bucket])

    def freq_resolution(self) -> float:
        """Hz covered by one bucket."""
        return self._sample_rate / self.width

    def freq_from_bucket(self, bucket: int) -> float:
        """Bucket centre frequency; upper-half buckets are negative."""
        if bucket > self.width // 2:
            return -((self.width - bucket) * self.freq_resolution())
        return bucket * self.freq_resolution()

    def bucket_from_freq(self, freq: float) -> int:
        """Nearest bucket to ``freq``; negative frequencies map to the upper half."""
        bucket = int(round(abs(freq) * self.width / self._sample_rate))
        if freq < 0 and bucket:
            return self.width - bucket
        return bucket

    def shift(self, buckets: int) -> "Spectrum":
        """
        Frequency-shift by whole buckets without changing duration.

        The lowest ``buckets`` bins of both halves become zero and the rest of
        each half moves ``buckets`` bins away from DC. Shifting by half the
        width or more leaves nothing.
        """
        if buckets < 0:
            raise ValueError(f"Shift must be >= 0, got {buckets}")

        half = self.width // 2
        shifted = np.zeros_like(self._buckets)

        if buckets < half:
            shifted[buckets:half] = self._buckets[: half - buckets]
            shifted[half : self.width - buckets] = self._buckets[half + buckets :]

        return Spectrum(shifted, self._sample_rate)

    def __repr__(self) -> str:
        return f"Spectrum(width={self.width}, sample_rate={self._sample_rate})"


def compute_spectrum(
    waveform: Waveform,
    window: Window = Window.HANN,
    width: int = 2048,
) -> Spectrum:
    """
    Windowed complex FFT of a waveform slice.

    Args:
        waveform: Slice to transform
        window: Window function applied to the samples
        width: Transform width, a power of two in [2, 16384]

    Returns:
        Spectrum with ``width`` buckets. Samples beyond the slice are zero;
        the window covers the available samples (at most ``width``).

    Raises:
        UnsupportedWidthError: If ``width`` is not a supported power of two
    """
    check_width(width)

    samples = waveform.samples[:width]
    buffer = np.zeros(width, dtype=np.complex64)
    # Window spans only the real samples; the zero padding stays unweighted
    buffer[: len(samples)] = samples * window.coefficients(len(samples))

    return Spectrum(np.fft.fft(buffer).astype(np.complex64), waveform.sample_rate)
