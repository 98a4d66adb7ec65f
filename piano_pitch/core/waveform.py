"""Waveform - a mono sample buffer plus its sample rate."""

from typing import Iterator, Tuple
import numpy as np

from .constants import CD_SAMPLE_RATE


class Waveform:
    """Immutable mono float samples at a fixed sample rate.

    Slices are numpy views over the owning buffer, so slicing never copies.
    """

    CD_SAMPLE_RATE = CD_SAMPLE_RATE

    def __init__(self, samples, sample_rate: int):
        """
        Initialize Waveform.

        Args:
            samples: Mono samples, nominally in [-1, 1]
            sample_rate: Sample rate in Hz
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")

        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValueError(f"Waveform must be mono, got shape {samples.shape}")

        # Read-only view; the caller's array (if any) is left writable
        samples = samples.view()
        samples.flags.writeable = False

        self._samples = samples
        self._sample_rate = int(sample_rate)

    @classmethod
    def sine_wave(
        cls,
        frequency: float,
        duration: float,
        sample_rate: int = CD_SAMPLE_RATE,
        amplitude: float = 1.0,
    ) -> "Waveform":
        """Generate a pure sine tone."""
        n_samples = int(round(duration * sample_rate))
        t = np.arange(n_samples) / sample_rate
        samples = amplitude * np.sin(2 * np.pi * frequency * t)
        return cls(samples, sample_rate)

    @property
    def samples(self) -> np.ndarray:
        return self._samples

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"Waveform(len={len(self)}, sample_rate={self._sample_rate})"

    @property
    def is_empty(self) -> bool:
        return len(self._samples) == 0

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.time_from_sample(len(self))

    def time_from_sample(self, sample: int) -> float:
        """Convert a sample index to seconds."""
        return sample / self._sample_rate

    def time_domain(self) -> Iterator[Tuple[float, float]]:
        """Iterate (time in seconds, sample value) pairs."""
        for n, x in enumerate(self._samples):
            yield self.time_from_sample(n), float(x)

    def slice(self, start: int, stop: int) -> "Waveform":
        """Non-copying view over samples [start, stop)."""
        return Waveform(self._samples[start:stop], self._sample_rate)

    def to_owned(self) -> "Waveform":
        """Copy the samples out of any parent buffer."""
        return Waveform(self._samples.copy(), self._sample_rate)

    def resample(self, new_sample_rate: int) -> "Waveform":
        """
        Resample by linear interpolation.

        Args:
            new_sample_rate: Target sample rate in Hz

        Returns:
            New Waveform at the target rate
        """
        if len(self) < 2:
            return Waveform(self._samples.copy(), new_sample_rate)

        last_time = self.time_from_sample(len(self) - 1)
        new_len = int(last_time * new_sample_rate)

        # Position of each output sample, measured in input samples
        positions = np.arange(new_len) / new_sample_rate * self._sample_rate
        resampled = np.interp(positions, np.arange(len(self)), self._samples)

        return Waveform(resampled, new_sample_rate)

    def spectrum(self, window, width: int):
        """Spectrum of this waveform; see ``analysis.spectrum.compute_spectrum``."""
        from ..analysis.spectrum import compute_spectrum

        return compute_spectrum(self, window, width)
