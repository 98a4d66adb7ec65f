"""Window functions applied to a waveform slice before the transform."""

from enum import Enum
import numpy as np


class Window(Enum):
    """Per-sample weighting to reduce spectral leakage.

    Coefficients use the periodic (DFT-even) form with ``N`` = width:

    - Rectangular: 1
    - Bartlett:    1 - |n - N/2| / (N/2)
    - Hann:        0.5 * (1 - cos(2πn/N))   (good default choice)
    - Hamming:     25/46 - 21/46 * cos(2πn/N)
    """

    BARTLETT = "bartlett"
    HAMMING = "hamming"
    HANN = "hann"
    RECTANGULAR = "rectangular"

    def __str__(self) -> str:
        return self.name.capitalize()

    def coefficients(self, width: int) -> np.ndarray:
        """
        Window coefficients for a window of ``width`` samples.

        Widths of 0 or 1 are degenerate but allowed.

        Returns:
            float32 array of length ``width`` with values in [0, 1]
        """
        n = np.arange(width, dtype=np.float64)
        half = width / 2.0

        if self is Window.RECTANGULAR:
            coeffs = np.ones(width)
        elif self is Window.BARTLETT:
            with np.errstate(divide="ignore", invalid="ignore"):
                coeffs = 1.0 - np.abs((n - half) / half)
            # width 0 divides by zero; there are no coefficients anyway
            coeffs = np.nan_to_num(coeffs)
        elif self is Window.HANN:
            coeffs = 0.5 * (1.0 - np.cos(2 * np.pi * n / max(width, 1)))
        else:
            coeffs = 25.0 / 46.0 - 21.0 / 46.0 * np.cos(2 * np.pi * n / max(width, 1))

        return coeffs.astype(np.float32)

    def iter(self, width: int):
        """Iterate coefficients one at a time."""
        return iter(self.coefficients(width).tolist())
