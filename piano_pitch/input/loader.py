"""Audio loading - decode a file into a mono Waveform."""

import numpy as np
import librosa
import soundfile as sf
from pathlib import Path
from typing import Callable, Optional

from ..core import Waveform


class AudioLoader:
    """Handles audio file decoding and preprocessing."""

    SUPPORTED_FORMATS = {".wav", ".flac", ".ogg", ".mp3", ".aiff", ".aif"}

    def __init__(
        self,
        target_sr: Optional[int] = None,
        normalize: bool = False,
        block_size: int = 65536,
    ):
        """
        Initialize AudioLoader.

        Args:
            target_sr: Resample to this rate (None keeps the file's rate)
            normalize: Peak-normalize to [-1, 1] if True
            block_size: Frames decoded between progress reports
        """
        self.target_sr = target_sr
        self.normalize = normalize
        self.block_size = block_size

    def load(
        self,
        path: str,
        progress_callback: Optional[Callable[[float], None]] = None,
    ) -> Waveform:
        """
        Decode an audio file, downmixing to mono.

        Args:
            path: Path to audio file
            progress_callback: Called with the decoded fraction in [0, 1]

        Returns:
            Waveform at the file's (or target) sample rate

        Raises:
            ValueError: If file format not supported
            FileNotFoundError: If file doesn't exist
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        info = sf.info(str(path))
        total_frames = max(info.frames, 1)
        chunks = []
        decoded = 0

        for block in sf.blocks(
            str(path), blocksize=self.block_size, dtype="float32", always_2d=True
        ):
            chunks.append(block.mean(axis=1))
            decoded += len(block)
            if progress_callback is not None:
                progress_callback(min(decoded / total_frames, 1.0))

        audio = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
        sr = info.samplerate

        if self.target_sr is not None and self.target_sr != sr and len(audio):
            audio = librosa.resample(audio, orig_sr=sr, target_sr=self.target_sr)
            sr = self.target_sr

        if self.normalize:
            audio = self._normalize(audio)

        return Waveform(audio, sr)

    def _normalize(self, audio: np.ndarray) -> np.ndarray:
        """Normalize audio to [-1, 1] range using peak normalization."""
        if len(audio) == 0:
            return audio
        peak = np.abs(audio).max()
        if peak > 0:
            audio = audio / peak
        return audio
