"""Background analysis worker.

Runs decoding and pitch analysis on one dedicated thread, publishing progress
through a ``StatusCell``. The result is delivered once through a ``Future``;
observers never see a partially built result.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Union
from pathlib import Path

from ..core import AnalysisError, Status, StatusCell, Waveform
from .pitch import AnalysisOptions, AnalysisResult, PitchAnalyzer

logger = logging.getLogger(__name__)


class AnalysisWorker:
    """Single-threaded executor for analysis jobs."""

    def __init__(
        self,
        options: Optional[AnalysisOptions] = None,
        status: Optional[StatusCell] = None,
        loader=None,
    ):
        """
        Initialize AnalysisWorker.

        Args:
            options: Analysis configuration
            status: Cell receiving progress updates (created if omitted)
            loader: Object with ``load(path, progress_callback)`` returning a
                Waveform; defaults to ``input.AudioLoader``
        """
        self.analyzer = PitchAnalyzer(options)
        self.status = status or StatusCell()
        self._loader = loader
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis")

    def submit(self, source: Union[Waveform, str, Path]) -> "Future[AnalysisResult]":
        """
        Queue a waveform (or an audio file to decode first) for analysis.

        Returns:
            Future resolving to AnalysisResult, or failing with AnalysisError
        """
        return self._executor.submit(self._run, source)

    def _run(self, source) -> AnalysisResult:
        try:
            if isinstance(source, Waveform):
                waveform = source
            else:
                waveform = self._decode(source)

            result = self.analyzer.analyze(
                waveform,
                progress_callback=lambda f: self.status.set(Status.analyzing(f)),
                spectrogram_callback=lambda: self.status.set(
                    Status.generating_spectrogram()
                ),
            )
        except Exception as e:
            logger.error("Analysis failed: %s", e)
            raise AnalysisError(f"Analysis failed: {e}") from e
        finally:
            self.status.set(Status.none())

        return result

    def _decode(self, path) -> Waveform:
        loader = self._loader
        if loader is None:
            from ..input import AudioLoader

            loader = self._loader = AudioLoader()

        self.status.set(Status.decoding(0.0))
        return loader.load(path, progress_callback=lambda f: self.status.set(Status.decoding(f)))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisWorker":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
