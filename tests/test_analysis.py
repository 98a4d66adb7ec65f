"""Tests for the analysis layer: windows, spectra and pitch detection."""

import threading

import pytest
import numpy as np

from piano_pitch.analysis import (
    AnalysisOptions,
    AnalysisWorker,
    PitchAnalyzer,
    Spectrum,
    Window,
    compute_spectrum,
)
from piano_pitch.core import (
    AnalysisError,
    KeyPress,
    PianoKey,
    SpectrumError,
    Status,
    StatusCell,
    StatusKind,
    UnsupportedWidthError,
    Waveform,
)

SR = 44100


class RecordingStatusCell(StatusCell):
    """StatusCell that remembers every status it was given."""

    def __init__(self):
        super().__init__()
        self.history = []

    def set(self, status):
        self.history.append(status)
        super().set(status)


class TestWindow:
    """Tests for window functions."""

    @pytest.mark.parametrize("window", list(Window))
    @pytest.mark.parametrize("width", [1, 2, 8, 64, 1000])
    def test_length_and_range(self, window, width):
        coeffs = window.coefficients(width)
        assert len(coeffs) == width
        assert np.all(coeffs >= 0.0)
        assert np.all(coeffs <= 1.0 + 1e-6)

    @pytest.mark.parametrize("window", [Window.HANN, Window.BARTLETT])
    @pytest.mark.parametrize("width", [2, 16, 2048])
    def test_starts_at_zero(self, window, width):
        assert window.coefficients(width)[0] == 0.0

    def test_hamming_does_not_start_at_zero(self):
        assert Window.HAMMING.coefficients(16)[0] == pytest.approx(4 / 46)

    def test_rectangular_is_flat(self):
        assert Window.RECTANGULAR.coefficients(32).tolist() == [1.0] * 32

    def test_hann_peaks_at_centre(self):
        coeffs = Window.HANN.coefficients(16)
        assert coeffs[8] == pytest.approx(1.0)
        assert coeffs[4] == pytest.approx(0.5)

    def test_bartlett_is_triangular(self):
        coeffs = Window.BARTLETT.coefficients(8)
        assert coeffs.tolist() == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0, 0.75, 0.5, 0.25])

    def test_zero_width(self):
        for window in Window:
            assert len(window.coefficients(0)) == 0

    def test_iter_is_restartable(self):
        assert list(Window.HANN.iter(8)) == list(Window.HANN.iter(8))
        assert len(list(Window.HAMMING.iter(8))) == 8


class TestSpectrum:
    """Tests for the spectrum engine."""

    @pytest.fixture
    def tone(self):
        # Exactly on bucket 100 of a 2048-wide transform
        frequency = 100 * SR / 2048
        return Waveform.sine_wave(frequency, 2048 / SR, SR)

    def test_width_and_halves(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)

        assert spectrum.width == 2048
        assert len(spectrum.amplitudes()) == 2048
        assert len(spectrum.amplitudes_real()) == 1025
        assert len(spectrum.phases_real()) == 1025

    def test_main_frequency(self, tone):
        spectrum = tone.spectrum(Window.HANN, 2048)
        bucket, amplitude = spectrum.main_frequency()

        assert bucket == 100
        # Hann halves the coherent gain: 2048 / 2 * 0.5
        assert amplitude == pytest.approx(512, rel=0.01)

    def test_upper_half_mirrors_lower(self, tone):
        amps = compute_spectrum(tone, Window.HANN, 2048).amplitudes()
        assert amps[2048 - 100] == pytest.approx(amps[100], rel=1e-3)

    def test_frequency_mapping(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)

        assert spectrum.freq_resolution() == pytest.approx(SR / 2048)
        assert spectrum.freq_from_bucket(0) == 0.0
        assert spectrum.freq_from_bucket(1024) == pytest.approx(SR / 2)
        assert spectrum.freq_from_bucket(2047) == pytest.approx(-SR / 2048)

        for bucket in (0, 1, 100, 1024, 1500, 2047):
            assert spectrum.bucket_from_freq(spectrum.freq_from_bucket(bucket)) == bucket

    def test_bucket_from_freq_rounds(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)
        assert spectrum.bucket_from_freq(440.0) == 20

    def test_unsupported_width(self, tone):
        with pytest.raises(UnsupportedWidthError):
            compute_spectrum(tone, Window.HANN, 1000)
        with pytest.raises(UnsupportedWidthError):
            compute_spectrum(tone, Window.HANN, 32768)
        with pytest.raises(UnsupportedWidthError):
            compute_spectrum(tone, Window.HANN, 1)

    def test_short_slice_is_zero_padded(self):
        waveform = Waveform(np.ones(100), SR)
        spectrum = compute_spectrum(waveform, Window.RECTANGULAR, 256)

        assert spectrum.width == 256
        # DC of 100 ones
        assert spectrum.amplitudes()[0] == pytest.approx(100.0)

    def test_shift_by_zero_is_identity(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)
        shifted = spectrum.shift(0)

        assert np.array_equal(shifted.amplitudes_real(), spectrum.amplitudes_real())

    def test_shift_moves_content(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)
        shifted = spectrum.shift(5)

        assert shifted.width == 2048
        assert np.all(shifted.buckets[:5] == 0)
        assert np.all(shifted.buckets[-5:] == 0)
        assert np.array_equal(shifted.buckets[5:1024], spectrum.buckets[:1019])
        assert shifted.main_frequency()[0] == 105

    def test_shift_past_half_is_silent(self, tone):
        spectrum = compute_spectrum(tone, Window.HANN, 2048)
        assert not np.any(spectrum.shift(1024).buckets)
        assert not np.any(spectrum.shift(5000).buckets)

    def test_shift_rejects_negative(self, tone):
        with pytest.raises(ValueError):
            compute_spectrum(tone, Window.HANN, 2048).shift(-1)


class TestMainFrequencyOrdering:
    """Tests for NaN handling and ties in main_frequency."""

    def test_nan_ranks_lowest(self):
        spectrum = Spectrum(np.array([1, np.nan, 3, 2], dtype=np.complex64), 8)
        assert spectrum.main_frequency() == (2, 3.0)

    def test_two_nans_are_an_error(self):
        spectrum = Spectrum(np.array([np.nan, np.nan, 1, 0], dtype=np.complex64), 8)
        with pytest.raises(SpectrumError):
            spectrum.main_frequency()

    def test_ties_pick_highest_bucket(self):
        spectrum = Spectrum(np.array([2, 2, 1, 0], dtype=np.complex64), 8)
        assert spectrum.main_frequency() == (1, 2.0)


class TestAnalysisOptions:
    """Tests for AnalysisOptions validation."""

    def test_defaults(self):
        options = AnalysisOptions()
        assert options.fft_width == 2048
        assert options.window_width == 2048
        assert options.step == 2048

    def test_derived_widths_round_up(self):
        options = AnalysisOptions(fft_width=1024, window_fraction=0.3, step_fraction=0.5)
        assert options.window_width == 308  # ceil(307.2)
        assert options.step == 154

    def test_invalid(self):
        with pytest.raises(UnsupportedWidthError):
            AnalysisOptions(fft_width=1000)
        with pytest.raises(ValueError):
            AnalysisOptions(window_fraction=0.0)
        with pytest.raises(ValueError):
            AnalysisOptions(window_fraction=1.5)
        with pytest.raises(ValueError):
            AnalysisOptions(step_fraction=0.0)
        with pytest.raises(ValueError):
            AnalysisOptions(threshold=-1.0)


class TestPitchAnalyzer:
    """Tests for sliding-window key detection."""

    @pytest.fixture
    def a4(self):
        return Waveform.sine_wave(440.0, 1.0, SR)

    def test_single_window_scenario(self):
        waveform = Waveform(np.zeros(4096), SR)
        result = PitchAnalyzer(AnalysisOptions(fft_width=2048)).analyze(waveform)

        assert result.window_count == 1
        assert result.spectrogram.shape == (1024, 1)
        assert result.key_presses == {}

    def test_detects_a4(self, a4):
        result = PitchAnalyzer().analyze(a4)
        a4_key = PianoKey(49)

        assert a4_key in result.key_presses
        loudest = max(
            result.key_presses,
            key=lambda k: max(p.intensity for p in result.key_presses[k]),
        )
        assert loudest == a4_key

    def test_continuous_tone_coalesces(self, a4):
        result = PitchAnalyzer().analyze(a4)
        presses = result.key_presses[PianoKey(49)]

        # (44100 - 2048) // 2048 windows, back to back
        assert result.window_count == 20
        assert list(presses) == [
            KeyPress(0, round(20 * 2048 / SR * 1000), presses.first().intensity)
        ]

    def test_spectrogram_shape_and_type(self, a4):
        result = PitchAnalyzer().analyze(a4)

        assert result.spectrogram.dtype == np.uint8
        assert result.spectrogram.shape == (1024, 20)
        assert result.spectrogram_error is None
        # A loud tone saturates its bucket
        assert result.spectrogram[20, 0] == 255

    def test_keys_are_sorted(self):
        chord = Waveform(
            Waveform.sine_wave(261.63, 1.0, SR).samples
            + Waveform.sine_wave(659.26, 1.0, SR).samples,
            SR,
        )
        result = PitchAnalyzer().analyze(chord)

        keys = list(result.key_presses)
        assert keys == sorted(keys)
        assert PianoKey(40) in result.key_presses  # C4
        assert PianoKey(56) in result.key_presses  # E5

    def test_progress_callback(self, a4):
        progress = []
        PitchAnalyzer().analyze(a4, progress_callback=progress.append)

        assert progress == [i / 20 for i in range(20)]

    def test_silence_has_no_keys(self):
        result = PitchAnalyzer().analyze(Waveform(np.zeros(SR), SR))

        assert result.key_presses == {}
        assert not result.spectrogram.any()

    def test_waveform_shorter_than_window(self):
        result = PitchAnalyzer().analyze(Waveform(np.zeros(1000), SR))

        assert result.window_count == 0
        assert result.key_presses == {}
        assert result.spectrogram.shape == (1024, 0)

    def test_threshold_filters(self, a4):
        result = PitchAnalyzer(AnalysisOptions(threshold=1e6)).analyze(a4)
        assert result.key_presses == {}

    def test_oversized_spectrogram_is_dropped(self, a4):
        options = AnalysisOptions(max_image_dimension=512)
        result = PitchAnalyzer(options).analyze(a4)

        assert result.spectrogram is None
        assert "exceeds" in result.spectrogram_error
        assert PianoKey(49) in result.key_presses

    def test_partial_window_fraction(self, a4):
        options = AnalysisOptions(fft_width=2048, window_fraction=0.5)
        result = PitchAnalyzer(options).analyze(a4)

        assert result.window_count == (SR - 1024) // 1024
        assert result.spectrogram.shape == (1024, result.window_count)
        assert PianoKey(49) in result.key_presses


class TestAnalysisWorker:
    """Tests for the background analysis worker."""

    def test_analyzes_waveform(self):
        status = RecordingStatusCell()
        with AnalysisWorker(status=status) as worker:
            result = worker.submit(Waveform.sine_wave(440.0, 1.0, SR)).result(timeout=30)

        assert PianoKey(49) in result.key_presses
        kinds = [s.kind for s in status.history]
        assert StatusKind.ANALYZING in kinds
        assert StatusKind.GENERATING_SPECTROGRAM in kinds
        assert status.get() == Status.none()

    def test_runs_off_the_calling_thread(self):
        threads = []

        class ThreadCheckingLoader:
            def load(self, path, progress_callback=None):
                threads.append(threading.current_thread())
                progress_callback(1.0)
                return Waveform.sine_wave(440.0, 0.5, SR)

        status = RecordingStatusCell()
        with AnalysisWorker(status=status, loader=ThreadCheckingLoader()) as worker:
            worker.submit("song.wav").result(timeout=30)

        assert threads and threads[0] is not threading.current_thread()
        assert Status.decoding(1.0) in status.history

    def test_failure_is_terminal(self):
        class BrokenLoader:
            def load(self, path, progress_callback=None):
                raise OSError("corrupt file")

        with AnalysisWorker(loader=BrokenLoader()) as worker:
            future = worker.submit("song.wav")
            with pytest.raises(AnalysisError, match="corrupt file"):
                future.result(timeout=30)
            assert worker.status.get() == Status.none()
