"""Piano Pitch - Piano key detection and MIDI replay.

Architecture Layers:
    1. core/     - Waveforms, piano keys, key presses, status
    2. input/    - Audio decoding into a Waveform
    3. analysis/ - Window functions, spectra, sliding-window key detection
    4. output/   - MIDI commands, sinks, real-time scheduling, MIDI files
"""

__version__ = "0.1.0"

# Core types
from .core import (
    Accidental,
    KeyPress,
    KeyPresses,
    MusicalNote,
    PianoKey,
    Status,
    Waveform,
)

# Input layer
from .input import AudioLoader

# Analysis layer
from .analysis import (
    AnalysisOptions,
    AnalysisResult,
    AnalysisWorker,
    PitchAnalyzer,
    Spectrum,
    Window,
    compute_spectrum,
)

# Output layer
from .output import MIDIExporter, NoteScheduler, PlaybackState, RecordingSink

__all__ = [
    # Core
    "Accidental",
    "KeyPress",
    "KeyPresses",
    "MusicalNote",
    "PianoKey",
    "Status",
    "Waveform",
    # Input
    "AudioLoader",
    # Analysis
    "AnalysisOptions",
    "AnalysisResult",
    "AnalysisWorker",
    "PitchAnalyzer",
    "Spectrum",
    "Window",
    "compute_spectrum",
    # Output
    "MIDIExporter",
    "NoteScheduler",
    "PlaybackState",
    "RecordingSink",
]
