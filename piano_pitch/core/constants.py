"""Global constants for Piano Pitch."""

# Concert pitch
A4_FREQUENCY = 440.0
A4_KEY = 49

# Piano range (key numbers, 1 = A0, 88 = C8)
PIANO_KEY_MIN = 1
PIANO_KEY_MAX = 88

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
MIDI_KEY_OFFSET = 20  # piano key 1 -> MIDI 21 (A0)
DEFAULT_VELOCITY = 127

# Transform widths supported by the spectrum engine
FFT_WIDTH_MIN = 2
FFT_WIDTH_MAX = 16384

# Analysis defaults
DEFAULT_FFT_WIDTH = 2048
DEFAULT_WINDOW_FRACTION = 1.0
DEFAULT_STEP_FRACTION = 1.0
DEFAULT_THRESHOLD = 50.0

# Largest spectrogram side a renderer is expected to accept
MAX_IMAGE_DIMENSION = 16384

CD_SAMPLE_RATE = 44100
