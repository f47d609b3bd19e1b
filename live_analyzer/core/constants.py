"""Global constants for Live Analyzer."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Tuning reference
A4_FREQUENCY = 440.0
A4_MIDI = 69

# Audio processing defaults
DEFAULT_SR = 22050
DEFAULT_FRAME_SIZE = 2048

# Signal gate thresholds (RMS)
DEFAULT_RMS_THRESHOLD = 0.005
KEY_RMS_THRESHOLD = 0.01
FULL_SCALE_RMS = 0.3

# Musical frequency band used for chroma (roughly C2 to C7)
CHROMA_FMIN = 65.0
CHROMA_FMAX = 2000.0

# Guitar and voice range accepted by the note stabilizer
PITCH_FMIN = 70.0
PITCH_FMAX = 2000.0
