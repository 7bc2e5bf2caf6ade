"""All magic numbers and configuration constants."""

CONCURRENCY_LIMIT = 5                # max in-flight TTS requests
CHAR_LIMIT = 300000                  # max characters per project text
SAMPLE_RATE = 24000                  # Hz, PCM contract of the TTS service
SAMPLE_WIDTH = 2                     # bytes, 16-bit signed little-endian
CHANNELS = 1                         # mono
ENCODER_BLOCK_SIZE = 1152            # samples per encode call (one MP3 frame)
BITRATES = (64, 96, 128, 160, 192, 256, 320)  # kbps accepted by the assembler
DEFAULT_BITRATE = 128                # kbps
FUZZY_WINDOW_PADDING = 50            # chars searched past the proposed text length
NOISE_CHARS = " \t\n'\"‘’“”`´"  # ignored by fuzzy matching
QUOTE_CHARS = "'\"‘’“”`´"       # noise minus whitespace
TTS_MODEL = "gemini-2.5-flash-preview-tts"
ANALYSIS_MODEL = "gemini-2.5-flash"
TTS_RATE = "-10%"                    # edge-tts base rate: 10% slower than default
EDGE_SPEED_RATES = {"slow": "-15%", "normal": TTS_RATE, "fast": "+15%"}
VOICE_TEST_PHRASE = "Test"
NARRATOR_ID = "spk_1"
NARRATOR_NAME = "Narrator"
NARRATOR_VOICE = "kore"
NARRATOR_COLOR = "#818CF8"
DEFAULT_TITLE = "My Audiobook"
PROJECT_FILE_VERSION = 2             # v1 had no atmosphereSuggestions
PROJECT_FILENAME = "project.json"
OUTPUT_DIR = "output"
VERSION = "0.1.0"

MOODS = (
    "normal",
    "cheerful",
    "sad",
    "angry",
    "whispering",
    "excited",
    "mysterious",
    "ironic",
    "friendly",
    "formal",
    "anxious",
)
SPEEDS = ("slow", "normal", "fast")

# German labels found in older project files
MOOD_ALIASES = {
    "fröhlich": "cheerful",
    "traurig": "sad",
    "wütend": "angry",
    "flüsternd": "whispering",
    "aufgeregt": "excited",
    "geheimnisvoll": "mysterious",
    "ironisch": "ironic",
    "freundlich": "friendly",
    "formell": "formal",
    "ängstlich": "anxious",
}
SPEED_ALIASES = {"langsam": "slow", "schnell": "fast"}
