"""
Built-in resolution ladder and the naming conventions of the output tree.

The file names below are a contract with the packaging engine and with players
that already consume the generated manifests; changing them changes the
published layout.
"""

# name -> [width, height, video bitrate in kbps]
# The first entry is the audio source by default, so keep the cheapest
# rendition first.
DEFAULT_RESOLUTIONS = {
    "144p": [256, 144, 250],
    "240p": [426, 240, 500],
    "360p": [640, 360, 1000],
    "480p": [854, 480, 2400],
    "720p": [1280, 720, 4800],
    "1080p": [1920, 1080, 8000],
    "2k": [2560, 1440, 6144],
    "4k": [3840, 2160, 17408],
}

DEFAULT_AUDIO_SOURCE_INDEX = 0

# --- Encoder Settings ---
VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"

# --- Output Tree ---
RESOLUTIONS_DIR_NAME = "resolutions"
OUTPUT_DIR_NAME = "output"

# Longest sanitized input name kept in the output root folder name.
MAX_INPUT_NAME_LENGTH = 70

# Bytes of randomness in the output root folder name (128 bits).
RANDOM_ID_BYTES = 16

RENDITION_FILE_TEMPLATE = "video_{name}.mp4"

AUDIO_OUTPUT_NAME = "audio.mp4"
AUDIO_PLAYLIST_NAME = "audio.m3u8"
VIDEO_STREAM_PREFIX = "h264"
VIDEO_OUTPUT_TEMPLATE = VIDEO_STREAM_PREFIX + "_{name}.mp4"
VIDEO_PLAYLIST_TEMPLATE = VIDEO_STREAM_PREFIX + "_{name}.m3u8"
VIDEO_IFRAME_PLAYLIST_TEMPLATE = VIDEO_STREAM_PREFIX + "_{name}_iframe.m3u8"

HLS_MASTER_PLAYLIST_NAME = f"{VIDEO_STREAM_PREFIX}_master.m3u8"
DASH_MANIFEST_NAME = f"{VIDEO_STREAM_PREFIX}.mpd"

# --- Audio Rendition Labels ---
DEFAULT_AUDIO_GROUP_ID = "audio"
DEFAULT_AUDIO_LABEL = "ENGLISH"

# --- Encryption ---
# Widevine PSSH box for the "test content id" content. Only used when the
# caller supplies keys without a PSSH and no PSSH is configured.
DEFAULT_PSSH = (
    "000000317073736800000000EDEF8BA979D64ACEA3C827DCD51D21ED"
    "00000011220F7465737420636F6E74656E74206964"
)
