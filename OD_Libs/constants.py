"""
Constants and configuration values for Open Dither.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Channel constants
CHANNEL_MIN = 0
CHANNEL_MAX = 255
CHANNEL_COUNT = 3

# ITU-R BT.601 luma weights used by the grayscale pre-step
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Ordered dithering
BAYER_SIZES = (2, 4, 8, 16)

# Error diffusion
QUANTIZE_THRESHOLD = 0.5

# Algorithm names (registry order)
ALGORITHM_RANDOM = "Random"
ALGORITHM_ORDERED_2X2 = "Ordered 2x2 Bayer matrix"
ALGORITHM_ORDERED_4X4 = "Ordered 4x4 Bayer matrix"
ALGORITHM_ORDERED_8X8 = "Ordered 8x8 Bayer matrix"
ALGORITHM_ORDERED_16X16 = "Ordered 16x16 Bayer matrix"
ALGORITHM_FLOYD_STEINBERG = "Floyd-Steinberg"

# Engine titles
TITLE_NONE = "None"
TITLE_SCRIPT = "Lua script"

# File naming
PROCESSED_FILE_SUFFIX = "_processed"
DEFAULT_EXPORT_NAME = "out"
DEFAULT_OUTPUT_FORMAT = "PNG"
DEFAULT_OUTPUT_EXTENSION = ".png"
EXPORT_NAME_PATTERN = r"[A-Za-z0-9_]+"

# File extension written for each Pillow save format
OUTPUT_FORMAT_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "BMP": ".bmp",
    "GIF": ".gif",
    "TIFF": ".tiff",
    "WEBP": ".webp",
}

# Batch configuration
BATCH_CONFIG_EXTENSION = ".txt"

# Scripting
SCRIPT_ENTRY_POINT = "Execute"
SCRIPT_EXTENSION = ".lua"
SCRIPT_REMOVED_GLOBALS = (
    "io",
    "require",
    "package",
    "dofile",
    "loadfile",
    "load",
    "debug",
    "python",
)
SCRIPT_SAFE_OS_FUNCTIONS = ("time", "clock", "date")

# Supported file formats
SUPPORTED_STANDARD_IMAGES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".webp"}
