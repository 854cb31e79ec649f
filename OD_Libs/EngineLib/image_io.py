"""
Image codec boundary for Open Dither.

Decodes image files into PixelBuffers and encodes PixelBuffers back to disk
through Pillow. Output paths follow the naming conventions of the engine and
the batch processor.

Classes:
    DecodeError: Raised when a file is unreadable or not a supported image

Functions:
    get_supported_formats: Get list of supported image extensions
    is_supported_format: Check a path's extension
    load_pixel_buffer: Decode an image file into a PixelBuffer
    save_pixel_buffer: Encode a PixelBuffer to disk
    normalize_save_format: Canonical Pillow format name
    output_extension: File extension for a save format
    processed_output_path: Sibling path used by batch processing
    export_output_path: Path used when exporting the engine's image
"""

from pathlib import Path
from typing import List, Union

from OD_Libs.constants import (
    DEFAULT_OUTPUT_EXTENSION,
    DEFAULT_OUTPUT_FORMAT,
    OUTPUT_FORMAT_EXTENSIONS,
    PROCESSED_FILE_SUFFIX,
    SUPPORTED_STANDARD_IMAGES,
)
from OD_Libs.DitherLib.pixel_buffer import PixelBuffer
from OD_Libs.pillow_compat import Image, UnidentifiedImageError

PathLike = Union[str, Path]


class DecodeError(IOError):
    """The file is unreadable or not a supported image."""


def get_supported_formats() -> List[str]:
    """
    Get list of supported image formats.

    Returns:
        List of file extensions (e.g., ['.bmp', '.gif', ...])
    """
    return sorted(SUPPORTED_STANDARD_IMAGES)


def is_supported_format(file_path: PathLike) -> bool:
    """Check if a file path has a supported image extension."""
    return Path(file_path).suffix.lower() in SUPPORTED_STANDARD_IMAGES


def load_pixel_buffer(file_path: PathLike) -> PixelBuffer:
    """
    Load an image file into a new PixelBuffer.

    Args:
        file_path: Path to the image file

    Returns:
        PixelBuffer holding the decoded pixels

    Raises:
        DecodeError: If the file is missing, has an unsupported extension or cannot be decoded
    """
    path = Path(file_path)

    if not path.is_file():
        raise DecodeError(f"Image file not found: {path}")

    if not is_supported_format(path):
        raise DecodeError(
            f"Unsupported image format '{path.suffix}'. "
            f"Supported: {', '.join(get_supported_formats())}"
        )

    try:
        with Image.open(path) as img:
            img.load()
            return PixelBuffer.from_image(img)
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to load image from {path}: {str(e)}") from e


def save_pixel_buffer(
    buffer: PixelBuffer,
    output_path: PathLike,
    save_format: str = DEFAULT_OUTPUT_FORMAT,
    overwrite: bool = True,
) -> Path:
    """
    Save a PixelBuffer to disk.

    Args:
        buffer: Pixels to encode
        output_path: Destination file
        save_format: Pillow format name (default PNG)
        overwrite: Replace an existing file (default True)

    Returns:
        Path where the image was saved

    Raises:
        ValueError: If the file exists and overwrite is False
        OSError: If the file cannot be written
    """
    path = Path(output_path)

    if path.exists() and not overwrite:
        raise ValueError(
            f"Output file already exists: {path}. "
            f"Set overwrite=True to replace."
        )

    save_format = normalize_save_format(save_format)

    image = buffer.to_image()
    # JPEG has no alpha channel
    if image.mode == "RGBA" and save_format == "JPEG":
        image = image.convert("RGB")

    try:
        image.save(path, format=save_format)
    except (OSError, ValueError, KeyError) as e:
        raise OSError(f"Failed to save image to {path}: {str(e)}") from e

    return path


def processed_output_path(file_path: PathLike, suffix: str = PROCESSED_FILE_SUFFIX) -> Path:
    """
    Get the sibling path a processed copy of an image is written to.

    ``photos/cat.jpg`` becomes ``photos/cat_processed.png``.
    """
    path = Path(file_path)
    return path.with_name(f"{path.stem}{suffix}{DEFAULT_OUTPUT_EXTENSION}")


def normalize_save_format(save_format: str) -> str:
    """Upper-case a Pillow format name, mapping JPG to JPEG."""
    save_format = save_format.upper()
    if save_format == "JPG":
        save_format = "JPEG"
    return save_format


def output_extension(save_format: str) -> str:
    """Get the file extension written for a save format (e.g. ``.jpg`` for JPEG)."""
    save_format = normalize_save_format(save_format)
    return OUTPUT_FORMAT_EXTENSIONS.get(save_format, f".{save_format.lower()}")


def export_output_path(
    directory: PathLike, name: str, save_format: str = DEFAULT_OUTPUT_FORMAT
) -> Path:
    """Get ``<directory>/<name><ext>`` with the extension matching save_format."""
    return Path(directory) / f"{name}{output_extension(save_format)}"
