"""
Pixel buffer data model for Open Dither.

This module defines the mutable pixel grid every algorithm and script works on.

Classes:
    PixelBuffer: width x height grid of 3-channel 8-bit pixels

Type Aliases:
    RgbColor: A tuple of 3 integers representing RGB color values (0-255)
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from OD_Libs.constants import CHANNEL_COUNT, CHANNEL_MAX, CHANNEL_MIN, LUMA_WEIGHTS
from OD_Libs.pillow_compat import Image, ImageClass

RgbColor = Tuple[int, int, int]

_ALPHA_MODES = ("RGBA", "LA", "PA", "La", "RGBa")


def clamp_channel(value: float) -> int:
    """Clamp a channel value to [0, 255], truncating toward zero."""
    if value <= CHANNEL_MIN:
        return CHANNEL_MIN
    if value >= CHANNEL_MAX:
        return CHANNEL_MAX
    return int(value)


class PixelBuffer:
    """
    Mutable width x height grid of RGB pixels.

    Pixels live in a numpy ``uint8`` array of shape ``(height, width, 3)``
    indexed ``[y, x, channel]``. The array can be changed in place but never
    replaced, so the dimensions stay fixed for the lifetime of the buffer.

    An optional alpha plane decoded from the source image is carried along
    untouched and re-attached by :meth:`to_image`.

    Example:
        >>> buffer = PixelBuffer.new(2, 2, (128, 128, 128))
        >>> buffer.set_pixel(0, 0, (300, -5, 12))
        >>> buffer.get_pixel(0, 0)
        (255, 0, 12)
    """

    def __init__(self, pixels: np.ndarray, alpha: Optional[np.ndarray] = None):
        """
        Wrap an existing pixel array.

        Args:
            pixels: Array of shape (height, width, 3). Converted to uint8 after clamping.
            alpha: Optional array of shape (height, width)

        Raises:
            ValueError: If the array shapes are not valid
        """
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != CHANNEL_COUNT:
            raise ValueError(
                f"pixels must have shape (height, width, {CHANNEL_COUNT}), got {pixels.shape}"
            )
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            raise ValueError(f"Image must be at least 1x1, got {pixels.shape[1]}x{pixels.shape[0]}")

        if pixels.dtype != np.uint8:
            pixels = np.clip(pixels, CHANNEL_MIN, CHANNEL_MAX).astype(np.uint8)

        if alpha is not None:
            alpha = np.asarray(alpha, dtype=np.uint8)
            if alpha.shape != pixels.shape[:2]:
                raise ValueError(
                    f"alpha must have shape {pixels.shape[:2]}, got {alpha.shape}"
                )

        self._pixels = np.ascontiguousarray(pixels)
        self._alpha = alpha

    @classmethod
    def new(cls, width: int, height: int, color: Sequence[int] = (0, 0, 0)) -> "PixelBuffer":
        """Create a buffer filled with a single color."""
        fill = [clamp_channel(channel) for channel in color[:CHANNEL_COUNT]]
        pixels = np.empty((int(height), int(width), CHANNEL_COUNT), dtype=np.uint8)
        pixels[...] = fill
        return cls(pixels)

    @classmethod
    def from_image(cls, image: ImageClass) -> "PixelBuffer":
        """
        Build a buffer from a PIL Image.

        Images with transparency keep their alpha plane; every other mode is
        converted to RGB.

        Args:
            image: PIL Image object

        Returns:
            A new PixelBuffer owning a copy of the pixel data

        Raises:
            TypeError: If image is not a PIL Image
        """
        if not hasattr(image, "convert") or not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        has_alpha = image.mode in _ALPHA_MODES or "transparency" in getattr(image, "info", {})
        if has_alpha:
            rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
            return cls(rgba[:, :, :CHANNEL_COUNT].copy(), rgba[:, :, CHANNEL_COUNT].copy())

        return cls(np.array(image.convert("RGB"), dtype=np.uint8))

    def to_image(self) -> ImageClass:
        """Convert the buffer to a new PIL Image (RGB, or RGBA when alpha is carried)."""
        if self._alpha is not None:
            rgba = np.dstack((self._pixels, self._alpha))
            return Image.fromarray(rgba)
        return Image.fromarray(self._pixels)

    @property
    def pixels(self) -> np.ndarray:
        """The underlying ``(height, width, 3)`` uint8 array."""
        return self._pixels

    @property
    def alpha(self) -> Optional[np.ndarray]:
        return self._alpha

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_pixel(self, x: int, y: int) -> RgbColor:
        """
        Get the color at (x, y).

        Raises:
            IndexError: If the coordinates are outside the image
        """
        if not self.in_bounds(x, y):
            raise IndexError(f"Pixel ({x}, {y}) is outside {self.width}x{self.height} image")
        r, g, b = self._pixels[y, x]
        return int(r), int(g), int(b)

    def set_pixel(self, x: int, y: int, color: Sequence[float]) -> None:
        """
        Set the color at (x, y), clamping every channel to [0, 255].

        Raises:
            IndexError: If the coordinates are outside the image
        """
        if not self.in_bounds(x, y):
            raise IndexError(f"Pixel ({x}, {y}) is outside {self.width}x{self.height} image")
        self._pixels[y, x] = [clamp_channel(channel) for channel in color[:CHANNEL_COUNT]]

    def to_grayscale(self) -> None:
        """
        Replace every pixel with its luma value in all three channels.

        After this call r == g == b holds for every pixel.
        """
        luma = np.rint(self._pixels.astype(np.float64) @ np.array(LUMA_WEIGHTS))
        self._pixels[...] = np.clip(luma, CHANNEL_MIN, CHANNEL_MAX).astype(np.uint8)[:, :, None]

    def copy(self) -> "PixelBuffer":
        alpha = None if self._alpha is None else self._alpha.copy()
        return PixelBuffer(self._pixels.copy(), alpha)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return np.array_equal(self._pixels, other._pixels)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"
