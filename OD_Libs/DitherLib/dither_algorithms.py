"""
Dithering algorithms for Open Dither.

Every algorithm shares the uniform contract ``(buffer, colored) -> None``:
it mutates the PixelBuffer in place and always succeeds. When ``colored`` is
false the grayscale pre-step runs first, so the output has r == g == b.

Functions:
    prepare_buffer: Apply the grayscale pre-step when not colored
    random_dither: Random threshold dithering (optionally seeded)
    ordered_dither: Ordered dithering with any ThresholdMatrix
    floyd_steinberg_dither: Floyd-Steinberg error diffusion
"""

import time
from typing import List, Optional

import numpy as np

from OD_Libs.constants import CHANNEL_COUNT, CHANNEL_MAX, CHANNEL_MIN, QUANTIZE_THRESHOLD
from OD_Libs.DitherLib.pixel_buffer import PixelBuffer
from OD_Libs.DitherLib.threshold_matrix import ThresholdMatrix

# Floyd-Steinberg kernel (normalized by 16):
#       *   7
#   3   5   1
_FS_RIGHT = 7.0 / 16.0
_FS_BELOW_LEFT = 3.0 / 16.0
_FS_BELOW = 5.0 / 16.0
_FS_BELOW_RIGHT = 1.0 / 16.0


def prepare_buffer(buffer: PixelBuffer, colored: bool) -> None:
    """Run the grayscale pre-step unless colored output was requested."""
    if not colored:
        buffer.to_grayscale()


def random_dither(buffer: PixelBuffer, colored: bool, seed: Optional[int] = None) -> None:
    """
    Random threshold dithering.

    Each channel of each pixel is compared against a fresh uniform draw in
    [0, 255]; the output is 255 when the draw is below the channel value.
    In grayscale mode one draw is shared by the three equal channels so the
    output stays gray.

    Without a seed the generator is seeded from the wall clock, so the output
    differs between runs. Pass ``seed`` for reproducible output.

    Args:
        buffer: Pixel buffer to dither in place
        colored: Dither each channel independently instead of grayscale
        seed: Optional explicit seed
    """
    prepare_buffer(buffer, colored)

    if seed is None:
        seed = time.time_ns()
    rng = np.random.default_rng(seed)

    pixels = buffer.pixels
    shape = pixels.shape if colored else pixels.shape[:2] + (1,)
    draws = rng.integers(CHANNEL_MIN, CHANNEL_MAX + 1, size=shape)
    pixels[...] = np.where(draws < pixels, CHANNEL_MAX, CHANNEL_MIN)


def ordered_dither(buffer: PixelBuffer, colored: bool, matrix: ThresholdMatrix) -> None:
    """
    Ordered dithering with a tiled threshold matrix.

    A channel becomes 255 when it is strictly greater than the threshold at
    ``(x mod N, y mod N)``, otherwise 0.

    Args:
        buffer: Pixel buffer to dither in place
        colored: Dither each channel independently instead of grayscale
        matrix: Threshold matrix of any size
    """
    prepare_buffer(buffer, colored)

    pixels = buffer.pixels
    thresholds = matrix.tile(buffer.width, buffer.height)[:, :, None]
    pixels[...] = np.where(pixels > thresholds, CHANNEL_MAX, CHANNEL_MIN)


def floyd_steinberg_dither(buffer: PixelBuffer, colored: bool) -> None:
    """
    Floyd-Steinberg error diffusion dithering.

    Single raster pass per channel over a normalized float accumulator. Each
    pixel is quantized at 0.5 and its error is pushed to the right neighbour
    and the three neighbours on the next row. Error aimed outside the image is
    discarded.

    The pass runs on plain Python floats (one list of rows per channel) and
    the result is written back to the buffer once. In grayscale mode the three
    channels are equal, so only one plane is diffused and then copied.

    Args:
        buffer: Pixel buffer to dither in place
        colored: Dither each channel independently instead of grayscale
    """
    prepare_buffer(buffer, colored)

    pixels = buffer.pixels
    channels = CHANNEL_COUNT if colored else 1

    for channel in range(channels):
        plane = _diffuse_plane((pixels[:, :, channel] / float(CHANNEL_MAX)).tolist())
        pixels[:, :, channel] = plane

    if not colored:
        pixels[:, :, 1] = pixels[:, :, 0]
        pixels[:, :, 2] = pixels[:, :, 0]


def _diffuse_plane(rows: List[List[float]]) -> np.ndarray:
    """Run the error diffusion pass over one channel, returning 0/255 bytes."""
    height = len(rows)
    width = len(rows[0])
    last_x = width - 1

    for y in range(height):
        row = rows[y]
        below = rows[y + 1] if y + 1 < height else None

        for x in range(width):
            old = row[x]
            new = 1.0 if old > QUANTIZE_THRESHOLD else 0.0
            row[x] = new
            error = old - new

            if x < last_x:
                row[x + 1] += error * _FS_RIGHT

            if below is not None:
                if x > 0:
                    below[x - 1] += error * _FS_BELOW_LEFT
                below[x] += error * _FS_BELOW
                if x < last_x:
                    below[x + 1] += error * _FS_BELOW_RIGHT

    return (np.array(rows) * CHANNEL_MAX).astype(np.uint8)
