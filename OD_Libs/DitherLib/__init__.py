"""
DitherLib - Core dithering functionality

This module provides the pixel buffer model, the ordered dithering
threshold matrices and the dithering algorithms for the Open Dither project.
"""

from OD_Libs.DitherLib.pixel_buffer import PixelBuffer, RgbColor, clamp_channel
from OD_Libs.DitherLib.threshold_matrix import (
    ThresholdMatrix,
    bayer_index_matrix,
    get_bayer_matrix,
    BAYER_2X2,
    BAYER_4X4,
    BAYER_8X8,
    BAYER_16X16,
)
from OD_Libs.DitherLib.dither_algorithms import (
    prepare_buffer,
    random_dither,
    ordered_dither,
    floyd_steinberg_dither,
)

__all__ = [
    "PixelBuffer",
    "RgbColor",
    "clamp_channel",
    "ThresholdMatrix",
    "bayer_index_matrix",
    "get_bayer_matrix",
    "BAYER_2X2",
    "BAYER_4X4",
    "BAYER_8X8",
    "BAYER_16X16",
    "prepare_buffer",
    "random_dither",
    "ordered_dither",
    "floyd_steinberg_dither",
]
