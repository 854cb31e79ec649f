"""
Pytest configuration and shared fixtures for Open Dither tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import pytest
from pathlib import Path

import numpy as np
from PIL import Image

from OD_Libs.DitherLib.pixel_buffer import PixelBuffer


@pytest.fixture
def gray_buffer():
    """
    Provide a factory for flat single-color buffers.

    Returns:
        Callable (width, height, value) -> PixelBuffer filled with (value, value, value)
    """
    def make(width: int, height: int, value: int) -> PixelBuffer:
        return PixelBuffer.new(width, height, (value, value, value))
    return make


@pytest.fixture
def gradient_buffer():
    """
    Provide a 32x16 buffer with distinct red, green and blue gradients.

    Returns:
        PixelBuffer whose channels vary independently across the image
    """
    height, width = 16, 32
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.stack(
        (xs * 255 // (width - 1), ys * 255 // (height - 1), (xs + ys) * 5 % 256),
        axis=-1,
    ).astype(np.uint8)
    return PixelBuffer(pixels)


@pytest.fixture
def write_script(tmp_path):
    """
    Provide a helper that writes Lua source to a file in tmp_path.

    Returns:
        Callable (source, name="script.lua") -> Path
    """
    def write(source: str, name: str = "script.lua") -> Path:
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path
    return write


@pytest.fixture
def sample_png(tmp_path):
    """
    Provide a 6x4 RGB PNG on disk.

    Returns:
        Path to the image file
    """
    path = tmp_path / "sample.png"
    image = Image.new("RGB", (6, 4), (90, 160, 220))
    image.putpixel((0, 0), (255, 255, 255))
    image.save(path)
    return path
