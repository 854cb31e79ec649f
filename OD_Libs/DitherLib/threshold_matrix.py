"""
Threshold matrices for ordered dithering.

A ThresholdMatrix is an immutable N x N table of byte thresholds that is tiled
across the image by ``(x mod N, y mod N)``. The four built-in instances are the
recursive Bayer matrices scaled to the byte range.

Classes:
    ThresholdMatrix: Immutable square threshold table

Functions:
    bayer_index_matrix: Build the recursive Bayer index matrix of a given size
    get_bayer_matrix: Look up one of the built-in Bayer instances by size
"""

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from OD_Libs.constants import BAYER_SIZES, CHANNEL_MAX, CHANNEL_MIN


def bayer_index_matrix(size: int) -> np.ndarray:
    """
    Generate the size x size Bayer index matrix (values 0..size*size-1).

    Uses the recursive definition:
        M(1) = [[0]]
        M(2n) = [[4*M(n)+0, 4*M(n)+2], [4*M(n)+3, 4*M(n)+1]]

    Args:
        size: Matrix side length, a positive power of 2

    Returns:
        Integer numpy array of shape (size, size)

    Raises:
        ValueError: If size is not a positive power of 2
    """
    if size <= 0 or size & (size - 1) != 0:
        raise ValueError(f"Bayer size must be a positive power of 2, got {size}")

    matrix = np.zeros((1, 1), dtype=np.int64)
    while matrix.shape[0] < size:
        base = 4 * matrix
        matrix = np.block([
            [base + 0, base + 2],
            [base + 3, base + 1],
        ])
    return matrix


@dataclass(frozen=True)
class ThresholdMatrix:
    """Immutable square table of byte thresholds.

    The table is validated once at construction: it must be square, non-empty
    and every entry must be within [0, 255]. Lookups use
    ``table[x mod size][y mod size]``.

    Attributes:
        size: Side length N
        table: N rows of N thresholds
    """

    size: int
    table: Tuple[Tuple[int, ...], ...]

    def __post_init__(self):
        """Validate the table shape and value range."""
        if self.size <= 0:
            raise ValueError(f"Matrix size must be positive, got {self.size}")

        rows = tuple(tuple(int(value) for value in row) for row in self.table)
        if len(rows) != self.size or any(len(row) != self.size for row in rows):
            raise ValueError(f"Matrix table must be {self.size}x{self.size}")

        for row in rows:
            for value in row:
                if not CHANNEL_MIN <= value <= CHANNEL_MAX:
                    raise ValueError(f"Threshold {value} outside [{CHANNEL_MIN}, {CHANNEL_MAX}]")

        array = np.array(rows, dtype=np.uint8)
        array.setflags(write=False)
        object.__setattr__(self, "table", rows)
        object.__setattr__(self, "_array", array)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> "ThresholdMatrix":
        """Create a matrix from a row-major sequence of rows."""
        return cls(size=len(rows), table=tuple(tuple(row) for row in rows))

    @classmethod
    def bayer(cls, size: int) -> "ThresholdMatrix":
        """Create a Bayer threshold matrix scaled by 256 / size^2."""
        indices = bayer_index_matrix(size)
        thresholds = (indices * 256) // (size * size)
        return cls.from_rows(np.clip(thresholds, CHANNEL_MIN, CHANNEL_MAX).tolist())

    def threshold_at(self, x: int, y: int) -> int:
        """Get the threshold applied at image coordinates (x, y)."""
        return self.table[x % self.size][y % self.size]

    def as_array(self) -> np.ndarray:
        """Read-only uint8 view of the table."""
        return self._array

    def tile(self, width: int, height: int) -> np.ndarray:
        """
        Tile the matrix over an image.

        Args:
            width: Image width
            height: Image height

        Returns:
            uint8 array of shape (height, width) where ``[y, x] == threshold_at(x, y)``
        """
        xs = np.arange(width) % self.size
        ys = np.arange(height) % self.size
        return self._array[np.ix_(xs, ys)].T


# Built-ins are generated from the recursive definition, not copied from hand-written tables
BAYER_2X2 = ThresholdMatrix.bayer(2)
BAYER_4X4 = ThresholdMatrix.bayer(4)
BAYER_8X8 = ThresholdMatrix.bayer(8)
BAYER_16X16 = ThresholdMatrix.bayer(16)

_BAYER_MATRICES: Dict[int, ThresholdMatrix] = {
    matrix.size: matrix for matrix in (BAYER_2X2, BAYER_4X4, BAYER_8X8, BAYER_16X16)
}


def get_bayer_matrix(size: int) -> ThresholdMatrix:
    """
    Get a built-in Bayer matrix.

    Raises:
        KeyError: If size is not one of 2, 4, 8 or 16
    """
    if size not in _BAYER_MATRICES:
        raise KeyError(f"No built-in Bayer matrix of size {size}. Available sizes: {BAYER_SIZES}")
    return _BAYER_MATRICES[size]
