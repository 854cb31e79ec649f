"""
Unit tests for the threshold_matrix module.

Tests the built-in Bayer matrices, matrix validation, lookup periodicity
and tiling.
"""

import dataclasses

import numpy as np
import pytest

from OD_Libs.DitherLib.threshold_matrix import (
    BAYER_2X2,
    BAYER_4X4,
    BAYER_8X8,
    BAYER_16X16,
    ThresholdMatrix,
    bayer_index_matrix,
    get_bayer_matrix,
)


class TestBayerInstances:
    """Tests for the four built-in Bayer matrices."""

    def test_2x2_table(self):
        assert BAYER_2X2.size == 2
        assert BAYER_2X2.table == ((0, 128), (192, 64))

    def test_4x4_table(self):
        assert BAYER_4X4.table == (
            (0, 128, 32, 160),
            (192, 64, 224, 96),
            (48, 176, 16, 144),
            (240, 112, 208, 80),
        )

    def test_8x8_fourth_row(self):
        assert BAYER_8X8.table[3] == (240, 112, 208, 80, 248, 120, 216, 88)

    @pytest.mark.parametrize("matrix", [BAYER_2X2, BAYER_4X4, BAYER_8X8, BAYER_16X16])
    def test_thresholds_are_distinct_and_evenly_spaced(self, matrix):
        values = sorted(value for row in matrix.table for value in row)
        step = 256 // (matrix.size * matrix.size)

        assert values == list(range(0, 256, step))

    @pytest.mark.parametrize("matrix", [BAYER_2X2, BAYER_4X4, BAYER_8X8, BAYER_16X16])
    def test_built_ins_are_generated(self, matrix):
        scale = 256 // (matrix.size * matrix.size)
        expected = bayer_index_matrix(matrix.size) * scale

        assert np.array_equal(matrix.as_array(), expected)

    def test_get_bayer_matrix(self):
        assert get_bayer_matrix(8) is BAYER_8X8

    def test_get_bayer_matrix_unknown_size(self):
        with pytest.raises(KeyError):
            get_bayer_matrix(3)

    def test_index_matrix_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            bayer_index_matrix(6)

    def test_index_matrix_base_case(self):
        assert bayer_index_matrix(2).tolist() == [[0, 2], [3, 1]]


class TestValidation:
    """Tests for ThresholdMatrix construction checks."""

    def test_rejects_non_square(self):
        with pytest.raises(ValueError):
            ThresholdMatrix.from_rows([[0, 1], [2]])

    def test_rejects_size_mismatch(self):
        with pytest.raises(ValueError):
            ThresholdMatrix(size=3, table=((0, 1), (2, 3)))

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            ThresholdMatrix(size=0, table=())

    def test_rejects_out_of_range_values(self):
        with pytest.raises(ValueError):
            ThresholdMatrix.from_rows([[0, 256], [1, 2]])

    def test_matrix_is_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            BAYER_2X2.size = 3

        with pytest.raises(ValueError):
            BAYER_2X2.as_array()[0, 0] = 7

    def test_custom_size(self):
        matrix = ThresholdMatrix.from_rows([[10, 20, 30], [40, 50, 60], [70, 80, 90]])

        assert matrix.threshold_at(4, 0) == matrix.table[1][0] == 40


class TestLookupAndTiling:
    """Tests for threshold_at and tile."""

    @pytest.mark.parametrize("matrix", [BAYER_2X2, BAYER_4X4, BAYER_8X8, BAYER_16X16])
    def test_lookup_is_periodic(self, matrix):
        n = matrix.size
        for x in range(0, 2 * n + 3):
            for y in range(0, 2 * n + 3):
                expected = matrix.threshold_at(x, y)
                assert matrix.threshold_at(x + n, y) == expected
                assert matrix.threshold_at(x, y + n) == expected

    def test_lookup_uses_x_as_row_index(self):
        assert BAYER_2X2.threshold_at(1, 0) == 192
        assert BAYER_2X2.threshold_at(0, 1) == 128

    def test_tile_matches_lookup(self):
        tiled = BAYER_4X4.tile(width=11, height=7)

        assert tiled.shape == (7, 11)
        for y in range(7):
            for x in range(11):
                assert tiled[y, x] == BAYER_4X4.threshold_at(x, y)

    def test_tile_is_periodic(self):
        tiled = BAYER_8X8.tile(width=40, height=24)

        assert np.array_equal(tiled[:, :8], tiled[:, 8:16])
        assert np.array_equal(tiled[:8, :], tiled[8:16, :])
