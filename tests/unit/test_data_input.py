"""
Tests for data input normalization and variable selection.
"""

import numpy as np
import pandas as pd
import pytest

from robmed.utils.data import normalize_data_input, resolve_column, resolve_columns


class TestNormalizeDataInput:
    """Test normalize_data_input function."""

    def test_dataframe_copied(self):
        df = pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]})
        out = normalize_data_input(df)
        assert list(out.columns) == ["x", "y"]
        out.loc[0, "x"] = 99.0
        assert df.loc[0, "x"] == 1.0

    def test_dict(self):
        out = normalize_data_input({"a": [1, 2, 3], "b": [4, 5, 6]})
        assert list(out.columns) == ["a", "b"]
        assert len(out) == 3

    def test_array_auto_names(self):
        out = normalize_data_input(np.zeros((5, 3)))
        assert list(out.columns) == ["column_1", "column_2", "column_3"]

    def test_array_explicit_names(self):
        out = normalize_data_input(np.zeros((5, 2)), columns=["x", "y"])
        assert list(out.columns) == ["x", "y"]

    def test_array_wrong_names_length(self):
        with pytest.raises(ValueError, match="columns length"):
            normalize_data_input(np.zeros((5, 2)), columns=["x"])

    def test_one_dimensional_rejected(self):
        with pytest.raises(ValueError, match="two-dimensional"):
            normalize_data_input(np.zeros(5))

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            normalize_data_input("data.csv")


class TestResolveColumns:
    """Test variable selection by name, position and mask."""

    COLUMNS = ["x", "y", "m1", "m2"]

    def test_none(self):
        assert resolve_columns(None, self.COLUMNS) == []

    def test_single_name(self):
        assert resolve_columns("m1", self.COLUMNS) == ["m1"]

    def test_positions(self):
        assert resolve_columns([2, 3], self.COLUMNS) == ["m1", "m2"]

    def test_numpy_integer(self):
        assert resolve_columns(np.int64(1), self.COLUMNS) == ["y"]

    def test_boolean_mask(self):
        assert resolve_columns([False, False, True, True], self.COLUMNS) == ["m1", "m2"]

    def test_boolean_mask_wrong_length(self):
        with pytest.raises(ValueError, match="one entry per data column"):
            resolve_columns([True, False], self.COLUMNS)

    def test_position_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            resolve_columns(7, self.COLUMNS)

    def test_unknown_names_passed_through(self):
        assert resolve_columns(["z"], self.COLUMNS) == ["z"]

    def test_resolve_single_column(self):
        assert resolve_column(0, self.COLUMNS, "x") == "x"

    def test_resolve_single_column_rejects_several(self):
        with pytest.raises(ValueError, match="exactly one variable"):
            resolve_column(["x", "y"], self.COLUMNS, "x")
