"""
Data input normalization for mediation model fitting.

Converts various input formats (2D numpy array, pandas DataFrame, dict)
into a pandas DataFrame and resolves variable selections given by name
or by column position.
"""

from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd


def normalize_data_input(data, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Convert user-supplied data into a DataFrame with column names.

    Accepted inputs:
        - pandas DataFrame: used as-is (copied)
        - dict of {name: array}: keys become column names
        - 2D numpy array or nested list: columns auto-named ``column_1``,
          ``column_2``, ... unless *columns* is given

    Args:
        data: Raw data in any supported format.
        columns: Optional explicit column names (only used for array input).

    Returns:
        A DataFrame holding the data.

    Raises:
        TypeError: If *data* is an unsupported type.
        ValueError: If *columns* length doesn't match array width.
    """
    if isinstance(data, pd.DataFrame):
        return data.copy()

    if isinstance(data, dict):
        return pd.DataFrame({name: np.asarray(values) for name, values in data.items()})

    if isinstance(data, (list, np.ndarray)):
        arr = np.asarray(data)
        if arr.ndim != 2:
            raise ValueError(f"data must be two-dimensional, got {arr.ndim} dimension(s)")
        if columns is None:
            columns = [f"column_{i + 1}" for i in range(arr.shape[1])]
        if len(columns) != arr.shape[1]:
            raise ValueError(f"columns length ({len(columns)}) must match data columns ({arr.shape[1]})")
        return pd.DataFrame(arr, columns=list(columns))

    raise TypeError("data must be a numpy array, list, pandas DataFrame, or dict")


def resolve_columns(selection: Union[None, str, int, Sequence[Any]], columns: Sequence[str]) -> List[str]:
    """Translate a variable selection into a list of column names.

    Integers are interpreted as 0-based column positions, strings as
    names, and a boolean mask of the same length as *columns* selects
    the flagged columns.
    """
    if selection is None:
        return []
    if isinstance(selection, (str, int, np.integer)):
        selection = [selection]

    selection = list(selection)
    if selection and all(isinstance(s, (bool, np.bool_)) for s in selection):
        if len(selection) != len(columns):
            raise ValueError("logical selection must have one entry per data column")
        return [col for col, keep in zip(columns, selection) if keep]

    names = []
    for item in selection:
        if isinstance(item, (int, np.integer)):
            if not 0 <= item < len(columns):
                raise ValueError(f"column index {item} out of range for data with {len(columns)} columns")
            names.append(columns[item])
        else:
            names.append(item)
    return names


def resolve_column(selection: Any, columns: Sequence[str], role: str) -> Any:
    """Resolve a selection that must refer to exactly one column."""
    names = resolve_columns(selection, columns)
    if len(names) != 1:
        raise ValueError(f"{role} must specify exactly one variable, got {len(names)}")
    return names[0]
