"""
Type conversion utilities for query parameters.

This module handles the conversion of Python values to plain built-in values
before they are rendered into a command (Python -> Database direction only).

It provides:
1. A TypeConverter class for direct parameter conversion
2. NumPy NaN, NaT and pandas NA handling: such values are sent as NULL
3. Support for NumPy, Pandas, and PyArrow scalar types

Usage:
    value = TypeConverter.convert_value(np.int64(5))  # -> 5
"""
import logging
import math
from typing import Any

import numpy as np
import pandas as pd
import pyarrow as pa

logger = logging.getLogger(__name__)


def _convert_numpy_value(val: Any) -> Any:
    """
    Convert NumPy scalar value to Python type.

    Handles floating, integer, boolean and datetime64 scalars, including NaN
    and NaT which become None.

    Args:
        val: NumPy value to convert

    Returns
        Converted Python value or None
    """
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        logger.debug(f'Converting np.datetime64 to Python datetime: {val}')
        return val.astype('datetime64[us]').item()

    return val.item()


def _convert_pyarrow_value(value: pa.Scalar) -> Any:
    """
    Convert PyArrow scalar to Python type.

    Args:
        value: PyArrow scalar to convert

    Returns
        Converted Python value or None
    """
    if not value.is_valid:
        return None
    return TypeConverter.convert_value(value.as_py())


def _convert_element(value: Any) -> Any:
    """Convert one array element; NaN marks a missing value inside arrays."""
    if isinstance(value, float) and math.isnan(value):
        return None
    return TypeConverter.convert_value(value)


class TypeConverter:
    """Universal type conversion for query parameters"""

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a built-in Python value

        Args:
            value: Any Python value to convert

        Returns
            Converted value suitable for literal rendering
        """
        if value is None:
            return None

        # NumPy scalar types (float, int, bool, datetime64)
        if isinstance(value, np.generic):
            return _convert_numpy_value(value)

        # Pandas missing-value singletons
        if value is pd.NaT or value is pd.NA:
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, pd.Timedelta):
            return value.to_pytimedelta()

        # PyArrow scalar handling
        if isinstance(value, pa.Scalar):
            return _convert_pyarrow_value(value)

        # Array-likes become lists of built-in values
        if isinstance(value, np.ndarray | pd.Series | pd.Index):
            return [_convert_element(v) for v in value.tolist()]

        if isinstance(value, pa.Array | pa.ChunkedArray):
            return [_convert_element(v) for v in value.to_pylist()]

        return value

