"""
Data loaders turning decoded rows into frames.

A data loader is called with the decoded rows (a list of dicts keyed by
column name) and the query's field descriptors.
"""
from collections.abc import Sequence
from typing import Any

import pandas as pd
import pyarrow as pa
from dbquery.types import Field

__all__ = [
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]


def _column_types(fields: Sequence[Field]) -> dict[str, dict[str, Any]]:
    return {
        f.name: {'type_code': f.type_code, 'is_temporal': f.is_temporal}
        for f in fields
    }


def iterdict_data_loader(data, fields, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def _empty_dataframe(fields) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    df = pd.DataFrame(columns=[f.name for f in fields])
    df.attrs['column_types'] = _column_types(fields)
    return df


def pandas_numpy_data_loader(data, fields, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty
    results. Includes type information in the DataFrame.attrs attribute.
    """
    if not data:
        return _empty_dataframe(fields)

    df = pd.DataFrame.from_records(list(data), columns=[f.name for f in fields])
    df.attrs['column_types'] = _column_types(fields)
    return df


def pandas_pyarrow_data_loader(data, fields, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty
    results.
    """
    if not data:
        return _empty_dataframe(fields)

    column_names = [f.name for f in fields]
    columns_data = [[row[col] for row in data] for col in column_names]
    df = pa.table(columns_data, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = _column_types(fields)
    return df
