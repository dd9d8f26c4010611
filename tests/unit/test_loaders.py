import pandas as pd
import pytest
from dbquery.loaders import iterdict_data_loader, pandas_numpy_data_loader
from dbquery.loaders import pandas_pyarrow_data_loader
from dbquery.types import Field

FIELDS = [Field(name='name', type_code=253), Field(name='age', type_code=3)]
DATA = [{'name': 'Alice', 'age': 30}, {'name': 'Bob', 'age': 25}]


def test_pandas_numpy_data_loader():
    """Test pandas_numpy_data_loader function"""
    result = pandas_numpy_data_loader(DATA, FIELDS)
    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == ['name', 'age']
    assert len(result) == 2
    assert result.iloc[0]['name'] == 'Alice'
    assert result.iloc[1]['age'] == 25
    assert result.attrs['column_types']['age'] == {'type_code': 3, 'is_temporal': False}


@pytest.mark.skipif(
    not hasattr(pd, 'ArrowDtype'),
    reason='ArrowDtype not available in this pandas version'
)
def test_pandas_pyarrow_data_loader():
    """Test pandas_pyarrow_data_loader function"""
    result = pandas_pyarrow_data_loader(DATA, FIELDS)
    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == ['name', 'age']
    assert len(result) == 2
    assert result.iloc[0]['name'] == 'Alice'
    assert result.iloc[1]['age'] == 25
    assert isinstance(result['age'].dtype, pd.ArrowDtype)


@pytest.mark.parametrize('loader', [pandas_numpy_data_loader, pandas_pyarrow_data_loader])
def test_empty_result_keeps_columns(loader):
    """Test empty results still carry their columns"""
    result = loader([], FIELDS)
    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == ['name', 'age']
    assert len(result) == 0
    assert set(result.attrs['column_types']) == {'name', 'age'}


def test_iterdict_data_loader():
    """Test the minimal loader returns the rows unchanged"""
    assert iterdict_data_loader(DATA, FIELDS) == DATA
    assert iterdict_data_loader([], FIELDS) == []


if __name__ == '__main__':
    __import__('pytest').main([__file__])
