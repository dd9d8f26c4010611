"""
Parameter adapters package.

- type_conversion: Normalization of NumPy, Pandas and PyArrow values into
  built-in Python values before literal rendering

Type conversion principles:
1. Database -> Python: Handled by the row decoder (dbquery.row)
2. Python -> Database: Handled by TypeConverter, then rendered by the
   dialect strategy during formatting
"""
from dbquery.adapters.type_conversion import TypeConverter

__all__ = ['TypeConverter']
