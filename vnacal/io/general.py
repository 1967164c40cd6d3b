"""
.. module:: vnacal.io.general

========================================
general (:mod:`vnacal.io.general`)
========================================

Tabular export of calibration error terms.

Pandas dataframe
----------------------------------

.. autosummary::
   :toctree: generated/

   error_term_names
   calibration_2_dataframe

Spreadsheets
-----------------------------

.. autosummary::
   :toctree: generated/

   calibration_2_spreadsheet

"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import numpy as npy
from pandas import DataFrame, Series

from ..mathFunctions import complex_2_db, complex_2_degree


def _term_columns(cal) -> Dict[str, npy.ndarray]:
    """
    Return an ordered map from error-term name to its values over
    frequency, skipping cells without a term.
    """
    port_sep = '_' if cal.layout.ports > 9 else ''
    d = {}
    for name, values in cal.error_term_matrices().items():
        if values.ndim == 2:
            for i in range(values.shape[1]):
                d[f'{name}{i + 1}'] = values[:, i]
        else:
            for r in range(values.shape[1]):
                for c in range(values.shape[2]):
                    column = values[:, r, c]
                    if npy.all(npy.isnan(column)):
                        continue
                    d[f'{name}{r + 1}{port_sep}{c + 1}'] = column
    return d


def error_term_names(cal) -> List[str]:
    """
    Names of the error terms of a calibration, e.g. ``['ts1', 'ts2', ...]``.

    Vector blocks are numbered by element and matrix blocks by
    row and column, 1-based.
    """
    return list(_term_columns(cal).keys())


def calibration_2_dataframe(cal, form: str = 'complex') -> DataFrame:
    """
    Convert the error terms of a calibration to a pandas DataFrame.

    Parameters
    ----------
    cal : :class:`~vnacal.calibration.calibration.Calibration`
        solved calibration
    form : 'complex', 'db' or 'ri'
        * complex = one complex column per term
        * db = magnitude in dB and phase in degrees
        * ri = real and imaginary parts

    Returns
    -------
    df : pandas DataFrame Object
        indexed by frequency in Hz
    """
    form = form.lower()
    if form not in ('complex', 'db', 'ri'):
        raise ValueError('`form` must be either `complex`, `db`, `ri`')
    index = cal.frequency
    d = {}
    for name, values in _term_columns(cal).items():
        if form == 'complex':
            d[name] = Series(values, index=index)
        elif form == 'db':
            d[f'{name} Log Mag(dB)'] = Series(complex_2_db(values), index=index)
            d[f'{name} Phase(deg)'] = Series(complex_2_degree(values),
                                             index=index)
        else:
            d[f'{name} Real'] = Series(values.real, index=index)
            d[f'{name} Imag'] = Series(values.imag, index=index)
    df = DataFrame(d, index=index)
    df.index.name = 'Freq(Hz)'
    return df


def calibration_2_spreadsheet(cal, file_name: str | Path = None,
                              file_type: str = 'csv', form: str = 'db',
                              *args, **kwargs):
    r"""
    Write the error terms of a calibration to a spreadsheet.

    Parameters
    ----------
    cal : :class:`~vnacal.calibration.calibration.Calibration`
        the calibration to write
    file_name : str, Path or None
        the file_name to write. if None, cal.name is used.
    file_type : ['csv','excel','html']
        the type of file to write. See `pandas.DataFrame.to_???` functions.
    form : 'db','ri'
        format to write data, see :func:`calibration_2_dataframe`
    \*args, \*\*kwargs :
        passed to `pandas.DataFrame.to_???`  functions.
    """
    file_extns = {'csv': 'csv', 'excel': 'xlsx', 'html': 'html'}
    file_type = file_type.lower()
    if file_type not in file_extns.keys():
        raise ValueError('file_type must be `csv`,`html`,`excel` ')
    if cal.name is None and file_name is None:
        raise ValueError('Either cal must have name or give a file_name')
    if file_name is None:
        file_name = cal.name + '.' + file_extns[file_type]

    df = calibration_2_dataframe(cal, form=form)
    if file_type == 'csv':
        df.to_csv(file_name, *args, **kwargs)
    elif file_type == 'excel':
        df.to_excel(file_name, *args, **kwargs)
    else:
        df.to_html(file_name, *args, **kwargs)
