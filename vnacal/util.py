"""

.. currentmodule:: vnacal.util
========================================
util (:mod:`vnacal.util`)
========================================

Holds utility functions that are general conveniences.


General
------------
.. autosummary::
   :toctree: generated/

   get_fid
   check_frequency_vector
   frequency_bounds
   check_frequency_range

"""
from __future__ import annotations

import os
from typing import Optional, Tuple

import numpy as npy

from .constants import F_EXTRAPOLATION, NumberLike
from .exceptions import ErrorFn, UsageError, raise_error


def get_fid(file, *args, **kwargs):
    r"""
    Returns a file object, given a filename or file object

    Useful when you want to allow the arguments of a function to
    be either files or filenames

    Parameters
    -------------
    file : str, os.PathLike or file-object
        file to open
    \*args, \*\*kwargs : arguments and keyword arguments to `open()`
    """
    if isinstance(file, (str, os.PathLike)):
        return open(file, *args, **kwargs)
    else:
        return file


def check_frequency_vector(frequency_vector: NumberLike, name: str = 'frequency',
                           error_fn: Optional[ErrorFn] = None) -> npy.ndarray:
    """
    Validate a frequency vector and return it as a float array.

    Frequencies must be finite, non-negative and strictly ascending.

    Raises
    ------
    UsageError
        if any of the conditions above is violated
    """
    fv = npy.array(frequency_vector, dtype=float).reshape(-1)
    if len(fv) < 1:
        raise_error(UsageError, f'{name} vector must have at least one entry',
                    error_fn)
    if not npy.all(npy.isfinite(fv)):
        raise_error(UsageError, f'{name} vector must be finite', error_fn)
    if fv[0] < 0.0:
        raise_error(UsageError, f'{name} vector must be non-negative',
                    error_fn)
    if npy.any(npy.diff(fv) <= 0.0):
        raise_error(UsageError, f'{name} vector must be strictly ascending',
                    error_fn)
    return fv


def frequency_bounds(fmin: float, fmax: float) -> Tuple[float, float]:
    """
    Return the range of frequencies accepted for data tabulated over
    [fmin, fmax], allowing for a small extrapolation.
    """
    return (1.0 - F_EXTRAPOLATION) * fmin, (1.0 + F_EXTRAPOLATION) * fmax


def check_frequency_range(frequency_vector: NumberLike, fmin: float,
                          fmax: float, what: str = 'calibration',
                          error_fn: Optional[ErrorFn] = None) -> None:
    """
    Raise UsageError if any frequency falls outside of [fmin, fmax]
    extended by the extrapolation allowance.
    """
    lower, upper = frequency_bounds(fmin, fmax)
    for f in npy.atleast_1d(frequency_vector):
        if f < lower or f > upper:
            raise_error(UsageError,
                        f'frequency {f:e} must be between {fmin:e} and '
                        f'{fmax:e} for {what}', error_fn)
