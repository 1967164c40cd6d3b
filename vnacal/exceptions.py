"""
.. currentmodule:: vnacal.exceptions

========================================
exceptions (:mod:`vnacal.exceptions`)
========================================

Exception classes raised by the calibration code. Every exception carries
a ``category`` string so that an optional error hook can dispatch on it.

.. autosummary::
   :toctree: generated/

   VnaCalError
   UsageError
   MathError
   FileSyntaxError
   VersionError
   raise_error

"""
from __future__ import annotations

from typing import Callable, Optional

__all__ = ['ErrorFn', 'VnaCalError', 'UsageError', 'MathError',
           'FileSyntaxError', 'VersionError', 'raise_error']

ErrorFn = Callable[[str, str], None]


class VnaCalError(Exception):
    """Base class of all calibration errors."""
    category = 'error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class UsageError(VnaCalError, ValueError):
    """Invalid argument, dimension, index or frequency."""
    category = 'usage'


class MathError(VnaCalError, ArithmeticError):
    """Singular system, failure to converge or too much measurement error."""
    category = 'math'


class FileSyntaxError(VnaCalError):
    """Malformed calibration file."""
    category = 'syntax'

    def __init__(self, message: str = '', filename: str = None, line: int = None):
        if filename is not None:
            if line is not None:
                message = f'{filename} ({line}): {message}'
            else:
                message = f'{filename}: {message}'
        super().__init__(message)
        self.filename = filename
        self.line = line


class VersionError(FileSyntaxError):
    """Unsupported calibration file version."""
    category = 'version'


def raise_error(exc_class: type, message: str,
                error_fn: Optional[ErrorFn] = None, **kwargs):
    """
    Notify the error hook, if any, then raise.

    Parameters
    ----------
    exc_class : type
        subclass of :class:`VnaCalError` to raise
    message : str
        error message
    error_fn : callable or None
        called as ``error_fn(category, message)`` before raising

    Raises
    ------
    exc_class
        always
    """
    exc = exc_class(message, **kwargs)
    if error_fn is not None:
        error_fn(exc.category, exc.message)
    raise exc
