"""
.. module:: vnacal.io
========================================
io (:mod:`vnacal.io`)
========================================


This Package provides functions for input/output.

Calibration sets are saved and loaded through
:meth:`~vnacal.calibration.calibrationSet.CalibrationSet.save` and
:meth:`~vnacal.calibration.calibrationSet.CalibrationSet.load`, which use
:mod:`~vnacal.io.calfile`. Error terms can be exported to pandas with
:mod:`~vnacal.io.general`.


.. automodule:: vnacal.io.calfile
.. automodule:: vnacal.io.general


"""

from .calfile import format_complex, parse_complex, read_calfile, write_calfile
from .general import (calibration_2_dataframe, calibration_2_spreadsheet,
                      error_term_names)

__all__ = ['read_calfile', 'write_calfile', 'format_complex', 'parse_complex',
           'calibration_2_dataframe', 'calibration_2_spreadsheet',
           'error_term_names']
