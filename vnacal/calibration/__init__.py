"""
.. module:: vnacal.calibration

========================================
calibration (:mod:`vnacal.calibration`)
========================================

This package provides the VNA calibration engine: error-term layouts,
standard parameters, the calibration builder and solver, and solved
calibrations.

.. autosummary::
   :toctree: generated/

   layout
   parameter
   newCalibration
   solver
   calibration
   calibrationSet

"""

from . import layout, parameter
from .calibration import Calibration
from .calibrationSet import CalibrationSet
from .layout import LAYOUTS, Layout, make_layout
from .newCalibration import NewCalibration
from .parameter import CalkitStandard, DataStandard, ParameterCollection

__all__ = ['Calibration', 'CalibrationSet', 'NewCalibration', 'Layout',
           'LAYOUTS', 'make_layout', 'ParameterCollection', 'CalkitStandard',
           'DataStandard']
