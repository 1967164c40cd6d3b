"""
.. currentmodule:: vnacal.constants

========================================
constants (:mod:`vnacal.constants`)
========================================

This module contains constants and numerical defaults used throughout
the calibration code.

.. data:: F_EXTRAPOLATION

    Fraction by which a frequency may fall outside of a calibration or
    standard's frequency range and still be accepted (0.01).

.. data:: MAX_M

    Maximum number of points used in the rational function interpolation
    window (5).

.. data:: MATCH, OPEN, SHORT

    Handles of the predefined parameters with reflection coefficients
    0, 1 and -1.

.. data:: ZERO, ONE

    Aliases of MATCH and OPEN used when building S matrices.

.. data:: CALIBRATION_TYPES

    Names of the supported error-term topologies.

"""
from __future__ import annotations

from numbers import Number
from typing import Sequence, Union

import numpy as npy

NumberLike = Union[Number, Sequence[Number], npy.ndarray]

# frequency extrapolation allowance
F_EXTRAPOLATION = 0.01

# rational function interpolation
MAX_M = 5
RFI_EPS = 1.0e-25

DEFAULT_Z0 = 50.0

# solver defaults
DEFAULT_ITERATION_LIMIT = 50
DEFAULT_P_TOLERANCE = 1.0e-6
RMS_ERROR_LIMIT = 6.0
MAX_BACKTRACK = 6

# 1/phi and 1/phi^2
PHI_INV = 0.61803398874989484820
PHI_INV2 = 0.38196601125010515180

# predefined parameter handles
MATCH = 0
OPEN = 1
SHORT = 2
ZERO = MATCH
ONE = OPEN

# file output precision, significant digits
DEFAULT_FPRECISION = 7
DEFAULT_DPRECISION = 6

CALIBRATION_TYPES = ('T8', 'U8', 'TE10', 'UE10', 'T16', 'U16', 'UE14', 'E12')
