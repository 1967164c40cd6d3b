"""
.. module:: vnacal.calibration.calibration

================================================================
calibration (:mod:`vnacal.calibration.calibration`)
================================================================

Solved calibrations.

A :class:`Calibration` holds the error terms of one error-term topology
over a frequency vector. It corrects raw measurements of a device under
test (:meth:`Calibration.apply`), and conversely predicts the raw
measurement of a known device (:meth:`Calibration.embed`).

Error terms are interpolated between calibration frequencies with
rational function interpolation. Frequencies up to 1% outside of the
calibration range are accepted with a warning.

.. autosummary::
   :toctree: generated/

   Calibration

"""
from __future__ import annotations

import copy
from typing import Dict, Optional
from warnings import warn

import numpy as npy

from .. import mathFunctions as mf
from ..constants import DEFAULT_Z0, NumberLike
from ..exceptions import ErrorFn, MathError, UsageError, raise_error
from ..interpolation import RationalInterpolator
from ..properties import Properties
from ..util import frequency_bounds
from .layout import make_layout


class Calibration:
    """
    Error terms of a solved calibration.

    Parameters
    ----------
    name : str or None
        name of the calibration within a
        :class:`~vnacal.calibration.calibrationSet.CalibrationSet`
    type : str
        error-term topology, e.g. 'TE10'
    rows, columns : int
        dimensions of the measurement matrix
    frequency_vector : array_like
        calibration frequencies in Hz
    z0 : complex
        reference impedance of the VNA ports
    error_terms : array_like
        (frequencies, error terms) complex array in the order given by
        :attr:`layout`
    properties : :class:`~vnacal.properties.Properties`, dict or None
        user metadata
    error_fn : callable or None
        error hook, called as ``error_fn(category, message)`` before an
        exception is raised

    Examples
    --------
    >>> cal = new_cal.solve()
    >>> s = cal.apply_m(f, m)
    >>> cal.get_error_term_matrix('el').shape
    (201, 2, 2)
    """
    def __init__(self, name: Optional[str], type: str, rows: int,
                 columns: int, frequency_vector: NumberLike,
                 z0: complex = DEFAULT_Z0, error_terms=None,
                 properties=None, error_fn: Optional[ErrorFn] = None):
        self.error_fn = error_fn
        try:
            self.layout = make_layout(type, rows, columns)
        except UsageError as e:
            raise_error(UsageError, e.message, error_fn)
        self.name = name
        self.type = self.layout.name
        self.rows = self.layout.rows
        self.columns = self.layout.columns
        self._frequency = npy.array(frequency_vector, dtype=float).reshape(-1)
        self.z0 = complex(z0)
        error_terms = npy.array(error_terms, dtype=complex)
        expected = (len(self._frequency), self.layout.error_terms)
        if error_terms.shape != expected:
            raise_error(UsageError, f'error_terms must have shape {expected}',
                        error_fn)
        self._error_terms = error_terms
        self._error_terms.flags.writeable = False
        self._frequency.flags.writeable = False
        self.properties = Properties(properties)

    def __str__(self) -> str:
        name = '' if self.name is None else self.name
        return (f'{self.type} Calibration: \'{name}\', {self.rows}x'
                f'{self.columns}, {self.fmin:.3e}-{self.fmax:.3e} Hz, '
                f'{self.nfreqs} pts')

    def __repr__(self) -> str:
        return self.__str__()

    def copy(self, name: Optional[str] = None) -> 'Calibration':
        """
        Return a copy, optionally under a new name.
        """
        result = copy.copy(self)
        result.properties = Properties(self.properties)
        if name is not None:
            result.name = name
        return result

    @property
    def frequency(self) -> npy.ndarray:
        """
        Calibration frequencies in Hz.
        """
        return self._frequency

    @property
    def fmin(self) -> float:
        return float(self._frequency[0])

    @property
    def fmax(self) -> float:
        return float(self._frequency[-1])

    @property
    def nfreqs(self) -> int:
        return len(self._frequency)

    @property
    def error_terms(self) -> npy.ndarray:
        """
        (frequencies, error terms) array; read-only.
        """
        return self._error_terms

    def get_error_term_matrix(self, name: str) -> npy.ndarray:
        """
        Return one named block of error terms at every frequency.

        Parameters
        ----------
        name : str
            block name, as listed by ``layout.matrix_names()``

        Returns
        -------
        values : npy.ndarray
            (frequencies, ...) array. Leakage matrices hold NaN in cells
            without a term.
        """
        if name not in self.layout.matrix_names():
            raise_error(UsageError, f'{self.type}: no error term matrix '
                        f'{name!r}', self.error_fn)
        return npy.array([self.layout.matrices(e)[name]
                          for e in self._error_terms])

    def error_term_matrices(self) -> Dict[str, npy.ndarray]:
        """
        Return all named blocks, see :meth:`get_error_term_matrix`.
        """
        return {name: self.get_error_term_matrix(name)
                for name in self.layout.matrix_names()}

    # interpolation
    def _check_frequencies(self, function, frequency_vector):
        fv = npy.array(frequency_vector, dtype=float).reshape(-1)
        if not npy.all(npy.isfinite(fv)):
            raise_error(UsageError, f'{function}: frequencies must be finite',
                        self.error_fn)
        lower, upper = frequency_bounds(self.fmin, self.fmax)
        outside = (fv < lower) | (fv > upper)
        if npy.any(outside):
            f = fv[outside][0]
            raise_error(UsageError,
                        f'{function}: frequency {f:e} is outside of the '
                        f'calibration range {self.fmin:e}..{self.fmax:e}',
                        self.error_fn)
        if npy.any((fv < self.fmin) | (fv > self.fmax)):
            warn(f'{function}: frequencies outside of the calibration range '
                 f'{self.fmin:e}..{self.fmax:e} use the nearest error terms',
                 RuntimeWarning, stacklevel=3)
        return fv

    def _interpolated_terms(self, frequency_vector):
        interpolator = RationalInterpolator(self._frequency, self._error_terms)
        return [npy.asarray(interpolator(f)) for f in frequency_vector]

    def _fmatrix(self, function, value, nf, name):
        value = npy.array(value, dtype=complex)
        if value.ndim == 2 and nf == 1:
            value = value.reshape((1,) + value.shape)
        elif value.ndim == 1 and len(value) == nf:
            value = value.reshape(nf, 1, 1)
        elif value.ndim == 0 and nf == 1:
            value = value.reshape(1, 1, 1)
        if value.ndim != 3 or value.shape[0] != nf:
            raise_error(UsageError, f'{function}: {name} must have shape '
                        f'({nf}, rows, columns)', self.error_fn)
        return value

    # applier
    def apply(self, frequency_vector: NumberLike, b, a=None) -> npy.ndarray:
        """
        Correct a measurement given as reflected and incident waves.

        Parameters
        ----------
        frequency_vector : array_like
            frequencies of the measurement in Hz
        b : array_like
            (frequencies, ports, ports) waves entering the detectors
        a : array_like or None
            waves leaving the VNA ports: (frequencies, 1, ports) for UE14
            and E12, (frequencies, ports, ports) otherwise. If None, `b`
            is taken to be already normalized.

        Returns
        -------
        s : npy.ndarray
            (frequencies, ports, ports) corrected S-parameters

        Raises
        ------
        UsageError
            for bad shapes, or frequencies outside of the calibration
            range by more than the extrapolation allowance
        MathError
            if the correction is singular at any frequency

        Notes
        -----
        For the 1x2 and 2x1 calibrations, the measurement is 2x2: the
        first row (1x2) or column (2x1) comes from the forward sweep and
        the other from a sweep with the device's ports swapped.
        """
        return self._apply('apply', frequency_vector, b, a)

    def apply_m(self, frequency_vector: NumberLike, m) -> npy.ndarray:
        """
        Correct a measurement given as a normalized matrix M.

        See :meth:`apply`.
        """
        return self._apply('apply_m', frequency_vector, m, None, 'm')

    def _apply(self, function, frequency_vector, b, a, b_name='b'):
        fv = self._check_frequencies(function, frequency_vector)
        nf = len(fv)
        ports = self.layout.ports
        if self.rows != self.columns and not self.layout.is_degenerate:
            raise_error(UsageError, f'{function}: cannot apply a '
                        f'{self.rows}x{self.columns} calibration',
                        self.error_fn)
        b = self._fmatrix(function, b, nf, b_name)
        if b.shape[1:] != (ports, ports):
            raise_error(UsageError, f'{function}: {b_name} must be '
                        f'{ports}x{ports}', self.error_fn)
        per_column = self.layout.per_column
        if a is not None:
            a = self._fmatrix(function, a, nf, 'a')
            a_shape = (1, ports) if per_column else (ports, ports)
            if a.shape[1:] != a_shape:
                raise_error(UsageError, f"{function}: 'a' matrix must be "
                            f'{a_shape[0]} x {a_shape[1]}', self.error_fn)

        result = npy.empty((nf, ports, ports), dtype=complex)
        for findex, (f, e) in enumerate(zip(fv, self._interpolated_terms(fv))):
            m = b[findex]
            if a is not None:
                if per_column:
                    if npy.any(a[findex, 0, :] == 0.0):
                        raise_error(MathError, f"{function}: 'a' matrix is "
                                    f'singular at {f:e} Hz', self.error_fn)
                    m = m / a[findex, 0, :]
                else:
                    m, det = mf.mrdivide(m, a[findex])
                    if mf.is_singular(det):
                        raise_error(MathError, f"{function}: 'a' matrix is "
                                    f'singular at {f:e} Hz', self.error_fn)
            with npy.errstate(divide='ignore', invalid='ignore'):
                s, det = self.layout.apply_m(e, m)
            if mf.is_singular(det) or not npy.all(npy.isfinite(s)):
                raise_error(MathError, f'{function}: singular correction at '
                            f'{f:e} Hz', self.error_fn)
            result[findex] = s
        return result

    def embed(self, s, frequency_vector: Optional[NumberLike] = None
              ) -> npy.ndarray:
        """
        Predict the raw measurement of a device.

        Parameters
        ----------
        s : array_like
            (frequencies, ports, ports) S-parameters of the device
        frequency_vector : array_like or None
            frequencies of `s`; the calibration frequencies if None

        Returns
        -------
        m : npy.ndarray
            (frequencies, rows, columns) measurement, or (frequencies, 2,
            2) for the 1x2 and 2x1 calibrations, made of a forward and a
            port-swapped sweep as :meth:`apply_m` expects
        """
        if frequency_vector is None:
            fv = self._frequency
            terms = list(self._error_terms)
        else:
            fv = self._check_frequencies('embed', frequency_vector)
            terms = self._interpolated_terms(fv)
        s = self._fmatrix('embed', s, len(fv), 's')
        ports = self.layout.ports
        if s.shape[1:] != (ports, ports):
            raise_error(UsageError, f'embed: s must be {ports}x{ports}',
                        self.error_fn)
        layout = self.layout
        forward = layout.embed_full if layout.is_degenerate else layout.embed
        with npy.errstate(divide='ignore', invalid='ignore'):
            return npy.array([forward(e, s_f) for e, s_f in zip(terms, s)])

    # export
    def to_dataframe(self):
        """
        Return the error terms as a :class:`pandas.DataFrame`.

        See Also
        --------
        vnacal.io.general.calibration_2_dataframe
        """
        from ..io.general import calibration_2_dataframe
        return calibration_2_dataframe(self)

    def plot_error_terms(self, *args, **kwargs):
        """
        Plot the error terms versus frequency.

        See Also
        --------
        vnacal.plotting.plot_error_terms
        """
        from ..plotting import plot_error_terms
        return plot_error_terms(self, *args, **kwargs)
