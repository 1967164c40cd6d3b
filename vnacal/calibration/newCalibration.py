"""
.. module:: vnacal.calibration.newCalibration

================================================================
newCalibration (:mod:`vnacal.calibration.newCalibration`)
================================================================

Builder for a new calibration.

A :class:`NewCalibration` collects measured standards, each given as a
measured matrix and a matrix of parameter handles describing the
standard's S-parameters, then solves for the error terms of the chosen
topology.

Standards that cover only some of the VNA ports are placed through a
port map. Cells of S between a connected and an unconnected port are
taken to be zero, as are the off-diagonal cells of reflect standards.

.. autosummary::
   :toctree: generated/

   NewCalibration

Examples
--------
>>> from vnacal.constants import SHORT, OPEN, MATCH
>>> with NewCalibration('E12', 2, 2, frequency_vector) as new_cal:
...     new_cal.add_double_reflect(None, m_short, SHORT, SHORT, 1, 2)
...     new_cal.add_double_reflect(None, m_open, OPEN, OPEN, 1, 2)
...     new_cal.add_double_reflect(None, m_load, MATCH, MATCH, 1, 2)
...     new_cal.add_through(None, m_through, 1, 2)
...     cal = new_cal.solve()

"""
from __future__ import annotations

import logging
from collections import namedtuple
from typing import List, Optional, Sequence

import numpy as npy

from .. import mathFunctions as mf
from ..constants import (DEFAULT_ITERATION_LIMIT, DEFAULT_P_TOLERANCE,
                         DEFAULT_Z0, F_EXTRAPOLATION, ONE, ZERO, NumberLike)
from ..exceptions import ErrorFn, MathError, UsageError, raise_error
from ..interpolation import NaturalSpline
from ..util import check_frequency_vector, frequency_bounds
from .layout import E12UE14Layout, make_layout
from .parameter import CorrelatedParameter, Parameter, ParameterCollection

logger = logging.getLogger(__name__)

#: one measured standard.
#:
#: `m` is the (frequencies, rows, columns) measurement with NaN in cells
#: not measured; `s` is the row-major list of the full S matrix cells,
#: each a :class:`Parameter` or None when nothing is known about it;
#: `reachable` tells, for layouts without full error-term matrices,
#: which cells of S may be non-zero through any chain of cells.
Measurement = namedtuple('Measurement',
                         ['m', 'm_given', 's', 'reachable'])

#: one linear equation contributed by a standard
Equation = namedtuple('Equation',
                      ['measurement', 'row', 'column', 'system', 'terms'])


class NewCalibration:
    """
    Collects standards and solves for the error terms of a calibration.

    Parameters
    ----------
    type : str
        error-term topology: 'T8', 'U8', 'TE10', 'UE10', 'T16', 'U16',
        'UE14' or 'E12'
    rows, columns : int
        dimensions of the measurement matrix. T types need
        rows <= columns; U types need rows >= columns.
    frequencies : int or array_like
        number of calibration frequencies, or the frequency vector itself
    parameters : :class:`ParameterCollection` or None
        collection the parameter handles refer to; a new one is made if
        not given
    error_fn : callable or None
        error hook, called as ``error_fn(category, message)`` before an
        exception is raised

    Attributes
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
        layout of the error terms produced
    calibration : :class:`~vnacal.calibration.calibration.Calibration`
        result of the last :meth:`solve`, or None
    rms_error : npy.ndarray or None
        per-frequency RMS of the weighted residuals; set by :meth:`solve`
        when the measurement error has been given

    Notes
    -----
    The builder holds a reference on every parameter it uses until
    :meth:`close` is called, so that parameters deleted from the
    collection in the meantime stay valid. Use it as a context manager to
    release them automatically.
    """
    def __init__(self, type: str, rows: int, columns: int,
                 frequencies, parameters: Optional[ParameterCollection] = None,
                 error_fn: Optional[ErrorFn] = None):
        self.error_fn = error_fn
        if rows < 1 or columns < 1:
            self._error(UsageError, 'calibration matrix must be at least 1x1')
        try:
            self.layout = make_layout(type, rows, columns)
        except UsageError as e:
            self._error(UsageError, e.message)
        self.type = self.layout.name
        self.rows = self.layout.rows
        self.columns = self.layout.columns
        if self.type == 'E12':
            self.solve_layout = E12UE14Layout(rows, columns)
        else:
            self.solve_layout = self.layout

        self.frequency_vector = None
        if npy.ndim(frequencies) == 0:
            if int(frequencies) < 1:
                self._error(UsageError,
                            'number of frequencies must be at least 1')
            self.frequencies = int(frequencies)
        else:
            fv = check_frequency_vector(frequencies, 'frequency', error_fn)
            self.frequencies = len(fv)
            self.frequency_vector = fv

        self.parameters = (parameters if parameters is not None
                           else ParameterCollection(error_fn))
        self.z0 = DEFAULT_Z0
        self.m_error = None
        self.iteration_limit = DEFAULT_ITERATION_LIMIT
        self.p_tolerance = DEFAULT_P_TOLERANCE
        self.pvalue_limit = None

        self.measurements: List[Measurement] = []
        self.equations: List[List[Equation]] = [
            [] for _ in range(self.solve_layout.systems)]
        self.unknowns: List[Parameter] = []
        self.correlated: List[CorrelatedParameter] = []
        self._held: List[Parameter] = []
        self.zero = self._use_parameter(ZERO)

        self.calibration = None
        self.rms_error = None

    def __repr__(self) -> str:
        return (f'<NewCalibration {self.type} {self.rows}x{self.columns}, '
                f'{self.frequencies} frequencies, '
                f'{len(self.measurements)} standards>')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def _error(self, exc_class, message):
        raise_error(exc_class, message, self.error_fn)

    def close(self) -> None:
        """
        Release the parameters held by this builder.
        """
        held, self._held = self._held, []
        for parameter in held:
            self.parameters.release(parameter)

    # parameter bookkeeping
    def _check_parameter_range(self, function: str, parameter: Parameter):
        if self.frequency_vector is None:
            return
        fmin, fmax = parameter.frequency_range()
        lower, upper = frequency_bounds(fmin, fmax)
        if self.frequency_vector[0] < lower or self.frequency_vector[-1] > upper:
            self._error(UsageError,
                        f'{function}: frequency range '
                        f'{self.frequency_vector[0]:.3e}..'
                        f'{self.frequency_vector[-1]:.3e} is outside of the '
                        f'range {fmin:.3e}..{fmax:.3e} of '
                        f'{parameter.describe()}')

    def _use_parameter(self, handle) -> Parameter:
        parameter = self.parameters.get(handle)
        if any(parameter is held for held in self._held):
            return parameter
        self.parameters.hold(parameter)
        self._held.append(parameter)
        if parameter.is_unknown:
            self.unknowns.append(parameter)
            if isinstance(parameter, CorrelatedParameter):
                self.correlated.append(parameter)
            self._use_parameter(parameter.other)
        return parameter

    def unknown_index(self, parameter: Parameter) -> int:
        """
        Return the index of an unknown parameter in the solver's p vector.
        """
        for index, unknown in enumerate(self.unknowns):
            if unknown is parameter:
                return index
        return -1

    # settings
    def set_frequency_vector(self, frequency_vector: NumberLike) -> None:
        """
        Set the calibration frequencies.

        Parameters
        ----------
        frequency_vector : array_like
            non-negative, ascending frequencies, one per measurement
            frequency given at construction
        """
        fv = check_frequency_vector(frequency_vector, 'frequency',
                                    self.error_fn)
        if len(fv) != self.frequencies:
            self._error(UsageError, f'set_frequency_vector: expected '
                        f'{self.frequencies} frequencies; got {len(fv)}')
        self.frequency_vector = fv
        for parameter in self._held:
            self._check_parameter_range('set_frequency_vector', parameter)

    def set_z0(self, z0: complex) -> None:
        """
        Set the reference impedance of the VNA ports (default 50 ohms).
        """
        self.z0 = complex(z0)

    def set_m_error(self, frequency_vector: Optional[NumberLike],
                    noise_error_vector: Optional[NumberLike],
                    tracking_error_vector: Optional[NumberLike] = None) -> None:
        """
        Give the standard deviation of the measurement error.

        Knowing the measurement error makes the solver weight the
        equations, report the RMS error and reject solutions that do not
        fit the measurements.

        Parameters
        ----------
        frequency_vector : array_like or None
            frequencies of the error vectors. If None, the vectors must
            have a single entry or one per calibration frequency.
        noise_error_vector : array_like or None
            noise floor; positive. Required on the first call; None keeps
            the previous value.
        tracking_error_vector : array_like or None
            error proportional to the measured magnitude; non-negative.
            None means zero.

        Raises
        ------
        UsageError
            for invalid vectors, or if the calibration frequency vector
            has not been given yet
        """
        function = 'set_m_error'
        if self.frequency_vector is None:
            self._error(UsageError, f'{function}: calibration frequency '
                        'vector must be given first')
        if noise_error_vector is None:
            if self.m_error is None:
                self._error(UsageError,
                            f'{function}: noise_error_vector must be given')
            noise = None
        else:
            noise = npy.array(noise_error_vector, dtype=float).reshape(-1)
            if npy.any(noise <= 0.0):
                self._error(UsageError, f'{function}: noise error values '
                            'must be positive')
        if tracking_error_vector is None:
            tracking = npy.zeros(1)
        else:
            tracking = npy.array(tracking_error_vector, dtype=float).reshape(-1)
            if npy.any(tracking < 0.0):
                self._error(UsageError, f'{function}: tracking error values '
                            'must be non-negative')
        lengths = {len(v) for v in (noise, tracking) if v is not None}
        if min(lengths) < 1:
            self._error(UsageError,
                        f'{function}: at least one frequency must be given')

        fv = self.frequency_vector
        if frequency_vector is not None:
            efv = check_frequency_vector(frequency_vector, 'm_error frequency',
                                         self.error_fn)
            if efv[0] > fv[0] * (1.0 + F_EXTRAPOLATION) \
                    or efv[-1] < fv[-1] * (1.0 - F_EXTRAPOLATION):
                self._error(UsageError,
                            f'{function}: frequency range {efv[0]:.3e}..'
                            f'{efv[-1]:.3e} does not cover the calibration '
                            f'range {fv[0]:.3e}..{fv[-1]:.3e}')
        else:
            efv = None

        def resample(v):
            if len(v) == 1:
                return npy.full(len(fv), v[0])
            if efv is None:
                if len(v) != len(fv):
                    self._error(UsageError,
                                f'{function}: without a frequency vector, the '
                                f'error vectors must have 1 or {len(fv)} '
                                'entries')
                return v.copy()
            if len(v) != len(efv):
                self._error(UsageError, f'{function}: error vectors must have '
                            f'{len(efv)} entries')
            return npy.asarray(NaturalSpline(efv, v)(fv), dtype=float)

        m_error = npy.empty((len(fv), 2))
        m_error[:, 0] = (resample(noise) if noise is not None
                         else self.m_error[:, 0])
        m_error[:, 1] = resample(tracking)
        self.m_error = m_error

    def set_iteration_limit(self, iteration_limit: int) -> None:
        """
        Set the maximum number of iterations of the iterative solver.
        """
        if int(iteration_limit) < 1:
            self._error(UsageError, 'set_iteration_limit: iteration_limit '
                        'must be at least 1')
        self.iteration_limit = int(iteration_limit)

    def set_p_tolerance(self, p_tolerance: float) -> None:
        """
        Set the RMS change of the unknown parameters at which the
        iterative solver stops.
        """
        if not p_tolerance >= 0.0:
            self._error(UsageError, 'set_p_tolerance: p_tolerance must be '
                        'non-negative')
        self.p_tolerance = float(p_tolerance)

    def set_pvalue_limit(self, pvalue_limit: float) -> None:
        """
        Reject solutions whose chi-squared p-value falls below
        `pvalue_limit`.

        Only used when the measurement error has been given.
        """
        if not 0.0 < pvalue_limit <= 1.0:
            self._error(UsageError, 'set_pvalue_limit: pvalue_limit must be '
                        'in (0, 1]')
        self.pvalue_limit = float(pvalue_limit)

    # adding standards
    def _fmatrix(self, function: str, value, name: str) -> npy.ndarray:
        value = npy.array(value, dtype=complex)
        nf = self.frequencies
        if value.ndim == 0 and nf == 1:
            value = value.reshape(1, 1, 1)
        elif value.ndim == 1 and len(value) == nf:
            value = value.reshape(nf, 1, 1)
        elif value.ndim == 2 and nf == 1:
            value = value.reshape((1,) + value.shape)
        if value.ndim != 3 or value.shape[0] != nf or 0 in value.shape:
            self._error(UsageError, f'{function}: {name} must have shape '
                        f'({nf}, rows, columns)')
        return value

    def _shape_message(self, function, name, what, minimum, full):
        if minimum >= full:
            self._error(UsageError, f'{function}: {name}_{what} must be {full}')
        self._error(UsageError,
                    f'{function}: {name}_{what} must be {minimum} or {full}')

    def _add_common(self, function: str, a, b, s, port_map=None,
                    s_is_diagonal: bool = False, b_name: str = 'b') -> None:
        layout = self.solve_layout
        nf = self.frequencies
        full_m_rows, full_m_columns = layout.m_rows, layout.m_columns
        full_s_rows, full_s_columns = layout.s_rows, layout.s_columns
        full_s_ports = max(full_s_rows, full_s_columns)

        # S matrix
        s = npy.array(s, dtype=object)
        if s_is_diagonal:
            s = s.reshape(-1)
            s_rows = s_columns = len(s)
        else:
            if s.ndim != 2:
                self._error(UsageError,
                            f'{function}: s must be a matrix of parameters')
            s_rows, s_columns = s.shape
        s_ports = max(s_rows, s_columns)
        if not 1 <= s_rows <= full_s_rows:
            self._error(UsageError, f'{function}: invalid s_rows value: '
                        f'{s_rows}')
        if not 1 <= s_columns <= full_s_columns:
            self._error(UsageError, f'{function}: invalid s_columns value: '
                        f'{s_columns}')
        if layout.family == 'T':
            if s_rows < s_columns and s_rows != full_s_rows:
                self._error(UsageError, f'{function}: s_rows cannot be less '
                            f'than {min(s_columns, full_s_rows)}')
        elif s_rows > s_columns and s_columns != full_s_columns:
            self._error(UsageError, f'{function}: s_columns cannot be less '
                        f'than {min(s_rows, full_s_columns)}')
        if port_map is None and (s_rows != full_s_rows
                                 or s_columns != full_s_columns):
            self._error(UsageError, f'{function}: port map is required when '
                        'the given S matrix is smaller than that of the '
                        'calibration')

        # measured matrix
        if layout.full_matrix and layout.family == 'T':
            min_b_rows, min_b_columns = s_rows, full_m_columns
        elif layout.full_matrix:
            min_b_rows, min_b_columns = full_m_rows, s_columns
        else:
            min_b_rows = min_b_columns = s_ports
        b = self._fmatrix(function, b, b_name)
        b_rows, b_columns = b.shape[1:]
        if b_rows != full_m_rows and (b_rows != min_b_rows
                                      or min_b_rows > full_m_rows):
            self._shape_message(function, b_name, 'rows', min_b_rows,
                                full_m_rows)
        if b_columns != full_m_columns and (b_columns != min_b_columns or
                                            min_b_columns > full_m_columns):
            self._shape_message(function, b_name, 'columns', min_b_columns,
                                full_m_columns)
        per_column_a = layout.name in ('UE14', '_E12_UE14')
        if a is not None:
            a = self._fmatrix(function, a, 'a')
            a_rows = 1 if per_column_a else b_columns
            if a.shape[1:] != (a_rows, b_columns):
                self._error(UsageError, f"{function}: 'a' matrix must be "
                            f'{a_rows} x {b_columns}')

        # port map
        port_connected = [port_map is None] * full_s_ports
        if port_map is not None:
            port_map = [int(p) for p in npy.asarray(port_map).reshape(-1)]
            if len(port_map) != s_ports:
                self._error(UsageError, f'{function}: port map must have '
                            f'{s_ports} entries')
            max_port = 0
            for index, port in enumerate(port_map):
                if port < 1:
                    self._error(UsageError, f'{function}: {port}: invalid '
                                'port index')
                max_port = max(max_port, port)
                if index < s_rows and max_port > full_s_rows:
                    self._error(UsageError, f'{function}: port index '
                                f'{max_port} exceeds calibration matrix row '
                                'bound')
                if index < s_columns and max_port > full_s_columns:
                    self._error(UsageError, f'{function}: port index '
                                f'{max_port} exceeds calibration matrix '
                                'column bound')
                if port_connected[port - 1]:
                    self._error(UsageError, f'{function}: port index {port} '
                                'appears more than once')
                port_connected[port - 1] = True

        # measured cell mapping
        if port_map is not None:
            m_port_map = sorted(port_map)
            row_map = [m_port_map[i] - 1 if b_rows < full_m_rows else i
                       for i in range(b_rows)]
            column_map = [m_port_map[i] - 1 if b_columns < full_m_columns
                          else i for i in range(b_columns)]
        else:
            row_map = list(range(b_rows))
            column_map = list(range(b_columns))
        if max(row_map) >= full_m_rows or max(column_map) >= full_m_columns:
            self._error(UsageError, f'{function}: the measured ports have no '
                        'cell in the calibration measurement matrix')

        # resolve the parameters before taking any reference
        if s_is_diagonal:
            given = [(i, i, s[i]) for i in range(s_rows)]
        else:
            given = [(r, c, s[r, c]) for r in range(s_rows)
                     for c in range(s_columns)]
        s_cells = [None] * (full_s_rows * full_s_columns)
        s_row_given = npy.zeros(full_s_rows, dtype=bool)
        s_column_given = npy.zeros(full_s_columns, dtype=bool)
        for r, c, handle in given:
            parameter = self.parameters.get(handle)
            self._check_parameter_range(function, parameter)
            if port_map is not None:
                r, c = port_map[r] - 1, port_map[c] - 1
            s_cells[r * full_s_columns + c] = parameter
            s_row_given[r] = True
            s_column_given[c] = True

        # solve for m = b a^-1
        if a is None:
            m_values = b
        else:
            m_values = npy.empty_like(b)
            for findex in range(nf):
                if per_column_a:
                    if npy.any(a[findex, 0, :] == 0.0):
                        self._error(MathError, f"{function}: 'a' matrix is "
                                    f'singular at frequency index {findex}')
                    m_values[findex] = b[findex] / a[findex, 0, :]
                else:
                    m_values[findex], det = mf.mrdivide(b[findex], a[findex])
                    if mf.is_singular(det):
                        self._error(MathError, f"{function}: 'a' matrix is "
                                    f'singular at frequency index {findex}')

        m = npy.full((nf, full_m_rows, full_m_columns), npy.nan + 0j)
        rows_ix, columns_ix = npy.ix_(row_map, column_map)
        m[:, rows_ix, columns_ix] = m_values
        m_given = npy.zeros((full_m_rows, full_m_columns), dtype=bool)
        m_given[rows_ix, columns_ix] = True
        m_row_given = m_given.any(axis=1)
        m_column_given = m_given.any(axis=0)

        # commit: hold the parameters and fill the implied zeros
        for index, parameter in enumerate(s_cells):
            if parameter is not None:
                s_cells[index] = self._use_parameter(parameter)
        for r in range(full_s_rows):
            for c in range(full_s_columns):
                index = r * full_s_columns + c
                if s_cells[index] is not None:
                    continue
                if s_is_diagonal and r != c and port_connected[r] \
                        and port_connected[c]:
                    s_cells[index] = self.zero
                elif port_map is not None and \
                        port_connected[r] != port_connected[c]:
                    s_cells[index] = self.zero

        reachable = None
        if not layout.full_matrix:
            reachable = npy.array([cell is not self.zero for cell in s_cells],
                                  dtype=bool).reshape(full_s_rows,
                                                      full_s_columns)
            for i in range(min(full_s_rows, full_s_columns)):
                reachable |= npy.outer(reachable[:, i], reachable[i, :])

        measurement = Measurement(m, m_given, s_cells, reachable)
        k = len(self.measurements)
        self.measurements.append(measurement)

        def is_zero(s_cell):
            return s_cells[s_cell] is self.zero

        cells = layout.equation_cells(m_row_given, m_column_given,
                                      s_row_given, s_column_given)
        for r, c in cells:
            terms = layout.equation_terms(r, c, is_zero)
            system = layout.system_of(r, c)
            self.equations[system].append(Equation(k, r, c, system, terms))
        logger.debug('%s: standard %d adds %d equations', function, k,
                     len(cells))

    def add_single_reflect(self, a, b, s11, port: int) -> None:
        """
        Add a reflect standard on a single port.

        Parameters
        ----------
        a : array_like or None
            reference (incident wave) measurement; None if `b` is already
            the measured reflection
        b : array_like
            measurement of shape (frequencies, 1, 1) or
            (frequencies, rows, columns)
        s11 : int
            parameter handle of the reflection coefficient
        port : int
            VNA port, 1-based
        """
        self._add_common('add_single_reflect', a, b, [s11], [port],
                         s_is_diagonal=True)

    def add_single_reflect_m(self, m, s11, port: int) -> None:
        self._add_common('add_single_reflect_m', None, m, [s11], [port],
                         s_is_diagonal=True, b_name='m')

    def add_double_reflect(self, a, b, s11, s22, port1: int,
                           port2: int) -> None:
        """
        Add a pair of reflect standards measured at the same time.

        Leakage between the two ports is taken to be zero.
        """
        self._add_common('add_double_reflect', a, b, [s11, s22],
                         [port1, port2], s_is_diagonal=True)

    def add_double_reflect_m(self, m, s11, s22, port1: int,
                             port2: int) -> None:
        self._add_common('add_double_reflect_m', None, m, [s11, s22],
                         [port1, port2], s_is_diagonal=True, b_name='m')

    def add_line(self, a, b, s_2x2, port1: int, port2: int) -> None:
        """
        Add a two-port standard with arbitrary S-parameters.

        Parameters
        ----------
        s_2x2 : array_like
            2x2 matrix of parameter handles
        port1, port2 : int
            VNA ports connected to ports 1 and 2 of the standard
        """
        self._add_common('add_line', a, b, s_2x2, [port1, port2])

    def add_line_m(self, m, s_2x2, port1: int, port2: int) -> None:
        self._add_common('add_line_m', None, m, s_2x2, [port1, port2],
                         b_name='m')

    def add_through(self, a, b, port1: int, port2: int) -> None:
        """
        Add a perfect through between two ports.
        """
        self._add_common('add_through', a, b, [[ZERO, ONE], [ONE, ZERO]],
                         [port1, port2])

    def add_through_m(self, m, port1: int, port2: int) -> None:
        self._add_common('add_through_m', None, m,
                         [[ZERO, ONE], [ONE, ZERO]], [port1, port2],
                         b_name='m')

    def add_mapped_matrix(self, a, b, s, port_map: Optional[Sequence[int]]
                          = None) -> None:
        """
        Add a standard of any size.

        Parameters
        ----------
        a : array_like or None
            reference measurement; for UE14 and E12 one row, otherwise
            square with as many columns as `b`
        b : array_like
            measurement, (frequencies, rows, columns)
        s : array_like
            matrix of parameter handles
        port_map : sequence of int or None
            VNA port connected to each port of the standard, 1-based.
            Required when `s` is smaller than the calibration's S matrix.
        """
        self._add_common('add_mapped_matrix', a, b, s, port_map)

    def add_mapped_matrix_m(self, m, s, port_map: Optional[Sequence[int]]
                            = None) -> None:
        self._add_common('add_mapped_matrix_m', None, m, s, port_map,
                         b_name='m')

    @property
    def n_equations(self) -> int:
        return sum(len(system) for system in self.equations)

    # solving
    def solve(self):
        """
        Solve for the error terms.

        Returns
        -------
        calibration : :class:`~vnacal.calibration.calibration.Calibration`

        Raises
        ------
        UsageError
            if the frequency vector has not been given
        MathError
            if there are not enough standards, the system is singular, the
            iterative solver fails to converge, or the solution does not
            fit the measurements within the given measurement error

        Notes
        -----
        Unknown parameters used by the standards receive their solved
        values, which can then be read with
        :meth:`~vnacal.calibration.parameter.ParameterCollection.get_solved_vector`.
        """
        from .calibration import Calibration
        from .solver import Solver

        if self.frequency_vector is None:
            self._error(UsageError, 'solve: calibration frequency vector '
                        'must be given')
        try:
            solver = Solver(self)
            error_terms, p_vectors, rms_error = solver.solve()
        except MathError as e:
            self._error(MathError, e.message)
        fv = self.frequency_vector
        for index, unknown in enumerate(self.unknowns):
            unknown.set_solution(fv, p_vectors[:, index])
        self.rms_error = rms_error
        self.calibration = Calibration(None, self.type, self.rows,
                                       self.columns, fv, self.z0, error_terms,
                                       error_fn=self.error_fn)
        logger.info('solved %s %dx%d calibration at %d frequencies from %d '
                    'standards', self.type, self.rows, self.columns, len(fv),
                    len(self.measurements))
        return self.calibration
