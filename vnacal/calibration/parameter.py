"""
.. module:: vnacal.calibration.parameter

================================================================
parameter (:mod:`vnacal.calibration.parameter`)
================================================================

Values of the calibration standards.

Standards are described by matrices of parameter handles. A handle is a
small integer naming a :class:`Parameter` in a :class:`ParameterCollection`.
Handles 0, 1 and 2 are predefined as the ideal match, open and short;
:data:`~vnacal.constants.ZERO` and :data:`~vnacal.constants.ONE` are the
same parameters under the names used for S matrices.

Parameters are reference counted. A correlated or unknown parameter
holds the parameter it refers to, so that the referenced parameter lives
at least as long.

Parameter Collection
--------------------
.. autosummary::
   :toctree: generated/

   ParameterCollection

Parameter Types
---------------
.. autosummary::
   :toctree: generated/

   ScalarParameter
   VectorParameter
   UnknownParameter
   CorrelatedParameter
   StandardParameter

Multi-Port Standards
--------------------
.. autosummary::
   :toctree: generated/

   CalkitStandard
   DataStandard

"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as npy

from .. import tlineFunctions as tf
from ..constants import DEFAULT_Z0, MATCH, MAX_M, OPEN, SHORT, NumberLike
from ..exceptions import ErrorFn, UsageError, raise_error
from ..interpolation import NaturalSpline, rfi
from ..network import renormalize_s
from ..util import check_frequency_range, check_frequency_vector

# reference impedances closer than this are taken as equal
Z0_TOLERANCE = 1.0e-5


class Parameter:
    """
    Base class of all parameters.

    Attributes
    ----------
    handle : int
        index of the parameter in its collection
    hold_count : int
        number of references held
    """
    kind = None

    def __init__(self):
        self.handle = None
        self.hold_count = 0
        self.collection = None

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.handle}>'

    def describe(self) -> str:
        return f'{self.kind} parameter {self.handle}'

    @property
    def is_unknown(self) -> bool:
        return False

    def references(self) -> List['Parameter']:
        """Parameters held by this one."""
        return []

    def value(self, f: float, z0=DEFAULT_Z0) -> complex:
        raise NotImplementedError

    def frequency_range(self) -> Tuple[float, float]:
        """
        Return (fmin, fmax) of the frequencies this parameter supports.
        """
        return 0.0, npy.inf


class ScalarParameter(Parameter):
    """
    Frequency-independent value.
    """
    kind = 'scalar'

    def __init__(self, gamma: complex):
        super().__init__()
        self.gamma = complex(gamma)

    def value(self, f, z0=DEFAULT_Z0):
        return self.gamma


class VectorParameter(Parameter):
    """
    Value tabulated over frequency and interpolated with :func:`rfi`.

    Parameters
    ----------
    frequency_vector : array_like
        non-negative, strictly ascending frequencies
    gamma_vector : array_like
        complex values at `frequency_vector`
    """
    kind = 'vector'

    def __init__(self, frequency_vector: NumberLike, gamma_vector: NumberLike):
        super().__init__()
        self.frequency_vector = check_frequency_vector(frequency_vector)
        self.gamma_vector = npy.array(gamma_vector, dtype=complex).reshape(-1)
        if len(self.gamma_vector) != len(self.frequency_vector):
            raise UsageError('frequency_vector and gamma_vector must have '
                             'the same length')
        self.segment = 0

    def frequency_range(self):
        return float(self.frequency_vector[0]), float(self.frequency_vector[-1])

    def value(self, f, z0=DEFAULT_Z0):
        fmin, fmax = self.frequency_range()
        check_frequency_range(f, fmin, fmax, self.describe())
        n = len(self.frequency_vector)
        y, self.segment = rfi(self.frequency_vector, self.gamma_vector,
                              min(n, MAX_M), f, self.segment)
        return complex(y)


class UnknownParameter(Parameter):
    """
    Value to be determined by the solver.

    Until solved, the value is that of `other`, the initial guess. After
    a solve, the value is interpolated from the solution.

    Parameters
    ----------
    other : Parameter
        initial guess
    """
    kind = 'unknown'

    def __init__(self, other: Parameter):
        super().__init__()
        self.other = other
        self.solved_frequency_vector = None
        self.solved_gamma_vector = None
        self.segment = 0

    @property
    def is_unknown(self) -> bool:
        return True

    @property
    def is_solved(self) -> bool:
        return self.solved_gamma_vector is not None

    def references(self):
        return [self.other]

    def initial_value(self, f, z0=DEFAULT_Z0) -> complex:
        return self.other.value(f, z0)

    def value(self, f, z0=DEFAULT_Z0):
        if not self.is_solved:
            return self.initial_value(f, z0)
        fv = self.solved_frequency_vector
        fmin, fmax = fv[0], fv[-1]
        check_frequency_range(f, fmin, fmax, self.describe())
        y, self.segment = rfi(fv, self.solved_gamma_vector,
                              min(len(fv), MAX_M), f, self.segment)
        return complex(y)

    def set_solution(self, frequency_vector, gamma_vector):
        self.solved_frequency_vector = npy.array(frequency_vector, dtype=float)
        self.solved_gamma_vector = npy.array(gamma_vector, dtype=complex)
        self.segment = 0

    def frequency_range(self):
        if self.is_solved:
            fv = self.solved_frequency_vector
            return float(fv[0]), float(fv[-1])
        return self.other.frequency_range()


class CorrelatedParameter(UnknownParameter):
    """
    Unknown value expected to lie near that of another parameter.

    Parameters
    ----------
    other : Parameter
        parameter this one is correlated with; also the initial guess
    sigma : callable
        ``sigma(f)`` gives the standard deviation of the difference
    """
    kind = 'correlated'

    def __init__(self, other: Parameter, sigma):
        super().__init__(other)
        self.sigma = sigma


class StandardParameter(Parameter):
    """
    One cell of a multi-port standard.
    """
    kind = 'standard'

    def __init__(self, standard, row: int, column: int):
        super().__init__()
        self.standard = standard
        self.row = row
        self.column = column

    def describe(self):
        if self.standard.ports > 1:
            return (f's{self.row + 1}{self.column + 1} of '
                    f'{self.standard.name} standard')
        return f'{self.standard.name} standard'

    def value(self, f, z0=DEFAULT_Z0):
        return self.standard.evaluate(f, z0)[self.row, self.column]

    def frequency_range(self):
        return self.standard.frequency_range()


class CalkitStandard:
    """
    Physical description of a calibration kit standard.

    Parameters
    ----------
    kind : {'short', 'open', 'load', 'through'}
        type of standard
    offset_delay : float
        one-way delay of the offset line in seconds
    offset_loss : float
        offset loss in ohms per second at 1 GHz
    offset_z0 : float
        offset line impedance in ohms
    l_coefficients : sequence of float
        inductance polynomial of a short, L0..L3
    c_coefficients : sequence of float
        capacitance polynomial of an open, C0..C3
    zl : complex
        impedance of a load
    traditional : bool
        use the traditional (Keysight 1287-11) offset line model instead
        of the revised one

    Examples
    --------
    >>> short = CalkitStandard('short', offset_delay=31.785e-12,
    ...                        offset_loss=2.36e9,
    ...                        l_coefficients=(2.077e-12, -108.54e-24))
    """
    kinds = {'short': 1, 'open': 1, 'load': 1, 'through': 2}

    def __init__(self, kind: str, offset_delay: float = 0.0,
                 offset_loss: float = 0.0, offset_z0: float = DEFAULT_Z0,
                 l_coefficients: Sequence[float] = (0.0,),
                 c_coefficients: Sequence[float] = (0.0,),
                 zl: complex = DEFAULT_Z0, traditional: bool = False):
        kind = str(kind).lower()
        if kind not in self.kinds:
            raise UsageError(f'unknown calkit standard type {kind!r}')
        if len(l_coefficients) > 4 or len(c_coefficients) > 4:
            raise UsageError('at most 4 polynomial coefficients may be given')
        self.kind = kind
        self.offset_delay = float(offset_delay)
        self.offset_loss = float(offset_loss)
        self.offset_z0 = float(offset_z0)
        self.l_coefficients = tuple(float(c) for c in l_coefficients)
        self.c_coefficients = tuple(float(c) for c in c_coefficients)
        self.zl = complex(zl)
        self.traditional = bool(traditional)
        self._cache = None

    @property
    def name(self) -> str:
        return f'calkit {self.kind}'

    @property
    def ports(self) -> int:
        return self.kinds[self.kind]

    def frequency_range(self):
        return 0.0, npy.inf

    def evaluate(self, f: float, z0=DEFAULT_Z0) -> npy.ndarray:
        """
        Return the ports x ports S-parameters at frequency `f` in the
        reference impedance(s) `z0`.
        """
        z0 = npy.broadcast_to(npy.asarray(z0, dtype=complex), (self.ports,))
        key = (float(f), tuple(z0))
        if self._cache is not None and self._cache[0] == key:
            return self._cache[1]
        line = dict(offset_delay=self.offset_delay,
                    offset_loss=self.offset_loss, offset_z0=self.offset_z0,
                    traditional=self.traditional)
        if self.kind == 'short':
            s = tf.calkit_short(f, z0[0], l_coefficients=self.l_coefficients,
                                **line).reshape(1, 1)
        elif self.kind == 'open':
            s = tf.calkit_open(f, z0[0], c_coefficients=self.c_coefficients,
                               **line).reshape(1, 1)
        elif self.kind == 'load':
            s = tf.calkit_load(f, z0[0], zl=self.zl, **line).reshape(1, 1)
        else:
            s = tf.calkit_through(f, z0, **line)[0]
        self._cache = (key, s)
        return s


class DataStandard:
    """
    Multi-port standard given as S-parameter data over frequency.

    Parameters
    ----------
    name : str
        name used in messages
    frequency_vector : array_like
        non-negative, strictly ascending frequencies
    data : array_like
        S-parameters of shape `fxnxn`
    z0 : complex, array_like
        reference impedances of the data: a scalar, one per port, or an
        `fxn` array of per-frequency values

    Notes
    -----
    Values are interpolated with :func:`~vnacal.interpolation.rfi` and,
    when the data's reference impedances differ from those of the
    calibration, renormalized.
    """
    def __init__(self, name: str, frequency_vector: NumberLike,
                 data: NumberLike, z0=DEFAULT_Z0):
        self.name = str(name)
        self.frequency_vector = check_frequency_vector(frequency_vector)
        data = npy.array(data, dtype=complex)
        nf = len(self.frequency_vector)
        if data.ndim == 1:
            data = data.reshape(-1, 1, 1)
        if data.ndim != 3 or data.shape[0] != nf or data.shape[1] != data.shape[2]:
            raise UsageError(f'{self.name}: data must have shape '
                             f'({nf}, ports, ports)')
        self.data = data
        ports = data.shape[1]
        z0 = npy.array(z0, dtype=complex)
        if z0.ndim == 0:
            z0 = npy.full(ports, z0)
        if z0.shape == (ports,):
            self.has_fz0 = False
        elif z0.shape == (nf, ports):
            self.has_fz0 = True
        else:
            raise UsageError(f'{self.name}: z0 must be a scalar, a vector of '
                             f'{ports} or a {nf}x{ports} array')
        self.z0 = z0
        self.segment = 0

    @property
    def ports(self) -> int:
        return self.data.shape[1]

    def frequency_range(self):
        return float(self.frequency_vector[0]), float(self.frequency_vector[-1])

    def evaluate(self, f: float, z0=DEFAULT_Z0) -> npy.ndarray:
        fmin, fmax = self.frequency_range()
        check_frequency_range(f, fmin, fmax, f'{self.name} standard')
        n = len(self.frequency_vector)
        m = min(n, MAX_M)
        ports = self.ports
        flat = self.data.reshape(n, ports * ports)
        values, segment = rfi(self.frequency_vector, flat, m, f, self.segment)
        s = npy.asarray(values, dtype=complex).reshape(ports, ports)
        if self.has_fz0:
            zd, segment = rfi(self.frequency_vector, self.z0, m, f, segment)
            zd = npy.asarray(zd, dtype=complex)
        else:
            zd = self.z0
        self.segment = segment
        zr = npy.broadcast_to(npy.asarray(z0, dtype=complex), (ports,))
        if npy.any(npy.abs(zd - zr) > Z0_TOLERANCE):
            s = renormalize_s(s.reshape(1, ports, ports), zd.reshape(1, -1),
                              zr.reshape(1, -1))[0]
        return s


def _sigma_function(sigma_frequency_vector, sigma_vector, other):
    sigma = npy.array(sigma_vector, dtype=float).reshape(-1)
    if len(sigma) < 1:
        raise UsageError('sigma_vector must have at least one entry')
    if npy.any(sigma <= 0.0):
        raise UsageError('sigma values must be positive')
    if len(sigma) == 1:
        value = float(sigma[0])
        return lambda f: value
    if sigma_frequency_vector is None:
        end = other
        while isinstance(end, UnknownParameter):
            end = end.other
        if not isinstance(end, VectorParameter):
            raise UsageError('sigma_frequency_vector may be omitted only '
                             'when correlated to a vector parameter')
        if len(end.frequency_vector) != len(sigma):
            raise UsageError('sigma_vector length must match the vector '
                             'parameter when sigma_frequency_vector is omitted')
        sigma_frequency_vector = end.frequency_vector
    fv = check_frequency_vector(sigma_frequency_vector,
                                'sigma_frequency_vector')
    if len(fv) != len(sigma):
        raise UsageError('sigma_frequency_vector and sigma_vector must have '
                         'the same length')
    return NaturalSpline(fv, sigma)


class ParameterCollection:
    """
    Index-stable arena of reference-counted parameters.

    Parameters
    ----------
    error_fn : callable or None
        error hook, called as ``error_fn(category, message)`` before an
        exception is raised

    Examples
    --------
    >>> pc = ParameterCollection()
    >>> p = pc.make_scalar_parameter(0.5j)
    >>> pc.get_value(p, 1e9)
    0.5j
    >>> pc.delete_parameter(p)
    """
    def __init__(self, error_fn: Optional[ErrorFn] = None):
        self.error_fn = error_fn
        self._parameters: List[Optional[Parameter]] = []
        for gamma in (0.0, 1.0, -1.0):
            self._add(ScalarParameter(gamma))

    def __len__(self) -> int:
        return sum(p is not None for p in self._parameters)

    def __iter__(self):
        return (p for p in self._parameters if p is not None)

    def _add(self, parameter: Parameter) -> int:
        try:
            handle = self._parameters.index(None)
            self._parameters[handle] = parameter
        except ValueError:
            handle = len(self._parameters)
            self._parameters.append(parameter)
        parameter.handle = handle
        parameter.collection = self
        parameter.hold_count = 1
        return handle

    def get(self, handle) -> Parameter:
        """
        Return the :class:`Parameter` for a handle.

        Raises
        ------
        UsageError
            if `handle` does not name a live parameter
        """
        if isinstance(handle, Parameter):
            handle = handle.handle
        try:
            index = int(handle)
        except (TypeError, ValueError):
            index = -1
        if (index < 0 or index >= len(self._parameters)
                or self._parameters[index] is None):
            raise_error(UsageError, f'invalid parameter index {handle!r}',
                        self.error_fn)
        return self._parameters[index]

    __getitem__ = get

    def hold(self, handle) -> Parameter:
        parameter = self.get(handle)
        parameter.hold_count += 1
        return parameter

    def release(self, handle) -> None:
        """
        Drop one reference; free the parameter when none remain.
        """
        parameter = self.get(handle)
        pending = [parameter]
        while pending:
            p = pending.pop()
            p.hold_count -= 1
            if p.hold_count > 0:
                continue
            self._parameters[p.handle] = None
            pending.extend(p.references())

    def delete_parameter(self, handle) -> None:
        """
        Delete a parameter made by one of the ``make_*`` methods.

        The parameter remains alive while other parameters or calibrations
        in progress still hold it.
        """
        if self.get(handle).handle in (MATCH, OPEN, SHORT):
            raise_error(UsageError, 'predefined parameters cannot be deleted',
                        self.error_fn)
        self.release(handle)

    def delete_parameter_matrix(self, matrix) -> None:
        for handle in npy.asarray(matrix).reshape(-1):
            self.delete_parameter(int(handle))

    def make_scalar_parameter(self, gamma: complex) -> int:
        """
        Make a parameter with a constant value.
        """
        return self._add(ScalarParameter(gamma))

    def make_vector_parameter(self, frequency_vector: NumberLike,
                              gamma_vector: NumberLike) -> int:
        """
        Make a parameter tabulated over frequency.

        Parameters
        ----------
        frequency_vector : array_like
            non-negative, strictly ascending frequencies
        gamma_vector : array_like
            complex values at `frequency_vector`
        """
        try:
            parameter = VectorParameter(frequency_vector, gamma_vector)
        except UsageError as e:
            raise_error(UsageError, e.message, self.error_fn)
        return self._add(parameter)

    def make_unknown_parameter(self, initial_guess) -> int:
        """
        Make a parameter for the solver to determine.

        Parameters
        ----------
        initial_guess : int
            handle of the parameter giving the starting value
        """
        other = self.hold(initial_guess)
        return self._add(UnknownParameter(other))

    def make_correlated_parameter(self, other, sigma_frequency_vector,
                                  sigma_vector) -> int:
        """
        Make an unknown parameter correlated with another.

        Parameters
        ----------
        other : int
            handle of the parameter this one is close to
        sigma_frequency_vector : array_like or None
            frequencies of `sigma_vector`; may be None when `sigma_vector`
            has a single entry, or when `other` resolves to a vector
            parameter with as many points
        sigma_vector : float or array_like
            standard deviation of the difference from `other`; positive.
            A single value is constant; several are joined by a natural
            cubic spline.
        """
        other_parameter = self.get(other)
        try:
            sigma = _sigma_function(sigma_frequency_vector,
                                    npy.atleast_1d(sigma_vector),
                                    other_parameter)
        except UsageError as e:
            raise_error(UsageError, e.message, self.error_fn)
        self.hold(other)
        return self._add(CorrelatedParameter(other_parameter, sigma))

    def _make_standard_matrix(self, standard) -> npy.ndarray:
        ports = standard.ports
        result = npy.empty((ports, ports), dtype=int)
        for r in range(ports):
            for c in range(ports):
                result[r, c] = self._add(StandardParameter(standard, r, c))
        return result

    def make_calkit_parameter_matrix(self, standard: CalkitStandard) -> npy.ndarray:
        """
        Make the matrix of parameter handles of a calkit standard.

        Returns
        -------
        handles : npy.ndarray
            1x1 for a short, open or load; 2x2 for a through
        """
        if not isinstance(standard, CalkitStandard):
            raise_error(UsageError, 'expected a CalkitStandard',
                        self.error_fn)
        return self._make_standard_matrix(standard)

    def make_calkit_parameter(self, standard: CalkitStandard) -> int:
        """
        Make the parameter of a one-port calkit standard.
        """
        if standard.ports != 1:
            raise_error(UsageError, f'{standard.name} is not a one-port '
                        'standard', self.error_fn)
        return int(self.make_calkit_parameter_matrix(standard)[0, 0])

    def make_data_parameter_matrix(self, standard: DataStandard) -> npy.ndarray:
        """
        Make the matrix of parameter handles of a data standard.
        """
        if not isinstance(standard, DataStandard):
            raise_error(UsageError, 'expected a DataStandard', self.error_fn)
        return self._make_standard_matrix(standard)

    def get_value(self, handle, f: float, z0=DEFAULT_Z0) -> complex:
        """
        Return the value of a parameter at frequency `f`.

        Parameters
        ----------
        handle : int
            parameter handle
        f : float
            frequency in Hz
        z0 : complex or array_like
            reference impedance, or one per port of a multi-port standard
        """
        parameter = self.get(handle)
        try:
            return complex(parameter.value(f, z0))
        except UsageError as e:
            raise_error(UsageError, e.message, self.error_fn)

    def get_frequency_range(self, handle) -> Tuple[float, float]:
        return self.get(handle).frequency_range()

    def get_type(self, handle) -> str:
        """
        Return 'scalar', 'vector', 'unknown', 'correlated' or 'standard'.
        """
        return self.get(handle).kind

    def get_solved_vector(self, handle) -> Tuple[npy.ndarray, npy.ndarray]:
        """
        Return the frequencies and solved values of an unknown parameter.

        Raises
        ------
        UsageError
            if the parameter is not unknown or has not been solved
        """
        parameter = self.get(handle)
        if not parameter.is_unknown or not parameter.is_solved:
            raise_error(UsageError, f'{parameter.describe()} has no solved '
                        'value', self.error_fn)
        return (parameter.solved_frequency_vector.copy(),
                parameter.solved_gamma_vector.copy())
