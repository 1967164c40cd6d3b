"""
.. module:: vnacal.calibration.calibrationSet

================================================================
calibrationSet (:mod:`vnacal.calibration.calibrationSet`)
================================================================

Container of named calibrations, as saved in a calibration file.

A :class:`CalibrationSet` holds the calibrations of one file together
with global user properties and the collection of parameters used to
describe the standards of new calibrations.

.. autosummary::
   :toctree: generated/

   CalibrationSet

"""
from __future__ import annotations

from typing import Iterator, List, Optional, Union

from ..constants import DEFAULT_DPRECISION, DEFAULT_FPRECISION, NumberLike
from ..exceptions import ErrorFn, UsageError, raise_error
from ..properties import Properties
from .calibration import Calibration
from .newCalibration import NewCalibration
from .parameter import ParameterCollection

Key = Union[str, int]


class CalibrationSet:
    """
    Ordered set of named calibrations.

    Parameters
    ----------
    error_fn : callable or None
        error hook, called as ``error_fn(category, message)`` before an
        exception is raised

    Attributes
    ----------
    properties : :class:`~vnacal.properties.Properties`
        global user properties, saved with the set
    parameters : :class:`~vnacal.calibration.parameter.ParameterCollection`
        parameters available to new calibrations
    fprecision, dprecision : int
        significant digits of frequencies and data written by :meth:`save`

    Examples
    --------
    >>> cs = CalibrationSet()
    >>> new_cal = cs.new_calibration('TE10', 2, 2, f)
    >>> ...
    >>> new_cal.solve()
    >>> cs.add_calibration('cal_2port', new_cal)
    >>> cs.save('example.vnacal')
    >>> cs = CalibrationSet.load('example.vnacal')
    >>> s = cs.apply_m('cal_2port', f, m)
    """
    def __init__(self, error_fn: Optional[ErrorFn] = None):
        self.error_fn = error_fn
        self.properties = Properties()
        self.parameters = ParameterCollection(error_fn)
        self.fprecision = DEFAULT_FPRECISION
        self.dprecision = DEFAULT_DPRECISION
        self.filename = None
        self._calibrations: List[Calibration] = []

    def __len__(self) -> int:
        return len(self._calibrations)

    def __iter__(self) -> Iterator[Calibration]:
        return iter(self._calibrations)

    def __getitem__(self, key: Key) -> Calibration:
        return self.get_calibration(key)

    def __contains__(self, name: str) -> bool:
        return self.find_calibration(name) >= 0

    def __str__(self) -> str:
        output = f'Calibration Set: {len(self)} calibrations'
        for cal in self._calibrations:
            output += f'\n  {cal}'
        return output

    def __repr__(self) -> str:
        return self.__str__()

    @property
    def names(self) -> List[str]:
        return [cal.name for cal in self._calibrations]

    def _index(self, key: Key) -> int:
        if isinstance(key, str):
            index = self.find_calibration(key)
            if index < 0:
                raise_error(UsageError, f'calibration {key!r} not found',
                            self.error_fn)
            return index
        index = int(key)
        if not 0 <= index < len(self._calibrations):
            raise_error(UsageError, f'invalid calibration index {key}',
                        self.error_fn)
        return index

    def new_calibration(self, type: str, rows: int, columns: int,
                        frequencies) -> NewCalibration:
        """
        Start a new calibration that shares this set's parameters.

        See :class:`~vnacal.calibration.newCalibration.NewCalibration`.
        """
        return NewCalibration(type, rows, columns, frequencies,
                              parameters=self.parameters,
                              error_fn=self.error_fn)

    def add_calibration(self, name: str,
                        calibration: Union[Calibration, NewCalibration]) -> int:
        """
        Add a calibration under `name`, replacing any of the same name.

        Parameters
        ----------
        name : str
            calibration name
        calibration : :class:`Calibration` or :class:`NewCalibration`
            the calibration, or a builder that has been solved

        Returns
        -------
        index : int
            position of the calibration in the set
        """
        if not isinstance(name, str) or not name:
            raise_error(UsageError, 'calibration name must be a non-empty '
                        'string', self.error_fn)
        if isinstance(calibration, NewCalibration):
            if calibration.calibration is None:
                raise_error(UsageError, f'{name}: calibration has not been '
                            'solved', self.error_fn)
            calibration = calibration.calibration
        if not isinstance(calibration, Calibration):
            raise_error(UsageError, f'{name}: expected a Calibration',
                        self.error_fn)
        calibration = calibration.copy(name)
        index = self.find_calibration(name)
        if index >= 0:
            self._calibrations[index] = calibration
        else:
            index = len(self._calibrations)
            self._calibrations.append(calibration)
        return index

    def find_calibration(self, name: str) -> int:
        """
        Return the index of the calibration named `name`, or -1.
        """
        for index, cal in enumerate(self._calibrations):
            if cal.name == name:
                return index
        return -1

    def get_calibration(self, key: Key) -> Calibration:
        """
        Return a calibration by name or index.
        """
        return self._calibrations[self._index(key)]

    def delete_calibration(self, key: Key) -> None:
        """
        Remove a calibration by name or index.
        """
        del self._calibrations[self._index(key)]

    def apply(self, key: Key, frequency_vector: NumberLike, b, a=None):
        """
        Correct a measurement with the calibration `key`.

        See :meth:`Calibration.apply`.
        """
        return self.get_calibration(key).apply(frequency_vector, b, a)

    def apply_m(self, key: Key, frequency_vector: NumberLike, m):
        """
        Correct a normalized measurement with the calibration `key`.

        See :meth:`Calibration.apply_m`.
        """
        return self.get_calibration(key).apply_m(frequency_vector, m)

    def set_fprecision(self, precision: int) -> None:
        """
        Set the significant digits of frequencies written to files.
        """
        self.fprecision = self._check_precision(precision)

    def set_dprecision(self, precision: int) -> None:
        """
        Set the significant digits of data written to files.
        """
        self.dprecision = self._check_precision(precision)

    def _check_precision(self, precision):
        if not 1 <= int(precision) <= 17:
            raise_error(UsageError, f'invalid precision {precision}: must be '
                        '1..17', self.error_fn)
        return int(precision)

    def save(self, file) -> None:
        """
        Write the set to a calibration file.

        Parameters
        ----------
        file : str, path or file-object
        """
        from ..io.calfile import write_calfile
        write_calfile(self, file)

    @classmethod
    def load(cls, file, error_fn: Optional[ErrorFn] = None) -> 'CalibrationSet':
        """
        Read a calibration file.

        Parameters
        ----------
        file : str, path or file-object
        error_fn : callable or None
            error hook of the new set

        Raises
        ------
        FileSyntaxError
            for malformed files
        VersionError
            for unsupported file versions
        """
        from ..io.calfile import read_calfile
        return read_calfile(file, error_fn)
