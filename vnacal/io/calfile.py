"""
.. module:: vnacal.io.calfile

========================================
calfile (:mod:`vnacal.io.calfile`)
========================================

Reading and writing calibration files.

A calibration file is a ``#VNACAL major.minor`` header line followed by
a YAML document::

    #VNACAL 3.0
    properties:
      operator: jane
    calibrations:
    - name: cal_2port
      type: TE10
      rows: 2
      columns: 2
      frequencies: 2
      z0: "+5.000000e+01 +0.000000e+00j"
      data:
      - f: 1000000.0
        ts: ["+1.000000e+00 +0.000000e+00j", ...]
        ...
        el: [[null, "..."], ["...", null]]

Each data entry holds the frequency and one vector or matrix per named
block of the calibration's layout. Cells of a leakage matrix that carry
no term are written as null.

Version 2 files are also read: their calibrations may be listed under
``sets``, an absent ``type`` means E12, and the E12 terms may be given
as a single matrix ``e`` of ``[el, er, em]`` triples.

.. autosummary::
   :toctree: generated/

   read_calfile
   write_calfile
   format_complex
   parse_complex

"""
from __future__ import annotations

import logging
import os
import re
from typing import Optional

import numpy as npy
import yaml

from ..constants import DEFAULT_Z0
from ..exceptions import (ErrorFn, FileSyntaxError, UsageError, VersionError,
                          raise_error)
from ..util import get_fid

logger = logging.getLogger(__name__)

FILE_VERSION = (3, 0)
SUPPORTED_MAJOR_VERSIONS = (2, 3)

_HEADER = re.compile(r'#\s*VNACAL\s+(\d+)\.(\d+)\s*$')


def format_complex(z: complex, precision: int) -> str:
    """
    Format a complex number as ``"%+.*e %+.*ej"`` with `precision`
    significant digits.
    """
    z = complex(z)
    digits = precision - 1
    return f'{z.real:+.{digits}e} {z.imag:+.{digits}e}j'


def parse_complex(value) -> complex:
    """
    Parse a complex number written as ``a``, ``bj``, ``a bj``, ``a+bj``
    or ``a +j``.

    Raises
    ------
    ValueError
        if `value` is not a number
    """
    if isinstance(value, bool):
        raise ValueError(f'{value!r} is not a number')
    if isinstance(value, (int, float, complex)):
        return complex(value)
    if not isinstance(value, str):
        raise ValueError(f'{value!r} is not a number')
    parts = value.split()
    if not parts:
        raise ValueError('empty number')
    if len(parts) == 2:
        if parts[1][-1] not in 'jJ':
            raise ValueError(f'{value!r}: expected an imaginary part')
        return complex(float(parts[0]), _imaginary(parts[1][:-1]))
    if len(parts) > 2:
        raise ValueError(f'{value!r} is not a number')
    text = parts[0]
    if text[-1] not in 'jJ':
        return complex(float(text), 0.0)
    text = text[:-1]
    # split before the sign of the imaginary part
    split = 0
    for i in range(len(text) - 1, 0, -1):
        if text[i] in '+-' and text[i - 1] not in 'eE':
            split = i
            break
    real = float(text[:split]) if split else 0.0
    return complex(real, _imaginary(text[split:]))


def _imaginary(text: str) -> float:
    # coefficient of j, which may be a bare sign
    if text in ('', '+'):
        return 1.0
    if text == '-':
        return -1.0
    return float(text)


def _to_yaml(value: npy.ndarray, precision: int):
    if value.ndim == 0:
        z = complex(value)
        return None if npy.isnan(z) else format_complex(z, precision)
    return [_to_yaml(v, precision) for v in value]


def _from_yaml(value):
    if isinstance(value, list):
        return [_from_yaml(v) for v in value]
    if value is None:
        return complex(npy.nan, npy.nan)
    return parse_complex(value)


def _round(f: float, precision: int) -> float:
    return float(f'{f:.{precision - 1}e}')


def write_calfile(cs, file) -> None:
    """
    Write a calibration set to a file.

    Parameters
    ----------
    cs : :class:`~vnacal.calibration.calibrationSet.CalibrationSet`
        the calibrations to write
    file : str, path or file-object
    """
    fprecision, dprecision = cs.fprecision, cs.dprecision
    document = {}
    if cs.properties:
        document['properties'] = cs.properties.to_data()
    calibrations = []
    for cal in cs:
        entry = {'name': cal.name, 'type': cal.type, 'rows': cal.rows,
                 'columns': cal.columns, 'frequencies': cal.nfreqs,
                 'z0': format_complex(cal.z0, dprecision)}
        if cal.properties:
            entry['properties'] = cal.properties.to_data()
        data = []
        for f, e in zip(cal.frequency, cal.error_terms):
            point = {'f': _round(f, fprecision)}
            for name, value in cal.layout.matrices(e).items():
                point[name] = _to_yaml(npy.asarray(value), dprecision)
            data.append(point)
        entry['data'] = data
        calibrations.append(entry)
    document['calibrations'] = calibrations

    text = '#VNACAL %d.%d\n' % FILE_VERSION
    text += yaml.safe_dump(document, sort_keys=False, default_flow_style=None,
                           width=1000)
    if isinstance(file, (str, os.PathLike)):
        with open(file, 'w') as fid:
            fid.write(text)
        cs.filename = os.fspath(file)
    else:
        file.write(text)


class _Reader:
    """
    Converts a parsed calibration document into a CalibrationSet.
    """
    def __init__(self, filename, major, error_fn):
        self.filename = filename
        self.major = major
        self.error_fn = error_fn

    def error(self, message, exc_class=FileSyntaxError, line=None):
        raise_error(exc_class, message, self.error_fn,
                    filename=self.filename, line=line)

    def field(self, entry, key, where, kind=None):
        if key not in entry:
            self.error(f'{where}: missing {key!r}')
        value = entry[key]
        if kind is int:
            if isinstance(value, bool) or not isinstance(value, int) \
                    or value < 1:
                self.error(f'{where}: {key} must be a positive integer')
        elif kind is str and not isinstance(value, str):
            self.error(f'{where}: {key} must be a string')
        return value

    def complex_array(self, value, where):
        try:
            return npy.array(_from_yaml(value), dtype=complex)
        except (ValueError, TypeError) as e:
            self.error(f'{where}: {e}')

    def calibration(self, entry, index):
        from ..calibration.calibration import Calibration
        from ..calibration.layout import make_layout

        where = f'calibration {index}'
        if not isinstance(entry, dict):
            self.error(f'{where}: expected a map')
        name = self.field(entry, 'name', where, str)
        where = f'calibration {name!r}'
        if 'type' in entry or self.major >= 3:
            type = self.field(entry, 'type', where, str)
        else:
            type = 'E12'
        rows = self.field(entry, 'rows', where, int)
        columns = self.field(entry, 'columns', where, int)
        frequencies = self.field(entry, 'frequencies', where, int)
        try:
            layout = make_layout(type, rows, columns)
        except UsageError as e:
            self.error(f'{where}: {e.message}')
        z0 = DEFAULT_Z0
        if 'z0' in entry:
            try:
                z0 = parse_complex(entry['z0'])
            except ValueError as e:
                self.error(f'{where}: z0: {e}')

        data = self.field(entry, 'data', where)
        if not isinstance(data, list):
            self.error(f'{where}: data must be a sequence')
        if len(data) != frequencies:
            self.error(f'{where}: expected {frequencies} frequencies; found '
                       f'{len(data)}')
        expected = {block: npy.shape(value) for block, value in
                    layout.matrices(npy.zeros(layout.error_terms,
                                              dtype=complex)).items()}
        fv = npy.empty(frequencies)
        error_terms = npy.empty((frequencies, layout.error_terms),
                                dtype=complex)
        for findex, point in enumerate(data):
            at = f'{where}, frequency index {findex}'
            if not isinstance(point, dict):
                self.error(f'{at}: expected a map')
            try:
                fv[findex] = float(self.field(point, 'f', at))
            except (TypeError, ValueError):
                self.error(f'{at}: invalid frequency')
            if layout.name == 'E12' and 'e' in point:
                e = self.complex_array(point['e'], f'{at}: e')
                if e.shape != (rows, columns, 3):
                    self.error(f'{at}: e must be a {rows}x{columns} matrix '
                               'of [el, er, em] triples')
                matrices = {'el': e[..., 0], 'er': e[..., 1], 'em': e[..., 2]}
            else:
                matrices = {}
                for block, shape in expected.items():
                    value = self.complex_array(self.field(point, block, at),
                                               f'{at}: {block}')
                    if value.shape != shape:
                        self.error(f'{at}: {block} must have shape {shape}; '
                                   f'found {value.shape}')
                    matrices[block] = value
            error_terms[findex] = layout.from_matrices(matrices)
        if npy.any(npy.diff(fv) <= 0.0) or (frequencies and fv[0] < 0.0):
            self.error(f'{where}: frequencies must be non-negative and '
                       'ascending')
        properties = entry.get('properties')
        return Calibration(name, type, rows, columns, fv, z0, error_terms,
                           properties=properties, error_fn=self.error_fn)


def read_calfile(file, error_fn: Optional[ErrorFn] = None):
    """
    Read a calibration file.

    Parameters
    ----------
    file : str, path or file-object
    error_fn : callable or None
        error hook of the returned set

    Returns
    -------
    cs : :class:`~vnacal.calibration.calibrationSet.CalibrationSet`

    Raises
    ------
    FileSyntaxError
        if the file is malformed
    VersionError
        if the file version is not supported
    """
    from ..calibration.calibrationSet import CalibrationSet

    if isinstance(file, (str, os.PathLike)):
        filename = os.fspath(file)
        with get_fid(file, 'r') as fid:
            text = fid.read()
    else:
        filename = getattr(file, 'name', None)
        text = file.read()
    if isinstance(text, bytes):
        text = text.decode('utf-8')

    header, _, body = text.partition('\n')
    match = _HEADER.match(header.strip())
    if match is None:
        raise_error(FileSyntaxError, 'missing #VNACAL header', error_fn,
                    filename=filename, line=1)
    major, minor = int(match.group(1)), int(match.group(2))
    if major not in SUPPORTED_MAJOR_VERSIONS:
        raise_error(VersionError, f'unsupported file version {major}.{minor}',
                    error_fn, filename=filename, line=1)
    reader = _Reader(filename, major, error_fn)
    try:
        document = yaml.safe_load(body)
    except yaml.YAMLError as e:
        mark = getattr(e, 'problem_mark', None)
        problem = getattr(e, 'problem', None) or str(e)
        reader.error(problem, line=None if mark is None else mark.line + 2)
    if document is None:
        document = {}
    if not isinstance(document, dict):
        reader.error('expected a map at top level')

    cs = CalibrationSet(error_fn)
    cs.filename = filename
    if document.get('properties') is not None:
        cs.properties.set('.', document['properties'])
    key = 'calibrations'
    if key not in document and 'sets' in document:
        key = 'sets'
    calibrations = document.get(key) or []
    if not isinstance(calibrations, list):
        reader.error(f'{key} must be a sequence')
    for index, entry in enumerate(calibrations):
        cal = reader.calibration(entry, index)
        if cs.find_calibration(cal.name) >= 0:
            reader.error(f'duplicate calibration name {cal.name!r}')
        cs.add_calibration(cal.name, cal)
    logger.info('%s: read %d calibrations (file version %d.%d)', filename,
                len(cs), major, minor)
    return cs
