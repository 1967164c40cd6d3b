"""
.. module:: vnacal.calibration.layout

================================================================
layout (:mod:`vnacal.calibration.layout`)
================================================================

Error-term layouts.

Each error-term topology is a class deriving from :class:`Layout`. A
layout is a pure function of (topology, rows, columns): it fixes the
length of the error-term vector, the offsets of its named blocks, the
linear equations a measured standard contributes, and the forward and
inverse models relating a DUT's S-parameters to the measured matrix M.

The error-term vector of one frequency is a 1-D complex array. It must
only be addressed through the block offsets given here, so that the
solver, the applier and the calibration file agree on its contents.

T Models
--------
``M = (Ts S + Ti) (Tx S + Tm)^-1``, inverted by left division. The
scale of the system is fixed by ``tm11 = 1``.

.. autosummary::
   :toctree: generated/

   T8Layout
   TE10Layout
   T16Layout

U Models
--------
``M = (Um - S Ux)^-1 (S Us - Ui)``, inverted by right division. The
scale of the system is fixed by ``um11 = 1``.

.. autosummary::
   :toctree: generated/

   U8Layout
   UE10Layout
   U16Layout

Per-Column Models
-----------------
Each column of M is an independent system.

.. autosummary::
   :toctree: generated/

   UE14Layout
   E12Layout

Factory
-------
.. autosummary::
   :toctree: generated/

   make_layout

"""
from __future__ import annotations

from collections import namedtuple
from typing import Callable, Dict, List, Optional, Tuple

import numpy as npy

from .. import mathFunctions as mf
from ..exceptions import UsageError

Block = namedtuple('Block', ['name', 'offset', 'size', 'column'])
Block.__new__.__defaults__ = (None,)

#: one term of a linear equation; `index` is an absolute error-term index,
#: `m_cell` and `s_cell` are row-major cell indices or -1 when absent
Term = namedtuple('Term', ['index', 'negative', 'm_cell', 's_cell'])

# swaps port 1 and port 2
_P = npy.array([[0.0, 1.0], [1.0, 0.0]], dtype=complex)


def _diag_matrix(v, rows, columns):
    result = npy.zeros((rows, columns), dtype=complex)
    k = len(v)
    result[npy.arange(k), npy.arange(k)] = v
    return result


class Layout:
    """
    Base class of all error-term layouts.

    Parameters
    ----------
    rows : int
        rows in the measurement matrix (VNA detectors)
    columns : int
        columns in the measurement matrix (VNA driven ports)

    Attributes
    ----------
    rows, columns : int
        dimensions of the measurement matrix M
    ports : int
        dimension of the (square) S matrix
    error_terms : int
        length of the error-term vector
    t_terms : int
        error terms per linear system, including the unity term
    el_terms : int
        leakage terms solved outside of the linear system
    systems : int
        number of independent linear systems
    """
    name = None
    family = None
    per_column = False
    leakage_outside = False
    full_matrix = False

    def __init__(self, rows: int, columns: int):
        rows, columns = int(rows), int(columns)
        if rows < 1 or columns < 1:
            raise UsageError(f'{self.name}: invalid dimensions {rows}x{columns}')
        self.rows = self.m_rows = rows
        self.columns = self.m_columns = columns
        self.ports = max(rows, columns)
        self.s_rows = self.s_columns = self.ports
        self.diagonals = min(rows, columns)
        self._check_shape()
        self._blocks = self._make_blocks()
        self._by_name = {(b.name, b.column): b for b in self._blocks}
        last = self._blocks[-1]
        self.error_terms = last.offset + last.size

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.rows}, {self.columns})'

    def __eq__(self, other) -> bool:
        return (type(self) is type(other) and self.rows == other.rows
                and self.columns == other.columns)

    def __hash__(self):
        return hash((self.name, self.rows, self.columns))

    def _check_shape(self):
        pass

    def _make_blocks(self) -> List[Block]:
        raise NotImplementedError

    @staticmethod
    def _chain(items) -> List[Block]:
        blocks = []
        offset = 0
        for item in items:
            name, size = item[0], item[1]
            column = item[2] if len(item) > 2 else None
            blocks.append(Block(name, offset, size, column))
            offset += size
        return blocks

    def blocks(self) -> List[Block]:
        """
        Return the named blocks of the error-term vector, in order.

        The blocks are contiguous, disjoint and cover the whole vector.
        """
        return list(self._blocks)

    def block(self, name: str, column: Optional[int] = None) -> Block:
        """
        Return the block with the given name (and column, for per-column
        layouts).
        """
        try:
            return self._by_name[(name, column)]
        except KeyError:
            raise UsageError(f'{self.name}: no error-term block {name!r}'
                             + ('' if column is None else f' in column {column}'))

    def offset(self, name: str, column: Optional[int] = None) -> int:
        return self.block(name, column).offset

    def get(self, e: npy.ndarray, name: str,
            column: Optional[int] = None) -> npy.ndarray:
        """
        Return the slice of error-term vector `e` holding block `name`.
        """
        b = self.block(name, column)
        return e[..., b.offset:b.offset + b.size]

    # linear system description
    @property
    def systems(self) -> int:
        return 1

    @property
    def t_terms(self) -> int:
        return self.error_terms - self.el_terms

    @property
    def el_terms(self) -> int:
        if self.leakage_outside:
            return self.rows * self.columns - self.diagonals
        return 0

    def system_offset(self, system: int) -> int:
        """
        Absolute error-term index of the first term of a linear system.
        """
        return system * self.t_terms

    def unity_offset(self, system: int = 0) -> int:
        """
        Absolute error-term index of the term fixed to 1 in a system.
        """
        raise NotImplementedError

    def leakage_map(self) -> npy.ndarray:
        """
        Map from measurement cell to leakage term.

        Returns
        -------
        el_map : npy.ndarray
            int array of shape (rows, columns) holding the index into the
            leakage block of each off-diagonal cell, -1 on the diagonal
        """
        el_map = -npy.ones((self.rows, self.columns), dtype=int)
        if not self.leakage_outside:
            return el_map
        k = 0
        for r in range(self.rows):
            for c in range(self.columns):
                if r != c:
                    el_map[r, c] = k
                    k += 1
        return el_map

    def system_of(self, eq_row: int, eq_column: int) -> int:
        return eq_column if self.per_column else 0

    def equation_cells(self, m_row_given, m_column_given, s_row_given,
                  s_column_given) -> List[Tuple[int, int]]:
        """
        Return the (row, column) indices of the equations a standard
        contributes, given which rows and columns of M and S it supplies.
        """
        raise NotImplementedError

    def equation_terms(self, eq_row: int, eq_column: int,
                       is_zero: Callable[[int], bool]) -> List[Term]:
        """
        Return the terms of one equation.

        Parameters
        ----------
        eq_row, eq_column : int
            equation index
        is_zero : callable
            ``is_zero(s_cell)`` returns True if the S cell is known to be
            exactly zero; such terms are omitted

        Returns
        -------
        terms : list of :class:`Term`
            the term whose index equals the system's unity offset is the
            right-hand side
        """
        raise NotImplementedError

    # models
    def subtract_leakage(self, e: npy.ndarray, m: npy.ndarray) -> npy.ndarray:
        """
        Return M with the leakage terms removed from off-diagonal cells.
        """
        m = npy.array(m, dtype=complex)
        if not self.leakage_outside:
            return m
        el = self.get(e, 'el')
        el_map = self.leakage_map()
        rows, columns = npy.nonzero(el_map >= 0)
        m[rows, columns] -= el[el_map[rows, columns]]
        return m

    def add_leakage(self, e: npy.ndarray, m: npy.ndarray) -> npy.ndarray:
        m = npy.array(m, dtype=complex)
        if not self.leakage_outside:
            return m
        el = self.get(e, 'el')
        el_map = self.leakage_map()
        rows, columns = npy.nonzero(el_map >= 0)
        m[rows, columns] += el[el_map[rows, columns]]
        return m

    def embed(self, e: npy.ndarray, s: npy.ndarray) -> npy.ndarray:
        """
        Forward model: return the measurement M of a DUT with
        S-parameters `s` (ports x ports) at one frequency.

        Returns
        -------
        m : npy.ndarray
            rows x columns measurement

        Raises
        ------
        MathError
            not raised; a singular model yields non-finite values
        """
        raise NotImplementedError

    def embed_full(self, e: npy.ndarray, s: npy.ndarray) -> npy.ndarray:
        """
        Like :meth:`embed`, but for the 1x2 and 2x1 layouts return the
        2x2 measurement made of a forward and a port-swapped sweep.
        """
        if self.rows == self.columns:
            return self.embed(e, s)
        if not self.is_degenerate:
            raise UsageError(f'{self.name} {self.rows}x{self.columns}: '
                             'cannot make a square measurement')
        s = npy.asarray(s, dtype=complex)
        m_f = self.embed(e, s)
        m_r = self.embed(e, _P @ s @ _P)
        m = npy.empty((2, 2), dtype=complex)
        if self.rows == 1:
            m[0, :] = m_f[0, :]
            m[1, 0] = m_r[0, 1]
            m[1, 1] = m_r[0, 0]
        else:
            m[:, 0] = m_f[:, 0]
            m[0, 1] = m_r[1, 0]
            m[1, 1] = m_r[0, 0]
        return m

    @property
    def is_degenerate(self) -> bool:
        return (self.rows, self.columns) in ((1, 2), (2, 1))

    def apply_m(self, e: npy.ndarray, m: npy.ndarray) -> Tuple[npy.ndarray, complex]:
        """
        Inverse model: recover S from a measurement at one frequency.

        Parameters
        ----------
        e : npy.ndarray
            error-term vector
        m : npy.ndarray
            ports x ports measurement. For the 1x2 and 2x1 layouts, the
            rows (1x2) or columns (2x1) of the first port come from the
            forward sweep, and the others from a sweep with the DUT's
            ports swapped.

        Returns
        -------
        s : npy.ndarray
            ports x ports S-parameters
        det : complex
            determinant of the matrix inverted; zero or non-finite if
            singular
        """
        raise NotImplementedError

    # file representation
    def matrix_names(self) -> List[str]:
        """
        Names of the matrices used to store the error terms in a file.
        """
        raise NotImplementedError

    def matrices(self, e: npy.ndarray) -> Dict[str, npy.ndarray]:
        """
        Split an error-term vector into named vectors and matrices.

        Leakage matrices hold NaN in the cells that carry no term.
        """
        raise NotImplementedError

    def from_matrices(self, matrices: Dict[str, npy.ndarray]) -> npy.ndarray:
        """
        Inverse of :meth:`matrices`.
        """
        raise NotImplementedError

    def _el_matrix(self, e):
        result = npy.full((self.rows, self.columns), npy.nan + 0j)
        el = self.get(e, 'el')
        el_map = self.leakage_map()
        mask = el_map >= 0
        result[mask] = el[el_map[mask]]
        return result

    def _el_from_matrix(self, e, matrix):
        matrix = npy.asarray(matrix, dtype=complex)
        if matrix.shape != (self.rows, self.columns):
            raise ValueError(f'el must be {self.rows}x{self.columns}')
        el_map = self.leakage_map()
        mask = el_map >= 0
        b = self.block('el')
        e[b.offset + el_map[mask]] = matrix[mask]


class TLayout(Layout):
    """
    Common base of the T-parameter layouts.
    """
    family = 'T'

    def _check_shape(self):
        if self.rows > self.columns:
            raise UsageError(f'{self.name}: rows ({self.rows}) cannot exceed '
                             f'columns ({self.columns})')

    def unity_offset(self, system: int = 0) -> int:
        return self.offset('tm')

    def equation_cells(self, m_row_given, m_column_given, s_row_given,
                  s_column_given):
        return [(r, c) for r in range(self.m_rows)
                for c in range(self.s_columns)
                if m_row_given[r] and s_column_given[c]]

    def t_matrices(self, e):
        raise NotImplementedError

    def embed(self, e, s):
        ts, ti, tx, tm = self.t_matrices(e)
        s = npy.asarray(s, dtype=complex)
        m, _ = mf.mrdivide(ts @ s + ti, tx @ s + tm)
        return self.add_leakage(e, m)

    def _ab(self, e, m):
        ts, ti, tx, tm = self.t_matrices(e)
        return ts - m @ tx, m @ tm - ti

    def apply_m(self, e, m):
        m = npy.asarray(m, dtype=complex)
        if self.rows == self.columns:
            a, b = self._ab(e, self.subtract_leakage(e, m))
            return mf.mldivide(a, b)
        if self.is_degenerate:
            m_f = m[0:1, :]
            m_r = npy.array([[m[1, 1], m[1, 0]]])
            m_f = self.subtract_leakage(e, m_f)
            m_r = self.subtract_leakage(e, m_r)
            a_f, b_f = self._ab(e, m_f)
            a_r, b_r = self._ab(e, m_r)
            a = npy.vstack([a_f, a_r @ _P])
            b = npy.vstack([b_f, b_r @ _P])
            return mf.mldivide(a, b)
        raise UsageError(f'{self.name}: cannot apply a {self.rows}x'
                         f'{self.columns} calibration')


class T8Layout(TLayout):
    """
    8-term T layout: diagonal ts, ti, tx and tm.
    """
    name = 'T8'

    def _make_blocks(self):
        items = [('ts', min(self.rows, self.s_rows)),
                ('ti', min(self.rows, self.s_columns)),
                ('tx', min(self.columns, self.s_rows)),
                ('tm', min(self.columns, self.s_columns))]
        if self.leakage_outside:
            items.append(('el', self.rows * self.columns - self.diagonals))
        return self._chain(items)

    def t_matrices(self, e):
        return (_diag_matrix(self.get(e, 'ts'), self.rows, self.s_rows),
                _diag_matrix(self.get(e, 'ti'), self.rows, self.s_columns),
                _diag_matrix(self.get(e, 'tx'), self.columns, self.s_rows),
                _diag_matrix(self.get(e, 'tm'), self.columns, self.s_columns))

    def equation_terms(self, eq_row, eq_column, is_zero):
        terms = []
        s_columns = self.s_columns
        ts, ti, tx, tm = (self.block(n) for n in ('ts', 'ti', 'tx', 'tm'))
        if eq_row < ts.size:
            s_cell = eq_row * s_columns + eq_column
            if not is_zero(s_cell):
                terms.append(Term(ts.offset + eq_row, False, -1, s_cell))
        if eq_row < ti.size and eq_row == eq_column:
            terms.append(Term(ti.offset + eq_row, False, -1, -1))
        for d in range(tx.size):
            s_cell = d * s_columns + eq_column
            if not is_zero(s_cell):
                terms.append(Term(tx.offset + d, True,
                                  eq_row * self.m_columns + d, s_cell))
        if eq_column < tm.size:
            m_cell = eq_row * self.m_columns + eq_column
            # tm11 is the unity term: moved to the right-hand side
            terms.append(Term(tm.offset + eq_column, eq_column != 0,
                              m_cell, -1))
        return terms

    def matrix_names(self):
        names = ['ts', 'ti', 'tx', 'tm']
        return names + ['el'] if self.leakage_outside else names

    def matrices(self, e):
        result = {name: self.get(e, name).copy() for name in ('ts', 'ti', 'tx', 'tm')}
        if self.leakage_outside:
            result['el'] = self._el_matrix(e)
        return result

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        for name in ('ts', 'ti', 'tx', 'tm'):
            b = self.block(name)
            e[b.offset:b.offset + b.size] = npy.asarray(matrices[name]).reshape(-1)
        if self.leakage_outside:
            self._el_from_matrix(e, matrices['el'])
        return e


class TE10Layout(T8Layout):
    """
    T8 plus off-diagonal leakage terms solved outside of the system.
    """
    name = 'TE10'
    leakage_outside = True


class T16Layout(TLayout):
    """
    16-term T layout: full ts, ti, tx and tm matrices.
    """
    name = 'T16'
    full_matrix = True

    def _make_blocks(self):
        return self._chain([('ts', self.rows * self.s_rows),
                            ('ti', self.rows * self.s_columns),
                            ('tx', self.columns * self.s_rows),
                            ('tm', self.columns * self.s_columns)])

    def _shapes(self):
        return {'ts': (self.rows, self.s_rows),
                'ti': (self.rows, self.s_columns),
                'tx': (self.columns, self.s_rows),
                'tm': (self.columns, self.s_columns)}

    def t_matrices(self, e):
        shapes = self._shapes()
        return tuple(self.get(e, n).reshape(shapes[n])
                     for n in ('ts', 'ti', 'tx', 'tm'))

    def equation_terms(self, eq_row, eq_column, is_zero):
        terms = []
        s_rows, s_columns = self.s_rows, self.s_columns
        m_columns = self.m_columns
        ts, ti, tx, tm = (self.block(n) for n in ('ts', 'ti', 'tx', 'tm'))
        for ts_column in range(s_rows):
            s_cell = ts_column * s_columns + eq_column
            if not is_zero(s_cell):
                terms.append(Term(ts.offset + eq_row * s_rows + ts_column,
                                  False, -1, s_cell))
        terms.append(Term(ti.offset + eq_row * s_columns + eq_column,
                          False, -1, -1))
        for tx_row in range(self.columns):
            for tx_column in range(s_rows):
                s_cell = tx_column * s_columns + eq_column
                if not is_zero(s_cell):
                    terms.append(Term(tx.offset + tx_row * s_rows + tx_column,
                                      True, eq_row * m_columns + tx_row,
                                      s_cell))
        for tm_row in range(self.columns):
            tm_cell = tm_row * s_columns + eq_column
            terms.append(Term(tm.offset + tm_cell, tm_cell != 0,
                              eq_row * m_columns + tm_row, -1))
        return terms

    def matrix_names(self):
        return ['ts', 'ti', 'tx', 'tm']

    def matrices(self, e):
        return dict(zip(self.matrix_names(), (x.copy() for x in self.t_matrices(e))))

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        shapes = self._shapes()
        for name in self.matrix_names():
            b = self.block(name)
            value = npy.asarray(matrices[name], dtype=complex)
            if value.shape != shapes[name]:
                raise ValueError(f'{name} must be {shapes[name][0]}x'
                                 f'{shapes[name][1]}')
            e[b.offset:b.offset + b.size] = value.reshape(-1)
        return e


class ULayout(Layout):
    """
    Common base of the U-parameter layouts.
    """
    family = 'U'

    def _check_shape(self):
        if self.rows < self.columns:
            raise UsageError(f'{self.name}: columns ({self.columns}) cannot '
                             f'exceed rows ({self.rows})')

    def unity_offset(self, system: int = 0) -> int:
        return self.offset('um')

    def equation_cells(self, m_row_given, m_column_given, s_row_given,
                  s_column_given):
        return [(r, c) for r in range(self.s_rows)
                for c in range(self.m_columns)
                if s_row_given[r] and m_column_given[c]]

    def u_matrices(self, e):
        raise NotImplementedError

    def embed(self, e, s):
        um, ui, ux, us = self.u_matrices(e)
        s = npy.asarray(s, dtype=complex)
        m, _ = mf.mldivide(um - s @ ux, s @ us - ui)
        return self.add_leakage(e, m)

    def _xy(self, e, m):
        um, ui, ux, us = self.u_matrices(e)
        return ux @ m + us, um @ m + ui

    def apply_m(self, e, m):
        m = npy.asarray(m, dtype=complex)
        if self.rows == self.columns:
            x, y = self._xy(e, self.subtract_leakage(e, m))
            return mf.mrdivide(y, x)
        if self.is_degenerate:
            m_f = m[:, 0:1]
            m_r = npy.array([[m[1, 1]], [m[0, 1]]])
            x_f, y_f = self._xy(e, self.subtract_leakage(e, m_f))
            x_r, y_r = self._xy(e, self.subtract_leakage(e, m_r))
            x = npy.hstack([x_f, _P @ x_r])
            y = npy.hstack([y_f, _P @ y_r])
            return mf.mrdivide(y, x)
        raise UsageError(f'{self.name}: cannot apply a {self.rows}x'
                         f'{self.columns} calibration')


class U8Layout(ULayout):
    """
    8-term U layout: diagonal um, ui, ux and us.
    """
    name = 'U8'

    def _make_blocks(self):
        items = [('um', min(self.s_rows, self.rows)),
                ('ui', min(self.s_rows, self.columns)),
                ('ux', min(self.s_columns, self.rows)),
                ('us', min(self.s_columns, self.columns))]
        if self.leakage_outside:
            items.append(('el', self.rows * self.columns - self.diagonals))
        return self._chain(items)

    def u_matrices(self, e):
        return (_diag_matrix(self.get(e, 'um'), self.s_rows, self.rows),
                _diag_matrix(self.get(e, 'ui'), self.s_rows, self.columns),
                _diag_matrix(self.get(e, 'ux'), self.s_columns, self.rows),
                _diag_matrix(self.get(e, 'us'), self.s_columns, self.columns))

    def equation_terms(self, eq_row, eq_column, is_zero):
        terms = []
        s_columns, m_columns = self.s_columns, self.m_columns
        um, ui, ux, us = (self.block(n) for n in ('um', 'ui', 'ux', 'us'))
        if eq_row < um.size:
            # um11 is the unity term: moved to the right-hand side
            terms.append(Term(um.offset + eq_row, eq_row == 0,
                              eq_row * m_columns + eq_column, -1))
        if eq_row < ui.size and eq_row == eq_column:
            terms.append(Term(ui.offset + eq_row, False, -1, -1))
        for d in range(ux.size):
            s_cell = eq_row * s_columns + d
            if not is_zero(s_cell):
                terms.append(Term(ux.offset + d, True,
                                  d * m_columns + eq_column, s_cell))
        if eq_column < us.size:
            s_cell = eq_row * s_columns + eq_column
            if not is_zero(s_cell):
                terms.append(Term(us.offset + eq_column, True, -1, s_cell))
        return terms

    def matrix_names(self):
        names = ['um', 'ui', 'ux', 'us']
        return names + ['el'] if self.leakage_outside else names

    def matrices(self, e):
        result = {name: self.get(e, name).copy() for name in ('um', 'ui', 'ux', 'us')}
        if self.leakage_outside:
            result['el'] = self._el_matrix(e)
        return result

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        for name in ('um', 'ui', 'ux', 'us'):
            b = self.block(name)
            e[b.offset:b.offset + b.size] = npy.asarray(matrices[name]).reshape(-1)
        if self.leakage_outside:
            self._el_from_matrix(e, matrices['el'])
        return e


class UE10Layout(U8Layout):
    """
    U8 plus off-diagonal leakage terms solved outside of the system.
    """
    name = 'UE10'
    leakage_outside = True


class U16Layout(ULayout):
    """
    16-term U layout: full um, ui, ux and us matrices.
    """
    name = 'U16'
    full_matrix = True

    def _make_blocks(self):
        return self._chain([('um', self.s_rows * self.rows),
                            ('ui', self.s_rows * self.columns),
                            ('ux', self.s_columns * self.rows),
                            ('us', self.s_columns * self.columns)])

    def _shapes(self):
        return {'um': (self.s_rows, self.rows),
                'ui': (self.s_rows, self.columns),
                'ux': (self.s_columns, self.rows),
                'us': (self.s_columns, self.columns)}

    def u_matrices(self, e):
        shapes = self._shapes()
        return tuple(self.get(e, n).reshape(shapes[n])
                     for n in ('um', 'ui', 'ux', 'us'))

    def equation_terms(self, eq_row, eq_column, is_zero):
        terms = []
        rows, columns = self.rows, self.columns
        s_columns, m_columns = self.s_columns, self.m_columns
        um, ui, ux, us = (self.block(n) for n in ('um', 'ui', 'ux', 'us'))
        for um_column in range(rows):
            um_cell = eq_row * rows + um_column
            terms.append(Term(um.offset + um_cell, um_cell == 0,
                              um_column * m_columns + eq_column, -1))
        if eq_column < columns:
            terms.append(Term(ui.offset + eq_row * columns + eq_column,
                              False, -1, -1))
        for ux_row in range(self.s_columns):
            for ux_column in range(rows):
                s_cell = eq_row * s_columns + ux_row
                if not is_zero(s_cell):
                    terms.append(Term(ux.offset + ux_row * rows + ux_column,
                                      True, ux_column * m_columns + eq_column,
                                      s_cell))
        for us_row in range(self.s_columns):
            s_cell = eq_row * s_columns + us_row
            if not is_zero(s_cell):
                terms.append(Term(us.offset + us_row * columns + eq_column,
                                  True, -1, s_cell))
        return terms

    def matrix_names(self):
        return ['um', 'ui', 'ux', 'us']

    def matrices(self, e):
        return dict(zip(self.matrix_names(), (x.copy() for x in self.u_matrices(e))))

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        shapes = self._shapes()
        for name in self.matrix_names():
            b = self.block(name)
            value = npy.asarray(matrices[name], dtype=complex)
            if value.shape != shapes[name]:
                raise ValueError(f'{name} must be {shapes[name][0]}x'
                                 f'{shapes[name][1]}')
            e[b.offset:b.offset + b.size] = value.reshape(-1)
        return e


class ColumnLayout(ULayout):
    """
    Common base of the layouts where each column of M is an independent
    system.
    """
    per_column = True

    @property
    def systems(self) -> int:
        return self.m_columns

    def equation_cells(self, m_row_given, m_column_given, s_row_given,
                  s_column_given):
        return [(r, c) for c in range(self.m_columns)
                for r in range(self.s_rows)
                if s_row_given[r] and m_column_given[c]]


class UE14Layout(ColumnLayout):
    """
    Per-column U layout: for each column c, diagonal um, ux and scalar ui,
    us; the leakage terms el are shared by all columns.
    """
    name = 'UE14'
    leakage_outside = True

    def _make_blocks(self):
        items = []
        for c in range(self.columns):
            items += [('um', min(self.s_rows, self.rows), c),
                     ('ui', 1, c),
                     ('ux', min(self.s_columns, self.rows), c),
                     ('us', 1, c)]
        items.append(('el', self.rows * self.columns - self.diagonals))
        return self._chain(items)

    @property
    def t_terms(self) -> int:
        return 2 * min(self.s_rows, self.rows) + 2

    def unity_offset(self, system: int = 0) -> int:
        return self.offset('um', system) + system

    def equation_terms(self, eq_row, eq_column, is_zero):
        terms = []
        c = eq_column
        s_columns, m_columns = self.s_columns, self.m_columns
        um, ui, ux, us = (self.block(n, c) for n in ('um', 'ui', 'ux', 'us'))
        if eq_row < um.size:
            # um[c][c] is the unity term: moved to the right-hand side
            terms.append(Term(um.offset + eq_row, eq_row == c,
                              eq_row * m_columns + c, -1))
        if eq_row == c:
            terms.append(Term(ui.offset, False, -1, -1))
        for d in range(ux.size):
            s_cell = eq_row * s_columns + d
            if not is_zero(s_cell):
                terms.append(Term(ux.offset + d, True, d * m_columns + c,
                                  s_cell))
        if c < s_columns:
            s_cell = eq_row * s_columns + c
            if not is_zero(s_cell):
                terms.append(Term(us.offset, True, -1, s_cell))
        return terms

    def column_terms(self, e, c):
        """
        Return (um, ui, ux, us) of column `c`.
        """
        return (self.get(e, 'um', c), self.get(e, 'ui', c)[0],
                self.get(e, 'ux', c), self.get(e, 'us', c)[0])

    def embed(self, e, s):
        s = npy.asarray(s, dtype=complex)
        m = npy.empty((self.rows, self.columns), dtype=complex)
        for c in range(self.columns):
            um, ui, ux, us = self.column_terms(e, c)
            a = npy.diag(um) - s @ npy.diag(ux)
            b = us * s[:, c]
            b[c] -= ui
            m[:, c] = mf.mldivide(a, b.reshape(-1, 1))[0][:, 0]
        return self.add_leakage(e, m)

    def _xy(self, e, m):
        x = npy.zeros((self.s_rows, m.shape[1]), dtype=complex)
        y = npy.zeros((self.s_rows, m.shape[1]), dtype=complex)
        for c in range(m.shape[1]):
            um, ui, ux, us = self.column_terms(e, c)
            x[:, c] = ux * m[:, c]
            x[c, c] += us
            y[:, c] = um * m[:, c]
            y[c, c] += ui
        return x, y

    def matrix_names(self):
        return ['um', 'ui', 'ux', 'us', 'el']

    def matrices(self, e):
        result = {}
        for name in ('um', 'ui', 'ux', 'us'):
            result[name] = npy.column_stack(
                [self.get(e, name, c) for c in range(self.columns)])
        result['el'] = self._el_matrix(e)
        return result

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        for name in ('um', 'ui', 'ux', 'us'):
            value = npy.asarray(matrices[name], dtype=complex)
            size = self.block(name, 0).size
            if value.shape != (size, self.columns):
                raise ValueError(f'{name} must be {size}x{self.columns}')
            for c in range(self.columns):
                b = self.block(name, c)
                e[b.offset:b.offset + b.size] = value[:, c]
        self._el_from_matrix(e, matrices['el'])
        return e


class E12UE14Layout(UE14Layout):
    """
    UE14 layout used internally to solve E12 calibrations.
    """
    name = '_E12_UE14'

    def to_e12(self, e: npy.ndarray) -> Tuple[npy.ndarray, bool]:
        """
        Convert a solved error-term vector to the E12 layout.

        Returns
        -------
        e12 : npy.ndarray
            E12 error-term vector
        ok : bool
            False if the conversion was singular
        """
        target = E12Layout(self.rows, self.columns)
        result = npy.zeros(target.error_terms, dtype=complex)
        el_shared = self.get(e, 'el')
        el_map = self.leakage_map()
        ok = True
        for c in range(self.columns):
            um, ui, ux, us = self.column_terms(e, c)
            if npy.any(um == 0):
                ok = False
                continue
            n = us - ui * ux[c] / um[c]
            el = target.get(result, 'el', c)
            er = target.get(result, 'er', c)
            em = target.get(result, 'em', c)
            for r in range(self.rows):
                if r == c:
                    el[r] = -ui / um[c]
                else:
                    el[r] = el_shared[el_map[r, c]]
                er[r] = n / um[r]
                em[r] = ux[r] / um[r]
        return result, ok


class E12Layout(ColumnLayout):
    """
    Classic 12-term layout: for each column c, el (directivity and
    leakage), er (reflection and transmission tracking) and em (source
    and load match) vectors of length rows.

    E12 is solved as :class:`E12UE14Layout` and converted.
    """
    name = 'E12'

    def _make_blocks(self):
        items = []
        for c in range(self.columns):
            items += [('el', self.rows, c), ('er', self.rows, c),
                     ('em', self.rows, c)]
        return self._chain(items)

    @property
    def el_terms(self) -> int:
        return 0

    def unity_offset(self, system: int = 0) -> int:
        raise UsageError('E12 has no unity term; solve it as UE14')

    def equation_terms(self, eq_row, eq_column, is_zero):
        raise UsageError('E12 has no equations of its own; solve it as UE14')

    def subtract_leakage(self, e, m):
        return npy.array(m, dtype=complex)

    def add_leakage(self, e, m):
        return npy.array(m, dtype=complex)

    def embed(self, e, s):
        s = npy.asarray(s, dtype=complex)
        n = self.s_rows
        m = npy.empty((self.rows, self.columns), dtype=complex)
        for c in range(self.columns):
            el, er, em = (self.get(e, name, c) for name in ('el', 'er', 'em'))
            a = npy.eye(n, dtype=complex) - s @ npy.diag(em)
            b, _ = mf.mldivide(a, s[:, c:c + 1])
            m[:, c] = el + er * b[:, 0]
        return m

    def _xy(self, e, m):
        x = npy.zeros((self.s_rows, m.shape[1]), dtype=complex)
        y = npy.zeros((self.s_rows, m.shape[1]), dtype=complex)
        with npy.errstate(divide='ignore', invalid='ignore'):
            for c in range(m.shape[1]):
                el, er, em = (self.get(e, name, c) for name in ('el', 'er', 'em'))
                b = (m[:, c] - el) / er
                x[:, c] = em * b
                x[c, c] += 1.0
                y[:, c] = b
        return x, y

    def matrix_names(self):
        return ['el', 'er', 'em']

    def matrices(self, e):
        return {name: npy.column_stack([self.get(e, name, c)
                                        for c in range(self.columns)])
                for name in self.matrix_names()}

    def from_matrices(self, matrices):
        e = npy.zeros(self.error_terms, dtype=complex)
        for name in self.matrix_names():
            value = npy.asarray(matrices[name], dtype=complex)
            if value.shape != (self.rows, self.columns):
                raise ValueError(f'{name} must be {self.rows}x{self.columns}')
            for c in range(self.columns):
                b = self.block(name, c)
                e[b.offset:b.offset + b.size] = value[:, c]
        return e


LAYOUTS = {cls.name: cls for cls in (T8Layout, TE10Layout, T16Layout,
                                     U8Layout, UE10Layout, U16Layout,
                                     UE14Layout, E12Layout)}


def make_layout(name: str, rows: int, columns: int) -> Layout:
    """
    Create the layout of an error-term topology.

    Parameters
    ----------
    name : str
        one of 'T8', 'U8', 'TE10', 'UE10', 'T16', 'U16', 'UE14', 'E12'
    rows, columns : int
        dimensions of the measurement matrix

    Returns
    -------
    layout : :class:`Layout`

    Raises
    ------
    UsageError
        for an unknown topology or dimensions it does not support

    Examples
    --------
    >>> layout = make_layout('TE10', 2, 2)
    >>> layout.error_terms
    10
    """
    if isinstance(name, Layout):
        name = name.name
    try:
        cls = LAYOUTS[str(name).upper()]
    except KeyError:
        raise UsageError(f'unknown calibration type {name!r}') from None
    return cls(rows, columns)
