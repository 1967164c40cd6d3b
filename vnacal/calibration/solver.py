"""
.. module:: vnacal.calibration.solver

================================================================
solver (:mod:`vnacal.calibration.solver`)
================================================================

Error-term solver.

Each equation contributed by a standard is linear in the error terms
once the S-parameters of the standard are known. When all standards are
fully known and no measurement error is given, the linear systems are
solved directly: by LU decomposition when square, otherwise in the
least-squares sense by QR decomposition.

When some standards contain unknown parameters, the problem is separable
in the error terms x and the unknown parameters p, and is solved by
variable projection: for fixed p, x is the least-squares solution of the
linear system; p is then refined by Gauss-Newton steps on the residual
projected onto the orthogonal complement of the range of the system
matrix [1]_. Correlated parameters add rows that pull them toward the
parameter they are correlated with.

When the measurement error is known, each equation is weighted by the
inverse of its standard deviation, and the fit is checked either by the
RMS of the weighted residuals or by a chi-squared test.

.. autosummary::
   :toctree: generated/

   Solver

References
----------
.. [1] G. H. Golub and V. Pereyra, "The Differentiation of Pseudo-Inverses
    and Nonlinear Least Squares Problems Whose Variables Separate,"
    SIAM J. Numer. Anal. 10(2), 1973.

"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as npy
from scipy import stats

from .. import mathFunctions as mf
from ..constants import MAX_BACKTRACK, PHI_INV, PHI_INV2, RMS_ERROR_LIMIT
from ..exceptions import MathError

logger = logging.getLogger(__name__)


class _CompiledEquation:
    """
    Equation with its terms as arrays, ready for evaluation.
    """
    __slots__ = ('k', 'row', 'column', 'system', 'x_columns', 'signs',
                 'm_cells', 's_cells', 'p_index', 'm_cell')

    def __init__(self, equation, layout, s_unknown):
        self.k = equation.measurement
        self.row = equation.row
        self.column = equation.column
        self.system = equation.system
        t = layout.t_terms
        base = layout.system_offset(self.system)
        unity = layout.unity_offset(self.system)
        x_columns = []
        for term in equation.terms:
            if term.index == unity:
                x_columns.append(-1)
            else:
                x_columns.append(self.system * (t - 1) + term.index - base
                                 - (1 if term.index > unity else 0))
        self.x_columns = npy.array(x_columns, dtype=int)
        self.signs = npy.array([-1.0 if term.negative else 1.0
                                for term in equation.terms])
        self.m_cells = npy.array([term.m_cell for term in equation.terms],
                                 dtype=int)
        self.s_cells = npy.array([term.s_cell for term in equation.terms],
                                 dtype=int)
        self.p_index = npy.where(self.s_cells >= 0,
                                 s_unknown[self.s_cells], -1)
        self.m_cell = self.row * layout.m_columns + self.column


class Solver:
    """
    Solves the error terms of a :class:`NewCalibration`.

    Parameters
    ----------
    new_cal : :class:`~vnacal.calibration.newCalibration.NewCalibration`
        builder holding the standards
    """
    def __init__(self, new_cal):
        self.new_cal = new_cal
        layout = self.layout = new_cal.solve_layout
        self.z0 = new_cal.z0
        self.m_error = new_cal.m_error
        self.unknowns = new_cal.unknowns
        self.p_length = len(self.unknowns)
        self.x_length = layout.systems * (layout.t_terms - 1)
        self.correlated = [(new_cal.unknown_index(p),
                            new_cal.unknown_index(p.other), p)
                           for p in new_cal.correlated]

        # per-measurement map from S cell to unknown parameter index
        self._s_unknown = []
        for measurement in new_cal.measurements:
            self._s_unknown.append(npy.array(
                [-1 if cell is None else new_cal.unknown_index(cell)
                 for cell in measurement.s], dtype=int))

        # drop equations that cannot involve any non-zero S cell
        self.systems: List[List[_CompiledEquation]] = []
        for system in new_cal.equations:
            compiled = []
            for equation in system:
                reachable = new_cal.measurements[equation.measurement].reachable
                if (reachable is not None and equation.row != equation.column
                        and not reachable[equation.row, equation.column]):
                    continue
                compiled.append(_CompiledEquation(
                    equation, layout, self._s_unknown[equation.measurement]))
            self.systems.append(compiled)
        self.equations = [eq for system in self.systems for eq in system]

        # leakage terms are averages of the measurements of standards
        # that cannot couple the two ports
        self._leakage_mask = None
        if layout.leakage_outside:
            el_map = layout.leakage_map()
            masks = []
            for measurement in new_cal.measurements:
                rows, columns = measurement.m_given.shape
                mask = measurement.m_given & (el_map >= 0)
                mask &= ~measurement.reachable[:rows, :columns]
                masks.append(mask)
            self._leakage_mask = npy.array(masks, dtype=bool)
            self._leakage_count = self._leakage_mask.sum(axis=0)
            self._el_map = el_map
            if npy.any(self._leakage_count[el_map >= 0] == 0):
                raise MathError('leakage term system is singular')

    # per-frequency values
    def _prepare(self, findex: int, f: float) -> None:
        new_cal = self.new_cal
        self.findex = findex
        self.f = f
        self._m = [measurement.m[findex].copy()
                   for measurement in new_cal.measurements]
        if self._leakage_mask is not None:
            stack = npy.array(self._m)
            self._leakage_sum = npy.where(self._leakage_mask, stack,
                                          0.0).sum(axis=0)
            self._leakage_sumsq = npy.where(self._leakage_mask,
                                            npy.abs(stack) ** 2,
                                            0.0).sum(axis=0)
            with npy.errstate(divide='ignore', invalid='ignore'):
                mean = self._leakage_sum / self._leakage_count
            off = self._el_map >= 0
            for m in self._m:
                m[off] -= mean[off]
        self._m = [m.reshape(-1) for m in self._m]
        self._s_known = []
        for measurement in new_cal.measurements:
            s = npy.zeros(len(measurement.s), dtype=complex)
            for index, cell in enumerate(measurement.s):
                if cell is not None and not cell.is_unknown:
                    s[index] = cell.value(f, self.z0)
            self._s_known.append(s)
        if self.m_error is not None:
            self.noise, self.tracking = self.m_error[findex]

    def _s(self, k: int, p: npy.ndarray) -> npy.ndarray:
        s = self._s_known[k].copy()
        index = self._s_unknown[k]
        mask = index >= 0
        s[mask] = p[index[mask]]
        return s

    def _parts(self, eq: _CompiledEquation, p: npy.ndarray):
        """
        Return the m and s factors of each term; 1 where absent.
        """
        m = npy.where(eq.m_cells >= 0, self._m[eq.k][eq.m_cells], 1.0)
        s = npy.where(eq.s_cells >= 0, self._s(eq.k, p)[eq.s_cells], 1.0)
        return m, s

    def _build(self, equations, p, w=None):
        n = len(equations)
        a = npy.zeros((n, self.x_length), dtype=complex)
        b = npy.zeros(n, dtype=complex)
        for i, eq in enumerate(equations):
            m, s = self._parts(eq, p)
            v = eq.signs * m * s
            if w is not None:
                v = v * w[i]
            rhs = eq.x_columns < 0
            npy.add.at(a[i], eq.x_columns[~rhs], v[~rhs])
            b[i] = v[rhs].sum()
        return a, b

    def _residuals(self, x, p):
        """
        Unweighted residual of each equation.
        """
        result = npy.empty(len(self.equations), dtype=complex)
        for i, eq in enumerate(self.equations):
            m, s = self._parts(eq, p)
            coefficient = npy.where(eq.x_columns >= 0, x[eq.x_columns], -1.0)
            result[i] = npy.sum(eq.signs * coefficient * s * m)
        return result

    def _initial_p(self) -> npy.ndarray:
        p = npy.empty(self.p_length, dtype=complex)
        for index, unknown in enumerate(self.unknowns):
            p[index] = unknown.value(self.f, self.z0)
        return p

    # direct solution
    def _solve_linear(self, p: npy.ndarray) -> npy.ndarray:
        t = self.layout.t_terms - 1
        x = npy.empty(self.x_length, dtype=complex)
        for system, equations in enumerate(self.systems):
            columns = slice(system * t, (system + 1) * t)
            a, b = self._build(equations, p)
            a = a[:, columns]
            if len(equations) < t:
                raise MathError('insufficient number of standards to solve '
                                'error terms')
            if len(equations) == t:
                xs, det = mf.mldivide(a, b.reshape(-1, 1))
                if mf.is_singular(det):
                    raise MathError('singular linear system')
            else:
                xs, rank = mf.qrsolve(a, b.reshape(-1, 1))
                if rank < t:
                    raise MathError('singular linear system')
            x[columns] = xs[:, 0]
        return x

    # iterative solution
    def _calc_weights(self, x, p, w) -> None:
        noise2 = self.noise ** 2
        tracking2 = self.tracking ** 2
        for i, eq in enumerate(self.equations):
            m = self._m[eq.k]
            _, s = self._parts(eq, p)
            coefficient = npy.where(eq.x_columns >= 0, x[eq.x_columns], -1.0)
            v = eq.signs * s * coefficient
            m_weight = {}
            for cell, value in zip(eq.m_cells, v):
                if cell >= 0:
                    m_weight[cell] = m_weight.get(cell, 0.0) + value
            u2 = sum(abs(value) ** 2 * (noise2 + tracking2 * abs(m[cell]) ** 2)
                     for cell, value in m_weight.items())
            w[i] = 1.0 / max(npy.sqrt(u2), self.noise)

    def _solve_iterative(self, p: npy.ndarray):
        x_length, p_length = self.x_length, self.p_length
        equations = self.equations
        n_equations = len(equations)
        n_correlated = len(self.correlated)
        if n_equations + n_correlated < x_length + p_length:
            raise MathError('not enough standards given to solve the system')
        p_equations = n_equations - x_length
        j_rows = p_equations + n_correlated
        tolerance2 = self.new_cal.p_tolerance ** 2
        limit = self.new_cal.iteration_limit

        w = None
        best_x = best_p = best_w = best_d = None
        best_sum = npy.inf
        backtrack = 0
        iteration = 0
        while True:
            a, b = self._build(equations, p, w)
            q, r = mf.qr(a)
            if mf.qr_rank(r) < x_length:
                raise MathError('singular linear system')
            x, _ = mf.mldivide(r[:x_length, :x_length],
                               (q[:, :x_length].conj().T @ b).reshape(-1, 1))
            x = x[:, 0]
            if self.m_error is not None and w is None:
                w = npy.ones(n_equations)
                self._calc_weights(x, p, w)
                continue
            if p_length == 0:
                return x, p

            # Jacobian of the projected residual with respect to p
            q2 = q[:, x_length:]
            j = npy.zeros((j_rows, p_length), dtype=complex)
            k = npy.zeros(j_rows, dtype=complex)
            for i, eq in enumerate(equations):
                if not npy.any(eq.p_index >= 0):
                    continue
                m, _ = self._parts(eq, p)
                weight = w[i] if w is not None else 1.0
                for term in npy.nonzero(eq.p_index >= 0)[0]:
                    value = eq.signs[term] * m[term] * weight
                    if eq.x_columns[term] >= 0:
                        value = value * x[eq.x_columns[term]]
                    else:
                        value = -value
                    j[:p_equations, eq.p_index[term]] -= q2[i, :].conj() * value
            k[:p_equations] = -(q2.conj().T @ b)
            for row, (i, other_index, parameter) in enumerate(self.correlated):
                c = 1.0 / parameter.sigma(self.f)
                row += p_equations
                j[row, i] = c
                if other_index >= 0:
                    j[row, other_index] = -c
                    other = p[other_index]
                else:
                    other = parameter.other.value(self.f, self.z0)
                k[row] = -c * (p[i] - other)

            if j_rows == p_length:
                d, det = mf.mldivide(j, k.reshape(-1, 1))
                if mf.is_singular(det):
                    raise MathError('singular linear system')
            else:
                d, rank = mf.qrsolve(j, k.reshape(-1, 1))
                if rank < p_length:
                    raise MathError('singular linear system')
            d = d[:, 0]
            sum_d2 = float(npy.real(npy.vdot(d, d)))
            logger.debug('f=%e iteration %d: |dp|^2=%e', self.f, iteration,
                         sum_d2)

            if sum_d2 < best_sum:
                best_x, best_p = x, p.copy()
                best_w = None if w is None else w.copy()
                best_sum = sum_d2
                if sum_d2 / p_length <= tolerance2:
                    break
                # limit the step to a fraction of |p|
                sum_p2 = max(float(npy.real(npy.vdot(p, p))), 1.0)
                if sum_d2 > sum_p2 * PHI_INV2:
                    d = d * npy.sqrt(sum_p2 / sum_d2) * PHI_INV
                best_d = d
                if w is not None:
                    self._calc_weights(x, p, w)
                p = p + d
                backtrack = 0
            elif sum_d2 / p_length <= tolerance2:
                break
            else:
                backtrack += 1
                if backtrack > MAX_BACKTRACK:
                    break
                best_d = best_d * 0.5
                p = best_p + best_d
                if w is not None:
                    w = best_w.copy()
                    self._calc_weights(x, p, w)
            iteration += 1
            if iteration >= limit:
                raise MathError(f'system failed to converge at {self.f:e} Hz')
        return best_x, best_p

    # goodness of fit
    def _leakage_chisq(self):
        """
        Return (sum of normalized variances, extra degrees of freedom)
        of the leakage averages.
        """
        if self._leakage_mask is None:
            return 0.0, 0
        total, extra = 0.0, 0
        off = self._el_map >= 0
        for r, c in zip(*npy.nonzero(off)):
            n = self._leakage_count[r, c]
            if n < 2:
                continue
            s = self._leakage_sum[r, c]
            value = self._leakage_sumsq[r, c] - abs(s) ** 2 / n
            weight = 1.0 / (self.noise ** 2 + abs(s) ** 2 / n
                            * self.tracking ** 2)
            if value > 0.0:
                total += value * weight
            extra += n - 1
        return total, extra

    def _rms_error(self, x, p) -> float:
        layout = self.layout
        m_columns = layout.m_columns
        t_family = layout.family == 'T'
        w_terms = m_columns if t_family else layout.m_rows
        noise2 = self.noise ** 2
        sq, count = 0.0, 0
        for eq in self.equations:
            m = self._m[eq.k]
            _, s = self._parts(eq, p)
            coefficient = npy.where(eq.x_columns >= 0, x[eq.x_columns], -1.0)
            residual = 0.0
            w_term = npy.zeros(w_terms, dtype=complex)
            for sign, cell, cf, sv in zip(eq.signs, eq.m_cells, coefficient, s):
                v = sign * cf * sv
                if cell >= 0:
                    i = cell % m_columns if t_family else cell // m_columns
                    w_term[i] += v * npy.sqrt(
                        noise2 + (self.tracking * abs(m[cell])) ** 2)
                    v = v * m[cell]
                residual += v
            u = max(float(npy.sum(npy.abs(w_term) ** 2)) / w_terms, noise2)
            sq += abs(residual) ** 2 / u
            count += 1
        for i, other_index, parameter in self.correlated:
            other = (p[other_index] if other_index >= 0
                     else parameter.other.value(self.f, self.z0))
            sq += abs(p[i] - other) ** 2 / parameter.sigma(self.f) ** 2
            count += 1
        leakage, extra = self._leakage_chisq()
        sq += leakage
        count += extra
        if count == 0:
            return 0.0
        return float(npy.sqrt(sq / count))

    def _pvalue(self, x, p) -> Optional[float]:
        chisq, df = 0.0, 0
        residuals = self._residuals(x, p)
        for eq, residual in zip(self.equations, residuals):
            m_value = self._m[eq.k][eq.m_cell]
            divisor = (abs(m_value) ** 2 * self.tracking ** 2
                       + self.noise ** 2)
            chisq += 2.0 * abs(residual) ** 2 / divisor
            df += 2
        df -= 2 * len(self.systems) * (self.layout.t_terms - 1)
        leakage, extra = self._leakage_chisq()
        chisq += 2.0 * leakage
        df += 2 * extra
        if df < 1:
            return None
        return float(stats.chi2.sf(chisq, df))

    # assembly
    def _error_terms(self, x: npy.ndarray) -> npy.ndarray:
        layout = self.layout
        t = layout.t_terms
        e = npy.zeros(layout.error_terms, dtype=complex)
        for system in range(layout.systems):
            base = layout.system_offset(system)
            unity = layout.unity_offset(system) - base
            values = x[system * (t - 1):(system + 1) * (t - 1)]
            e[base:base + t] = npy.insert(values, unity, 1.0)
        if layout.leakage_outside:
            off = self._el_map >= 0
            el = layout.block('el')
            e[el.offset + self._el_map[off]] = (self._leakage_sum[off]
                                                / self._leakage_count[off])
        if layout.name == '_E12_UE14':
            e, ok = layout.to_e12(e)
            if not ok:
                raise MathError('singular system')
        return e

    def solve(self) -> Tuple[npy.ndarray, npy.ndarray, Optional[npy.ndarray]]:
        """
        Solve all frequencies.

        Returns
        -------
        error_terms : npy.ndarray
            (frequencies, error terms) array
        p_vectors : npy.ndarray
            (frequencies, unknown parameters) array of solved parameters
        rms_error : npy.ndarray or None
            per-frequency RMS error, when the measurement error is known

        Raises
        ------
        MathError
            see :meth:`NewCalibration.solve`
        """
        new_cal = self.new_cal
        fv = new_cal.frequency_vector
        iterative = self.p_length > 0 or self.m_error is not None
        logger.debug('solving %d equations in %d error terms and %d '
                     'parameters (%s)', len(self.equations), self.x_length,
                     self.p_length, 'iterative' if iterative else 'linear')
        error_terms = None
        p_vectors = npy.empty((len(fv), self.p_length), dtype=complex)
        rms_error = None if self.m_error is None else npy.empty(len(fv))
        for findex, f in enumerate(fv):
            self._prepare(findex, f)
            p = self._initial_p()
            if iterative:
                x, p = self._solve_iterative(p)
            else:
                x = self._solve_linear(p)
            if self.m_error is not None:
                rms = self._rms_error(x, p)
                rms_error[findex] = rms
                if new_cal.pvalue_limit is not None:
                    pvalue = self._pvalue(x, p)
                    if pvalue is not None and pvalue < new_cal.pvalue_limit:
                        raise MathError(f'solution at {f:e} Hz is inconsistent '
                                        f'with the measurement error '
                                        f'(p-value {pvalue:e})')
                elif rms > RMS_ERROR_LIMIT:
                    raise MathError(f'too much error at {f:e} Hz (RMS error '
                                    f'{rms:.3g})')
            e = self._error_terms(x)
            if error_terms is None:
                error_terms = npy.empty((len(fv), len(e)), dtype=complex)
            error_terms[findex] = e
            p_vectors[findex] = p
        return error_terms, p_vectors, rms_error
