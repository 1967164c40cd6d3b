"""
.. module:: vnacal.interpolation

========================================
interpolation (:mod:`vnacal.interpolation`)
========================================

Frequency-domain interpolation of error terms and standard values.

.. autosummary::
   :toctree: generated/

   rfi
   RationalInterpolator
   NaturalSpline

"""
from __future__ import annotations

from typing import Tuple

import numpy as npy
from scipy.interpolate import CubicSpline

from .constants import MAX_M, RFI_EPS, NumberLike


def rfi(xp: npy.ndarray, yp: npy.ndarray, m: int, x: float,
        segment: int = 0) -> Tuple[npy.ndarray, int]:
    """
    Rational function interpolation.

    Bulirsch-Stoer rational interpolation on the `m` tabulated points
    nearest to `x`. At or beyond either end of `xp` the end value is
    returned unchanged (flat extrapolation); bounds checking is up to
    the caller.

    Parameters
    ----------
    xp : npy.ndarray
        n ascending x values
    yp : npy.ndarray
        values at `xp`, shape (n,) or (n, k); each of the k columns is
        interpolated independently
    m : int
        window size, 1 <= m <= n
    x : float
        point at which to interpolate
    segment : int
        segment hint from a previous call; speeds up near-monotonic
        sequences of queries

    Returns
    -------
    y : complex or npy.ndarray
        interpolated value(s)
    segment : int
        updated segment hint

    Examples
    --------
    >>> y, seg = rfi(f, v, 4, 1.5e9)
    >>> y, seg = rfi(f, v, 4, 1.6e9, seg)
    """
    xp = npy.asarray(xp, dtype=float)
    yp = npy.asarray(yp, dtype=complex)
    n = len(xp)
    if n == 0:
        raise ValueError('rfi requires at least one point')
    if not 1 <= m <= n:
        raise ValueError(f'window size {m} out of range 1..{n}')

    if x <= xp[0]:
        return yp[0].copy(), 0
    if x >= xp[n - 1]:
        return yp[n - 1].copy(), max(n - 2, 0)

    # find segment such that xp[segment] <= x <= xp[segment + 1]
    segment = min(max(segment, 0), n - 2)
    while x < xp[segment]:
        segment -= 1
    while x > xp[segment + 1]:
        segment += 1

    dx1 = x - xp[segment]
    dx2 = xp[segment + 1] - x
    if abs(dx1) < RFI_EPS:
        return yp[segment].copy(), segment
    if abs(dx2) < RFI_EPS:
        return yp[segment + 1].copy(), segment
    if dx1 <= dx2 or m < 2:
        nearest = segment
    else:
        nearest = segment + 1

    # place the window
    if m & 1:
        base = nearest - (m - 1) // 2
    else:
        base = segment - (m // 2 - 1)
    base = min(max(base, 0), n - m)
    cur = nearest - base

    c = yp[base:base + m].copy()
    d = yp[base:base + m] + RFI_EPS
    y = yp[base + cur].copy()
    cur -= 1
    with npy.errstate(divide='ignore', invalid='ignore'):
        for i in range(m - 1):
            for j in range(m - i - 1):
                c_d = c[j + 1] - d[j]
                h1 = x - xp[base + j]
                h2 = x - xp[base + i + j + 1]
                den = h1 * d[j] - h2 * c[j + 1]
                # flat data leaves c and d at zero; 0/0 would be nan
                ratio = npy.where(den == 0, 0, c_d / den)
                c[j] = h1 * d[j] * ratio
                d[j] = h2 * c[j + 1] * ratio
            if 2 * (cur + 1) < m - i:
                y = y + c[cur + 1]
            else:
                y = y + d[cur]
                cur -= 1
    return y, segment


class RationalInterpolator:
    """
    Rational interpolation over a fixed table, remembering the segment.

    Parameters
    ----------
    xp : array_like
        ascending x values
    yp : array_like
        values at `xp`, shape (n,) or (n, k)
    m : int or None
        window size; defaults to ``min(n, MAX_M)``
    """
    def __init__(self, xp: NumberLike, yp: NumberLike, m: int = None):
        self.xp = npy.asarray(xp, dtype=float).reshape(-1)
        self.yp = npy.asarray(yp, dtype=complex)
        if m is None:
            m = min(len(self.xp), MAX_M)
        self.m = m
        self.segment = 0

    def __call__(self, x: float):
        y, self.segment = rfi(self.xp, self.yp, self.m, x, self.segment)
        return y

    def evaluate(self, x: NumberLike) -> npy.ndarray:
        """
        Interpolate at every point in `x`, returning a stacked array.
        """
        return npy.array([self(xi) for xi in npy.atleast_1d(x)])


class NaturalSpline:
    """
    Natural cubic spline through real-valued points.

    Used for standard deviation curves, which are real and smooth. A
    single point gives a constant; two points a straight line.

    Parameters
    ----------
    x : array_like
        ascending x values
    y : array_like
        real values at `x`
    """
    def __init__(self, x: NumberLike, y: NumberLike):
        self.x = npy.asarray(x, dtype=float).reshape(-1)
        self.y = npy.asarray(y, dtype=float).reshape(-1)
        if len(self.x) != len(self.y):
            raise ValueError('x and y must have the same length')
        if len(self.x) >= 2:
            self._spline = CubicSpline(self.x, self.y, bc_type='natural')
        else:
            self._spline = None

    def __call__(self, x: NumberLike):
        if self._spline is None:
            return npy.full(npy.shape(x), self.y[0]) if npy.ndim(x) else self.y[0]
        result = self._spline(x)
        return float(result) if npy.ndim(result) == 0 else result
