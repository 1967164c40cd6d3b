"""
mathFunctions (:mod:`vnacal.mathFunctions`)
=============================================


Dense complex linear algebra used by the calibration solver and applier.

All functions in this module operate on a single frequency: the inputs
are 2-D complex arrays. Singular inputs never raise; singularity is
reported through a zero or non-finite determinant, or through a rank
smaller than the number of unknowns. Callers decide what to do with it.

Matrix Kernel
---------------------------------
.. autosummary::
        :toctree: generated/

        cmultiply
        lu
        minverse
        mldivide
        mrdivide
        qr
        qr_rank
        qrsolve
        is_singular
        rsolve

Complex Component Conversion
---------------------------------
.. autosummary::
        :toctree: generated/

        complex_2_magnitude
        complex_2_db
        complex_2_degree

"""
from __future__ import annotations

from typing import Tuple

import numpy as npy
from numpy import pi, angle
from scipy.linalg import solve_triangular

from .constants import NumberLike


def complex_2_magnitude(z: NumberLike):
    """
    Return the magnitude of the complex argument.

    Parameters
    ----------
    z : number or array_like
        A complex number or sequence of complex numbers

    Returns
    -------
    mag : ndarray or scalar
    """
    return npy.abs(z)


def complex_2_db(z: NumberLike):
    r"""
    Return the magnitude in dB of a complex number (as :math:`20\log_{10}(|z|)`).

    Zero magnitudes map to -inf without a warning.

    Parameters
    ----------
    z : number or array_like
        A complex number or sequence of complex numbers

    Returns
    -------
    db : ndarray or scalar
    """
    with npy.errstate(divide='ignore'):
        return 20 * npy.log10(npy.abs(z))


def complex_2_degree(z: NumberLike):
    """
    Return the phase of a complex number, in degrees.
    """
    return angle(z) * 180 / pi


def _as_matrix(a) -> npy.ndarray:
    a = npy.array(a, dtype=complex)
    if a.ndim == 1:
        a = a.reshape(-1, 1)
    if a.ndim != 2:
        raise ValueError('expected a 2-D matrix')
    return a


def is_singular(det: complex) -> bool:
    """
    Return True if a determinant signals a singular matrix.

    A determinant is singular when it is zero or not finite.
    """
    return det == 0 or not npy.isfinite(det)


def cmultiply(a: npy.ndarray, b: npy.ndarray) -> npy.ndarray:
    """
    Multiply an m x n matrix by an n x o matrix.

    Parameters
    ----------
    a : npy.ndarray
        m x n complex matrix
    b : npy.ndarray
        n x o complex matrix

    Returns
    -------
    c : npy.ndarray
        m x o complex product
    """
    a = _as_matrix(a)
    b = _as_matrix(b)
    if a.shape[1] != b.shape[0]:
        raise ValueError(f'cannot multiply {a.shape} by {b.shape}')
    return a @ b


def lu(a: npy.ndarray) -> Tuple[npy.ndarray, npy.ndarray, complex]:
    """
    LU decomposition of a square matrix with partial pivoting.

    The unit lower triangle L and the upper triangle U are returned packed
    in a single matrix such that ``a[perm] = L @ U``.

    Parameters
    ----------
    a : npy.ndarray
        n x n complex matrix

    Returns
    -------
    lu : npy.ndarray
        packed factors
    perm : npy.ndarray
        row permutation
    det : complex
        determinant of `a`; 0 if a zero pivot was found
    """
    work = _as_matrix(a).copy()
    n = work.shape[0]
    if work.shape[1] != n:
        raise ValueError('lu requires a square matrix')
    perm = npy.arange(n)
    det = 1.0 + 0.0j
    for k in range(n):
        p = k + int(npy.argmax(npy.abs(work[k:, k])))
        pivot = work[p, k]
        if pivot == 0:
            return work, perm, 0.0 + 0.0j
        if p != k:
            work[[k, p]] = work[[p, k]]
            perm[[k, p]] = perm[[p, k]]
            det = -det
        det *= pivot
        work[k+1:, k] /= pivot
        work[k+1:, k+1:] -= npy.outer(work[k+1:, k], work[k, k+1:])
    return work, perm, det


def _lu_solve(lu_, perm, b):
    y = solve_triangular(lu_, b[perm], lower=True, unit_diagonal=True,
                         check_finite=False)
    return solve_triangular(lu_, y, lower=False, check_finite=False)


def mldivide(a: npy.ndarray, b: npy.ndarray) -> Tuple[npy.ndarray, complex]:
    r"""
    Solve A X = B for square A.

    Equivalent to Matlab's ``A \ B``.

    Parameters
    ----------
    a : npy.ndarray
        n x n complex matrix
    b : npy.ndarray
        n x k complex matrix

    Returns
    -------
    x : npy.ndarray
        n x k solution; filled with NaN if `a` is singular
    det : complex
        determinant of `a`

    See Also
    --------
    mrdivide
    qrsolve
    """
    a = _as_matrix(a)
    b = _as_matrix(b)
    if a.shape[0] != a.shape[1] or b.shape[0] != a.shape[0]:
        raise ValueError(f'cannot left-divide {b.shape} by {a.shape}')
    lu_, perm, det = lu(a)
    if is_singular(det):
        return npy.full(b.shape, npy.nan, dtype=complex), det
    with npy.errstate(all='ignore'):
        x = _lu_solve(lu_, perm, b)
    return x, det


def mrdivide(b: npy.ndarray, a: npy.ndarray) -> Tuple[npy.ndarray, complex]:
    """
    Solve X A = B for square A.

    Equivalent to Matlab's ``B / A``; the transposed mirror of
    :func:`mldivide`.

    Parameters
    ----------
    b : npy.ndarray
        k x n complex matrix
    a : npy.ndarray
        n x n complex matrix

    Returns
    -------
    x : npy.ndarray
        k x n solution
    det : complex
        determinant of `a`
    """
    a = _as_matrix(a)
    b = _as_matrix(b)
    if b.shape[1] != a.shape[0]:
        raise ValueError(f'cannot right-divide {b.shape} by {a.shape}')
    x, det = mldivide(a.T, b.T)
    return x.T, det


def minverse(a: npy.ndarray) -> Tuple[npy.ndarray, complex]:
    """
    Invert a square matrix.

    Parameters
    ----------
    a : npy.ndarray
        n x n complex matrix

    Returns
    -------
    x : npy.ndarray
        inverse of `a`; filled with NaN if singular
    det : complex
        determinant of `a`
    """
    a = _as_matrix(a)
    return mldivide(a, npy.eye(a.shape[0], dtype=complex))


def qr(a: npy.ndarray) -> Tuple[npy.ndarray, npy.ndarray]:
    """
    Complete QR decomposition of an m x n matrix.

    Parameters
    ----------
    a : npy.ndarray
        m x n complex matrix, any m, n >= 1

    Returns
    -------
    q : npy.ndarray
        m x m unitary matrix
    r : npy.ndarray
        m x n upper triangular matrix, exactly zero below the diagonal
    """
    a = _as_matrix(a)
    q, r = npy.linalg.qr(a, mode='complete')
    return q, npy.triu(r)


def qr_rank(r: npy.ndarray) -> int:
    """
    Numerical rank of a matrix from the R factor of its QR decomposition.
    """
    m, n = r.shape
    d = npy.abs(npy.diag(r))
    if d.size == 0 or d.max() == 0:
        return 0
    tol = max(m, n) * npy.finfo(float).eps * d.max()
    return int(npy.count_nonzero(d > tol))


def qrsolve(a: npy.ndarray, b: npy.ndarray) -> Tuple[npy.ndarray, int]:
    """
    Least-squares solution of A X = B by QR decomposition.

    Parameters
    ----------
    a : npy.ndarray
        m x n complex matrix
    b : npy.ndarray
        m x k complex matrix

    Returns
    -------
    x : npy.ndarray
        n x k solution minimizing ||A X - B||
    rank : int
        numerical rank of `a`; the solution is unique only when
        rank == n
    """
    a = _as_matrix(a)
    b = _as_matrix(b)
    m, n = a.shape
    if b.shape[0] != m:
        raise ValueError(f'cannot solve {a.shape} system for {b.shape}')
    q, r = qr(a)
    rank = qr_rank(r)
    if rank == n:
        qhb = q[:, :n].conj().T @ b
        x = solve_triangular(r[:n, :n], qhb, lower=False, check_finite=False)
    else:
        x = npy.linalg.lstsq(a, b, rcond=None)[0]
    return x, rank


def rsolve(A: npy.ndarray, B: npy.ndarray) -> npy.ndarray:
    r"""Solves x @ A = B.

    Calls numpy.linalg.solve with transposed matrices.

    Input should have dimension of similar to (nfreqs, nports, nports).

    Parameters
    ----------
    A : npy.ndarray
    B : npy.ndarray

    Returns
    -------
    x : npy.ndarray
    """
    return npy.transpose(npy.linalg.solve(npy.transpose(A, (0, 2, 1)),
            npy.transpose(B, (0, 2, 1))), (0, 2, 1))

