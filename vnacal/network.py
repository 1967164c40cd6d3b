"""
.. module:: vnacal.network

========================================
network (:mod:`vnacal.network`)
========================================

Reference impedance conversion for data standards.

A data standard may be tabulated in port impedances that differ from
those of the calibration. Before it enters the solver it is renormalized
using the power-wave definition of Kurokawa [#Kurokawa]_.

.. autosummary::
   :toctree: generated/

   renormalize_s
   fix_z0_shape
   fix_param_shape

References
----------
.. [#Kurokawa] Kurokawa, Kaneyuki "Power waves and the scattering matrix",
    IEEE Transactions on Microwave Theory and Techniques, vol.13, iss.2,
    pp. 194-202, March 1965.
"""
from __future__ import annotations

import numpy as npy

from . import mathFunctions as mf
from .constants import NumberLike


def fix_param_shape(p: NumberLike) -> npy.ndarray:
    """
    Broadcast S-parameters of a standard to (frequencies, ports, ports).

    A scalar is one frequency of a 1-port, a vector many frequencies of
    a 1-port, and a square matrix one frequency of a multi-port.

    Raises
    ------
    ValueError
        if the matrices are not square or have too many dimensions
    """
    p = npy.array(p, dtype=complex)
    if p.ndim == 0:
        return p.reshape(1, 1, 1)
    if p.ndim == 1:
        return p.reshape(-1, 1, 1)
    if p.shape[-1] != p.shape[-2]:
        raise ValueError('S-parameter matrices must be square')
    if p.ndim == 2:
        return p.reshape(1, p.shape[0], p.shape[1])
    if p.ndim != 3:
        raise ValueError(f'too many dimensions for S-parameters: {p.shape}')
    return p


def fix_z0_shape(z0: NumberLike, nfreqs: int, nports: int) -> npy.ndarray:
    """
    Broadcast port impedances to (nfreqs, nports).

    Parameters
    ----------
    z0 : number or array-like
        one impedance for all ports and frequencies, one per port, one
        per frequency, or already (nfreqs, nports); a vector of length
        nports is taken as per port when nports == nfreqs
    nfreqs : int
        number of frequencies
    nports : int
        number of ports

    Raises
    ------
    IndexError
        if `z0` fits none of the above

    Examples
    --------
    >>> zr = vnacal.fix_z0_shape(75, 4, 1)
    >>> zd = vnacal.fix_z0_shape([50, 25], 4, 2)
    """
    if npy.shape(z0) == (nfreqs, nports):
        return npy.array(z0, dtype=complex)
    if npy.ndim(z0) == 0:
        return npy.full((nfreqs, nports), z0, dtype=complex)
    if len(z0) == nports:
        return npy.array(nfreqs * [z0], dtype=complex)
    if len(z0) == nfreqs:
        return npy.array(nports * [z0], dtype=complex).T
    raise IndexError(f'z0 of shape {npy.shape(z0)} does not fit {nfreqs} '
                     f'frequencies and {nports} ports')


def renormalize_s(s: npy.ndarray, z_old: NumberLike,
                  z_new: NumberLike) -> npy.ndarray:
    r"""
    Renormalize S-parameters from old to new port impedances.

    Uses power waves. The Z matrix does not exist for ideal opens and
    shorts, so the result is found directly from S:

    .. math::
        V = G_1^* + G_1 S, \quad I = 1 - S

        S' = K (V - G_2^* I) \left[ K (V + G_2 I) \right]^{-1}

    where :math:`G_k = diag([Z_k])` and
    :math:`K = diag(\sqrt{|Re(Z_1)/Re(Z_2)|} / 2 Re(Z_1))`.

    Parameters
    ----------
    s : array-like
        S-parameters, any shape accepted by :func:`fix_param_shape`
    z_old : number or array-like
        port impedances of `s`
    z_new : number or array-like
        port impedances of the result

    Returns
    -------
    s : npy.ndarray
        renormalized S-parameters, (frequencies, ports, ports)

    Examples
    --------
    >>> renormalize_s(npy.zeros((1, 1, 1)), 50, 75)
    array([[[-0.2+0.j]]])
    """
    s = fix_param_shape(s)
    nfreqs, nports, nports = s.shape
    z1 = fix_z0_shape(z_old, nfreqs, nports)
    z2 = fix_z0_shape(z_new, nfreqs, nports)
    k = 0.5 * npy.sqrt(npy.abs(z1.real / z2.real)) / z1.real
    Id = npy.zeros_like(s)
    npy.einsum('ijj->ij', Id)[...] = 1.0
    v = Id * npy.conjugate(z1)[:, :, None] + z1[:, :, None] * s
    i = Id - s
    a = k[:, :, None] * (v + z2[:, :, None] * i)
    b = k[:, :, None] * (v - npy.conjugate(z2)[:, :, None] * i)
    return mf.rsolve(a, b)
