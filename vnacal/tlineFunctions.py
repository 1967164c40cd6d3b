"""
tlineFunctions (:mod:`vnacal.tlineFunctions`)
===============================================

This module provides the transmission line functions used to model the
standards of a calibration kit. A calkit standard is a lumped
termination behind an offset transmission line described by its delay,
loss and characteristic impedance, as in Keysight application notes
1287-11 and 5989-4840.

Offset Line Models
-----------------------

.. autosummary::
   :toctree: generated/

   offset_line_coefficients
   offset_line_coefficients_traditional

Terminated Line
-----------------------

.. autosummary::
   :toctree: generated/

   input_impedance_at_theta
   zl_2_Gamma0

Calkit Standards
-----------------------

.. autosummary::
   :toctree: generated/

   calkit_short
   calkit_open
   calkit_load
   calkit_through

"""
from __future__ import annotations

from typing import Tuple

import numpy as npy
from numpy import array, conj, exp, pi, sqrt, tanh

from .constants import NumberLike


def _polynomial(coefficients, f):
    c = list(coefficients) + [0.0] * (4 - len(coefficients))
    return c[0] + f * (c[1] + f * (c[2] + f * c[3]))


def offset_line_coefficients_traditional(
        f: NumberLike, offset_delay: float, offset_loss: float,
        offset_z0: float) -> Tuple[npy.ndarray, npy.ndarray]:
    r"""
    Propagation and characteristic impedance of an offset line.

    The traditional model of Keysight note 1287-11, which approximates
    the complex square root:

    .. math::
        \alpha l = \frac{loss \cdot delay}{2 Z_0}\sqrt{f / 1 GHz}

        \beta l = \omega \cdot delay + \alpha l

        Z_c = Z_0 + (1 - j) \frac{loss}{2 \omega}\sqrt{f / 1 GHz}

    Parameters
    ----------
    f : number or array-like
        frequency in Hz
    offset_delay : float
        one-way delay in seconds
    offset_loss : float
        loss in ohms per second at 1 GHz
    offset_z0 : float
        offset line impedance in ohms

    Returns
    -------
    gamma_l : complex array
        propagation constant times length
    zc : complex array
        characteristic impedance
    """
    f = array(f, dtype=float).reshape(-1)
    w = 2.0 * pi * f
    fGrt = sqrt(f / 1.0e+9)
    alpha_l = offset_loss * offset_delay * fGrt / (2.0 * offset_z0)
    beta_l = w * offset_delay + alpha_l
    gamma_l = alpha_l + 1j * beta_l
    with npy.errstate(divide='ignore', invalid='ignore'):
        zc = offset_z0 + npy.where(f != 0.0,
                                   (1.0 - 1j) * offset_loss * fGrt / (2.0 * w),
                                   0.0)
    return gamma_l, zc


def offset_line_coefficients(
        f: NumberLike, offset_delay: float, offset_loss: float,
        offset_z0: float) -> Tuple[npy.ndarray, npy.ndarray]:
    r"""
    Propagation and characteristic impedance of an offset line.

    The revised model of Keysight note 5989-4840:

    .. math::
        k = \sqrt{1 + \frac{(1 - j)\, loss}{2 \pi \sqrt{10^9 f} Z_0}}

        Z_c = Z_0 k, \qquad \gamma l = j 2 \pi f \cdot delay \cdot k

    Parameters
    ----------
    f : number or array-like
        frequency in Hz
    offset_delay : float
        one-way delay in seconds
    offset_loss : float
        loss in ohms per second at 1 GHz
    offset_z0 : float
        offset line impedance in ohms

    Returns
    -------
    gamma_l : complex array
        propagation constant times length
    zc : complex array
        characteristic impedance

    See Also
    --------
    offset_line_coefficients_traditional
    """
    f = array(f, dtype=float).reshape(-1)
    with npy.errstate(divide='ignore', invalid='ignore'):
        temp = npy.where(
            f != 0.0,
            npy.sqrt(1.0 + (1.0 - 1j) * offset_loss /
                     (2.0 * pi * sqrt(1.0e+9 * f) * offset_z0) + 0j),
            1.0 + 0j)
    zc = offset_z0 * temp
    gamma_l = 1j * 2.0 * pi * f * offset_delay * temp
    return gamma_l, zc


def input_impedance_at_theta(zl: NumberLike, zc: NumberLike,
                             gamma_l: NumberLike) -> npy.ndarray:
    r"""
    Input impedance of a terminated transmission line.

    .. math::
        Z_{in} = Z_c \frac{Z_l + Z_c \tanh(\gamma l)}{Z_c + Z_l \tanh(\gamma l)}

    Parameters
    ----------
    zl : number or array-like
        load impedance
    zc : number or array-like
        characteristic impedance of the line
    gamma_l : number or array-like
        propagation constant times length

    Returns
    -------
    zin : complex array
    """
    ht = tanh(array(gamma_l, dtype=complex))
    zc = array(zc, dtype=complex)
    return zc * (zl + zc * ht) / (zc + zl * ht)


def zl_2_Gamma0(z0: NumberLike, zl: NumberLike) -> npy.ndarray:
    r"""
    Reflection coefficient of an impedance with respect to z0.

    Uses the power-wave definition, which reduces to the usual one for
    real z0:

    .. math::
        \Gamma = \frac{Z_l - Z_0^*}{Z_l + Z_0}
    """
    zl = array(zl, dtype=complex)
    return (zl - conj(z0)) / (zl + z0)


def _line(f, offset_delay, offset_loss, offset_z0, traditional):
    if traditional:
        return offset_line_coefficients_traditional(
            f, offset_delay, offset_loss, offset_z0)
    return offset_line_coefficients(f, offset_delay, offset_loss, offset_z0)


def calkit_short(f: NumberLike, z0: complex = 50, offset_delay: float = 0.0,
                 offset_loss: float = 0.0, offset_z0: float = 50.0,
                 l_coefficients=(0.0,), traditional: bool = False
                 ) -> npy.ndarray:
    """
    Reflection coefficient of a calkit short.

    The termination is an inductance given by a cubic polynomial in f,
    ``L = l0 + l1 f + l2 f**2 + l3 f**3``.

    Parameters
    ----------
    f : number or array-like
        frequency in Hz
    z0 : complex
        reference impedance
    offset_delay, offset_loss, offset_z0 : float
        offset line description
    l_coefficients : sequence of up to 4 floats
        inductance polynomial in H, H/Hz, H/Hz^2, H/Hz^3
    traditional : bool
        use the traditional offset line model

    Returns
    -------
    gamma : complex array
    """
    f = array(f, dtype=float).reshape(-1)
    zl = 1j * 2.0 * pi * f * _polynomial(l_coefficients, f)
    gamma_l, zc = _line(f, offset_delay, offset_loss, offset_z0, traditional)
    return zl_2_Gamma0(z0, input_impedance_at_theta(zl, zc, gamma_l))


def calkit_open(f: NumberLike, z0: complex = 50, offset_delay: float = 0.0,
                offset_loss: float = 0.0, offset_z0: float = 50.0,
                c_coefficients=(0.0,), traditional: bool = False
                ) -> npy.ndarray:
    """
    Reflection coefficient of a calkit open.

    The termination is a capacitance given by a cubic polynomial in f.
    At DC the result is exactly 1 regardless of z0.

    Parameters
    ----------
    f : number or array-like
        frequency in Hz
    z0 : complex
        reference impedance
    offset_delay, offset_loss, offset_z0 : float
        offset line description
    c_coefficients : sequence of up to 4 floats
        capacitance polynomial in F, F/Hz, F/Hz^2, F/Hz^3
    traditional : bool
        use the traditional offset line model

    Returns
    -------
    gamma : complex array
    """
    f = array(f, dtype=float).reshape(-1)
    yl = 1j * 2.0 * pi * f * _polynomial(c_coefficients, f)
    gamma_l, zc = _line(f, offset_delay, offset_loss, offset_z0, traditional)
    # work in reflection coefficients referred to zc; an ideal open has
    # infinite impedance
    gamma_in = (1.0 - zc * yl) / (1.0 + zc * yl) * exp(-2.0 * gamma_l)
    z0 = array(z0, dtype=complex)
    return ((zc * (1.0 + gamma_in) - conj(z0) * (1.0 - gamma_in))
            / (zc * (1.0 + gamma_in) + z0 * (1.0 - gamma_in)))


def calkit_load(f: NumberLike, z0: complex = 50, offset_delay: float = 0.0,
                offset_loss: float = 0.0, offset_z0: float = 50.0,
                zl: complex = 50.0, traditional: bool = False
                ) -> npy.ndarray:
    """
    Reflection coefficient of a calkit load of impedance `zl`.
    """
    f = array(f, dtype=float).reshape(-1)
    gamma_l, zc = _line(f, offset_delay, offset_loss, offset_z0, traditional)
    return zl_2_Gamma0(z0, input_impedance_at_theta(zl, zc, gamma_l))


def calkit_through(f: NumberLike, z0=(50, 50), offset_delay: float = 0.0,
                   offset_loss: float = 0.0, offset_z0: float = 50.0,
                   traditional: bool = False) -> npy.ndarray:
    """
    S-parameters of a calkit through.

    The through is an offset line whose ABCD parameters are converted to
    S-parameters in the reference impedances `z0`. The conversion is
    written in terms of ``exp(-gamma l)`` rather than the hyperbolic
    functions for numerical stability.

    Parameters
    ----------
    f : number or array-like
        frequency in Hz
    z0 : pair of complex
        reference impedances of port 1 and port 2
    offset_delay, offset_loss, offset_z0 : float
        offset line description
    traditional : bool
        use the traditional offset line model

    Returns
    -------
    s : complex array of shape `fx2x2`
    """
    f = array(f, dtype=float).reshape(-1)
    gamma_l, zc = _line(f, offset_delay, offset_loss, offset_z0, traditional)
    z1, z2 = complex(z0[0]), complex(z0[1])
    z1r, z2r = z1.real, z2.real
    rt = sqrt(abs(z1r / z2r))
    p = exp(-gamma_l)
    p2 = p * p
    pp = 1.0 + p2
    mp = 1.0 - p2
    d = pp * (z1 + z2) * zc + mp * (z1 * z2 + zc * zc)
    c = 4.0 * p * zc / d
    s = npy.empty((len(f), 2, 2), dtype=complex)
    s[:, 0, 0] = ((pp * z2 + mp * zc) * zc - (mp * z2 + pp * zc) * conj(z1)) / d
    s[:, 0, 1] = c * z1r / rt
    s[:, 1, 0] = c * z2r * rt
    s[:, 1, 1] = ((pp * z1 + mp * zc) * zc - (mp * z1 + pp * zc) * conj(z2)) / d
    return s
