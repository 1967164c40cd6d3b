"""
plotting (:mod:`vnacal.plotting`)
========================================


This module provides plotting functions for calibrations.

.. autosummary::
    :toctree: generated/

    plot_rectangular
    plot_error_terms
    scale_frequency_ticks

"""
from __future__ import annotations

from typing import Sequence

import matplotlib.pyplot as plt
import numpy as npy
from matplotlib import ticker

from . import mathFunctions as mf
from .constants import NumberLike

SI_CONVERSION = {'h': 1.0, 'k': 1e-3, 'm': 1e-6, 'g': 1e-9, 't': 1e-12}

COMPONENTS = {
    'db': (mf.complex_2_db, 'Magnitude (dB)'),
    'mag': (mf.complex_2_magnitude, 'Magnitude'),
    'deg': (mf.complex_2_degree, 'Phase (deg)'),
    're': (npy.real, 'Real Part'),
    'im': (npy.imag, 'Imaginary Part'),
}


def scale_frequency_ticks(ax: plt.Axes, funit: str):
    """
    Scale frequency axis ticks.

    Parameters
    ----------
    ax : plt.Axes
        Matplotlib figure axe
    funit : str
        frequency unit, one of 'Hz', 'kHz', 'MHz', 'GHz', 'THz'

    Raises
    ------
    ValueError
        if invalid unit is passed
    """
    key = funit.lower()
    if key == 'hz':
        scale = 1.0
    elif len(key) == 3 and key.endswith('hz') and key[0] in SI_CONVERSION:
        scale = SI_CONVERSION[key[0]]
    else:
        raise ValueError(f'invalid funit {funit}')
    ticks_x = ticker.FuncFormatter(lambda x, pos: f'{x * scale:g}')
    ax.xaxis.set_major_formatter(ticks_x)


def plot_rectangular(x: NumberLike, y: NumberLike,
                     x_label: str | None = None, y_label: str | None = None,
                     title: str | None = None, show_legend: bool = True,
                     ax: plt.Axes | None = None, *args, **kwargs):
    r"""
    Plot rectangular data and optionally label axes.

    Parameters
    ----------
    x, y : array-like
        data to plot
    x_label, y_label, title : string or None, optional.
        axis labels and plot title. Default is None.
    show_legend : Boolean, optional.
        draw the legend when a label is given. Default is True.
    ax : :class:`matplotlib.axes.Axes` object or None, optional.
        axes to draw on. Default is None (current axes)
    \*args, \*\*kwargs : passed to `ax.plot`
    """
    if ax is None:
        ax = plt.gca()

    my_plot = ax.plot(x, y, *args, **kwargs)

    if x_label is not None:
        ax.set_xlabel(x_label)
    if y_label is not None:
        ax.set_ylabel(y_label)
    if title is not None:
        ax.set_title(title)
    if show_legend and 'label' in kwargs:
        ax.legend()
    ax.autoscale(True, 'x', True)
    ax.autoscale(True, 'y', False)

    if plt.isinteractive():
        plt.draw()
    return my_plot


def plot_error_terms(cal, terms: Sequence[str] | None = None,
                     component: str = 'db', funit: str = 'GHz',
                     ax: plt.Axes | None = None, **kwargs):
    r"""
    Plot the error terms of a calibration versus frequency.

    Parameters
    ----------
    cal : :class:`~vnacal.calibration.calibration.Calibration`
        solved calibration
    terms : list of str or None
        error-term names to plot, as given by
        :func:`~vnacal.io.general.error_term_names`; None plots all
    component : str
        one of 'db', 'mag', 'deg', 're', 'im'
    funit : str
        unit of the frequency axis
    ax : :class:`matplotlib.axes.Axes` or None
        axes to draw on
    \*\*kwargs : passed to `ax.plot`

    Returns
    -------
    lines : list of :class:`matplotlib.lines.Line2D`

    Examples
    --------
    >>> cal.plot_error_terms(['el12', 'el21'], component='db')
    """
    from .io.general import _term_columns

    if component not in COMPONENTS:
        raise ValueError(f'component must be one of {sorted(COMPONENTS)}')
    func, y_label = COMPONENTS[component]
    columns = _term_columns(cal)
    if terms is None:
        terms = list(columns.keys())
    if ax is None:
        ax = plt.gca()

    lines = []
    for name in terms:
        if name not in columns:
            raise ValueError(f'{cal.type} calibration has no error term '
                             f'{name!r}')
        lines += plot_rectangular(cal.frequency, func(columns[name]),
                                  x_label=f'Frequency ({funit})',
                                  y_label=y_label, show_legend=False,
                                  ax=ax, label=name, **kwargs)
    title = cal.name if cal.name is not None else f'{cal.type} Calibration'
    ax.set_title(title)
    if lines:
        ax.legend()
    scale_frequency_ticks(ax, funit)
    return lines
