import matplotlib

matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as npy
import pytest
from numpy.testing import assert_allclose

from vnacal import plotting


@pytest.fixture()
def ax():
    fig, ax = plt.subplots()
    yield ax
    plt.close(fig)


def test_plot_all_error_terms(te10_cal, ax):
    lines = te10_cal.plot_error_terms(ax=ax)
    assert len(lines) == 10
    assert [line.get_label() for line in lines][-2:] == ['el12', 'el21']
    assert ax.get_title() == 'te10'


def test_plot_selected_terms(te10_cal, ax):
    lines = plotting.plot_error_terms(te10_cal, ['ts1'], component='re',
                                      ax=ax)
    assert len(lines) == 1
    assert_allclose(lines[0].get_ydata(),
                    npy.real(te10_cal.get_error_term_matrix('ts')[:, 0]))


def test_invalid_arguments(te10_cal, ax):
    with pytest.raises(ValueError):
        plotting.plot_error_terms(te10_cal, component='bogus', ax=ax)
    with pytest.raises(ValueError):
        plotting.plot_error_terms(te10_cal, ['um11'], ax=ax)
    with pytest.raises(ValueError):
        plotting.scale_frequency_ticks(ax, 'furlongs')
