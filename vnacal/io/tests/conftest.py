import numpy as npy
import pytest

import vnacal as vc


def make_calibration(name, type, rows, columns, frequency_vector, seed=7):
    layout = vc.make_layout(type, rows, columns)
    rng = npy.random.default_rng(seed)
    shape = (len(frequency_vector), layout.error_terms)
    e = 0.1 * (rng.standard_normal(shape) + 1j * rng.standard_normal(shape))
    return vc.Calibration(name, type, rows, columns, frequency_vector,
                          error_terms=e)


@pytest.fixture()
def frequency_vector() -> npy.ndarray:
    return npy.array([1.0e9, 2.0e9, 3.0e9, 4.0e9])


@pytest.fixture()
def te10_cal(frequency_vector):
    return make_calibration('te10', 'TE10', 2, 2, frequency_vector)


@pytest.fixture()
def ue14_cal(frequency_vector):
    return make_calibration('ue14', 'UE14', 2, 2, frequency_vector)
