import numpy as npy
import pytest

import vnacal as vc


@pytest.fixture()
def frequency_vector() -> npy.ndarray:
    return npy.array([1.0e9, 2.0e9, 3.0e9, 4.0e9])


@pytest.fixture()
def te10_cal(frequency_vector) -> vc.Calibration:
    """
    TE10 calibration with error terms near the ideal.
    """
    rng = npy.random.default_rng(1)
    layout = vc.make_layout('TE10', 2, 2)
    nf = len(frequency_vector)
    e = 0.1 * (rng.standard_normal((nf, layout.error_terms))
               + 1j * rng.standard_normal((nf, layout.error_terms)))
    e[:, layout.offset('ts'):layout.offset('ts') + 2] += 1.0
    e[:, layout.offset('tm'):layout.offset('tm') + 2] += 1.0
    e[:, layout.unity_offset()] = 1.0
    return vc.Calibration('te10', 'TE10', 2, 2, frequency_vector,
                          error_terms=e)
