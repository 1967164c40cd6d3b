import numpy as npy
import pytest

import vnacal as vc


@pytest.fixture()
def frequency_vector() -> npy.ndarray:
    return npy.array([1.0e9, 2.0e9, 3.0e9, 4.0e9])


@pytest.fixture()
def rng():
    return npy.random.default_rng(12345)


def ideal_error_terms(layout) -> npy.ndarray:
    """
    Error terms for which the measurement equals the S-parameters.
    """
    matrices = layout.matrices(npy.zeros(layout.error_terms, dtype=complex))
    for name in ('ts', 'tm', 'um', 'us', 'er'):
        if name in matrices:
            value = matrices[name]
            if layout.full_matrix:
                matrices[name] = npy.eye(*value.shape, dtype=complex)
            else:
                matrices[name] = npy.ones_like(value)
    return layout.from_matrices(matrices)


@pytest.fixture()
def make_error_terms(rng):
    """
    Factory of random error terms near the ideal, with the unity terms
    fixed to 1.
    """
    def make(layout, frequencies, scale=0.1):
        n = layout.error_terms
        e = ideal_error_terms(layout) + scale * (
            rng.standard_normal((frequencies, n))
            + 1j * rng.standard_normal((frequencies, n)))
        if layout.name != 'E12':
            for system in range(layout.systems):
                e[:, layout.unity_offset(system)] = 1.0
        return e
    return make


@pytest.fixture()
def measure():
    """
    Measure a device of constant S-parameters through error terms `e`.
    """
    def measure(layout, e, s, full=False):
        s = npy.asarray(s, dtype=complex)
        if s.ndim == 2:
            s = npy.broadcast_to(s, (len(e),) + s.shape)
        forward = layout.embed_full if full else layout.embed
        return npy.array([forward(e[i], s[i]) for i in range(len(e))])
    return measure


@pytest.fixture()
def random_s(rng):
    """
    Factory of random S-parameters, (frequencies, ports, ports).
    """
    def make(frequencies, ports, scale=0.5):
        shape = (frequencies, ports, ports)
        return scale * (rng.standard_normal(shape)
                        + 1j * rng.standard_normal(shape))
    return make


@pytest.fixture()
def te10_cal(frequency_vector, make_error_terms):
    layout = vc.make_layout('TE10', 2, 2)
    e = make_error_terms(layout, len(frequency_vector))
    return vc.Calibration('te10', 'TE10', 2, 2, frequency_vector,
                          error_terms=e)


@pytest.fixture()
def ideal_terms():
    return ideal_error_terms
