import warnings

import numpy as npy
import pytest
from numpy.testing import assert_allclose

import vnacal as vc


@pytest.fixture()
def ue14_cal(frequency_vector, make_error_terms):
    layout = vc.make_layout('UE14', 2, 2)
    e = make_error_terms(layout, len(frequency_vector))
    return vc.Calibration('ue14', 'UE14', 2, 2, frequency_vector,
                          error_terms=e)


def test_apply_m(te10_cal, frequency_vector, random_s, measure):
    dut = random_s(len(frequency_vector), 2)
    m = measure(te10_cal.layout, te10_cal.error_terms, dut)
    assert_allclose(te10_cal.apply_m(frequency_vector, m), dut, atol=1e-10)
    assert_allclose(te10_cal.embed(dut), m, atol=1e-12)


def test_apply_with_reference(te10_cal, frequency_vector, random_s, measure,
                              rng):
    nf = len(frequency_vector)
    dut = random_s(nf, 2)
    m = measure(te10_cal.layout, te10_cal.error_terms, dut)
    a = npy.eye(2) + 0.2 * rng.standard_normal((nf, 2, 2))
    assert_allclose(te10_cal.apply(frequency_vector, m @ a, a), dut,
                    atol=1e-10)
    assert_allclose(te10_cal.apply(frequency_vector, m), dut, atol=1e-10)
    with pytest.raises(vc.UsageError):
        te10_cal.apply(frequency_vector, m, a[:, :1, :])


def test_apply_per_column_reference(ue14_cal, frequency_vector, random_s,
                                    measure, rng):
    nf = len(frequency_vector)
    dut = random_s(nf, 2)
    m = measure(ue14_cal.layout, ue14_cal.error_terms, dut)
    a = 1.0 + 0.2 * rng.standard_normal((nf, 1, 2))
    assert_allclose(ue14_cal.apply(frequency_vector, m * a, a), dut,
                    atol=1e-10)
    a[1, 0, 1] = 0.0
    with pytest.raises(vc.MathError):
        ue14_cal.apply(frequency_vector, m * a, a)


def test_apply_single_frequency(te10_cal, random_s, measure):
    dut = random_s(1, 2)
    m = measure(te10_cal.layout, te10_cal.error_terms[2:3], dut)
    result = te10_cal.apply_m(3e9, m[0])
    assert result.shape == (1, 2, 2)
    assert_allclose(result, dut, atol=1e-10)


def test_frequency_range(te10_cal):
    m = npy.tile(npy.eye(2), (1, 1, 1))
    with pytest.raises(vc.UsageError):
        te10_cal.apply_m([4.1e9], m)
    with pytest.raises(vc.UsageError):
        te10_cal.apply_m([0.95e9], m)
    with pytest.warns(RuntimeWarning):
        te10_cal.apply_m([4.02e9], m)
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        te10_cal.apply_m([4.0e9], m)


def test_interpolated_constant_terms(frequency_vector, make_error_terms,
                                     random_s):
    layout = vc.make_layout('T8', 2, 2)
    e = npy.tile(make_error_terms(layout, 1), (len(frequency_vector), 1))
    cal = vc.Calibration(None, 'T8', 2, 2, frequency_vector, error_terms=e)
    dut = random_s(2, 2)
    fv = [1.5e9, 3.25e9]
    m = cal.embed(dut, fv)
    assert_allclose(m[1], layout.embed(e[0], dut[1]), atol=1e-12)
    assert_allclose(cal.apply_m(fv, m), dut, atol=1e-10)


def test_read_only(te10_cal):
    with pytest.raises(ValueError):
        te10_cal.error_terms[0, 0] = 0.0
    with pytest.raises(ValueError):
        te10_cal.frequency[0] = 0.0


def test_error_term_matrix(te10_cal):
    el = te10_cal.get_error_term_matrix('el')
    assert el.shape == (4, 2, 2)
    assert npy.all(npy.isnan(el[:, 0, 0]))
    ts = te10_cal.get_error_term_matrix('ts')
    assert_allclose(ts, te10_cal.error_terms[:, :2])
    assert list(te10_cal.error_term_matrices()) == ['ts', 'ti', 'tx', 'tm',
                                                    'el']
    with pytest.raises(vc.UsageError):
        te10_cal.get_error_term_matrix('um')


def test_singular_correction(frequency_vector):
    layout = vc.make_layout('TE10', 2, 2)
    e = npy.zeros((len(frequency_vector), layout.error_terms), dtype=complex)
    e[:, layout.unity_offset()] = 1.0
    cal = vc.Calibration(None, 'TE10', 2, 2, frequency_vector, error_terms=e)
    with pytest.raises(vc.MathError, match='singular'):
        cal.apply_m(frequency_vector, npy.tile(npy.eye(2), (4, 1, 1)))


def test_rectangular_apply(frequency_vector, make_error_terms):
    layout = vc.make_layout('T8', 1, 3)
    e = make_error_terms(layout, len(frequency_vector))
    cal = vc.Calibration(None, 'T8', 1, 3, frequency_vector, error_terms=e)
    with pytest.raises(vc.UsageError):
        cal.apply_m(frequency_vector, npy.zeros((4, 3, 3)))


def test_bad_shapes(te10_cal, frequency_vector):
    with pytest.raises(vc.UsageError):
        te10_cal.apply_m(frequency_vector, npy.zeros((4, 3, 3)))
    with pytest.raises(vc.UsageError):
        te10_cal.apply_m(frequency_vector, npy.zeros((3, 2, 2)))
    with pytest.raises(vc.UsageError):
        te10_cal.embed(npy.zeros((4, 1, 1)))
    with pytest.raises(vc.UsageError):
        vc.Calibration(None, 'TE10', 2, 2, frequency_vector,
                       error_terms=npy.zeros((4, 8)))
    with pytest.raises(vc.UsageError):
        vc.Calibration(None, 'U8', 1, 2, frequency_vector,
                       error_terms=npy.zeros((4, 6)))


def test_copy_and_str(te10_cal):
    te10_cal.properties.set('operator', 'anne')
    other = te10_cal.copy('other')
    assert other.name == 'other'
    assert te10_cal.name == 'te10'
    other.properties.set('operator', 'bob')
    assert te10_cal.properties.get('operator') == 'anne'
    assert str(te10_cal).startswith("TE10 Calibration: 'te10', 2x2")
    assert te10_cal.nfreqs == 4
    assert (te10_cal.fmin, te10_cal.fmax) == (1e9, 4e9)


def test_to_dataframe(te10_cal):
    df = te10_cal.to_dataframe()
    assert df.shape == (4, 10)
    assert df.index.name == 'Freq(Hz)'
    assert list(df.columns[:2]) == ['ts1', 'ts2']
    assert_allclose(df['el21'].values, te10_cal.error_terms[:, 9])
