import numpy as npy
import pytest
from numpy.testing import assert_allclose, assert_equal

import vnacal as vc
from vnacal.calibration.layout import E12UE14Layout

SQUARE_TYPES = ['T8', 'U8', 'TE10', 'UE10', 'T16', 'U16', 'UE14', 'E12']


@pytest.mark.parametrize('cal_type, rows, columns, count', [
    ('T8', 2, 2, 8), ('U8', 2, 2, 8), ('TE10', 2, 2, 10),
    ('UE10', 2, 2, 10), ('T16', 2, 2, 16), ('U16', 2, 2, 16),
    ('UE14', 2, 2, 14), ('E12', 2, 2, 12), ('T8', 1, 2, 6),
    ('TE10', 1, 2, 7), ('U8', 2, 1, 6), ('E12', 2, 1, 6),
    ('UE14', 2, 1, 7), ('T8', 3, 3, 12), ('UE14', 3, 3, 30),
    ('E12', 3, 3, 27)])
def test_error_term_count(cal_type, rows, columns, count):
    layout = vc.make_layout(cal_type, rows, columns)
    assert layout.error_terms == count
    assert layout.name == cal_type


@pytest.mark.parametrize('cal_type', SQUARE_TYPES)
def test_blocks_are_contiguous(cal_type):
    layout = vc.make_layout(cal_type, 3, 3)
    offset = 0
    for block in layout.blocks():
        assert block.offset == offset
        offset += block.size
    assert offset == layout.error_terms


def test_make_layout_is_case_insensitive():
    assert vc.make_layout('te10', 2, 2) == vc.make_layout('TE10', 2, 2)
    assert vc.make_layout('te10', 2, 2) != vc.make_layout('TE10', 1, 2)


@pytest.mark.parametrize('cal_type, rows, columns', [
    ('T8', 2, 1), ('TE10', 3, 2), ('T16', 2, 1), ('U8', 1, 2),
    ('UE10', 2, 3), ('UE14', 1, 2), ('E12', 1, 2), ('XX', 2, 2),
    ('T8', 0, 2)])
def test_invalid_layout(cal_type, rows, columns):
    with pytest.raises(vc.UsageError):
        vc.make_layout(cal_type, rows, columns)


def test_unity_offsets():
    assert vc.make_layout('T8', 2, 2).unity_offset() == 6
    assert vc.make_layout('U16', 2, 2).unity_offset() == 0
    ue14 = vc.make_layout('UE14', 2, 2)
    assert ue14.unity_offset(0) == 0
    assert ue14.unity_offset(1) == ue14.offset('um', 1) + 1 == 7
    with pytest.raises(vc.UsageError):
        vc.make_layout('E12', 2, 2).unity_offset()


def test_leakage_map():
    assert_equal(vc.make_layout('TE10', 2, 2).leakage_map(),
                 [[-1, 0], [1, -1]])
    assert_equal(vc.make_layout('UE10', 3, 2).leakage_map(),
                 [[-1, 0], [1, -1], [2, 3]])
    assert_equal(vc.make_layout('T8', 2, 2).leakage_map(), -npy.ones((2, 2)))


@pytest.mark.parametrize('cal_type', SQUARE_TYPES)
def test_matrices_round_trip(cal_type, rng):
    layout = vc.make_layout(cal_type, 2, 2)
    e = rng.standard_normal(layout.error_terms) + 0j
    matrices = layout.matrices(e)
    assert list(matrices) == layout.matrix_names()
    assert_equal(layout.from_matrices(matrices), e)


def test_leakage_matrix_has_nan_diagonal(rng):
    layout = vc.make_layout('UE14', 2, 2)
    e = rng.standard_normal(layout.error_terms) + 0j
    el = layout.matrices(e)['el']
    assert npy.all(npy.isnan(npy.diag(el)))
    assert_equal([el[0, 1], el[1, 0]], e[-2:])


def test_matrix_shapes():
    matrices = vc.make_layout('UE14', 2, 2).matrices(npy.zeros(14))
    assert {k: v.shape for k, v in matrices.items()} == {
        'um': (2, 2), 'ui': (1, 2), 'ux': (2, 2), 'us': (1, 2),
        'el': (2, 2)}
    matrices = vc.make_layout('T16', 2, 2).matrices(npy.zeros(16))
    assert all(v.shape == (2, 2) for v in matrices.values())
    matrices = vc.make_layout('T8', 2, 2).matrices(npy.zeros(8))
    assert all(v.shape == (2,) for v in matrices.values())


def test_from_matrices_checks_shape():
    layout = vc.make_layout('E12', 2, 2)
    matrices = layout.matrices(npy.zeros(12))
    matrices['er'] = npy.ones((1, 2))
    with pytest.raises(ValueError):
        layout.from_matrices(matrices)


@pytest.mark.parametrize('cal_type', SQUARE_TYPES)
def test_ideal_terms_measure_s(cal_type, ideal_terms, random_s):
    layout = vc.make_layout(cal_type, 2, 2)
    s = random_s(1, 2)[0]
    assert_allclose(layout.embed(ideal_terms(layout), s), s, atol=1e-14)


@pytest.mark.parametrize('cal_type', SQUARE_TYPES)
@pytest.mark.parametrize('ports', [1, 2, 3])
def test_apply_inverts_embed(cal_type, ports, make_error_terms, random_s):
    layout = vc.make_layout(cal_type, ports, ports)
    e = make_error_terms(layout, 1)[0]
    s = random_s(1, ports)[0]
    m = layout.embed(e, s)
    result, det = layout.apply_m(e, m)
    assert not vc.is_singular(det)
    assert_allclose(result, s, atol=1e-10)


@pytest.mark.parametrize('cal_type, rows, columns', [
    ('T8', 1, 2), ('TE10', 1, 2), ('T16', 1, 2), ('U8', 2, 1),
    ('UE10', 2, 1), ('U16', 2, 1), ('UE14', 2, 1), ('E12', 2, 1)])
def test_degenerate_apply_inverts_embed_full(cal_type, rows, columns,
                                             make_error_terms, random_s):
    layout = vc.make_layout(cal_type, rows, columns)
    assert layout.is_degenerate
    e = make_error_terms(layout, 1)[0]
    s = random_s(1, 2)[0]
    m = layout.embed_full(e, s)
    assert m.shape == (2, 2)
    result, _ = layout.apply_m(e, m)
    assert_allclose(result, s, atol=1e-10)


def test_embed_full_forward_sweep(make_error_terms, random_s):
    layout = vc.make_layout('T8', 1, 2)
    e = make_error_terms(layout, 1)[0]
    s = random_s(1, 2)[0]
    assert_allclose(layout.embed_full(e, s)[0], layout.embed(e, s)[0])


def test_rectangular_apply_is_rejected(make_error_terms, random_s):
    layout = vc.make_layout('T8', 1, 3)
    e = make_error_terms(layout, 1)[0]
    with pytest.raises(vc.UsageError):
        layout.embed_full(e, random_s(1, 3)[0])
    with pytest.raises(vc.UsageError):
        layout.apply_m(e, npy.zeros((1, 3)))


def test_rectangular_embed(ideal_terms, random_s):
    layout = vc.make_layout('U8', 3, 2)
    s = random_s(1, 3)[0]
    assert_allclose(layout.embed(ideal_terms(layout), s), s[:, :2],
                    atol=1e-14)


def test_e12_conversion(make_error_terms, random_s):
    layout = E12UE14Layout(2, 2)
    e = make_error_terms(layout, 1)[0]
    e12, ok = layout.to_e12(e)
    assert ok
    s = random_s(1, 2)[0]
    assert_allclose(vc.make_layout('E12', 2, 2).embed(e12, s),
                    layout.embed(e, s), atol=1e-12)


def test_e12_conversion_singular():
    layout = E12UE14Layout(2, 2)
    _, ok = layout.to_e12(npy.zeros(layout.error_terms, dtype=complex))
    assert not ok
