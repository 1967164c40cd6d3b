import io

import numpy as npy
import pytest
from numpy.testing import assert_allclose, assert_equal

import vnacal as vc


@pytest.fixture()
def cal_set(te10_cal, frequency_vector, make_error_terms):
    cs = vc.CalibrationSet()
    cs.add_calibration('first', te10_cal)
    layout = vc.make_layout('E12', 2, 2)
    e12 = vc.Calibration(None, 'E12', 2, 2, frequency_vector,
                         error_terms=make_error_terms(layout, 4))
    cs.add_calibration('second', e12)
    return cs


def test_container(cal_set, te10_cal):
    assert len(cal_set) == 2
    assert cal_set.names == ['first', 'second']
    assert 'first' in cal_set
    assert 'third' not in cal_set
    assert cal_set.find_calibration('second') == 1
    assert cal_set.find_calibration('third') == -1
    assert cal_set[0].name == 'first'
    assert cal_set['second'].type == 'E12'
    assert [cal.name for cal in cal_set] == ['first', 'second']
    assert str(cal_set).startswith('Calibration Set: 2 calibrations')
    # the set holds a renamed copy
    assert te10_cal.name == 'te10'
    assert_equal(cal_set['first'].error_terms, te10_cal.error_terms)


def test_replace_and_delete(cal_set, te10_cal):
    assert cal_set.add_calibration('second', te10_cal) == 1
    assert cal_set['second'].type == 'TE10'
    cal_set.delete_calibration('first')
    assert cal_set.names == ['second']
    cal_set.delete_calibration(0)
    assert len(cal_set) == 0


@pytest.mark.parametrize('key', ['missing', 2, -1])
def test_invalid_key(cal_set, key):
    with pytest.raises(vc.UsageError):
        cal_set.get_calibration(key)
    with pytest.raises(vc.UsageError):
        cal_set.delete_calibration(key)


def test_add_invalid(cal_set, te10_cal, frequency_vector):
    with pytest.raises(vc.UsageError):
        cal_set.add_calibration('', te10_cal)
    with pytest.raises(vc.UsageError):
        cal_set.add_calibration('x', 'not a calibration')
    new_cal = cal_set.new_calibration('TE10', 2, 2, frequency_vector)
    with pytest.raises(vc.UsageError, match='not been solved'):
        cal_set.add_calibration('x', new_cal)
    assert len(cal_set) == 2


def test_new_calibration(cal_set, frequency_vector, make_error_terms,
                         measure, random_s):
    layout = vc.make_layout('T8', 2, 2)
    e = make_error_terms(layout, len(frequency_vector))
    pc = cal_set.parameters
    short = pc.make_scalar_parameter(-1.0)
    new_cal = cal_set.new_calibration('T8', 2, 2, frequency_vector)
    assert new_cal.parameters is pc
    for handle, gamma in ((short, -1.0), (vc.OPEN, 1.0), (vc.MATCH, 0.0)):
        s = npy.diag([gamma, gamma])
        new_cal.add_double_reflect_m(measure(layout, e, s), handle, handle,
                                     1, 2)
    new_cal.add_through_m(measure(layout, e, [[0, 1], [1, 0]]), 1, 2)
    new_cal.solve()
    index = cal_set.add_calibration('t8', new_cal)
    assert index == 2
    dut = random_s(len(frequency_vector), 2)
    m = measure(layout, e, dut)
    assert_allclose(cal_set.apply_m('t8', frequency_vector, m), dut,
                    atol=1e-9)
    assert_allclose(cal_set.apply(2, frequency_vector, m), dut, atol=1e-9)


def test_precision(cal_set):
    cal_set.set_fprecision(12)
    cal_set.set_dprecision(17)
    assert (cal_set.fprecision, cal_set.dprecision) == (12, 17)
    for value in (0, 18):
        with pytest.raises(vc.UsageError):
            cal_set.set_fprecision(value)
        with pytest.raises(vc.UsageError):
            cal_set.set_dprecision(value)
    assert (cal_set.fprecision, cal_set.dprecision) == (12, 17)


def test_save_and_load(cal_set, tmp_path):
    cal_set.properties.set('operator', 'jane')
    cal_set.properties.set('cable.serial', [101, 102])
    cal_set['first'].properties.set('temperature', 21.5)
    cal_set.set_dprecision(17)
    filename = tmp_path / 'example.vnacal'
    cal_set.save(filename)
    assert cal_set.filename == str(filename)

    loaded = vc.CalibrationSet.load(filename)
    assert loaded.filename == str(filename)
    assert loaded.names == cal_set.names
    assert loaded.properties == cal_set.properties
    assert loaded['first'].properties.get('temperature') == 21.5
    for saved, cal in zip(cal_set, loaded):
        assert (cal.type, cal.rows, cal.columns) == \
            (saved.type, saved.rows, saved.columns)
        assert cal.z0 == saved.z0
        assert_equal(cal.frequency, saved.frequency)
        assert_equal(cal.error_terms, saved.error_terms)


def test_save_to_file_object(cal_set):
    fid = io.StringIO()
    cal_set.save(fid)
    text = fid.getvalue()
    assert text.startswith('#VNACAL 3.0\n')
    assert 'type: TE10' in text
    loaded = vc.CalibrationSet.load(io.StringIO(text))
    assert loaded.names == ['first', 'second']
    # default precision keeps 6 significant digits
    assert_allclose(loaded['first'].error_terms,
                    cal_set['first'].error_terms, rtol=1e-5)


def test_save_and_load_same_type(te10_cal, frequency_vector,
                                 make_error_terms):
    cs = vc.CalibrationSet()
    layout = vc.make_layout('TE10', 2, 2)
    other = vc.Calibration(None, 'TE10', 2, 2, frequency_vector,
                           error_terms=make_error_terms(layout, 4))
    cs.add_calibration('mycal', te10_cal)
    cs.add_calibration('other', other)
    cs.set_dprecision(17)
    fid = io.StringIO()
    cs.save(fid)
    loaded = vc.CalibrationSet.load(io.StringIO(fid.getvalue()))
    assert loaded.names == ['mycal', 'other']
    assert [cal.name for cal in loaded] == ['mycal', 'other']
    assert_equal(loaded['other'].error_terms, other.error_terms)


def test_save_empty(tmp_path):
    cs = vc.CalibrationSet()
    cs.save(tmp_path / 'empty.vnacal')
    loaded = vc.CalibrationSet.load(tmp_path / 'empty.vnacal')
    assert len(loaded) == 0
    assert not loaded.properties
