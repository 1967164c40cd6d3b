import unittest

import pandas as pd
import pytest
from numpy.testing import assert_allclose

import vnacal as vc
from vnacal.io.general import error_term_names


def test_error_term_names(ue14_cal, te10_cal):
    assert error_term_names(ue14_cal) == [
        'um11', 'um12', 'um21', 'um22', 'ui11', 'ui12', 'ux11', 'ux12',
        'ux21', 'ux22', 'us11', 'us12', 'el12', 'el21']
    assert error_term_names(te10_cal) == [
        'ts1', 'ts2', 'ti1', 'ti2', 'tx1', 'tx2', 'tm1', 'tm2', 'el12', 'el21']


@pytest.mark.parametrize('form, columns, first', [
    ('complex', 14, 'um11'), ('db', 28, 'um11 Log Mag(dB)'),
    ('RI', 28, 'um11 Real')])
def test_dataframe_forms(ue14_cal, form, columns, first):
    df = vc.calibration_2_dataframe(ue14_cal, form=form)
    assert df.shape == (4, columns)
    assert df.columns[0] == first
    assert df.index.name == 'Freq(Hz)'
    assert_allclose(df.index.values, ue14_cal.frequency)


def test_dataframe_values(te10_cal):
    df = vc.calibration_2_dataframe(te10_cal, form='ri')
    e = te10_cal.error_terms
    assert_allclose(df['tx1 Real'].values, e[:, 4].real)
    assert_allclose(df['el21 Imag'].values, e[:, 9].imag)


def test_dataframe_bad_form(te10_cal):
    with pytest.raises(ValueError):
        vc.calibration_2_dataframe(te10_cal, form='polar')


class SpreadsheetTestCase(unittest.TestCase):
    """
    Writing error terms with pandas
    """

    @pytest.fixture(autouse=True)
    def setup_cal(self, te10_cal, tmp_path, monkeypatch):
        self.cal = te10_cal
        self.tmp_path = tmp_path
        monkeypatch.chdir(tmp_path)

    def test_csv(self):
        file_name = str(self.tmp_path / 'terms.csv')
        vc.calibration_2_spreadsheet(self.cal, file_name, form='ri')
        df = pd.read_csv(file_name, index_col=0)
        self.assertEqual(df.shape, (4, 20))
        self.assertEqual(df.index.name, 'Freq(Hz)')
        assert_allclose(df['ts2 Imag'].values, self.cal.error_terms[:, 1].imag)

    def test_default_name(self):
        vc.calibration_2_spreadsheet(self.cal)
        self.assertTrue((self.tmp_path / 'te10.csv').exists())

    def test_invalid(self):
        with self.assertRaises(ValueError):
            vc.calibration_2_spreadsheet(self.cal, file_type='json')
        self.cal.name = None
        with self.assertRaises(ValueError):
            vc.calibration_2_spreadsheet(self.cal)
