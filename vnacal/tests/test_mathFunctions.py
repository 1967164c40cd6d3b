import unittest

import numpy as npy
from numpy.testing import assert_almost_equal, assert_allclose

import vnacal as vc
from vnacal import mathFunctions as mf


def rand_c(*args):
    """
    Complex random array with real and imaginary parts in (-1, 1).
    """
    return 1 - 2 * npy.random.rand(*args) + 1j - 2j * npy.random.rand(*args)


class TestUnitConversions(unittest.TestCase):
    """
    Test unit-conversion functions
    """

    def test_complex_2_magnitude(self):
        """
        Test complex to magnitude conversion with:
            5 = 3 + 4j
        """
        assert_almost_equal(vc.complex_2_magnitude(3+4j), 5.0)

    def test_complex_2_db(self):
        """
        Test complex to db conversion with:
            20 [dB] = 20 * log10(6+8j)
        """
        assert_almost_equal(vc.complex_2_db(6+8j), 20.0)

    def test_complex_2_db_of_zero(self):
        self.assertEqual(vc.complex_2_db(0j), -npy.inf)

    def test_complex_2_degree(self):
        """
        Test complex to degree conversion with:
            90 = angle(0 + 1j)
        """
        assert_almost_equal(vc.complex_2_degree(0+1j), 90.0)


class TestLinearAlgebra(unittest.TestCase):
    """
    Test the dense complex solvers against numpy
    """

    def setUp(self):
        rng = npy.random.default_rng(0)
        self.a = rng.standard_normal((4, 4)) + 1j * rng.standard_normal((4, 4))
        self.b = rng.standard_normal((4, 2)) + 1j * rng.standard_normal((4, 2))

    def test_lu_determinant(self):
        _, _, det = mf.lu(self.a)
        assert_allclose(det, npy.linalg.det(self.a))

    def test_lu_packed_factors(self):
        packed, perm, _ = mf.lu(self.a)
        lower = npy.tril(packed, -1) + npy.eye(4)
        upper = npy.triu(packed)
        assert_allclose(lower @ upper, self.a[perm])

    def test_mldivide(self):
        x, det = mf.mldivide(self.a, self.b)
        self.assertFalse(mf.is_singular(det))
        assert_allclose(self.a @ x, self.b, atol=1e-12)

    def test_mrdivide(self):
        b = self.b.T
        x, det = mf.mrdivide(b, self.a)
        assert_allclose(x @ self.a, b, atol=1e-12)

    def test_minverse(self):
        x, det = mf.minverse(self.a)
        assert_allclose(x @ self.a, npy.eye(4), atol=1e-12)

    def test_singular_matrix(self):
        a = npy.ones((3, 3), dtype=complex)
        x, det = mf.mldivide(a, npy.ones((3, 1)))
        self.assertTrue(mf.is_singular(det))
        self.assertTrue(npy.all(npy.isnan(x)))

    def test_is_singular(self):
        self.assertTrue(mf.is_singular(0.0))
        self.assertTrue(mf.is_singular(complex(npy.nan, 0.0)))
        self.assertTrue(mf.is_singular(npy.inf))
        self.assertFalse(mf.is_singular(1e-300))

    def test_cmultiply(self):
        assert_allclose(mf.cmultiply(self.a, self.b), self.a @ self.b)
        with self.assertRaises(ValueError):
            mf.cmultiply(self.a, self.b.T)

    def test_qr(self):
        a = self.a[:, :3]
        q, r = mf.qr(a)
        self.assertEqual(q.shape, (4, 4))
        self.assertEqual(r.shape, (4, 3))
        assert_allclose(q @ r, a, atol=1e-12)
        assert_allclose(q.conj().T @ q, npy.eye(4), atol=1e-12)
        self.assertTrue(npy.all(npy.tril(r, -1) == 0))

    def test_qr_rank(self):
        a = self.a[:, :3].copy()
        self.assertEqual(mf.qr_rank(mf.qr(a)[1]), 3)
        a[:, 2] = 2.0 * a[:, 0]
        self.assertEqual(mf.qr_rank(mf.qr(a)[1]), 2)
        self.assertEqual(mf.qr_rank(npy.zeros((3, 2))), 0)

    def test_qrsolve_least_squares(self):
        a = self.a[:, :2]
        x, rank = mf.qrsolve(a, self.b)
        self.assertEqual(rank, 2)
        expected = npy.linalg.lstsq(a, self.b, rcond=None)[0]
        assert_allclose(x, expected, atol=1e-12)

    def test_qrsolve_rank_deficient(self):
        a = self.a[:, :3].copy()
        a[:, 1] = a[:, 0]
        _, rank = mf.qrsolve(a, self.b)
        self.assertEqual(rank, 2)

    def test_rsolve(self):
        a = self.a.reshape(1, 4, 4)
        b = self.b.T.reshape(1, 2, 4)
        x = mf.rsolve(a, b)
        assert_allclose(x @ a, b, atol=1e-12)

    def test_qr_wide(self):
        a = rand_c(2, 4)
        q, r = mf.qr(a)
        self.assertEqual(q.shape, (2, 2))
        self.assertEqual(r.shape, (2, 4))
        assert_allclose(q @ r, a, atol=1e-12)
        self.assertTrue(npy.all(npy.tril(r, -1) == 0))
        self.assertEqual(mf.qr_rank(r), 2)

    def test_qr_square(self):
        q, r = mf.qr(self.a)
        assert_allclose(q @ r, self.a, atol=1e-12)
        assert_allclose(q.conj().T @ q, npy.eye(4), atol=1e-12)
        self.assertEqual(mf.qr_rank(r), 4)

    def test_qrsolve_square(self):
        x, rank = mf.qrsolve(self.a, self.b)
        self.assertEqual(rank, 4)
        assert_allclose(self.a @ x, self.b, atol=1e-12)

    def test_qrsolve_underdetermined(self):
        a = rand_c(2, 3)
        b = rand_c(2, 1)
        x, rank = mf.qrsolve(a, b)
        self.assertEqual(rank, 2)
        self.assertEqual(x.shape, (3, 1))
        assert_allclose(a @ x, b, atol=1e-12)

    def test_qrsolve_bad_shape(self):
        with self.assertRaises(ValueError):
            mf.qrsolve(self.a, self.b[:3])
