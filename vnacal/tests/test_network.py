import unittest

import numpy as npy
from numpy.testing import assert_allclose

import vnacal as vc


class NetworkConversionTestCase(unittest.TestCase):
    """
    Power-wave conversions between reference impedances
    """

    def setUp(self):
        rng = npy.random.default_rng(3)
        self.s = 0.4 * (rng.standard_normal((3, 2, 2))
                        + 1j * rng.standard_normal((3, 2, 2)))

    def test_fix_z0_shape(self):
        self.assertEqual(vc.fix_z0_shape(50, 3, 2).shape, (3, 2))
        assert_allclose(vc.fix_z0_shape([50, 25], 3, 2)[2], [50, 25])
        assert_allclose(vc.fix_z0_shape([10, 20, 30], 3, 2)[:, 1],
                        [10, 20, 30])
        with self.assertRaises(IndexError):
            vc.fix_z0_shape([1, 2, 3, 4], 3, 2)

    def test_fix_param_shape(self):
        self.assertEqual(vc.fix_param_shape(0.5).shape, (1, 1, 1))
        self.assertEqual(vc.fix_param_shape([0.1, 0.2]).shape, (2, 1, 1))
        self.assertEqual(vc.fix_param_shape(npy.eye(2)).shape, (1, 2, 2))
        with self.assertRaises(ValueError):
            vc.fix_param_shape(npy.ones((2, 3)))

    def test_renormalize_identity(self):
        assert_allclose(vc.renormalize_s(self.s, 50.0, 50.0), self.s,
                        atol=1e-12)

    def test_renormalize_round_trip(self):
        s = vc.renormalize_s(self.s, 50.0, [25.0, 60.0])
        assert_allclose(vc.renormalize_s(s, [25.0, 60.0], 50.0), self.s,
                        atol=1e-12)

    def test_renormalize_uncoupled_ports(self):
        gamma = npy.array([0.3 - 0.2j, -0.5j])
        z_new = npy.array([25.0, 60.0])
        z = 50.0 * (1.0 + gamma) / (1.0 - gamma)
        s = vc.renormalize_s(npy.diag(gamma), 50.0, z_new)
        assert_allclose(s[0], npy.diag((z - z_new) / (z + z_new)),
                        atol=1e-12)

    def test_renormalize_per_frequency(self):
        s = npy.zeros((3, 1, 1), dtype=complex)
        z_new = npy.array([50.0, 75.0, 100.0])
        assert_allclose(vc.renormalize_s(s, 50.0, z_new)[:, 0, 0],
                        (50.0 - z_new) / (50.0 + z_new), atol=1e-12)

    def test_renormalize_short(self):
        # a short stays a short in any reference impedance
        s = -npy.ones((1, 1, 1), dtype=complex)
        assert_allclose(vc.renormalize_s(s, 50.0, 25.0), s, atol=1e-12)

    def test_renormalize_load(self):
        s = npy.zeros((1, 1, 1), dtype=complex)
        assert_allclose(vc.renormalize_s(s, 50.0, 75.0), [[[-0.2]]])
