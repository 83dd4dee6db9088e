"""
Unit tests for frames and frame transforms.
"""

import unittest
import warnings

import numpy as np

from lmk_projection.errors import BatchJacobianWarning
from lmk_projection.frames import (
    Frame,
    from_frame,
    to_frame,
    to_frame_hmg,
    to_frame_plucker,
    to_frame_segment,
)
from lmk_projection.landmarks import hmg_to_euc, plucker_from_points
from lmk_projection.options import numeric_jacobian
from lmk_projection.quaternion import q2Pi, q2qc, rotation_vector_to_q


def random_frame(rng: np.random.RandomState) -> Frame:
    t = rng.uniform(-2.0, 2.0, 3)
    q = rotation_vector_to_q(rng.uniform(-1.0, 1.0, 3))
    return Frame(t, q)


class TestFrame(unittest.TestCase):
    """Tests for the Frame container."""

    def setUp(self):
        self.rng = np.random.RandomState(42)

    def test_default_frame_is_identity(self):
        F = Frame()
        self.assertTrue(np.allclose(F.t, np.zeros(3)))
        self.assertTrue(np.allclose(F.R, np.eye(3)))
        self.assertTrue(np.allclose(F.Rt, np.eye(3)))
        self.assertIsNone(F.r)

    def test_derived_quantities(self):
        """Rt and Pc follow q."""
        F = random_frame(self.rng)
        self.assertTrue(np.allclose(F.Rt, F.R.T))
        self.assertTrue(np.allclose(F.R @ F.R.T, np.eye(3)))
        self.assertAlmostEqual(np.linalg.det(F.R), 1.0)
        self.assertTrue(np.allclose(F.Pc, q2Pi(q2qc(F.q))))

    def test_setting_q_updates_derived(self):
        F = Frame()
        q = rotation_vector_to_q([0.0, 0.0, np.pi / 2])
        F.q = q
        # 90 degrees about z sends x to y
        self.assertTrue(np.allclose(F.R @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0]))
        self.assertTrue(np.allclose(F.Rt, F.R.T))
        self.assertTrue(np.allclose(F.Pc, q2Pi(q2qc(q))))

    def test_in_place_writes_rejected(self):
        """q and its derived matrices can only change through the setter."""
        F = Frame([1.0, 2.0, 3.0])
        q = rotation_vector_to_q([0.0, 0.0, np.pi / 2])
        with self.assertRaises(ValueError):
            F.q[:] = q
        for arr in (F.t, F.R, F.Rt, F.Pi, F.Pc):
            with self.assertRaises(ValueError):
                arr[0] = 5.0
        self.assertTrue(np.allclose(F.Rt, np.eye(3)))

        F.q = q
        p = np.array([0.5, -1.0, 2.0])
        self.assertTrue(np.allclose(to_frame(F, p), to_frame(Frame([1.0, 2.0, 3.0], q), p)))

    def test_inputs_are_copied(self):
        t = np.array([1.0, 2.0, 3.0])
        q = np.array([1.0, 0.0, 0.0, 0.0])
        F = Frame(t, q)
        t[0] = 9.0
        q[:] = rotation_vector_to_q([0.0, 0.0, np.pi / 2])
        self.assertTrue(t.flags.writeable)
        self.assertTrue(np.allclose(F.t, [1.0, 2.0, 3.0]))
        self.assertTrue(np.allclose(F.Rt, np.eye(3)))

    def test_vector_round_trip(self):
        F = random_frame(self.rng)
        G = Frame.from_vector(F.vector, r=range(7))
        self.assertTrue(np.allclose(G.t, F.t))
        self.assertTrue(np.allclose(G.q, F.q))
        self.assertTrue(np.array_equal(G.r, np.arange(7)))

    def test_from_vector_rejects_wrong_size(self):
        with self.assertRaises(ValueError):
            Frame.from_vector(np.zeros(6))


class TestToFrame(unittest.TestCase):
    """Tests for point frame transforms."""

    def setUp(self):
        self.rng = np.random.RandomState(42)

    def test_translation_only(self):
        F = Frame([1.0, 2.0, 3.0])
        self.assertTrue(np.allclose(to_frame(F, [1.0, 2.0, 4.0]), [0.0, 0.0, 1.0]))

    def test_round_trip(self):
        """to_frame followed by from_frame gives back the point."""
        for _ in range(20):
            F = random_frame(self.rng)
            p = self.rng.uniform(-5.0, 5.0, 3)
            self.assertTrue(np.allclose(from_frame(F, to_frame(F, p)), p))
            self.assertTrue(np.allclose(to_frame(F, from_frame(F, p)), p))

    def test_vector_frame_matches_frame(self):
        F = random_frame(self.rng)
        p = self.rng.uniform(-5.0, 5.0, 3)
        self.assertTrue(np.allclose(to_frame(F.vector, p), to_frame(F, p)))

    def test_jacobians(self):
        """Analytic Jacobians match finite differences."""
        for _ in range(10):
            F = random_frame(self.rng)
            p = self.rng.uniform(-5.0, 5.0, 3)
            p_F, PF_f, PF_p = to_frame(F, p, jacobians=True)

            self.assertTrue(np.allclose(p_F, to_frame(F, p)))
            self.assertTrue(np.allclose(PF_p, F.Rt))

            num_f = numeric_jacobian(lambda f: to_frame(f, p), F.vector, central=True)
            num_p = numeric_jacobian(lambda x: to_frame(F, x), p, central=True)
            self.assertTrue(np.allclose(PF_f, num_f, atol=1e-6))
            self.assertTrue(np.allclose(PF_p, num_p, atol=1e-6))

    def test_from_frame_jacobians(self):
        F = random_frame(self.rng)
        p = self.rng.uniform(-5.0, 5.0, 3)
        _, PW_f, PW_p = from_frame(F, p, jacobians=True)
        num_f = numeric_jacobian(lambda f: from_frame(f, p), F.vector, central=True)
        self.assertTrue(np.allclose(PW_f, num_f, atol=1e-6))
        self.assertTrue(np.allclose(PW_p, F.R))

    def test_batch_values(self):
        F = random_frame(self.rng)
        P = self.rng.uniform(-5.0, 5.0, (3, 4))
        P_F = to_frame(F, P)
        self.assertEqual(P_F.shape, (3, 4))
        for i in range(4):
            self.assertTrue(np.allclose(P_F[:, i], to_frame(F, P[:, i])))

    def test_batch_jacobians_warn(self):
        F = random_frame(self.rng)
        P = self.rng.uniform(-5.0, 5.0, (3, 2))
        with self.assertWarns(BatchJacobianWarning):
            P_F, PF_f, PF_p = to_frame(F, P, jacobians=True)
        self.assertIsNone(PF_f)
        self.assertIsNone(PF_p)
        self.assertTrue(np.allclose(P_F, to_frame(F, P)))


class TestToFrameHmg(unittest.TestCase):

    def setUp(self):
        self.rng = np.random.RandomState(7)

    def test_matches_euclidean_transform(self):
        F = random_frame(self.rng)
        p = self.rng.uniform(-5.0, 5.0, 3)
        for n in (1.0, 0.3, -2.0):
            h = np.concatenate((n * p, [n]))
            self.assertTrue(np.allclose(hmg_to_euc(to_frame_hmg(F, h)), to_frame(F, p)))

    def test_point_at_infinity_is_rotated_only(self):
        F = random_frame(self.rng)
        d = self.rng.uniform(-1.0, 1.0, 3)
        h_F = to_frame_hmg(F, np.concatenate((d, [0.0])))
        self.assertTrue(np.allclose(h_F[0:3], F.Rt @ d))
        self.assertEqual(h_F[3], 0.0)

    def test_jacobians(self):
        F = random_frame(self.rng)
        h = np.concatenate((self.rng.uniform(-5.0, 5.0, 3), [0.4]))
        _, HF_f, HF_h = to_frame_hmg(F, h, jacobians=True)
        num_f = numeric_jacobian(lambda f: to_frame_hmg(f, h), F.vector, central=True)
        num_h = numeric_jacobian(lambda x: to_frame_hmg(F, x), h, central=True)
        self.assertTrue(np.allclose(HF_f, num_f, atol=1e-6))
        self.assertTrue(np.allclose(HF_h, num_h, atol=1e-6))


class TestToFramePlucker(unittest.TestCase):

    def setUp(self):
        self.rng = np.random.RandomState(3)

    def test_matches_transformed_points(self):
        """Transforming the line equals the line through the transformed points."""
        F = random_frame(self.rng)
        p1 = self.rng.uniform(-5.0, 5.0, 3)
        p2 = self.rng.uniform(-5.0, 5.0, 3)
        L_F = to_frame_plucker(F, plucker_from_points(p1, p2))
        expected = plucker_from_points(to_frame(F, p1), to_frame(F, p2))
        self.assertTrue(np.allclose(L_F, expected))

    def test_jacobians(self):
        F = random_frame(self.rng)
        L = plucker_from_points(self.rng.uniform(-5.0, 5.0, 3), self.rng.uniform(-5.0, 5.0, 3))
        _, LF_f, LF_l = to_frame_plucker(F, L, jacobians=True)
        num_f = numeric_jacobian(lambda f: to_frame_plucker(f, L), F.vector, central=True)
        num_l = numeric_jacobian(lambda x: to_frame_plucker(F, x), L, central=True)
        self.assertTrue(np.allclose(LF_f, num_f, atol=1e-6))
        self.assertTrue(np.allclose(LF_l, num_l, atol=1e-6))


class TestToFrameSegment(unittest.TestCase):
    """Tests for segment frame transforms."""

    def setUp(self):
        self.rng = np.random.RandomState(11)
        self.F = random_frame(self.rng)
        self.s = self.rng.uniform(-5.0, 5.0, 6)

    def test_values(self):
        S_F = to_frame_segment(self.F, self.s)
        self.assertTrue(np.allclose(S_F[0:3], to_frame(self.F, self.s[0:3])))
        self.assertTrue(np.allclose(S_F[3:6], to_frame(self.F, self.s[3:6])))

    def test_jacobians(self):
        S_F, SF_f, SF_sw = to_frame_segment(self.F, self.s, jacobians=True)
        self.assertEqual(SF_f.shape, (6, 7))
        self.assertEqual(SF_sw.shape, (6, 6))
        self.assertTrue(np.allclose(S_F, to_frame_segment(self.F, self.s)))

        num_f = numeric_jacobian(lambda f: to_frame_segment(f, self.s), self.F.vector, central=True)
        num_s = numeric_jacobian(lambda x: to_frame_segment(self.F, x), self.s, central=True)
        self.assertTrue(np.allclose(SF_f, num_f, atol=1e-6))
        self.assertTrue(np.allclose(SF_sw, num_s, atol=1e-6))

    def test_segment_jacobian_is_block_diagonal(self):
        """Endpoints do not interact: cross blocks are exactly zero."""
        _, _, SF_sw = to_frame_segment(self.F, self.s, jacobians=True)
        self.assertTrue(np.all(SF_sw[0:3, 3:6] == 0.0))
        self.assertTrue(np.all(SF_sw[3:6, 0:3] == 0.0))
        self.assertTrue(np.allclose(SF_sw[0:3, 0:3], self.F.Rt))
        self.assertTrue(np.allclose(SF_sw[3:6, 3:6], self.F.Rt))

    def test_column_segment_keeps_shape(self):
        S_F, SF_f, SF_sw = to_frame_segment(self.F, self.s.reshape(6, 1), jacobians=True)
        self.assertEqual(S_F.shape, (6, 1))
        self.assertIsNotNone(SF_f)
        self.assertIsNotNone(SF_sw)

    def test_batch_values(self):
        S = self.rng.uniform(-5.0, 5.0, (6, 3))
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            S_F = to_frame_segment(self.F, S)
        self.assertEqual(S_F.shape, (6, 3))
        for i in range(3):
            self.assertTrue(np.allclose(S_F[:, i], to_frame_segment(self.F, S[:, i])))

    def test_batch_jacobians_degrade_to_values(self):
        """Two segments with Jacobians requested: warning and values only."""
        S = self.rng.uniform(-5.0, 5.0, (6, 2))
        with self.assertWarns(BatchJacobianWarning):
            S_F, SF_f, SF_sw = to_frame_segment(self.F, S, jacobians=True)
        self.assertIsNone(SF_f)
        self.assertIsNone(SF_sw)
        self.assertTrue(np.allclose(S_F, to_frame_segment(self.F, S)))


if __name__ == "__main__":
    unittest.main()
