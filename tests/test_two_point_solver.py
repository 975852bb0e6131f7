"""
Tests for the sampler, the minimal 2-point solver and the epipolar error metrics.
"""

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal

from epipolar_ransac.common.config import ErrorMetric
from epipolar_ransac.common.exceptions import (
    DegenerateSampleError, InsufficientCandidatesError, RansacError
)
from epipolar_ransac.estimation.epipolar_error import (
    AlgebraicError, SampsonError, create_error_metric,
    algebraic_residuals, sampson_errors
)
from epipolar_ransac.estimation.ransac import TwoPointRansac
from epipolar_ransac.estimation.sampler import TwoPointSampler
from epipolar_ransac.estimation.two_point_solver import (
    TwoPointSolver, epipolar_coefficients
)
from epipolar_ransac.utils.math_utils import so3_exp, skew, essential_from_motion


def _project(points_3d: np.ndarray) -> np.ndarray:
    return points_3d / points_3d[:, 2:3]


@pytest.fixture
def motion():
    R = so3_exp(np.array([0.03, -0.08, 0.05]))
    t = np.array([0.6, -0.2, 0.3])
    return R, t


@pytest.fixture
def two_view_points(motion):
    """Noise-free correspondences for the motion fixture."""
    R, t = motion
    rng = np.random.default_rng(2)
    P_A = np.column_stack([
        rng.uniform(-2, 2, 20),
        rng.uniform(-2, 2, 20),
        rng.uniform(3, 8, 20)
    ])
    P_B = P_A @ R.T + t
    return _project(P_A), _project(P_B)


class TestTwoPointSampler:
    """Test sampling of candidate pairs."""

    def test_distinct_indices(self):
        sampler = TwoPointSampler(seed=0)
        for _ in range(200):
            i, j = sampler.sample(5)
            assert i != j
            assert 0 <= i < 5 and 0 <= j < 5

    def test_two_candidates(self):
        """Test the only possible pair is drawn."""
        sampler = TwoPointSampler(seed=1)
        assert sorted(sampler.sample(2).tolist()) == [0, 1]

    @pytest.mark.parametrize("n_candidates", [0, 1])
    def test_insufficient_candidates(self, n_candidates):
        sampler = TwoPointSampler(seed=0)
        with pytest.raises(InsufficientCandidatesError) as exc_info:
            sampler.sample(n_candidates)
        assert exc_info.value.n_candidates == n_candidates
        assert isinstance(exc_info.value, RansacError)

    def test_seed_reproducible(self):
        a = TwoPointSampler(seed=42)
        b = TwoPointSampler(seed=42)
        for _ in range(20):
            assert a.sample(50).tolist() == b.sample(50).tolist()

    def test_custom_random_source(self):
        """Test any object with a numpy-like choice() can drive the sampler."""
        class FixedSource:
            def choice(self, a, size=None, replace=True, p=None):
                return np.array([3, 1])

        sampler = TwoPointSampler(rng=FixedSource())
        assert sampler.sample(10).tolist() == [3, 1]

    def test_repeated_index_from_source_rejected(self):
        class BrokenSource:
            def choice(self, a, size=None, replace=True, p=None):
                return np.array([2, 2])

        with pytest.raises(ValueError):
            TwoPointSampler(rng=BrokenSource()).sample(10)

    def test_uniform_coverage(self):
        """Test every candidate is eventually drawn."""
        sampler = TwoPointSampler(seed=3)
        seen = set()
        for _ in range(200):
            seen.update(sampler.sample(8).tolist())
        assert seen == set(range(8))


class TestTwoPointSolver:
    """Test the minimal solver."""

    def test_coefficients_orthogonal_to_translation(self, motion, two_view_points):
        """Test each constraint vector is orthogonal to the true translation."""
        R, t = motion
        points_a, points_b = two_view_points
        coefficients = epipolar_coefficients(points_a, points_b, R)
        assert coefficients.shape == (20, 3)
        assert_array_almost_equal(coefficients @ t, np.zeros(20), decimal=12)

    def test_recovers_translation_direction(self, motion, two_view_points):
        R, t = motion
        points_a, points_b = two_view_points
        solver = TwoPointSolver()
        hypothesis = solver.solve(points_a[[0, 5]], points_b[[0, 5]], R)

        assert np.linalg.norm(hypothesis.translation) == pytest.approx(1.0)
        t_unit = t / np.linalg.norm(t)
        assert abs(hypothesis.translation @ t_unit) == pytest.approx(1.0, abs=1e-9)

    def test_hypothesis_matches_true_essential(self, motion, two_view_points):
        """Test E = [t]_x R equals the true E up to sign and scale."""
        R, t = motion
        points_a, points_b = two_view_points
        hypothesis = TwoPointSolver().solve(points_a[[2, 9]], points_b[[2, 9]], R)

        E_true = essential_from_motion(R, t / np.linalg.norm(t))
        E = hypothesis.essential_matrix
        assert_array_almost_equal(E, skew(hypothesis.translation) @ R)
        assert min(np.linalg.norm(E - E_true), np.linalg.norm(E + E_true)) < 1e-9

    def test_all_points_satisfy_hypothesis(self, motion, two_view_points):
        R, _ = motion
        points_a, points_b = two_view_points
        E = TwoPointSolver().solve(points_a[[1, 3]], points_b[[1, 3]], R).essential_matrix
        assert np.max(np.abs(algebraic_residuals(points_a, points_b, E))) < 1e-12

    def test_zero_translation_is_degenerate(self):
        """Test identical points with zero translation give no hypothesis."""
        points = np.array([[0.1, 0.2, 1.0], [-0.3, 0.05, 1.0]])
        with pytest.raises(DegenerateSampleError) as exc_info:
            TwoPointSolver().solve(points, points.copy(), np.eye(3))
        assert exc_info.value.translation_norm < 1e-12

    def test_pure_rotation_is_degenerate(self):
        """Test points related by rotation only give no hypothesis."""
        R = so3_exp(np.array([0.1, 0.2, -0.1]))
        points_a = np.array([[0.1, 0.2, 1.0], [-0.3, 0.05, 1.0]])
        points_b = _project(points_a @ R.T)
        with pytest.raises(DegenerateSampleError):
            TwoPointSolver().solve(points_a, points_b, R)

    def test_repeated_correspondence_is_degenerate(self, motion, two_view_points):
        """Test the same correspondence twice gives parallel constraints."""
        R, _ = motion
        points_a, points_b = two_view_points
        with pytest.raises(DegenerateSampleError):
            TwoPointSolver().solve(points_a[[4, 4]], points_b[[4, 4]], R)

    def test_non_finite_input_is_degenerate(self, motion):
        R, _ = motion
        points_a = np.array([[np.nan, 0.2, 1.0], [0.1, 0.1, 1.0]])
        points_b = np.array([[0.2, 0.2, 1.0], [0.3, 0.1, 1.0]])
        with pytest.raises(DegenerateSampleError):
            TwoPointSolver().solve(points_a, points_b, R)


class TestEpipolarErrors:
    """Test the Sampson and algebraic metrics."""

    @pytest.fixture
    def line_setup(self):
        """E for translation along x, and a frame-B point exactly on the epipolar line."""
        E = skew(np.array([1.0, 0.0, 0.0])) @ np.eye(3)
        pt_a = np.array([0.1, 0.2, 1.0])
        # E pA = (0, -1, 0.2): the line y = 0.2 in frame B
        pt_b_on = np.array([0.5, 0.2, 1.0])
        pt_b_off = np.array([0.5, 0.3, 1.0])
        return E, pt_a, pt_b_on, pt_b_off

    def test_zero_algebraic_implies_zero_sampson(self, line_setup):
        E, pt_a, pt_b_on, _ = line_setup
        assert AlgebraicError().point_error(pt_a, pt_b_on, E) == 0.0
        assert SampsonError().point_error(pt_a, pt_b_on, E) == 0.0

    def test_algebraic_point_error_is_magnitude(self, line_setup):
        """Test the metric reports |residual| for a point off its epipolar line."""
        E, pt_a, _, pt_b_off = line_setup
        assert algebraic_residuals(pt_a.reshape(1, 3), pt_b_off.reshape(1, 3), E)[0] == pytest.approx(-0.1)
        assert AlgebraicError().point_error(pt_a, pt_b_off, E) == pytest.approx(0.1)
        assert AlgebraicError().errors(
            pt_a.reshape(1, 3), pt_b_off.reshape(1, 3), E
        )[0] == pytest.approx(0.1)

    def test_estimator_algebraic_error_is_signed(self, line_setup):
        E, pt_a, _, pt_b_off = line_setup
        ransac = TwoPointRansac(use_sampson=False)
        assert ransac.algebraic_error(pt_a, pt_b_off, E) == pytest.approx(-0.1)
        assert ransac.sampson_error(pt_a, pt_b_off, E) == pytest.approx(
            SampsonError().point_error(pt_a, pt_b_off, E)
        )

    def test_sampson_value(self, line_setup):
        """Test Sampson error against a hand computation."""
        E, pt_a, _, pt_b_off = line_setup
        Ea = E @ pt_a
        Etb = E.T @ pt_b_off
        expected = (pt_b_off @ E @ pt_a) ** 2 / (Ea[0]**2 + Ea[1]**2 + Etb[0]**2 + Etb[1]**2)
        assert SampsonError().point_error(pt_a, pt_b_off, E) == pytest.approx(expected)

    def test_sampson_zero_matrix(self):
        """Test a vanishing denominator with zero residual yields zero, not NaN."""
        errors = sampson_errors(np.array([[0.1, 0.2, 1.0]]), np.array([[0.3, 0.1, 1.0]]), np.zeros((3, 3)))
        assert errors[0] == 0.0

    def test_sampson_zero_denominator_nonzero_residual(self):
        """Only the homogeneous components contribute: gradient zero, residual not."""
        E = np.zeros((3, 3))
        E[2, 2] = 1.0
        errors = sampson_errors(np.array([[0.1, 0.2, 1.0]]), np.array([[0.3, 0.1, 1.0]]), E)
        assert np.isinf(errors[0])

    def test_vectorized_matches_pointwise(self, motion, two_view_points):
        R, t = motion
        points_a, points_b = two_view_points
        E = essential_from_motion(R, t + np.array([0.05, 0.0, -0.02]))
        metric = SampsonError()
        errors = metric.errors(points_a, points_b, E)
        for i in range(len(points_a)):
            assert errors[i] == pytest.approx(metric.point_error(points_a[i], points_b[i], E))

    def test_true_correspondences_are_inliers(self, motion, two_view_points):
        R, t = motion
        points_a, points_b = two_view_points
        E = essential_from_motion(R, t / np.linalg.norm(t))
        for metric in (SampsonError(), AlgebraicError()):
            assert np.all(metric.inlier_mask(points_a, points_b, E, 1e-9))

    def test_threshold_is_inclusive(self, line_setup):
        E, pt_a, _, pt_b_off = line_setup
        error = AlgebraicError().errors(pt_a.reshape(1, 3), pt_b_off.reshape(1, 3), E)[0]
        mask = AlgebraicError().inlier_mask(pt_a.reshape(1, 3), pt_b_off.reshape(1, 3), E, error)
        assert mask[0]

    def test_factory(self):
        assert isinstance(create_error_metric("sampson"), SampsonError)
        assert isinstance(create_error_metric(ErrorMetric.ALGEBRAIC), AlgebraicError)
        with pytest.raises(ValueError):
            create_error_metric("reprojection")
