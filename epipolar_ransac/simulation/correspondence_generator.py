"""
Synthetic two-view correspondence generation.

Produces normalized image-plane correspondences for a known motion
(B_R_A, B_t_A), with Gaussian noise, injected outliers and tracker flags,
standing in for the output of an optical-flow front end.
"""

import logging
from typing import Optional

import numpy as np

from epipolar_ransac.common.config import SceneConfig
from epipolar_ransac.common.data_structures import TwoViewCorrespondences
from epipolar_ransac.estimation.epipolar_error import sampson_errors
from epipolar_ransac.utils.math_utils import (
    so3_exp, random_rotation_matrix, essential_from_motion, normalize_homogeneous
)

logger = logging.getLogger(__name__)


class CorrespondenceGenerator:
    """Generate noisy two-view correspondences with outliers."""

    def __init__(self, config: Optional[SceneConfig] = None):
        """
        Initialize correspondence generator.

        Args:
            config: Scene configuration
        """
        self.config = config or SceneConfig()
        self.rng = np.random.default_rng(self.config.seed)

    def generate(self) -> TwoViewCorrespondences:
        """
        Generate one set of correspondences.

        Returns:
            TwoViewCorrespondences with ground truth motion and inlier mask
        """
        B_R_A = self._rotation()
        B_t_A = self._translation()

        points_a, points_b = self._project_scene(B_R_A, B_t_A, self.config.num_points)

        if self.config.noise_std > 0:
            points_a[:, :2] += self.rng.normal(0, self.config.noise_std, (len(points_a), 2))
            points_b[:, :2] += self.rng.normal(0, self.config.noise_std, (len(points_b), 2))

        is_inlier = np.ones(self.config.num_points, dtype=bool)
        outlier_indices = self.rng.choice(
            self.config.num_points, size=self.config.num_outliers, replace=False
        )
        E = essential_from_motion(B_R_A, B_t_A)
        for idx in outlier_indices:
            points_b[idx] = self._outlier_point(points_a[idx], E)
            is_inlier[idx] = False

        inlier_flags = np.ones(self.config.num_points, dtype=np.uint8)
        if self.config.tracking_failure_rate > 0:
            lost = self.rng.random(self.config.num_points) < self.config.tracking_failure_rate
            inlier_flags[lost] = 0

        return TwoViewCorrespondences(
            points_a=points_a,
            points_b=points_b,
            inlier_flags=inlier_flags,
            B_R_A=B_R_A,
            B_t_A=B_t_A,
            is_inlier=is_inlier
        )

    def _rotation(self) -> np.ndarray:
        if self.config.rotation_vector is not None:
            return so3_exp(np.array(self.config.rotation_vector))
        return random_rotation_matrix(self.config.max_rotation_angle, rng=self.rng)

    def _translation(self) -> np.ndarray:
        if self.config.translation is not None:
            return np.array(self.config.translation, dtype=float)
        t = self.rng.normal(size=3)
        return t / np.linalg.norm(t)

    def _project_scene(self, B_R_A: np.ndarray, B_t_A: np.ndarray, num_points: int):
        """
        Sample 3D points visible in frame A and in front of frame B.

        Returns:
            (points_a, points_b) as Nx3 homogeneous normalized points
        """
        cfg = self.config
        points_a = np.zeros((num_points, 3))
        points_b = np.zeros((num_points, 3))

        generated = 0
        max_attempts = num_points * 100
        attempts = 0
        while generated < num_points and attempts < max_attempts:
            attempts += 1

            xy = self.rng.uniform(-cfg.half_fov, cfg.half_fov, 2)
            depth = self.rng.uniform(cfg.min_depth, cfg.max_depth)
            P_A = depth * np.array([xy[0], xy[1], 1.0])
            P_B = B_R_A @ P_A + B_t_A

            # Must lie in front of camera B
            if P_B[2] < 0.1 * cfg.min_depth:
                continue

            points_a[generated] = P_A
            points_b[generated] = P_B
            generated += 1

        if generated < num_points:
            raise RuntimeError(
                f"Only generated {generated}/{num_points} visible points; "
                f"check depth range and motion"
            )
        return normalize_homogeneous(points_a), normalize_homogeneous(points_b)

    def _outlier_point(self, point_a: np.ndarray, E: np.ndarray) -> np.ndarray:
        """Uniform random frame-B point away from the true epipolar line of point_a."""
        min_error = self.config.outlier_min_distance ** 2
        candidate = None
        for _ in range(100):
            xy = self.rng.uniform(-self.config.half_fov, self.config.half_fov, 2)
            candidate = np.array([xy[0], xy[1], 1.0])
            error = sampson_errors(point_a.reshape(1, 3), candidate.reshape(1, 3), E)[0]
            if error >= min_error:
                return candidate
        logger.warning("Could not place outlier away from its epipolar line")
        return candidate


def generate_correspondences(
    num_points: int = 100,
    num_outliers: int = 10,
    noise_std: float = 1e-4,
    seed: Optional[int] = None,
    **kwargs
) -> TwoViewCorrespondences:
    """
    Convenience function to generate correspondences.

    Args:
        num_points: Number of correspondences
        num_outliers: Number of outliers among them
        noise_std: Noise on normalized coordinates
        seed: Random seed
        **kwargs: Further SceneConfig fields

    Returns:
        TwoViewCorrespondences
    """
    config = SceneConfig(
        num_points=num_points,
        num_outliers=num_outliers,
        noise_std=noise_std,
        seed=seed,
        **kwargs
    )
    return CorrespondenceGenerator(config).generate()
