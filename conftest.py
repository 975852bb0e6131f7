"""
Shared pytest fixtures.
"""

import numpy as np
import pytest

from epipolar_ransac.simulation.correspondence_generator import generate_correspondences
from epipolar_ransac.utils.math_utils import so3_exp


@pytest.fixture
def rotation():
    """Small rotation from frame A to frame B."""
    return so3_exp(np.array([0.02, -0.05, 0.03]))


@pytest.fixture
def clean_scene():
    """Noise-free correspondences without outliers."""
    return generate_correspondences(
        num_points=30, num_outliers=0, noise_std=0.0, seed=7
    )


@pytest.fixture
def noisy_scene():
    """Slightly noisy correspondences with 20% outliers."""
    return generate_correspondences(
        num_points=50, num_outliers=10, noise_std=1e-5, seed=11
    )
