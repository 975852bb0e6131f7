"""
Minimal 2-point solver for the essential matrix under a known rotation.

With the rotation B_R_A known from inertial propagation, the epipolar
constraint

    pB^T [t]_x (B_R_A pA) = 0

is linear in the translation direction t:

    t . ((B_R_A pA) x pB) = 0

Each correspondence contributes one coefficient vector a_i. Two of them fix
t (up to sign and scale) as the null space of the stacked 2x3 system, which
is the cross product a_1 x a_2. The hypothesis is E = [t]_x B_R_A.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from epipolar_ransac.common.exceptions import DegenerateSampleError
from epipolar_ransac.utils.math_utils import skew


@dataclass
class TwoPointHypothesis:
    """Essential matrix hypothesis and the unit translation that generated it."""
    essential_matrix: np.ndarray
    translation: np.ndarray


def epipolar_coefficients(
    points_a: np.ndarray,
    points_b: np.ndarray,
    B_R_A: np.ndarray
) -> np.ndarray:
    """
    Coefficient vectors of the translation constraint for each correspondence.
    
    Args:
        points_a: Nx3 homogeneous points in frame A
        points_b: Nx3 homogeneous points in frame B
        B_R_A: Rotation from frame A to frame B
    
    Returns:
        Nx3 array, row i is (B_R_A pA_i) x pB_i
    """
    rotated_a = points_a @ B_R_A.T
    return np.cross(rotated_a, points_b)


class TwoPointSolver:
    """
    Solve for E from two correspondences and a rotation prior.
    
    Args:
        degeneracy_tolerance: Absolute norm of a_1 x a_2 below which the
            sample is rejected.
        relative_degeneracy_tolerance: Rejects when |a_1 x a_2| falls below
            this fraction of |a_1| |a_2|, i.e. the two constraints are
            (near-)parallel.
    """
    
    def __init__(
        self,
        degeneracy_tolerance: float = 1e-12,
        relative_degeneracy_tolerance: float = 1e-9
    ):
        self.degeneracy_tolerance = degeneracy_tolerance
        self.relative_degeneracy_tolerance = relative_degeneracy_tolerance
    
    def solve(
        self,
        pair_a: np.ndarray,
        pair_b: np.ndarray,
        B_R_A: np.ndarray
    ) -> TwoPointHypothesis:
        """
        Build the hypothesis from exactly two correspondences.
        
        Args:
            pair_a: 2x3 homogeneous points in frame A
            pair_b: 2x3 homogeneous points in frame B
            B_R_A: Rotation from frame A to frame B
        
        Returns:
            TwoPointHypothesis with unit-norm translation
        
        Raises:
            DegenerateSampleError: If the two constraints do not determine t.
        """
        coefficients = epipolar_coefficients(pair_a, pair_b, B_R_A)
        t, t_norm = self._null_vector(coefficients[0], coefficients[1])
        
        t = t / t_norm
        return TwoPointHypothesis(
            essential_matrix=skew(t) @ B_R_A,
            translation=t
        )
    
    def _null_vector(self, a1: np.ndarray, a2: np.ndarray) -> Tuple[np.ndarray, float]:
        """Null space of the 2x3 system [a1; a2] with degeneracy checks."""
        t = np.cross(a1, a2)
        t_norm = float(np.linalg.norm(t))
        
        if not np.isfinite(t_norm):
            raise DegenerateSampleError("Non-finite translation hypothesis", t_norm)
        if t_norm < self.degeneracy_tolerance:
            raise DegenerateSampleError(
                f"Translation norm {t_norm:.3e} below tolerance "
                f"{self.degeneracy_tolerance:.1e}",
                t_norm
            )
        scale = float(np.linalg.norm(a1) * np.linalg.norm(a2))
        if t_norm < self.relative_degeneracy_tolerance * scale:
            raise DegenerateSampleError(
                f"Constraint vectors are parallel (|t|={t_norm:.3e}, scale={scale:.3e})",
                t_norm
            )
        return t, t_norm
