"""
Epipolar error metrics for scoring correspondences against a hypothesis E.

Both metrics are evaluated vectorized over Nx3 homogeneous point arrays
and share the convention that a point is an inlier when its error is at or
below the threshold.
"""

from abc import ABC, abstractmethod
from typing import Union

import numpy as np

from epipolar_ransac.common.config import ErrorMetric


def algebraic_residuals(
    points_a: np.ndarray,
    points_b: np.ndarray,
    E: np.ndarray
) -> np.ndarray:
    """Signed residuals pB^T E pA for every row of the point arrays."""
    return np.einsum('ij,ij->i', points_b, points_a @ E.T)


def sampson_errors(
    points_a: np.ndarray,
    points_b: np.ndarray,
    E: np.ndarray
) -> np.ndarray:
    """
    First-order geometric (Sampson) error for every correspondence.
    
        (pB^T E pA)^2 / ((E pA)_1^2 + (E pA)_2^2 + (E^T pB)_1^2 + (E^T pB)_2^2)
    
    A zero residual yields zero error even when the denominator vanishes.
    A non-zero residual over a vanishing denominator yields inf.
    """
    Ea = points_a @ E.T   # rows: E pA
    Etb = points_b @ E    # rows: E^T pB
    residual = np.einsum('ij,ij->i', points_b, Ea)
    
    numerator = residual ** 2
    denominator = (
        Ea[:, 0] ** 2 + Ea[:, 1] ** 2 +
        Etb[:, 0] ** 2 + Etb[:, 1] ** 2
    )
    
    errors = np.zeros_like(numerator)
    np.divide(numerator, denominator, out=errors, where=denominator > 0)
    errors[(denominator <= 0) & (numerator > 0)] = np.inf
    return errors


class EpipolarErrorMetric(ABC):
    """Strategy interface for per-correspondence epipolar error."""
    
    name: str = "base"
    
    @abstractmethod
    def errors(self, points_a: np.ndarray, points_b: np.ndarray, E: np.ndarray) -> np.ndarray:
        """Non-negative error per correspondence, compared against the threshold."""
        pass
    
    def point_error(self, pt_a: np.ndarray, pt_b: np.ndarray, E: np.ndarray) -> float:
        """Error of a single correspondence given as 3-vectors."""
        pt_a = np.asarray(pt_a, dtype=float).reshape(1, 3)
        pt_b = np.asarray(pt_b, dtype=float).reshape(1, 3)
        return float(self.errors(pt_a, pt_b, E)[0])
    
    def inlier_mask(
        self,
        points_a: np.ndarray,
        points_b: np.ndarray,
        E: np.ndarray,
        threshold: float
    ) -> np.ndarray:
        """Boolean mask of correspondences with error at or below threshold."""
        return self.errors(points_a, points_b, E) <= threshold


class AlgebraicError(EpipolarErrorMetric):
    """|pB^T E pA|. Cheap but scale-sensitive."""
    
    name = "algebraic"
    
    def errors(self, points_a: np.ndarray, points_b: np.ndarray, E: np.ndarray) -> np.ndarray:
        return np.abs(algebraic_residuals(points_a, points_b, E))


class SampsonError(EpipolarErrorMetric):
    """Squared first-order geometric error."""
    
    name = "sampson"
    
    def errors(self, points_a: np.ndarray, points_b: np.ndarray, E: np.ndarray) -> np.ndarray:
        return sampson_errors(points_a, points_b, E)


def create_error_metric(metric: Union[ErrorMetric, str]) -> EpipolarErrorMetric:
    """Create the error metric strategy for a metric selector."""
    metric = ErrorMetric(metric)
    if metric == ErrorMetric.SAMPSON:
        return SampsonError()
    elif metric == ErrorMetric.ALGEBRAIC:
        return AlgebraicError()
    raise ValueError(f"Unknown error metric: {metric}")
