"""
Core data structures for two-view outlier rejection.
Following the naming convention: B_R_A rotates vectors FROM frame A TO frame B.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
import numpy as np

from epipolar_ransac.common.config import MIN_ITERATIONS
from epipolar_ransac.common.exceptions import InvalidGeometryError
from epipolar_ransac.utils.math_utils import essential_from_motion


# ============================================================================
# Correspondence Data Structures
# ============================================================================

@dataclass
class TwoViewCorrespondences:
    """
    Aligned normalized correspondences between two views with ground truth.
    
    Attributes:
        points_a: Nx3 homogeneous normalized points in frame A
        points_b: Nx3 homogeneous normalized points in frame B
        inlier_flags: Tracker flags (1 = tracked inlier) as uint8
        B_R_A: Rotation from frame A to frame B
        B_t_A: Translation of the motion A -> B
        is_inlier: Ground truth inlier mask
    """
    points_a: np.ndarray
    points_b: np.ndarray
    inlier_flags: np.ndarray
    B_R_A: np.ndarray
    B_t_A: np.ndarray
    is_inlier: np.ndarray
    
    def __post_init__(self):
        """Validate shapes."""
        self.points_a = np.asarray(self.points_a, dtype=float)
        self.points_b = np.asarray(self.points_b, dtype=float)
        if self.points_a.shape != self.points_b.shape:
            raise ValueError(
                f"Point sets differ in shape: {self.points_a.shape} vs {self.points_b.shape}"
            )
        if len(self.inlier_flags) != len(self.points_a):
            raise ValueError("Flag vector length must match number of correspondences")
    
    @property
    def num_points(self) -> int:
        return len(self.points_a)
    
    @property
    def num_true_inliers(self) -> int:
        return int(np.count_nonzero(self.is_inlier))
    
    @property
    def essential_matrix(self) -> np.ndarray:
        """Ground truth essential matrix [t]_x R."""
        return essential_from_motion(self.B_R_A, self.B_t_A)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "points_a": self.points_a.tolist(),
            "points_b": self.points_b.tolist(),
            "inlier_flags": np.asarray(self.inlier_flags).astype(int).tolist(),
            "B_R_A": self.B_R_A.tolist(),
            "B_t_A": self.B_t_A.tolist(),
            "is_inlier": np.asarray(self.is_inlier).astype(bool).tolist()
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TwoViewCorrespondences':
        """Create from dictionary."""
        return cls(
            points_a=np.array(data["points_a"]),
            points_b=np.array(data["points_b"]),
            inlier_flags=np.array(data["inlier_flags"], dtype=np.uint8),
            B_R_A=np.array(data["B_R_A"]),
            B_t_A=np.array(data["B_t_A"]),
            is_inlier=np.array(data["is_inlier"], dtype=bool)
        )


# ============================================================================
# RANSAC Data Structures
# ============================================================================

class RansacModel:
    """
    Preallocated hypothesis bank for the 2-point RANSAC.
    
    One slot per trial, indexed by trial number. Slot k only ever holds the
    hypothesis built from ``two_points[k]``.
    
    Attributes:
        n_iterations: Number of trials (min. 16)
        hypotheses: n_iterations x 3 x 3 essential matrix hypotheses
        translations: n_iterations x 3 unit translation directions
        n_inliers: Inlier count per trial
        two_points: Indices of the two correspondences sampled per trial
        valid: Whether trial k produced a usable hypothesis
    """
    
    def __init__(self, n_iterations: int = MIN_ITERATIONS):
        if n_iterations < MIN_ITERATIONS:
            raise ValueError(
                f"n_iterations must be at least {MIN_ITERATIONS}, got {n_iterations}"
            )
        self.n_iterations = n_iterations
        self.hypotheses = np.zeros((n_iterations, 3, 3))
        self.translations = np.zeros((n_iterations, 3))
        self.n_inliers = np.zeros(n_iterations, dtype=int)
        self.two_points = np.full((n_iterations, 2), -1, dtype=int)
        self.valid = np.zeros(n_iterations, dtype=bool)
    
    def reset(self):
        """Clear all trial slots in place."""
        self.hypotheses.fill(0.0)
        self.translations.fill(0.0)
        self.n_inliers.fill(0)
        self.two_points.fill(-1)
        self.valid.fill(False)
    
    def best_trial(self) -> int:
        """Index of the first valid trial with the maximum inlier count."""
        # Invalid slots hold E = 0, which every point satisfies
        counts = np.where(self.valid, self.n_inliers, -1)
        # np.argmax returns the first occurrence, lowest trial wins ties
        return int(np.argmax(counts))
    
    @property
    def num_valid(self) -> int:
        return int(np.count_nonzero(self.valid))


@dataclass
class RansacResult:
    """
    Outcome of one two-point RANSAC call.
    
    Attributes:
        num_inliers: Number of inlier flags after refinement
        inlier_mask: Refined boolean mask (subset of the input flags)
        essential_matrix: Winning hypothesis (None if every trial was invalid)
        translation: Unit translation direction of the winning hypothesis
        best_trial: Index of the winning trial (-1 if none)
        best_sample: Indices of the two correspondences behind the winner
        trial_inliers: Inlier count recorded for every trial
        num_candidates: Number of input-flagged inlier candidates
        num_valid_trials: Trials that produced a hypothesis
        runtime_ms: Wall clock time of the call
    """
    num_inliers: int
    inlier_mask: np.ndarray
    essential_matrix: Optional[np.ndarray]
    translation: Optional[np.ndarray]
    best_trial: int
    best_sample: Optional[np.ndarray]
    trial_inliers: np.ndarray
    num_candidates: int
    num_valid_trials: int
    runtime_ms: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def is_valid(self) -> bool:
        """Whether any trial produced a usable motion hypothesis."""
        return self.essential_matrix is not None
    
    def raise_if_invalid(self):
        """Raise InvalidGeometryError when no trial produced a hypothesis."""
        if not self.is_valid:
            raise InvalidGeometryError(
                f"No valid motion hypothesis from {len(self.trial_inliers)} trials "
                f"over {self.num_candidates} candidates"
            )
    
    def get_inlier_indices(self) -> List[int]:
        """Indices of correspondences kept as inliers."""
        return np.flatnonzero(self.inlier_mask).tolist()
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "num_inliers": self.num_inliers,
            "inlier_mask": self.inlier_mask.astype(bool).tolist(),
            "essential_matrix": (
                self.essential_matrix.tolist() if self.essential_matrix is not None else None
            ),
            "translation": (
                self.translation.tolist() if self.translation is not None else None
            ),
            "best_trial": self.best_trial,
            "best_sample": (
                self.best_sample.tolist() if self.best_sample is not None else None
            ),
            "trial_inliers": self.trial_inliers.tolist(),
            "num_candidates": self.num_candidates,
            "num_valid_trials": self.num_valid_trials,
            "runtime_ms": self.runtime_ms,
            "metadata": self.metadata
        }
