"""
Two-point RANSAC for outlier rejection on tracked correspondences.

Given normalized correspondences between two frames, the tracker's inlier
flags and the frame-to-frame rotation from inertial propagation, runs a fixed
number of trials of (sample 2 -> solve E -> score all candidates), keeps the
trial with the largest consensus and demotes tracker inliers that disagree
with it.
"""

import logging
import time
from typing import Optional, Sequence

import numpy as np

from epipolar_ransac.common.config import (
    ErrorMetric, RansacConfig, MIN_ITERATIONS,
    DEFAULT_SAMPSON_THRESHOLD, DEFAULT_ALGEBRAIC_THRESHOLD
)
from epipolar_ransac.common.data_structures import RansacModel, RansacResult
from epipolar_ransac.common.exceptions import (
    InsufficientCandidatesError, DegenerateSampleError
)
from epipolar_ransac.estimation.epipolar_error import (
    EpipolarErrorMetric, SampsonError, algebraic_residuals, create_error_metric
)
from epipolar_ransac.estimation.sampler import RandomSource, TwoPointSampler
from epipolar_ransac.estimation.two_point_solver import TwoPointSolver
from epipolar_ransac.utils.math_utils import is_rotation_matrix, to_homogeneous

logger = logging.getLogger(__name__)


class TwoPointRansac:
    """
    2-point RANSAC estimator of the essential matrix under a known rotation.

    The instance owns per-call scratch state (hypothesis bank and candidate
    indices) and is not re-entrant. Use one instance per concurrent stream.

    Args:
        use_sampson: Score with Sampson error (True) or algebraic error (False)
        inlier_threshold: Inlier threshold in the units of the chosen metric.
            Defaults per metric when None.
        n_iterations: Number of trials, at least 16
        rng: Random source for sampling
        seed: Seed used when no rng is given
        degeneracy_tolerance: Absolute tolerance of the minimal solver
        relative_degeneracy_tolerance: Relative tolerance of the minimal solver
    """

    def __init__(
        self,
        use_sampson: bool = True,
        inlier_threshold: Optional[float] = None,
        n_iterations: int = MIN_ITERATIONS,
        rng: Optional[RandomSource] = None,
        seed: Optional[int] = None,
        degeneracy_tolerance: float = 1e-12,
        relative_degeneracy_tolerance: float = 1e-9
    ):
        if inlier_threshold is None:
            inlier_threshold = (
                DEFAULT_SAMPSON_THRESHOLD if use_sampson else DEFAULT_ALGEBRAIC_THRESHOLD
            )
        if inlier_threshold <= 0:
            raise ValueError(f"Inlier threshold must be positive, got {inlier_threshold}")

        self._use_sampson = use_sampson
        self._inlier_threshold = float(inlier_threshold)
        self._metric = create_error_metric(
            ErrorMetric.SAMPSON if use_sampson else ErrorMetric.ALGEBRAIC
        )

        self.sampler = TwoPointSampler(rng=rng, seed=seed)
        self.solver = TwoPointSolver(
            degeneracy_tolerance=degeneracy_tolerance,
            relative_degeneracy_tolerance=relative_degeneracy_tolerance
        )

        # Scratch state, rebuilt on every call
        self.model = RansacModel(n_iterations)
        self.inlier_candidate_indices = np.zeros(0, dtype=int)
        self._sampson = SampsonError()

    @classmethod
    def from_config(
        cls,
        config: RansacConfig,
        rng: Optional[RandomSource] = None
    ) -> 'TwoPointRansac':
        """Create an estimator from a RansacConfig."""
        return cls(
            use_sampson=config.use_sampson,
            inlier_threshold=config.inlier_threshold,
            n_iterations=config.n_iterations,
            rng=rng,
            seed=config.seed,
            degeneracy_tolerance=config.degeneracy_tolerance,
            relative_degeneracy_tolerance=config.relative_degeneracy_tolerance
        )

    @property
    def use_sampson(self) -> bool:
        return self._use_sampson

    @property
    def inlier_threshold(self) -> float:
        return self._inlier_threshold

    @property
    def metric(self) -> EpipolarErrorMetric:
        """Error metric strategy, fixed at construction."""
        return self._metric

    @property
    def n_iterations(self) -> int:
        return self.model.n_iterations

    # ------------------------------------------------------------------
    # Trial steps
    # ------------------------------------------------------------------

    def set_point_set(self, n_inlier_candidates: int, n_iter_num: int):
        """
        Draw the two correspondences for trial ``n_iter_num``.

        Stores correspondence indices (not candidate positions) in
        ``model.two_points[n_iter_num]``.

        Raises:
            InsufficientCandidatesError: Fewer than two candidates.
        """
        positions = self.sampler.sample(n_inlier_candidates)
        self.model.two_points[n_iter_num] = self.inlier_candidate_indices[positions]

    def set_ransac_model(
        self,
        points1: np.ndarray,
        points2: np.ndarray,
        R: np.ndarray,
        n_iter_num: int
    ):
        """
        Solve the hypothesis for trial ``n_iter_num`` from its two samples.

        Args:
            points1: Nx3 homogeneous points in frame 1
            points2: Nx3 homogeneous points in frame 2
            R: Rotation from frame 1 to frame 2
            n_iter_num: Trial number

        Raises:
            DegenerateSampleError: The sample does not determine a translation.
        """
        i, j = self.model.two_points[n_iter_num]
        hypothesis = self.solver.solve(points1[[i, j]], points2[[i, j]], R)

        self.model.hypotheses[n_iter_num] = hypothesis.essential_matrix
        self.model.translations[n_iter_num] = hypothesis.translation
        self.model.valid[n_iter_num] = True

    def count_inliers(self, points1: np.ndarray, points2: np.ndarray, n_iter_num: int) -> int:
        """
        Count candidates consistent with the hypothesis of trial ``n_iter_num``.

        All inlier candidates are scored, including the two sampled ones.
        """
        candidates = self.inlier_candidate_indices
        mask = self.metric.inlier_mask(
            points1[candidates], points2[candidates],
            self.model.hypotheses[n_iter_num], self.inlier_threshold
        )
        n_inliers = int(np.count_nonzero(mask))
        self.model.n_inliers[n_iter_num] = n_inliers
        return n_inliers

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def find_inliers(
        self,
        points1: np.ndarray,
        points2: np.ndarray,
        R: np.ndarray,
        inlier_flags: Sequence
    ) -> int:
        """
        2-Point RANSAC.

        Args:
            points1: Nx2 or Nx3 normalized points in frame 1
            points2: Nx2 or Nx3 normalized points in frame 2
            R: Rotation from frame 1 to frame 2
            inlier_flags: Tracker inlier flags (e.g. optical-flow status),
                refined in place. Flags are only ever cleared.

        Returns:
            Number of inlier flags after refinement
        """
        return self.estimate(points1, points2, R, inlier_flags).num_inliers

    def estimate(
        self,
        points1: np.ndarray,
        points2: np.ndarray,
        R: np.ndarray,
        inlier_flags: Sequence
    ) -> RansacResult:
        """
        Same as :meth:`find_inliers`, returning the full RansacResult.
        """
        start_time = time.perf_counter()

        points1, points2, R, input_mask = self._validate_inputs(
            points1, points2, R, inlier_flags
        )

        # Init: rebuild candidate indices and reset the hypothesis bank
        self.inlier_candidate_indices = np.flatnonzero(input_mask)
        n_candidates = len(self.inlier_candidate_indices)
        self.model.reset()

        for k in range(self.model.n_iterations):
            self._run_trial(points1, points2, R, n_candidates, k)

        refined = np.zeros_like(input_mask)
        best_trial = -1
        if self.model.num_valid > 0:
            best_trial = self.model.best_trial()
            candidates = self.inlier_candidate_indices
            refined[candidates] = self.metric.inlier_mask(
                points1[candidates], points2[candidates],
                self.model.hypotheses[best_trial], self.inlier_threshold
            )
        else:
            logger.warning(
                f"No valid hypothesis in {self.model.n_iterations} trials "
                f"({n_candidates} candidates), rejecting all correspondences"
            )

        self._write_flags(inlier_flags, input_mask, refined)
        num_inliers = int(np.count_nonzero(refined))

        runtime_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"2-point RANSAC kept {num_inliers}/{n_candidates} candidates "
            f"(best trial {best_trial}, {self.model.num_valid} valid trials, "
            f"{runtime_ms:.2f} ms)"
        )

        is_valid = best_trial >= 0
        return RansacResult(
            num_inliers=num_inliers,
            inlier_mask=refined,
            essential_matrix=self.model.hypotheses[best_trial].copy() if is_valid else None,
            translation=self.model.translations[best_trial].copy() if is_valid else None,
            best_trial=best_trial,
            best_sample=self.model.two_points[best_trial].copy() if is_valid else None,
            trial_inliers=self.model.n_inliers.copy(),
            num_candidates=n_candidates,
            num_valid_trials=self.model.num_valid,
            runtime_ms=runtime_ms,
            metadata={
                "error_metric": self.metric.name,
                "inlier_threshold": self.inlier_threshold,
                "n_iterations": self.model.n_iterations
            }
        )

    def _run_trial(
        self,
        points1: np.ndarray,
        points2: np.ndarray,
        R: np.ndarray,
        n_candidates: int,
        k: int
    ):
        """One trial. Invalid trials keep their zero inlier count."""
        try:
            self.set_point_set(n_candidates, k)
            self.set_ransac_model(points1, points2, R, k)
        except InsufficientCandidatesError as e:
            logger.debug(f"Trial {k}: {e}")
            return
        except DegenerateSampleError as e:
            logger.debug(f"Trial {k}: degenerate sample {self.model.two_points[k].tolist()}: {e}")
            return

        n_inliers = self.count_inliers(points1, points2, k)
        logger.debug(
            f"Trial {k}: sample {self.model.two_points[k].tolist()} -> {n_inliers} inliers"
        )

    # ------------------------------------------------------------------
    # Metrics for evaluation
    # ------------------------------------------------------------------

    def sampson_error(self, pt1: np.ndarray, pt2: np.ndarray, E: np.ndarray) -> float:
        """Sampson error of a single correspondence (pt1 in frame 1, pt2 in frame 2)."""
        return self._sampson.point_error(pt1, pt2, E)

    def algebraic_error(self, pt1: np.ndarray, pt2: np.ndarray, E: np.ndarray) -> float:
        """Signed algebraic residual pt2^T E pt1."""
        pt1 = np.asarray(pt1, dtype=float).reshape(1, 3)
        pt2 = np.asarray(pt2, dtype=float).reshape(1, 3)
        return float(algebraic_residuals(pt1, pt2, E)[0])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_inputs(points1, points2, R, inlier_flags):
        points1 = to_homogeneous(points1)
        points2 = to_homogeneous(points2)
        if points1.shape != points2.shape:
            raise ValueError(
                f"Point sets must have the same shape, got {points1.shape} and {points2.shape}"
            )
        if len(inlier_flags) != len(points1):
            raise ValueError(
                f"Flag vector has {len(inlier_flags)} entries for {len(points1)} correspondences"
            )

        R = np.asarray(R, dtype=float)
        if R.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {R.shape}")
        if not is_rotation_matrix(R, tol=1e-3):
            logger.warning("Rotation prior is not orthonormal within 1e-3")

        input_mask = np.asarray(inlier_flags).astype(bool)
        return points1, points2, R, input_mask

    @staticmethod
    def _write_flags(inlier_flags: Sequence, input_mask: np.ndarray, refined: np.ndarray):
        """Clear demoted flags in place, preserving the container and element type."""
        demoted = np.flatnonzero(input_mask & ~refined)
        if isinstance(inlier_flags, np.ndarray):
            inlier_flags[demoted] = 0
            return
        for i in demoted:
            inlier_flags[i] = False if isinstance(inlier_flags[i], (bool, np.bool_)) else 0
