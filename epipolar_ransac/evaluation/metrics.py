"""
Evaluation metrics for two-view outlier rejection.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from tqdm import tqdm

from epipolar_ransac.common.config import RansacConfig, SceneConfig
from epipolar_ransac.common.data_structures import RansacResult, TwoViewCorrespondences
from epipolar_ransac.estimation.ransac import TwoPointRansac
from epipolar_ransac.simulation.correspondence_generator import CorrespondenceGenerator
from epipolar_ransac.utils.math_utils import angle_between_vectors


@dataclass
class InlierClassificationMetrics:
    """
    Confusion statistics of the refined flags against ground truth.

    Only correspondences the tracker flagged as inliers are counted; the rest
    were never candidates.

    Attributes:
        true_positives: Real inliers kept
        false_positives: Outliers kept
        true_negatives: Outliers rejected
        false_negatives: Real inliers rejected
    """
    true_positives: int = 0
    false_positives: int = 0
    true_negatives: int = 0
    false_negatives: int = 0

    @property
    def precision(self) -> float:
        kept = self.true_positives + self.false_positives
        return self.true_positives / kept if kept > 0 else 0.0

    @property
    def recall(self) -> float:
        real = self.true_positives + self.false_negatives
        return self.true_positives / real if real > 0 else 0.0

    @property
    def f1_score(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if (p + r) > 0 else 0.0

    @property
    def accuracy(self) -> float:
        total = (self.true_positives + self.false_positives +
                 self.true_negatives + self.false_negatives)
        return (self.true_positives + self.true_negatives) / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "true_negatives": self.true_negatives,
            "false_negatives": self.false_negatives,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "accuracy": self.accuracy
        }


def compute_inlier_classification(
    refined_mask: np.ndarray,
    ground_truth: np.ndarray,
    candidate_mask: Optional[np.ndarray] = None
) -> InlierClassificationMetrics:
    """
    Compare refined inlier flags with ground truth.

    Args:
        refined_mask: Refined inlier flags
        ground_truth: True inlier mask
        candidate_mask: Tracker input flags; all points if None

    Returns:
        InlierClassificationMetrics
    """
    refined = np.asarray(refined_mask).astype(bool)
    truth = np.asarray(ground_truth).astype(bool)
    if candidate_mask is None:
        candidates = np.ones_like(truth)
    else:
        candidates = np.asarray(candidate_mask).astype(bool)

    return InlierClassificationMetrics(
        true_positives=int(np.count_nonzero(candidates & refined & truth)),
        false_positives=int(np.count_nonzero(candidates & refined & ~truth)),
        true_negatives=int(np.count_nonzero(candidates & ~refined & ~truth)),
        false_negatives=int(np.count_nonzero(candidates & ~refined & truth))
    )


def translation_direction_error(estimated: np.ndarray, ground_truth: np.ndarray) -> float:
    """
    Angle between estimated and true translation directions (radians).

    The 2-point solver recovers t only up to sign, so the smaller of the
    angles to +t and -t is returned (range [0, pi/2]).
    """
    angle = angle_between_vectors(estimated, ground_truth)
    if np.isnan(angle):
        return angle
    return float(min(angle, np.pi - angle))


@dataclass
class EvaluationResult:
    """Metrics of one RANSAC call on synthetic data."""
    classification: InlierClassificationMetrics
    translation_error: float
    num_inliers: int
    num_true_inliers: int
    runtime_ms: float

    @property
    def is_exact(self) -> bool:
        """All candidate inliers kept and all candidate outliers rejected."""
        return (self.classification.false_positives == 0 and
                self.classification.false_negatives == 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "classification": self.classification.to_dict(),
            "translation_error_rad": self.translation_error,
            "num_inliers": self.num_inliers,
            "num_true_inliers": self.num_true_inliers,
            "runtime_ms": self.runtime_ms,
            "is_exact": self.is_exact
        }


def evaluate_result(
    result: RansacResult,
    data: TwoViewCorrespondences,
    input_flags: np.ndarray
) -> EvaluationResult:
    """
    Evaluate a RANSAC result against the scene ground truth.

    Args:
        result: Output of TwoPointRansac.estimate
        data: Synthetic correspondences with ground truth
        input_flags: Tracker flags as they were before refinement

    Returns:
        EvaluationResult
    """
    classification = compute_inlier_classification(
        result.inlier_mask, data.is_inlier, input_flags
    )
    if result.translation is not None:
        t_error = translation_direction_error(result.translation, data.B_t_A)
    else:
        t_error = float('nan')

    candidates = np.asarray(input_flags).astype(bool)
    return EvaluationResult(
        classification=classification,
        translation_error=t_error,
        num_inliers=result.num_inliers,
        num_true_inliers=int(np.count_nonzero(candidates & data.is_inlier)),
        runtime_ms=result.runtime_ms
    )


@dataclass
class BenchmarkSummary:
    """
    Aggregate statistics over seeded RANSAC runs.

    Attributes:
        num_runs: Number of runs
        success_rate: Fraction of runs that classified every candidate correctly
        mean_precision: Mean inlier precision
        mean_recall: Mean inlier recall
        mean_inliers: Mean refined inlier count
        median_translation_error: Median translation direction error (rad)
        mean_runtime_ms: Mean runtime per call
        failures: Seeds of runs that were not exact
    """
    num_runs: int = 0
    success_rate: float = 0.0
    mean_precision: float = 0.0
    mean_recall: float = 0.0
    mean_inliers: float = 0.0
    median_translation_error: float = 0.0
    mean_runtime_ms: float = 0.0
    failures: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "num_runs": self.num_runs,
            "success_rate": self.success_rate,
            "mean_precision": self.mean_precision,
            "mean_recall": self.mean_recall,
            "mean_inliers": self.mean_inliers,
            "median_translation_error": self.median_translation_error,
            "mean_runtime_ms": self.mean_runtime_ms,
            "failures": self.failures
        }


def run_benchmark(
    ransac_config: RansacConfig,
    scene_config: SceneConfig,
    num_runs: int = 100,
    base_seed: int = 0,
    show_progress: bool = False,
    on_run: Optional[Callable[[int, EvaluationResult], None]] = None
) -> BenchmarkSummary:
    """
    Run the estimator on ``num_runs`` seeded synthetic scenes.

    Run i uses seed ``base_seed + i`` for both the scene and the sampler, so
    the benchmark is reproducible.

    Args:
        ransac_config: Estimator configuration (its seed is overridden)
        scene_config: Scene configuration (its seed is overridden)
        num_runs: Number of runs
        base_seed: First seed
        show_progress: Show a tqdm progress bar
        on_run: Optional callback receiving (seed, EvaluationResult)

    Returns:
        BenchmarkSummary
    """
    evaluations: List[EvaluationResult] = []
    failures: List[int] = []

    for i in tqdm(range(num_runs), disable=not show_progress, desc="RANSAC runs"):
        seed = base_seed + i
        data = CorrespondenceGenerator(
            scene_config.model_copy(update={"seed": seed})
        ).generate()
        estimator = TwoPointRansac.from_config(
            ransac_config.model_copy(update={"seed": seed})
        )

        input_flags = data.inlier_flags.copy()
        flags = data.inlier_flags.copy()
        result = estimator.estimate(data.points_a, data.points_b, data.B_R_A, flags)
        evaluation = evaluate_result(result, data, input_flags)

        evaluations.append(evaluation)
        if not evaluation.is_exact:
            failures.append(seed)
        if on_run is not None:
            on_run(seed, evaluation)

    if not evaluations:
        return BenchmarkSummary()

    t_errors = np.array([e.translation_error for e in evaluations])
    t_errors = t_errors[np.isfinite(t_errors)]

    return BenchmarkSummary(
        num_runs=num_runs,
        success_rate=1.0 - len(failures) / num_runs,
        mean_precision=float(np.mean([e.classification.precision for e in evaluations])),
        mean_recall=float(np.mean([e.classification.recall for e in evaluations])),
        mean_inliers=float(np.mean([e.num_inliers for e in evaluations])),
        median_translation_error=float(np.median(t_errors)) if len(t_errors) else float('nan'),
        mean_runtime_ms=float(np.mean([e.runtime_ms for e in evaluations])),
        failures=failures
    )
