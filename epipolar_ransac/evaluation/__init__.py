"""
Evaluation metrics for two-view outlier rejection.
"""

from .metrics import (
    InlierClassificationMetrics,
    EvaluationResult,
    BenchmarkSummary,
    compute_inlier_classification,
    translation_direction_error,
    evaluate_result,
    run_benchmark
)

__all__ = [
    'InlierClassificationMetrics',
    'EvaluationResult',
    'BenchmarkSummary',
    'compute_inlier_classification',
    'translation_direction_error',
    'evaluate_result',
    'run_benchmark'
]
