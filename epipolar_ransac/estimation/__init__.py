"""
Two-point RANSAC components: sampler, minimal solver, error metrics and
consensus search.
"""

from .sampler import TwoPointSampler
from .two_point_solver import TwoPointSolver, TwoPointHypothesis
from .epipolar_error import (
    EpipolarErrorMetric,
    SampsonError,
    AlgebraicError,
    create_error_metric
)
from .ransac import TwoPointRansac

__all__ = [
    'TwoPointSampler',
    'TwoPointSolver',
    'TwoPointHypothesis',
    'EpipolarErrorMetric',
    'SampsonError',
    'AlgebraicError',
    'create_error_metric',
    'TwoPointRansac'
]
