"""
Two-point RANSAC outlier rejection for visual-inertial odometry front ends.
"""

from epipolar_ransac.estimation.ransac import TwoPointRansac
from epipolar_ransac.common.config import RansacConfig, ErrorMetric
from epipolar_ransac.common.data_structures import RansacResult

__version__ = "0.1.0"

__all__ = [
    'TwoPointRansac',
    'RansacConfig',
    'ErrorMetric',
    'RansacResult'
]
