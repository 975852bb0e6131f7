"""
Visualization tools for two-point RANSAC results.
"""

from .consensus_plot import (
    plot_correspondences,
    plot_trial_inliers,
    create_ransac_report,
    save_figure
)

__all__ = [
    'plot_correspondences',
    'plot_trial_inliers',
    'create_ransac_report',
    'save_figure'
]
