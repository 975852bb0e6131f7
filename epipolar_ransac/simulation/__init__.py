"""
Synthetic data generation for two-view outlier rejection.
"""

from .correspondence_generator import CorrespondenceGenerator, generate_correspondences

__all__ = ['CorrespondenceGenerator', 'generate_correspondences']
