"""
Two-point sampler for RANSAC trials.

Draws pairs of distinct positions from the list of tracker inlier candidates.
Pairs may repeat across trials.
"""

from typing import Optional, Protocol

import numpy as np

from epipolar_ransac.common.exceptions import InsufficientCandidatesError


class RandomSource(Protocol):
    """Anything that can draw without replacement like ``numpy.random.Generator``."""
    
    def choice(self, a, size=None, replace=True, p=None): ...


class TwoPointSampler:
    """
    Uniform sampler of two distinct candidate positions.
    
    Args:
        rng: Random source. Defaults to ``np.random.default_rng(seed)``.
        seed: Seed used when no ``rng`` is given.
    """
    
    SAMPLE_SIZE = 2
    
    def __init__(self, rng: Optional[RandomSource] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
    
    def sample(self, n_candidates: int) -> np.ndarray:
        """
        Draw two distinct positions in ``[0, n_candidates)``.
        
        Raises:
            InsufficientCandidatesError: If fewer than two candidates exist.
        """
        if n_candidates < self.SAMPLE_SIZE:
            raise InsufficientCandidatesError(n_candidates)
        
        picked = np.asarray(
            self.rng.choice(n_candidates, size=self.SAMPLE_SIZE, replace=False),
            dtype=int
        )
        if picked[0] == picked[1]:
            # A custom random source ignored replace=False
            raise ValueError(f"Random source returned a repeated index: {picked.tolist()}")
        return picked
