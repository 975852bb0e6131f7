"""
Exceptions raised by the two-point RANSAC.

Per-trial conditions (insufficient candidates, degenerate samples) are caught
by the consensus loop and recorded as zero-inlier trials. None of them reach
the caller from ``TwoPointRansac.find_inliers``.
"""


class RansacError(Exception):
    """Base class for two-point RANSAC errors."""
    pass


class InsufficientCandidatesError(RansacError):
    """Raised when fewer than two inlier candidates are available for sampling."""
    
    def __init__(self, n_candidates: int):
        self.n_candidates = n_candidates
        super().__init__(
            f"Need at least 2 inlier candidates to sample, got {n_candidates}"
        )


class DegenerateSampleError(RansacError):
    """Raised when a 2-point sample yields a near-singular translation system."""
    
    def __init__(self, message: str, translation_norm: float = 0.0):
        self.translation_norm = translation_norm
        super().__init__(message)


class InvalidGeometryError(RansacError):
    """Raised on request when no trial produced a valid motion hypothesis."""
    pass
