"""
Mathematical utilities for two-view epipolar geometry.
Uses scipy.spatial.transform.Rotation for rotation construction.
"""

import numpy as np
from typing import Optional
from scipy.spatial.transform import Rotation


# ============================================================================
# SO3 Operations (3D Rotations) - Using scipy.spatial.transform.Rotation
# ============================================================================

def so3_exp(omega: np.ndarray) -> np.ndarray:
    """
    Exponential map from so3 to SO3.
    Converts axis-angle vector to rotation matrix.
    
    Args:
        omega: 3x1 axis-angle vector (rotation vector)
    
    Returns:
        3x3 rotation matrix
    """
    omega = np.asarray(omega, dtype=float).flatten()
    
    if np.linalg.norm(omega) < 1e-8:
        return np.eye(3)
    
    return Rotation.from_rotvec(omega).as_matrix()


def so3_log(R: np.ndarray) -> np.ndarray:
    """
    Logarithmic map from SO3 to so3.
    
    Args:
        R: 3x3 rotation matrix
    
    Returns:
        3x1 axis-angle vector
    """
    R = np.asarray(R, dtype=float)
    if not is_rotation_matrix(R):
        R = project_to_so3(R)
    return Rotation.from_matrix(R).as_rotvec()


def skew(v: np.ndarray) -> np.ndarray:
    """
    Convert 3D vector to skew-symmetric matrix (hat operator).
    
    skew(a) @ b == np.cross(a, b)
    
    Args:
        v: 3x1 vector
    
    Returns:
        3x3 skew-symmetric matrix
    """
    v = np.asarray(v, dtype=float).flatten()
    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ])


def is_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    Check if matrix is a valid rotation matrix (orthogonal with det=1).
    
    Args:
        R: Matrix to check
        tol: Tolerance for numerical errors
    
    Returns:
        True if R is a valid rotation matrix
    """
    R = np.asarray(R)
    if R.shape != (3, 3):
        return False
    
    # Check orthogonality: R @ R.T = I
    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False
    
    return bool(np.isclose(np.linalg.det(R), 1.0, atol=tol))


def project_to_so3(R: np.ndarray) -> np.ndarray:
    """
    Project a matrix to the SO3 manifold using SVD.
    
    Args:
        R: 3x3 matrix (possibly not orthogonal)
    
    Returns:
        3x3 rotation matrix on SO3 manifold
    """
    R = np.asarray(R, dtype=float).reshape(3, 3)
    
    U, _, Vt = np.linalg.svd(R)
    R_projected = U @ Vt
    
    # Ensure determinant is +1 (not -1)
    if np.linalg.det(R_projected) < 0:
        Vt[-1, :] *= -1
        R_projected = U @ Vt
    
    return R_projected


def random_rotation_matrix(
    max_angle: Optional[float] = None,
    rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """
    Generate a random rotation matrix.
    
    Args:
        max_angle: Upper bound on the rotation angle (radians). None draws
            uniformly over SO3.
        rng: Random generator
    
    Returns:
        3x3 rotation matrix
    """
    rng = rng if rng is not None else np.random.default_rng()
    if max_angle is None:
        return Rotation.random(random_state=rng).as_matrix()
    
    axis = rng.normal(size=3)
    axis /= np.linalg.norm(axis)
    angle = rng.uniform(0.0, max_angle)
    return so3_exp(axis * angle)


def angle_between_vectors(v1: np.ndarray, v2: np.ndarray) -> float:
    """
    Angle between two 3D vectors in radians.
    
    Returns NaN if either vector has zero length.
    """
    v1 = np.asarray(v1, dtype=float).flatten()
    v2 = np.asarray(v2, dtype=float).flatten()
    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 < 1e-12 or n2 < 1e-12:
        return float('nan')
    cos_angle = np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)
    return float(np.arccos(cos_angle))


# ============================================================================
# Homogeneous Image Points
# ============================================================================

def to_homogeneous(points: np.ndarray) -> np.ndarray:
    """
    Convert image points to homogeneous (N, 3) form.
    
    Args:
        points: Nx2 image-plane points or Nx3 homogeneous points
    
    Returns:
        Nx3 float array. Nx2 inputs get a unit third coordinate; Nx3 inputs
        are copied as-is.
    """
    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or points.shape[1] not in (2, 3):
        raise ValueError(
            f"Points must have shape (N, 2) or (N, 3), got {points.shape}"
        )
    if points.shape[1] == 2:
        return np.hstack([points, np.ones((points.shape[0], 1))])
    return points.copy()


def normalize_homogeneous(points: np.ndarray) -> np.ndarray:
    """Scale Nx3 homogeneous points so the last coordinate is 1."""
    points = np.asarray(points, dtype=float)
    return points / points[:, 2:3]


def essential_from_motion(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """
    Essential matrix E = [t]_x R for a motion taking frame A to frame B.
    
    Satisfies pB^T E pA = 0 for noise-free correspondences.
    """
    return skew(t) @ np.asarray(R, dtype=float)
