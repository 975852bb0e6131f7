"""
Configuration models using Pydantic for type safety and validation.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Minimum number of RANSAC trials. Fewer trials noticeably reduce the chance
# of drawing at least one outlier-free pair.
MIN_ITERATIONS = 16

DEFAULT_SAMPSON_THRESHOLD = 1e-6
DEFAULT_ALGEBRAIC_THRESHOLD = 1e-3


class ErrorMetric(str, Enum):
    """Epipolar error metrics available for inlier scoring."""
    SAMPSON = "sampson"
    ALGEBRAIC = "algebraic"


class RansacConfig(BaseModel):
    """Two-point RANSAC configuration. Immutable once created."""
    model_config = ConfigDict(frozen=True)
    
    error_metric: ErrorMetric = Field(
        default=ErrorMetric.SAMPSON,
        description="Error metric used to score correspondences"
    )
    inlier_threshold: Optional[float] = Field(
        default=None,
        gt=0,
        description="Inlier threshold (metric units). Defaults per metric."
    )
    n_iterations: int = Field(
        default=MIN_ITERATIONS,
        ge=MIN_ITERATIONS,
        description="Number of RANSAC trials"
    )
    seed: Optional[int] = Field(None, description="Random seed for reproducibility")
    degeneracy_tolerance: float = Field(
        default=1e-12,
        gt=0,
        description="Absolute norm below which a translation hypothesis is degenerate"
    )
    relative_degeneracy_tolerance: float = Field(
        default=1e-9,
        ge=0,
        description="Relative norm (w.r.t. the two constraint vectors) below which "
                    "a translation hypothesis is degenerate"
    )
    
    @model_validator(mode='before')
    @classmethod
    def set_default_threshold(cls, data):
        """Pick the threshold matching the selected metric when none is given."""
        if isinstance(data, dict) and data.get('inlier_threshold') is None:
            data = dict(data)
            metric = ErrorMetric(data.get('error_metric', ErrorMetric.SAMPSON))
            data['inlier_threshold'] = (
                DEFAULT_SAMPSON_THRESHOLD if metric == ErrorMetric.SAMPSON
                else DEFAULT_ALGEBRAIC_THRESHOLD
            )
        return data
    
    @property
    def use_sampson(self) -> bool:
        return self.error_metric == ErrorMetric.SAMPSON


class SceneConfig(BaseModel):
    """Synthetic two-view scene configuration."""
    num_points: int = Field(100, ge=2, description="Number of correspondences")
    num_outliers: int = Field(10, ge=0, description="Number of corrupted correspondences")
    noise_std: float = Field(
        1e-4,
        ge=0,
        description="Gaussian noise on normalized image coordinates"
    )
    min_depth: float = Field(2.0, gt=0, description="Minimum point depth in frame A (m)")
    max_depth: float = Field(10.0, gt=0, description="Maximum point depth in frame A (m)")
    half_fov: float = Field(
        0.5,
        gt=0,
        description="Half extent of the normalized image plane"
    )
    rotation_vector: Optional[List[float]] = Field(
        default=None,
        description="Frame A to frame B rotation as axis-angle (rad). Random if unset."
    )
    max_rotation_angle: float = Field(
        0.1,
        ge=0,
        description="Maximum random rotation angle when rotation_vector is unset (rad)"
    )
    translation: Optional[List[float]] = Field(
        default=None,
        description="Frame A to frame B translation (m). Random unit vector if unset."
    )
    outlier_min_distance: float = Field(
        1e-2,
        ge=0,
        description="Minimum distance of an outlier from its true epipolar line "
                    "(normalized units)"
    )
    tracking_failure_rate: float = Field(
        0.0,
        ge=0,
        le=1,
        description="Fraction of correspondences the tracker already flags as lost"
    )
    seed: Optional[int] = Field(None, description="Random seed for reproducibility")
    
    @field_validator('rotation_vector', 'translation')
    @classmethod
    def validate_vector(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v is not None and len(v) != 3:
            raise ValueError('Vector must have exactly 3 components')
        return v
    
    @model_validator(mode='after')
    def validate_counts(self):
        """Outliers cannot exceed points, depth range must be ordered."""
        if self.num_outliers > self.num_points:
            raise ValueError('num_outliers must not exceed num_points')
        if self.max_depth <= self.min_depth:
            raise ValueError('max_depth must be greater than min_depth')
        return self


class ExperimentConfig(BaseModel):
    """Scene plus estimator configuration for a single run."""
    ransac: RansacConfig = Field(default_factory=RansacConfig)
    scene: SceneConfig = Field(default_factory=SceneConfig)


def _load_yaml(path: Union[str, Path]) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    return data or {}


def load_ransac_config(path: Union[str, Path]) -> RansacConfig:
    """Load RANSAC configuration from YAML file.

    Accepts either a bare RANSAC mapping or an experiment file with a
    ``ransac`` section.
    """
    data = _load_yaml(path)
    if 'ransac' in data:
        data = data['ransac']
    return RansacConfig(**data)


def load_experiment_config(path: Union[str, Path]) -> ExperimentConfig:
    """Load experiment configuration from YAML file."""
    return ExperimentConfig(**_load_yaml(path))


def save_config(config: BaseModel, path: Union[str, Path]) -> None:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    # Convert to dict and handle enums
    data = config.model_dump(mode='json')
    
    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
