"""
Unit tests for configuration models and validation.
"""

import pytest
import yaml
from pydantic import ValidationError

from epipolar_ransac.common.config import (
    RansacConfig,
    SceneConfig,
    ExperimentConfig,
    ErrorMetric,
    MIN_ITERATIONS,
    DEFAULT_SAMPSON_THRESHOLD,
    DEFAULT_ALGEBRAIC_THRESHOLD,
    load_ransac_config,
    load_experiment_config,
    save_config
)


class TestRansacConfig:
    """Test RANSAC configuration validation."""

    def test_defaults(self):
        """Test default configuration uses Sampson error."""
        config = RansacConfig()
        assert config.error_metric == ErrorMetric.SAMPSON
        assert config.use_sampson
        assert config.inlier_threshold == DEFAULT_SAMPSON_THRESHOLD
        assert config.n_iterations == MIN_ITERATIONS
        assert config.seed is None

    def test_algebraic_default_threshold(self):
        """Test threshold default follows the selected metric."""
        config = RansacConfig(error_metric="algebraic")
        assert not config.use_sampson
        assert config.inlier_threshold == DEFAULT_ALGEBRAIC_THRESHOLD

    def test_explicit_threshold_kept(self):
        config = RansacConfig(error_metric=ErrorMetric.ALGEBRAIC, inlier_threshold=0.02)
        assert config.inlier_threshold == 0.02

    def test_minimum_iterations(self):
        """Test fewer than 16 trials is rejected."""
        with pytest.raises(ValidationError):
            RansacConfig(n_iterations=MIN_ITERATIONS - 1)
        assert RansacConfig(n_iterations=64).n_iterations == 64

    def test_non_positive_threshold(self):
        with pytest.raises(ValidationError):
            RansacConfig(inlier_threshold=0.0)
        with pytest.raises(ValidationError):
            RansacConfig(inlier_threshold=-1e-6)

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            RansacConfig(error_metric="geometric")

    def test_frozen(self):
        """Test configuration is immutable after construction."""
        config = RansacConfig()
        with pytest.raises(ValidationError):
            config.inlier_threshold = 1.0


class TestSceneConfig:
    """Test synthetic scene configuration."""

    def test_defaults(self):
        config = SceneConfig()
        assert config.num_points == 100
        assert config.num_outliers == 10
        assert config.rotation_vector is None

    def test_too_many_outliers(self):
        with pytest.raises(ValidationError):
            SceneConfig(num_points=10, num_outliers=11)

    def test_depth_range(self):
        with pytest.raises(ValidationError):
            SceneConfig(min_depth=5.0, max_depth=2.0)

    def test_vector_length(self):
        with pytest.raises(ValidationError):
            SceneConfig(translation=[1.0, 0.0])
        with pytest.raises(ValidationError):
            SceneConfig(rotation_vector=[0.1, 0.2, 0.3, 0.4])

    def test_tracking_failure_rate_bounds(self):
        with pytest.raises(ValidationError):
            SceneConfig(tracking_failure_rate=1.5)


class TestConfigIO:
    """Test configuration file loading and saving."""

    def test_save_and_load_experiment(self, tmp_path):
        """Test experiment config survives a YAML round trip."""
        config = ExperimentConfig(
            ransac=RansacConfig(error_metric="algebraic", n_iterations=32, seed=5),
            scene=SceneConfig(num_points=40, num_outliers=4, seed=5)
        )
        path = tmp_path / "nested" / "experiment.yaml"
        save_config(config, path)

        assert path.exists()
        loaded = load_experiment_config(path)
        assert loaded == config

    def test_saved_yaml_uses_plain_values(self, tmp_path):
        path = tmp_path / "ransac.yaml"
        save_config(RansacConfig(), path)
        with open(path) as f:
            data = yaml.safe_load(f)
        assert data["error_metric"] == "sampson"
        assert data["n_iterations"] == MIN_ITERATIONS

    def test_load_bare_ransac_config(self, tmp_path):
        path = tmp_path / "ransac.yaml"
        path.write_text("error_metric: algebraic\ninlier_threshold: 0.005\n")
        config = load_ransac_config(path)
        assert config.error_metric == ErrorMetric.ALGEBRAIC
        assert config.inlier_threshold == 0.005

    def test_load_ransac_section_of_experiment(self, tmp_path):
        path = tmp_path / "experiment.yaml"
        path.write_text("ransac:\n  n_iterations: 20\nscene:\n  num_points: 12\n")
        assert load_ransac_config(path).n_iterations == 20

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_experiment_config(path) == ExperimentConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_ransac_config(tmp_path / "missing.yaml")
