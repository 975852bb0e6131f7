"""
Tests for RANSAC result plots.
"""

import numpy as np
import plotly.graph_objects as go
import pytest

from epipolar_ransac.estimation.ransac import TwoPointRansac
from epipolar_ransac.plotting.consensus_plot import (
    create_ransac_report,
    plot_correspondences,
    plot_trial_inliers,
    save_figure
)


@pytest.fixture
def filtered_scene(noisy_scene):
    """Noisy scene with a few tracker losses, run through RANSAC."""
    data = noisy_scene
    input_flags = data.inlier_flags.copy()
    input_flags[:3] = 0
    flags = input_flags.copy()
    result = TwoPointRansac(seed=0).estimate(data.points_a, data.points_b, data.B_R_A, flags)
    return data, input_flags, result


class TestConsensusPlots:
    """Test plot construction."""

    def test_plot_correspondences(self, filtered_scene):
        data, input_flags, result = filtered_scene
        fig = plot_correspondences(data.points_a, data.points_b, input_flags, result)

        assert isinstance(fig, go.Figure)
        names = [trace.name for trace in fig.data]
        assert "Inliers" in names
        assert "Rejected by RANSAC" in names
        assert "Lost by tracker" in names

    def test_empty_groups_skipped(self, clean_scene):
        data = clean_scene
        flags = data.inlier_flags.copy()
        result = TwoPointRansac(seed=0).estimate(data.points_a, data.points_b, data.B_R_A, flags)
        fig = plot_correspondences(data.points_a, data.points_b, data.inlier_flags, result)

        # One line trace and one marker trace for the inlier group
        assert len(fig.data) == 2

    def test_plot_trial_inliers(self, filtered_scene):
        _, _, result = filtered_scene
        fig = plot_trial_inliers(result)

        bars = fig.data[0]
        assert list(bars.y) == result.trial_inliers.tolist()
        assert bars.marker.color[result.best_trial] == 'orange'
        assert len(fig.layout.shapes) == 1

    def test_report(self, filtered_scene):
        data, input_flags, result = filtered_scene
        fig = create_ransac_report(data.points_a, data.points_b, input_flags, result)
        assert "sampson" in fig.layout.title.text
        assert len(fig.data) == 7


class TestSaveFigure:
    """Test HTML export."""

    def test_forces_html_suffix(self, filtered_scene, tmp_path):
        _, _, result = filtered_scene
        path = save_figure(plot_trial_inliers(result), tmp_path / "plots" / "trials.png")

        assert path.suffix == '.html'
        assert path.exists()
        assert "plotly" in path.read_text().lower()
