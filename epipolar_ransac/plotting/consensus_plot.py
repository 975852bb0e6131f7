"""
Plots of two-point RANSAC results: flow vectors coloured by status and
per-trial consensus sizes.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from epipolar_ransac.common.data_structures import RansacResult


def _flow_segments(points_a: np.ndarray, points_b: np.ndarray):
    """Interleave start/end/None so one scatter trace draws all segments."""
    n = len(points_a)
    xs = np.empty(3 * n, dtype=object)
    ys = np.empty(3 * n, dtype=object)
    xs[0::3] = points_a[:, 0]
    xs[1::3] = points_b[:, 0]
    xs[2::3] = None
    ys[0::3] = points_a[:, 1]
    ys[1::3] = points_b[:, 1]
    ys[2::3] = None
    return xs.tolist(), ys.tolist()


def plot_correspondences(
    points_a: np.ndarray,
    points_b: np.ndarray,
    input_flags: np.ndarray,
    result: RansacResult,
    title: str = "Two-Point RANSAC Correspondences"
) -> go.Figure:
    """
    Draw each correspondence as a flow segment from frame A to frame B.

    Segments are grouped into kept inliers, rejected by RANSAC, and lost by
    the tracker.

    Args:
        points_a: Nx2 or Nx3 normalized points in frame A
        points_b: Nx2 or Nx3 normalized points in frame B
        input_flags: Tracker flags before refinement
        result: RANSAC result
        title: Plot title

    Returns:
        Plotly figure
    """
    points_a = np.asarray(points_a, dtype=float)
    points_b = np.asarray(points_b, dtype=float)
    tracked = np.asarray(input_flags).astype(bool)
    kept = result.inlier_mask.astype(bool)

    groups = [
        ("Inliers", kept, 'green'),
        ("Rejected by RANSAC", tracked & ~kept, 'red'),
        ("Lost by tracker", ~tracked, 'lightgray'),
    ]

    fig = go.Figure()
    for name, mask, color in groups:
        if not np.any(mask):
            continue
        xs, ys = _flow_segments(points_a[mask], points_b[mask])
        fig.add_trace(go.Scatter(
            x=xs, y=ys,
            mode='lines',
            name=name,
            line=dict(color=color, width=1.5)
        ))
        fig.add_trace(go.Scatter(
            x=points_b[mask, 0], y=points_b[mask, 1],
            mode='markers',
            name=f"{name} (frame B)",
            marker=dict(color=color, size=5),
            showlegend=False,
            text=[f"#{i}" for i in np.flatnonzero(mask)],
            hoverinfo='text'
        ))

    fig.update_layout(
        title=title,
        xaxis=dict(title='x (normalized)', showgrid=True),
        yaxis=dict(title='y (normalized)', showgrid=True, scaleanchor='x', autorange='reversed'),
        showlegend=True,
        hovermode='closest'
    )
    return fig


def plot_trial_inliers(
    result: RansacResult,
    title: str = "Inliers per RANSAC Trial"
) -> go.Figure:
    """
    Bar chart of the consensus size of every trial, winner highlighted.

    Args:
        result: RANSAC result
        title: Plot title

    Returns:
        Plotly figure
    """
    counts = result.trial_inliers
    colors = ['steelblue'] * len(counts)
    if result.best_trial >= 0:
        colors[result.best_trial] = 'orange'

    fig = go.Figure(go.Bar(
        x=list(range(len(counts))),
        y=counts.tolist(),
        marker_color=colors,
        name='Inliers'
    ))
    fig.add_hline(
        y=result.num_candidates,
        line_dash='dash',
        line_color='gray',
        annotation_text=f"{result.num_candidates} candidates"
    )
    fig.update_layout(
        title=title,
        xaxis=dict(title='Trial'),
        yaxis=dict(title='Inlier count'),
        showlegend=False
    )
    return fig


def create_ransac_report(
    points_a: np.ndarray,
    points_b: np.ndarray,
    input_flags: np.ndarray,
    result: RansacResult,
    title: Optional[str] = None
) -> go.Figure:
    """Side-by-side figure of correspondences and per-trial consensus."""
    fig = make_subplots(
        rows=1, cols=2,
        column_widths=[0.6, 0.4],
        subplot_titles=("Correspondences", "Inliers per trial")
    )
    for trace in plot_correspondences(points_a, points_b, input_flags, result).data:
        fig.add_trace(trace, row=1, col=1)
    for trace in plot_trial_inliers(result).data:
        fig.add_trace(trace, row=1, col=2)

    fig.update_yaxes(autorange='reversed', row=1, col=1)
    fig.update_layout(
        title=title or (
            f"2-Point RANSAC: {result.num_inliers}/{result.num_candidates} inliers "
            f"({result.metadata.get('error_metric', '')})"
        ),
        height=600
    )
    return fig


def save_figure(
    fig: go.Figure,
    filepath: Union[str, Path],
    include_plotlyjs: str = 'cdn',
    auto_open: bool = False
) -> Path:
    """
    Save plot to HTML file.

    Args:
        fig: Plotly figure to save
        filepath: Output file path
        include_plotlyjs: How to include plotly.js ('cdn', 'directory', 'inline', etc.)
        auto_open: Whether to open in browser after saving

    Returns:
        Path to saved file
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # Ensure .html extension
    if filepath.suffix != '.html':
        filepath = filepath.with_suffix('.html')

    fig.write_html(
        str(filepath),
        include_plotlyjs=include_plotlyjs,
        auto_open=auto_open
    )

    return filepath
