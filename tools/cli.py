#!/usr/bin/env python3
"""
Two-Point RANSAC - Command Line Interface
"""

import json
import logging
import sys
import os
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from rich.console import Console
from rich.table import Table
# Add parent directory to path for package imports when run as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from epipolar_ransac.common.config import (
    ErrorMetric, ExperimentConfig, RansacConfig, SceneConfig,
    load_experiment_config, save_config
)
from epipolar_ransac.estimation.ransac import TwoPointRansac
from epipolar_ransac.evaluation.metrics import evaluate_result, run_benchmark
from epipolar_ransac.simulation.correspondence_generator import CorrespondenceGenerator
from epipolar_ransac.utils.math_utils import so3_log

app = typer.Typer(
    name="epi-ransac",
    help="Two-point RANSAC outlier rejection CLI",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _build_config(
    config: Optional[Path],
    metric: Optional[str],
    threshold: Optional[float],
    iterations: Optional[int],
    num_points: Optional[int],
    num_outliers: Optional[int],
    noise: Optional[float],
    seed: Optional[int]
) -> ExperimentConfig:
    """Experiment config from a YAML file with command line overrides."""
    experiment = load_experiment_config(config) if config else ExperimentConfig()

    ransac_data = experiment.ransac.model_dump()
    if metric is not None:
        ransac_data['error_metric'] = ErrorMetric(metric)
        if threshold is None:
            ransac_data['inlier_threshold'] = None
    if threshold is not None:
        ransac_data['inlier_threshold'] = threshold
    if iterations is not None:
        ransac_data['n_iterations'] = iterations
    if seed is not None:
        ransac_data['seed'] = seed

    scene_data = experiment.scene.model_dump()
    for key, value in (('num_points', num_points), ('num_outliers', num_outliers),
                       ('noise_std', noise), ('seed', seed)):
        if value is not None:
            scene_data[key] = value

    return ExperimentConfig(
        ransac=RansacConfig(**ransac_data),
        scene=SceneConfig(**scene_data)
    )


@app.command("filter")
def filter_correspondences(
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to experiment config YAML file"
    ),
    metric: Optional[str] = typer.Option(
        None,
        "--metric", "-m",
        help="Error metric: sampson, algebraic"
    ),
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold", "-t",
        help="Inlier threshold (defaults per metric)"
    ),
    iterations: Optional[int] = typer.Option(
        None,
        "--iterations", "-n",
        help="Number of RANSAC trials (min. 16)"
    ),
    num_points: Optional[int] = typer.Option(
        None,
        "--points", "-p",
        help="Number of synthetic correspondences"
    ),
    num_outliers: Optional[int] = typer.Option(
        None,
        "--outliers",
        help="Number of outliers among the correspondences"
    ),
    noise: Optional[float] = typer.Option(
        None,
        "--noise",
        help="Noise std on normalized image coordinates"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed", "-s",
        help="Random seed for reproducibility"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output directory for result JSON and HTML plot"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log every RANSAC trial"
    ),
):
    """Run 2-point RANSAC on a synthetic two-view scene."""
    _setup_logging(verbose)
    try:
        experiment = _build_config(
            config, metric, threshold, iterations, num_points, num_outliers, noise, seed
        )
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    data = CorrespondenceGenerator(experiment.scene).generate()
    estimator = TwoPointRansac.from_config(experiment.ransac)

    input_flags = data.inlier_flags.copy()
    flags = data.inlier_flags.copy()
    result = estimator.estimate(data.points_a, data.points_b, data.B_R_A, flags)
    evaluation = evaluate_result(result, data, input_flags)

    table = Table(title="2-Point RANSAC")
    table.add_column("Quantity", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Error metric", experiment.ransac.error_metric.value)
    table.add_row("Threshold", f"{experiment.ransac.inlier_threshold:.2e}")
    table.add_row("Rotation prior", f"{np.degrees(np.linalg.norm(so3_log(data.B_R_A))):.2f} deg")
    table.add_row("Candidates", str(result.num_candidates))
    table.add_row("Inliers kept", str(result.num_inliers))
    table.add_row("True inliers", str(evaluation.num_true_inliers))
    table.add_row("Valid trials", f"{result.num_valid_trials}/{len(result.trial_inliers)}")
    table.add_row("Best trial", str(result.best_trial))
    table.add_row("Precision", f"{evaluation.classification.precision:.3f}")
    table.add_row("Recall", f"{evaluation.classification.recall:.3f}")
    table.add_row("Translation error", f"{evaluation.translation_error:.4f} rad")
    table.add_row("Runtime", f"{result.runtime_ms:.2f} ms")
    console.print(table)

    if not result.is_valid:
        console.print("[yellow]No valid motion hypothesis for this pair[/yellow]")

    if output:
        from epipolar_ransac.plotting.consensus_plot import create_ransac_report, save_figure

        output.mkdir(parents=True, exist_ok=True)
        result_file = output / "ransac_result.json"
        with open(result_file, 'w') as f:
            json.dump({
                "config": experiment.model_dump(mode='json'),
                "result": result.to_dict(),
                "evaluation": evaluation.to_dict()
            }, f, indent=2)
        plot_file = save_figure(
            create_ransac_report(data.points_a, data.points_b, input_flags, result),
            output / "ransac_result.html"
        )
        console.print(f"[green]Saved {result_file} and {plot_file}[/green]")


@app.command()
def benchmark(
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to experiment config YAML file"
    ),
    runs: int = typer.Option(
        1000,
        "--runs", "-r",
        help="Number of seeded runs"
    ),
    base_seed: int = typer.Option(
        0,
        "--base-seed",
        help="Seed of the first run"
    ),
    metric: Optional[str] = typer.Option(
        None,
        "--metric", "-m",
        help="Error metric: sampson, algebraic"
    ),
    iterations: Optional[int] = typer.Option(
        None,
        "--iterations", "-n",
        help="Number of RANSAC trials (min. 16)"
    ),
    num_points: Optional[int] = typer.Option(
        None,
        "--points", "-p",
        help="Number of synthetic correspondences"
    ),
    num_outliers: Optional[int] = typer.Option(
        None,
        "--outliers",
        help="Number of outliers among the correspondences"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write summary JSON to this file"
    ),
):
    """Measure how often RANSAC classifies every correspondence correctly."""
    _setup_logging(False)
    try:
        experiment = _build_config(
            config, metric, None, iterations, num_points, num_outliers, None, None
        )
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    summary = run_benchmark(
        experiment.ransac, experiment.scene,
        num_runs=runs, base_seed=base_seed, show_progress=True
    )

    table = Table(title=f"Benchmark ({runs} runs)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Success rate", f"{summary.success_rate:.3f}")
    table.add_row("Mean precision", f"{summary.mean_precision:.3f}")
    table.add_row("Mean recall", f"{summary.mean_recall:.3f}")
    table.add_row("Mean inliers", f"{summary.mean_inliers:.2f}")
    table.add_row("Median translation error", f"{summary.median_translation_error:.4f} rad")
    table.add_row("Mean runtime", f"{summary.mean_runtime_ms:.3f} ms")
    console.print(table)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, 'w') as f:
            json.dump(summary.to_dict(), f, indent=2)
        console.print(f"[green]Saved summary to {output}[/green]")


@app.command("config")
def write_config(
    output: Path = typer.Argument(
        Path("config/experiment.yaml"),
        help="Where to write the default experiment config"
    ),
):
    """Write a default experiment configuration YAML."""
    save_config(ExperimentConfig(), output)
    console.print(f"[green]Wrote default config to {output}[/green]")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
