from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import plotly.graph_objects as go
import typer
from typing_extensions import Annotated

from benchmarks.insert_timing import (
    InsertTimingResult,
    benchmark_dimensions,
    benchmark_knn,
    benchmark_nodes,
)
from psptree import config as px_config
from psptree.core.metrics import available_metrics

app = typer.Typer(
    add_completion=False,
    pretty_exceptions_enable=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Benchmark insertion and query behaviour of the PSP tree.",
)

_SHAPE_PANEL = "Benchmark shape"
_OUTPUT_PANEL = "Output"


def _validate_metric(metric: str) -> str:
    name = metric.strip().lower()
    if name not in available_metrics():
        raise typer.BadParameter(
            f"Unknown metric '{metric}'. Expected one of {', '.join(available_metrics())}."
        )
    return name


def _write_json(path: Optional[Path], payload: Dict[str, Any]) -> None:
    if path is None:
        return
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    typer.echo(f"wrote {path}")


def _write_plot(
    path: Optional[Path],
    *,
    x: Sequence[float],
    y: Sequence[float],
    title: str,
    x_title: str,
) -> None:
    if path is None:
        return
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = go.Figure(go.Scatter(x=list(x), y=list(y), mode="lines+markers", name="insert"))
    fig.update_layout(
        title=title,
        xaxis_title=x_title,
        yaxis_title="time (s)",
        template="plotly_white",
    )
    fig.write_html(str(path))
    typer.echo(f"wrote {path}")


def _echo_timings(results: List[InsertTimingResult]) -> None:
    for result in results:
        typer.echo(
            f"insert | dimension={result.dimension} "
            f"points={result.points} "
            f"time={result.elapsed_seconds:.4f}s "
            f"throughput={result.throughput_points_per_sec:,.1f} pts/s"
        )


@app.command()
def dimensions(
    dimension: Annotated[
        List[int],
        typer.Option(
            "--dimension",
            "-d",
            help="Dimension to time (repeatable).",
            rich_help_panel=_SHAPE_PANEL,
        ),
    ] = [10, 100, 1000],
    points: Annotated[
        int,
        typer.Option(
            "--points",
            min=1,
            help="Points inserted per tree.",
            rich_help_panel=_SHAPE_PANEL,
        ),
    ] = 1000,
    metric: Annotated[
        str,
        typer.Option("--metric", help="Registered metric name.", rich_help_panel=_SHAPE_PANEL),
    ] = "sqeuclidean",
    seed: Annotated[int, typer.Option("--seed", help="Dataset seed.")] = 0,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", help="Write results as JSON.", rich_help_panel=_OUTPUT_PANEL),
    ] = None,
    plot: Annotated[
        Optional[Path],
        typer.Option("--plot", help="Write a plotly HTML chart.", rich_help_panel=_OUTPUT_PANEL),
    ] = None,
) -> None:
    """Insertion time as a function of dimension."""

    metric = _validate_metric(metric)
    results = benchmark_dimensions(dimension, points=points, metric=metric, seed=seed)
    _echo_timings(results)
    _write_json(
        output,
        {
            "benchmark": "dimensions",
            "metric": metric,
            "runtime": px_config.describe_runtime(),
            "results": [asdict(result) for result in results],
        },
    )
    _write_plot(
        plot,
        x=[result.dimension for result in results],
        y=[result.elapsed_seconds for result in results],
        title=f"Insert time for N = {points}",
        x_title="dimension",
    )


@app.command()
def nodes(
    size: Annotated[
        List[int],
        typer.Option(
            "--size",
            "-n",
            help="Tree size to time (repeatable).",
            rich_help_panel=_SHAPE_PANEL,
        ),
    ] = [1000, 10000],
    dimension: Annotated[
        int,
        typer.Option("--dimension", min=1, help="Point dimension.", rich_help_panel=_SHAPE_PANEL),
    ] = 2,
    metric: Annotated[
        str,
        typer.Option("--metric", help="Registered metric name.", rich_help_panel=_SHAPE_PANEL),
    ] = "sqeuclidean",
    seed: Annotated[int, typer.Option("--seed", help="Dataset seed.")] = 0,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", help="Write results as JSON.", rich_help_panel=_OUTPUT_PANEL),
    ] = None,
    plot: Annotated[
        Optional[Path],
        typer.Option("--plot", help="Write a plotly HTML chart.", rich_help_panel=_OUTPUT_PANEL),
    ] = None,
) -> None:
    """Insertion time as a function of tree size."""

    metric = _validate_metric(metric)
    results = benchmark_nodes(size, dimension=dimension, metric=metric, seed=seed)
    _echo_timings(results)
    _write_json(
        output,
        {
            "benchmark": "nodes",
            "metric": metric,
            "runtime": px_config.describe_runtime(),
            "results": [asdict(result) for result in results],
        },
    )
    _write_plot(
        plot,
        x=[result.points for result in results],
        y=[result.elapsed_seconds for result in results],
        title=f"Insert time for dimension = {dimension}",
        x_title="number of nodes",
    )


@app.command()
def knn(
    tree_points: Annotated[
        int,
        typer.Option("--tree-points", min=1, help="Points in the tree.", rich_help_panel=_SHAPE_PANEL),
    ] = 2048,
    queries: Annotated[
        int,
        typer.Option("--queries", min=1, help="Number of queries.", rich_help_panel=_SHAPE_PANEL),
    ] = 128,
    dimension: Annotated[
        int,
        typer.Option("--dimension", min=1, help="Point dimension.", rich_help_panel=_SHAPE_PANEL),
    ] = 3,
    k: Annotated[
        int,
        typer.Option("--k", min=1, help="Neighbours per query.", rich_help_panel=_SHAPE_PANEL),
    ] = 8,
    metric: Annotated[
        str,
        typer.Option("--metric", help="Registered metric name.", rich_help_panel=_SHAPE_PANEL),
    ] = "euclidean",
    seed: Annotated[int, typer.Option("--seed", help="Dataset seed.")] = 0,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", help="Write results as JSON.", rich_help_panel=_OUTPUT_PANEL),
    ] = None,
) -> None:
    """k-NN latency and divergence from brute force."""

    metric = _validate_metric(metric)
    _, result = benchmark_knn(
        tree_points=tree_points,
        queries=queries,
        dimension=dimension,
        k=k,
        metric=metric,
        seed=seed,
    )
    typer.echo(
        f"psptree | build={result.build_seconds:.4f}s "
        f"queries={result.queries} k={result.k} "
        f"time={result.elapsed_seconds:.4f}s "
        f"latency={result.latency_ms:.4f}ms "
        f"divergent={result.divergent_queries} ({result.divergence_rate:.1%})"
    )
    payload = asdict(result)
    payload["divergence_rate"] = result.divergence_rate
    _write_json(
        output,
        {
            "benchmark": "knn",
            "metric": metric,
            "runtime": px_config.describe_runtime(),
            "result": payload,
        },
    )


def main() -> None:
    app()


__all__ = ["app", "main"]
