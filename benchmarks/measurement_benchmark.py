"""Benchmark the route measurement engine with large point counts."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from gravel_route.gpx_io import decimate_points  # noqa: E402
from gravel_route.measurement import RouteMeasurement  # noqa: E402
from gravel_route.models import RoutePoint  # noqa: E402


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one engine session."""

    load: float
    markers: float
    edit: float
    decimate: float

    @property
    def total(self) -> float:
        """Return the aggregate duration for this benchmark iteration."""

        return self.load + self.markers + self.edit + self.decimate


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for multiple benchmark iterations."""

    point_count: int
    iterations: int
    mean_load_ms: float
    mean_markers_ms: float
    mean_edit_ms: float
    mean_decimate_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_route(point_count: int) -> List[RoutePoint]:
    """Generate a straight route with roughly 10 m between points."""

    base_lat = 59.0
    base_lon = 18.0
    step_deg = 9.0e-5
    return [RoutePoint(base_lat + idx * step_deg, base_lon) for idx in range(point_count)]


def _run_iteration(points: List[RoutePoint]) -> StageDurations:
    """Execute one benchmark iteration and capture per-stage timings."""

    engine = RouteMeasurement(show_distance_markers=False)

    start = time.perf_counter()
    engine.load_route(points, loop_closed=True)
    load = time.perf_counter() - start

    start = time.perf_counter()
    markers = engine.generate_distance_markers()
    if not markers:
        raise RuntimeError("Synthetic route produced no distance markers")
    marker_time = time.perf_counter() - start

    start = time.perf_counter()
    middle = len(points) // 2
    engine.move_route_point(middle, RoutePoint(points[middle].lat, points[middle].lon + 1e-4))
    engine.delete_point(middle)
    engine.undo_last_point()
    edit = time.perf_counter() - start

    start = time.perf_counter()
    _ = decimate_points(points)
    decimate = time.perf_counter() - start

    return StageDurations(load=load, markers=marker_time, edit=edit, decimate=decimate)


def run_benchmark(point_count: int, iterations: int) -> BenchmarkSummary:
    """Benchmark the engine and return aggregated timings."""

    if point_count < 1000:
        raise ValueError("point_count must be at least 1,000")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    points = _build_route(point_count)
    durations = [_run_iteration(points) for _ in range(iterations)]

    return BenchmarkSummary(
        point_count=point_count,
        iterations=iterations,
        mean_load_ms=statistics.fmean(item.load for item in durations) * 1000.0,
        mean_markers_ms=statistics.fmean(item.markers for item in durations) * 1000.0,
        mean_edit_ms=statistics.fmean(item.edit for item in durations) * 1000.0,
        mean_decimate_ms=statistics.fmean(item.decimate for item in durations) * 1000.0,
        mean_total_ms=statistics.fmean(item.total for item in durations) * 1000.0,
        worst_total_ms=max(item.total for item in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    """Return a JSON-friendly representation of the benchmark summary."""

    return {
        "point_count": summary.point_count,
        "iterations": summary.iterations,
        "mean_load_ms": summary.mean_load_ms,
        "mean_markers_ms": summary.mean_markers_ms,
        "mean_edit_ms": summary.mean_edit_ms,
        "mean_decimate_ms": summary.mean_decimate_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark the route measurement engine with large routes",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=10000,
        help="Number of points in the synthetic route",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of repetitions for averaging",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.points, args.iterations)
    for key, value in _format_summary(summary).items():
        if key in {"point_count", "iterations"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
