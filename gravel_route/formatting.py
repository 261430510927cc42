"""Human-readable distance labels."""

from __future__ import annotations

from typing import Iterable, List

# Distances at or above this many metres are shown in kilometres.
_KM_THRESHOLD_M = 950.0


def format_distance(meters: float) -> str:
    """Format metres as ``"812 m"``, ``"1.25 km"`` or ``"12.3 km"``."""

    # Compare the rounded value so the label matches its unit.
    if round(meters) < _KM_THRESHOLD_M:
        return f"{meters:.0f} m"
    km = meters / 1000.0
    decimals = 2 if round(km, 2) < 10 else 1
    return f"{km:.{decimals}f} km"


def format_segment_labels(segment_distances: Iterable[float]) -> List[str]:
    """Return one label per segment length."""

    return [format_distance(value) for value in segment_distances]


def format_marker_label(index: int, interval_km: float) -> str:
    """Cumulative label for the ``index``-th (zero based) distance marker."""

    km = round((index + 1) * interval_km, 2)
    return f"{km:g} km"


__all__ = ["format_distance", "format_marker_label", "format_segment_labels"]
