"""Spherical-earth distance helpers shared by every distance computation."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .models import RoutePoint

EARTH_RADIUS_M = 6_371_000.0

DistanceFn = Callable[[RoutePoint, RoutePoint], float]


def haversine_m(
    lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike
) -> float | NDArray[np.float64]:
    """Great-circle distance in metres.

    Accepts scalars or equally shaped arrays; scalar input yields a ``float``.
    """

    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = np.radians(np.subtract(lon2, lon1))
    sin_half_lat = np.sin(delta_lat / 2.0)
    sin_half_lon = np.sin(delta_lon / 2.0)
    a = sin_half_lat**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * sin_half_lon**2
    a = np.clip(a, 0.0, 1.0)
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    result = EARTH_RADIUS_M * c
    if np.ndim(result) == 0:
        return float(result)
    return result


def distance_between(first: RoutePoint, second: RoutePoint) -> float:
    """Distance in metres between two route points."""

    return float(haversine_m(first.lat, first.lon, second.lat, second.lon))


def segment_distances(
    points: Sequence[RoutePoint],
    loop_closed: bool,
    distance_fn: Optional[DistanceFn] = None,
) -> List[float]:
    """Return one length per consecutive pair, plus the closing pair when looped.

    The closing segment is only added for three or more points. Without an
    explicit ``distance_fn`` the whole route is measured in a single
    vectorised haversine call.
    """

    count = len(points)
    if count < 2:
        return []
    closing = loop_closed and count >= 3
    if distance_fn is not None:
        result = [distance_fn(points[i - 1], points[i]) for i in range(1, count)]
        if closing:
            result.append(distance_fn(points[-1], points[0]))
        return result

    lats = np.fromiter((p.lat for p in points), dtype=float, count=count)
    lons = np.fromiter((p.lon for p in points), dtype=float, count=count)
    if closing:
        lats = np.append(lats, lats[0])
        lons = np.append(lons, lons[0])
    lengths = haversine_m(lats[:-1], lons[:-1], lats[1:], lons[1:])
    return [float(value) for value in np.atleast_1d(lengths)]


def interpolate(start: RoutePoint, end: RoutePoint, ratio: float) -> RoutePoint:
    """Planar linear interpolation of latitude and longitude."""

    return RoutePoint(
        start.lat + (end.lat - start.lat) * ratio,
        start.lon + (end.lon - start.lon) * ratio,
    )


def path_length(
    points: Sequence[RoutePoint],
    loop_closed: bool = False,
    distance_fn: Optional[DistanceFn] = None,
) -> float:
    """Total route length in metres."""

    return float(sum(segment_distances(points, loop_closed, distance_fn)))


__all__ = [
    "EARTH_RADIUS_M",
    "DistanceFn",
    "distance_between",
    "haversine_m",
    "interpolate",
    "path_length",
    "segment_distances",
]
