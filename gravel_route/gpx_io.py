"""GPX import/export for routes.

GPX has no loop flag, so a closed loop is exported with a duplicate closing
track point and imported loops are inferred from the first and last points
being equal. Large tracks are thinned with a distance-based decimation so the
editor stays responsive.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import gpxpy
import gpxpy.gpx

from .config import (
    EXPORT_CREATOR,
    EXPORT_ROUTE_NAME,
    GPX_DECIMATION_MIN_SPACING_M,
    GPX_DECIMATION_THRESHOLD,
)
from .errors import RouteFormatError
from .geodesy import distance_between
from .models import ImportedRoute, RoutePoint

_LOG = logging.getLogger(__name__)

# Seven decimals is roughly 1 cm, plenty for route planning.
_COORD_DECIMALS = 7


def encode_gpx(
    points: Sequence[RoutePoint],
    loop_closed: bool,
    *,
    name: str = EXPORT_ROUTE_NAME,
) -> str:
    """Serialise a route as a GPX 1.1 document with one track."""

    gpx = gpxpy.gpx.GPX()
    gpx.creator = EXPORT_CREATOR
    track = gpxpy.gpx.GPXTrack(name=name)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    gpx.tracks.append(track)

    closing = [points[0]] if loop_closed and len(points) >= 3 else []
    for point in list(points) + closing:
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                latitude=round(point.lat, _COORD_DECIMALS),
                longitude=round(point.lon, _COORD_DECIMALS),
            )
        )
    return gpx.to_xml(version="1.1")


def decode_gpx(
    text: str | bytes,
    *,
    decimation_threshold: int = GPX_DECIMATION_THRESHOLD,
) -> ImportedRoute:
    """Parse GPX text into route points and an inferred loop state.

    Track points are preferred; route points are used when the file has no
    tracks. Routes above ``decimation_threshold`` points are decimated.

    Raises:
        RouteFormatError: If the XML is malformed or contains no points.
    """

    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        gpx = gpxpy.parse(text)
    except (UnicodeDecodeError, gpxpy.gpx.GPXException) as exc:
        raise RouteFormatError(f"Invalid GPX document: {exc}") from exc

    raw_points = [
        RoutePoint(float(p.latitude), float(p.longitude))
        for track in gpx.tracks
        for segment in track.segments
        for p in segment.points
    ]
    if not raw_points:
        raw_points = [
            RoutePoint(float(p.latitude), float(p.longitude))
            for route in gpx.routes
            for p in route.points
        ]
    if not raw_points:
        raise RouteFormatError("No track points found in GPX")

    original_count = len(raw_points)
    points = raw_points
    if decimation_threshold > 0 and original_count > decimation_threshold:
        points = decimate_points(raw_points)
        _LOG.info(
            "Decimated GPX track from %d to %d points", original_count, len(points)
        )

    loop_closed = len(points) >= 3 and points[0] == points[-1]
    if loop_closed:
        points = points[:-1]
    loop_closed = loop_closed and len(points) >= 3

    name = gpx.tracks[0].name if gpx.tracks else gpx.name
    return ImportedRoute(
        points=points,
        loop_closed=loop_closed,
        original_count=original_count,
        name=name,
    )


def decimate_points(
    points: Sequence[RoutePoint],
    min_spacing_m: float = GPX_DECIMATION_MIN_SPACING_M,
) -> List[RoutePoint]:
    """Drop interior points closer than ``min_spacing_m`` to the last kept point.

    The first and last points are always preserved.
    """

    if len(points) <= 3:
        return list(points)
    decimated = [points[0]]
    for point in points[1:-1]:
        if distance_between(decimated[-1], point) >= min_spacing_m:
            decimated.append(point)
    if decimated[-1] != points[-1] or len(decimated) == 1:
        decimated.append(points[-1])
    return decimated


__all__ = ["decimate_points", "decode_gpx", "encode_gpx"]
