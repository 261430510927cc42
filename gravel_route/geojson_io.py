"""GeoJSON import/export for routes.

Coordinates are written in GeoJSON's ``[lon, lat]`` order. Closed loops get
an explicit closing coordinate plus a ``loopClosed`` property so a round trip
restores the loop flag. Imported files are considered loops when the property
says so or when the line ends where it starts; the duplicated closing
coordinate is removed before the points reach the measurement engine.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from .config import EXPORT_ROUTE_NAME
from .errors import RouteFormatError
from .models import ImportedRoute, RoutePoint

_LOG = logging.getLogger(__name__)


def encode_geojson(
    points: Sequence[RoutePoint],
    loop_closed: bool,
    *,
    name: str = EXPORT_ROUTE_NAME,
    exported_at: Optional[datetime] = None,
) -> str:
    """Serialise a route as a FeatureCollection holding one LineString."""

    coords = [[p.lon, p.lat] for p in points]
    if loop_closed and len(points) >= 3:
        coords.append([points[0].lon, points[0].lat])
    stamp = exported_at or datetime.now(timezone.utc)
    feature = {
        "type": "Feature",
        "properties": {
            "name": name,
            "loopClosed": bool(loop_closed),
            "exportedAt": stamp.isoformat(),
        },
        "geometry": {"type": "LineString", "coordinates": coords},
    }
    collection = {"type": "FeatureCollection", "features": [feature]}
    return json.dumps(collection, indent=2)


def decode_geojson(text: str | bytes) -> ImportedRoute:
    """Parse GeoJSON text into route points and loop state.

    Raises:
        RouteFormatError: If the text is not JSON or holds no LineString.
    """

    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        decoded = json.loads(text)
    except ValueError as exc:
        raise RouteFormatError("Invalid GeoJSON document") from exc

    coordinates = _extract_first_line_string(decoded)
    if not coordinates:
        raise RouteFormatError("No LineString found in GeoJSON")

    points = [
        RoutePoint(float(c[1]), float(c[0]))
        for c in coordinates
        if isinstance(c, (list, tuple)) and len(c) >= 2 and _is_number(c[0]) and _is_number(c[1])
    ]
    if not points:
        raise RouteFormatError("GeoJSON LineString has no usable coordinates")

    properties = _first_properties(decoded)
    geometric_loop = len(points) >= 3 and points[0] == points[-1]
    loop_closed = properties.get("loopClosed") is True or geometric_loop
    if loop_closed and len(points) >= 2 and points[0] == points[-1]:
        points = points[:-1]
    loop_closed = loop_closed and len(points) >= 3
    name = properties.get("name")
    _LOG.debug("Decoded GeoJSON route points=%d loop=%s", len(points), loop_closed)
    return ImportedRoute(
        points=points,
        loop_closed=loop_closed,
        name=name if isinstance(name, str) else None,
    )


def _extract_first_line_string(node: Any) -> Optional[List[Any]]:
    if not isinstance(node, dict):
        return None
    kind = node.get("type")
    if kind == "FeatureCollection" and isinstance(node.get("features"), list):
        for feature in node["features"]:
            result = _extract_first_line_string(feature)
            if result is not None:
                return result
    elif kind == "Feature" and isinstance(node.get("geometry"), dict):
        return _extract_first_line_string(node["geometry"])
    elif kind == "LineString" and isinstance(node.get("coordinates"), list):
        return node["coordinates"]
    elif kind == "MultiLineString" and isinstance(node.get("coordinates"), list):
        lines = node["coordinates"]
        if lines and isinstance(lines[0], list):
            return lines[0]
    return None


def _first_properties(node: Any) -> dict:
    if not isinstance(node, dict):
        return {}
    if node.get("type") == "FeatureCollection":
        features = node.get("features")
        if isinstance(features, list) and features and isinstance(features[0], dict):
            node = features[0]
    properties = node.get("properties") if node.get("type") == "Feature" else None
    return properties if isinstance(properties, dict) else {}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = ["decode_geojson", "encode_geojson"]
