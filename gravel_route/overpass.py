"""Fetch gravel road geometry from the Overpass API for map overlays."""

from __future__ import annotations

import json
import logging
import time
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from cachetools import TTLCache
from requests import Session
from requests.adapters import HTTPAdapter

from .config import (
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    OVERPASS_CACHE_SIZE,
    OVERPASS_CACHE_TTL_SECONDS,
    OVERPASS_PROJECT_URL,
    OVERPASS_RATE_LIMIT_COOLDOWN_SECONDS,
    OVERPASS_TIMEOUT,
    OVERPASS_URL,
    OVERPASS_USER_AGENT,
)
from .models import Bounds

_LOG = logging.getLogger(__name__)

LatLon = Tuple[float, float]
Polyline = List[LatLon]
_BoundsKey = Tuple[str, str, str, str]

GRAVEL_HIGHWAY_PATTERN = "(residential|service|track|unclassified|road)"


def create_session() -> Session:
    """Return a pooled HTTP session for Overpass requests."""

    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


def _bounds_key(bounds: Bounds) -> _BoundsKey:
    return (
        f"{bounds.south:.6f}",
        f"{bounds.west:.6f}",
        f"{bounds.north:.6f}",
        f"{bounds.east:.6f}",
    )


def build_query(bounds: Bounds) -> str:
    """Overpass QL selecting gravel-surfaced ways inside ``bounds``."""

    south, west, north, east = _bounds_key(bounds)
    return (
        "[out:json];\n"
        f'way["highway"~"{GRAVEL_HIGHWAY_PATTERN}"]["surface"="gravel"]'
        f"({south}, {west}, {north}, {east});\n"
        "out geom;\n"
    )


def extract_polyline_coords(body: str | Dict[str, Any]) -> List[Polyline]:
    """Return the lat/lon geometry of every way with at least two nodes."""

    data = json.loads(body) if isinstance(body, str) else body
    if not isinstance(data, dict):
        return []
    elements = data.get("elements") or []
    result: List[Polyline] = []
    for element in elements:
        if not isinstance(element, dict) or element.get("type") != "way":
            continue
        geometry = element.get("geometry")
        if not isinstance(geometry, list):
            continue
        points: Polyline = []
        for node in geometry:
            if not isinstance(node, dict):
                continue
            lat, lon = node.get("lat"), node.get("lon")
            if isinstance(lat, (int, float)) and isinstance(lon, (int, float)):
                points.append((float(lat), float(lon)))
        if len(points) >= 2:
            result.append(points)
    return result


def polylines_to_geojson(polylines: List[Polyline]) -> Dict[str, Any]:
    """Wrap overlay polylines in a GeoJSON FeatureCollection."""

    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"surface": "gravel"},
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[lon, lat] for lat, lon in line],
                },
            }
            for line in polylines
        ],
    }


def _copy_polylines(polylines: List[Polyline]) -> List[Polyline]:
    return [list(line) for line in polylines]


class GravelOverlayFetcher:
    """Fetch gravel polylines per viewport with caching and a 429 cooldown.

    Returns ``None`` instead of raising when a request is skipped or fails,
    so callers can simply keep the previous overlay.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        *,
        url: str = OVERPASS_URL,
        timeout: float = OVERPASS_TIMEOUT,
        cooldown_seconds: float = OVERPASS_RATE_LIMIT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session or create_session()
        self._url = url
        self._timeout = timeout
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._rate_limited_at: Optional[float] = None
        self._cache: TTLCache[_BoundsKey, List[Polyline]] = TTLCache(
            maxsize=max(1, OVERPASS_CACHE_SIZE), ttl=OVERPASS_CACHE_TTL_SECONDS
        )
        self._lock = RLock()

    @property
    def in_cooldown(self) -> bool:
        with self._lock:
            if self._rate_limited_at is None:
                return False
            elapsed = self._clock() - self._rate_limited_at
            if elapsed < self._cooldown_seconds:
                return True
            _LOG.info("Overpass rate limit cooldown expired")
            self._rate_limited_at = None
            return False

    def fetch_polylines(
        self, bounds: Bounds, app_version: str = ""
    ) -> Optional[List[Polyline]]:
        """Return gravel polylines within ``bounds`` or ``None`` when unavailable."""

        key = _bounds_key(bounds)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            _LOG.debug("Overpass cache hit for bounds=%s", key)
            return _copy_polylines(cached)
        if self.in_cooldown:
            _LOG.info("Overpass fetch skipped: rate limit cooldown active")
            return None

        query = build_query(bounds)
        user_agent = OVERPASS_USER_AGENT
        if app_version:
            user_agent = f"{user_agent}/{app_version}"
        headers = {"User-Agent": f"{user_agent} (+{OVERPASS_PROJECT_URL})"}
        started = time.perf_counter()
        _LOG.debug("POST %s bounds=%s", self._url, key)
        try:
            response = self._session.post(
                self._url,
                data={"data": query},
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            _LOG.warning("Overpass request failed: %s", exc)
            return None

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        status = response.status_code
        if status == 429:
            with self._lock:
                self._rate_limited_at = self._clock()
            _LOG.warning(
                "Overpass rate limited (429) after %.0fms; pausing for %ss",
                elapsed_ms,
                self._cooldown_seconds,
            )
            return None
        if status != 200:
            _LOG.warning(
                "Overpass HTTP %s after %.0fms retry-after=%s",
                status,
                elapsed_ms,
                response.headers.get("retry-after"),
            )
            return None

        try:
            polylines = extract_polyline_coords(response.text)
        except ValueError as exc:
            _LOG.warning("Overpass returned invalid JSON: %s", exc)
            return None
        _LOG.info(
            "Fetched %d gravel ways in %.0fms (%d bytes)",
            len(polylines),
            elapsed_ms,
            len(response.content or b""),
        )
        with self._lock:
            self._cache[key] = _copy_polylines(polylines)
        return polylines

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


__all__ = [
    "GravelOverlayFetcher",
    "build_query",
    "create_session",
    "extract_polyline_coords",
    "polylines_to_geojson",
]
