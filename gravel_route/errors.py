"""Central error types used across the application."""

from __future__ import annotations


class GravelRouteError(RuntimeError):
    """Base error for the gravel route planner."""


class RouteFormatError(GravelRouteError):
    """Raised when an imported GPX/GeoJSON document cannot be understood."""


class StorageNotInitializedError(GravelRouteError):
    """Raised when the route store is used before ``initialize()`` or after ``close()``."""


class EmptyRouteError(GravelRouteError):
    """Raised when saving or exporting a route that has no points."""


class OverpassAPIError(GravelRouteError):
    """Raised when the gravel overlay could not be fetched."""


__all__ = [
    "GravelRouteError",
    "RouteFormatError",
    "StorageNotInitializedError",
    "EmptyRouteError",
    "OverpassAPIError",
]
