"""Gravel route planner package."""

from .errors import (
    EmptyRouteError,
    GravelRouteError,
    OverpassAPIError,
    RouteFormatError,
    StorageNotInitializedError,
)
from .history import RouteHistory
from .main import main
from .measurement import RouteMeasurement
from .models import Bounds, ImportedRoute, RoutePoint, RouteSnapshot, SavedRoute

__all__ = [
    "main",
    "Bounds",
    "ImportedRoute",
    "RoutePoint",
    "RouteSnapshot",
    "SavedRoute",
    "RouteHistory",
    "RouteMeasurement",
    "GravelRouteError",
    "RouteFormatError",
    "StorageNotInitializedError",
    "EmptyRouteError",
    "OverpassAPIError",
]
