"""Local JSON-file persistence for saved routes.

Routes are kept in a single ``routes.json`` document inside the configured
directory. The store must be initialised before use; every data operation on
an uninitialised or closed store raises :class:`StorageNotInitializedError`.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .config import MAX_SAVED_ROUTES, ROUTE_STORE_DIR, ROUTE_STORE_FILENAME
from .errors import EmptyRouteError, StorageNotInitializedError
from .geodesy import path_length
from .models import RoutePoint, SavedRoute

_LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

_FORMAT_VERSION = 1


class RouteStore:
    """Persistent store for :class:`SavedRoute` objects."""

    def __init__(
        self,
        directory: Optional[PathLike] = None,
        *,
        max_routes: int = MAX_SAVED_ROUTES,
    ) -> None:
        base = Path(directory if directory is not None else ROUTE_STORE_DIR)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._max_routes = max(1, max_routes)
        self._lock = threading.Lock()
        self._routes: Dict[int, SavedRoute] = {}
        self._next_key = 0
        self._open = False

    @property
    def path(self) -> Path:
        return self._base_dir / ROUTE_STORE_FILENAME

    def initialize(self) -> None:
        """Create the storage directory and load existing routes.

        A corrupt routes file is moved aside and replaced by an empty store.
        Calling ``initialize`` on an open store is a no-op.
        """

        with self._lock:
            if self._open:
                _LOGGER.debug("Route store already initialised, skipping")
                return
            self._base_dir.mkdir(parents=True, exist_ok=True)
            routes = self._read_routes()
            self._routes = {route.key: route for route in routes if route.key is not None}
            self._next_key = max(self._routes, default=-1) + 1
            self._open = True
        _LOGGER.info(
            "Route store initialised dir=%s routes=%d", self._base_dir, len(self._routes)
        )

    def is_available(self) -> bool:
        return self._open

    def close(self) -> None:
        with self._lock:
            self._open = False
            self._routes = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def load_saved_routes(self) -> List[SavedRoute]:
        """Return all routes, newest first."""

        with self._lock:
            self._require_open()
            return _newest_first(self._routes.values())

    def search_routes(self, query: str) -> List[SavedRoute]:
        """Case-insensitive match on route name or description."""

        with self._lock:
            self._require_open()
            routes = list(self._routes.values())
        needle = query.strip().lower()
        if not needle:
            return _newest_first(routes)
        matches = [
            route
            for route in routes
            if needle in route.name.lower()
            or (route.description is not None and needle in route.description.lower())
        ]
        return _newest_first(matches)

    def find_by_name(self, name: str) -> Optional[SavedRoute]:
        """Return the newest route whose name matches exactly (case-insensitive)."""

        target = name.strip().lower()
        for route in self.load_saved_routes():
            if route.name.strip().lower() == target:
                return route
        return None

    def route_count(self) -> int:
        with self._lock:
            self._require_open()
            return len(self._routes)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def save_current_route(
        self,
        name: str,
        points: Sequence[RoutePoint],
        loop_closed: bool,
        description: str | None = None,
    ) -> SavedRoute:
        """Persist a route, evicting the oldest entry when at capacity.

        Raises:
            EmptyRouteError: If ``points`` is empty.
            StorageNotInitializedError: If the store is not open.
        """

        if not points:
            raise EmptyRouteError("No route to save")
        route = SavedRoute(
            name=name,
            points=[RoutePoint.coerce(p) for p in points],
            loop_closed=bool(loop_closed) and len(points) >= 3,
            saved_at=datetime.now(timezone.utc),
            description=description,
        )
        route.distance_m = path_length(route.points, route.loop_closed)
        return self._add(route)

    def update_route(self, old: SavedRoute, new: SavedRoute) -> SavedRoute:
        """Replace ``old`` with ``new``; ``new`` receives a fresh key."""

        with self._lock:
            self._require_open()
            if old.key is not None:
                self._routes.pop(old.key, None)
        return self._add(new.copy_with(key=None))

    def delete_route(self, key: int) -> bool:
        """Remove the route stored under ``key``. Returns False when unknown."""

        with self._lock:
            self._require_open()
            removed = self._routes.pop(key, None)
            if removed is None:
                _LOGGER.debug("No saved route with key=%s", key)
                return False
            self._write_routes()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _add(self, route: SavedRoute) -> SavedRoute:
        with self._lock:
            self._require_open()
            while len(self._routes) >= self._max_routes:
                oldest_key = next(iter(self._routes))
                evicted = self._routes.pop(oldest_key)
                _LOGGER.info("Evicting oldest saved route '%s'", evicted.name)
            stored = route.copy_with(key=self._next_key)
            self._routes[stored.key] = stored
            self._next_key += 1
            self._write_routes()
        return stored

    def _require_open(self) -> None:
        if not self._open:
            raise StorageNotInitializedError(
                "Route store not initialised. Call initialize() first."
            )

    def _read_routes(self) -> List[SavedRoute]:
        path = self.path
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            self._quarantine(exc)
            return []
        try:
            routes = _decode_records(payload)
        except (AttributeError, TypeError, ValueError) as exc:
            self._quarantine(exc)
            return []
        return routes

    def _quarantine(self, exc: Exception) -> None:
        path = self.path
        backup = path.with_name(
            f"{path.stem}.corrupt-{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        )
        _LOGGER.warning(
            "Failed reading route store %s (%s); moving it to %s", path, exc, backup
        )
        path.replace(backup)

    def _write_routes(self) -> None:
        payload = {
            "version": _FORMAT_VERSION,
            "routes": [route.to_dict() for route in self._routes.values()],
        }
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=True, indent=2)
        temp_path.replace(path)


def _decode_records(payload: object) -> List[SavedRoute]:
    """Decode the stored payload; raises on structurally invalid records.

    Records without a key, or repeating a key already taken, are numbered
    after the highest explicit key so no route is dropped.
    """

    if isinstance(payload, dict):
        records = payload.get("routes", [])
    else:
        records = payload
    if not isinstance(records, list):
        raise TypeError(f"routes must be a list, got {type(records).__name__}")

    routes: List[SavedRoute] = []
    for record in records:
        if not isinstance(record, dict):
            raise TypeError(f"route record must be an object, got {type(record).__name__}")
        routes.append(SavedRoute.from_dict(record))

    taken: set[int] = set()
    unkeyed: List[SavedRoute] = []
    for route in routes:
        if route.key is None or route.key in taken:
            unkeyed.append(route)
        else:
            taken.add(route.key)
    next_key = max(taken, default=-1) + 1
    for route in unkeyed:
        route.key = next_key
        next_key += 1
    return routes


def _newest_first(routes: Iterable[SavedRoute]) -> List[SavedRoute]:
    return sorted(routes, key=lambda r: (r.saved_at, r.key or 0), reverse=True)


__all__ = ["RouteStore"]
