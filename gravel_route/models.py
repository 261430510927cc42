"""Dataclasses describing route geometry and persisted routes."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class RoutePoint:
    """A WGS84 coordinate in decimal degrees."""

    lat: float
    lon: float

    def __iter__(self) -> Iterator[float]:
        yield self.lat
        yield self.lon

    @classmethod
    def coerce(cls, value: "RoutePoint | Sequence[float]") -> "RoutePoint":
        """Accept a RoutePoint or any ``(lat, lon)`` pair."""

        if isinstance(value, RoutePoint):
            return value
        lat, lon = value
        return cls(float(lat), float(lon))


@dataclass(frozen=True, slots=True)
class RouteSnapshot:
    """Immutable copy of the route topology, used for undo and export."""

    points: Tuple[RoutePoint, ...] = ()
    loop_closed: bool = False


@dataclass(frozen=True, slots=True)
class Bounds:
    """Axis-aligned lat/lon bounding box."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(
        cls, points: Sequence[RoutePoint], padding_ratio: float = 0.0
    ) -> Optional["Bounds"]:
        """Return the padded bounds enclosing ``points`` or ``None`` when empty."""

        if not points:
            return None
        lats = [p.lat for p in points]
        lons = [p.lon for p in points]
        min_lat, max_lat = min(lats), max(lats)
        min_lon, max_lon = min(lons), max(lons)
        lat_pad = (max_lat - min_lat) * padding_ratio
        lon_pad = (max_lon - min_lon) * padding_ratio
        return cls(
            south=min_lat - lat_pad,
            west=min_lon - lon_pad,
            north=max_lat + lat_pad,
            east=max_lon + lon_pad,
        )

    @property
    def center(self) -> RoutePoint:
        return RoutePoint((self.south + self.north) / 2.0, (self.west + self.east) / 2.0)


@dataclass(slots=True)
class ImportedRoute:
    """Result of decoding a route file, ready for ``load_route``."""

    points: List[RoutePoint]
    loop_closed: bool = False
    original_count: Optional[int] = None
    name: Optional[str] = None


@dataclass
class SavedRoute:
    name: str
    points: List[RoutePoint]
    loop_closed: bool
    saved_at: datetime
    description: str | None = None
    distance_m: float | None = None
    is_public: bool = False
    user_id: str | None = None
    remote_id: str | None = None
    last_synced: datetime | None = None
    # Assigned by the route store; None until persisted.
    key: int | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> RouteSnapshot:
        return RouteSnapshot(points=tuple(self.points), loop_closed=self.loop_closed)

    def copy_with(self, **changes: Any) -> "SavedRoute":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON layout used by the route store."""

        return {
            "key": self.key,
            "name": self.name,
            "points": [{"lat": p.lat, "lng": p.lon} for p in self.points],
            "loopClosed": self.loop_closed,
            "savedAt": self.saved_at.isoformat(),
            "description": self.description,
            "distance": self.distance_m,
            "isPublic": self.is_public,
            "userId": self.user_id,
            "firestoreId": self.remote_id,
            "lastSynced": self.last_synced.isoformat() if self.last_synced else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedRoute":
        points = [
            RoutePoint(float(p.get("lat", 0.0)), float(p.get("lng", 0.0)))
            for p in data.get("points") or []
        ]
        distance = data.get("distance")
        key = data.get("key")
        return cls(
            name=str(data.get("name") or ""),
            points=points,
            loop_closed=bool(data.get("loopClosed", False)),
            saved_at=_parse_datetime(data.get("savedAt")) or datetime.now(timezone.utc),
            description=data.get("description"),
            distance_m=float(distance) if distance is not None else None,
            is_public=bool(data.get("isPublic", False)),
            user_id=data.get("userId"),
            remote_id=data.get("firestoreId"),
            last_synced=_parse_datetime(data.get("lastSynced")),
            key=int(key) if key is not None else None,
        )


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "Bounds",
    "ImportedRoute",
    "RoutePoint",
    "RouteSnapshot",
    "SavedRoute",
]
