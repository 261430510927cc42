"""Route measurement engine.

Owns the ordered route points for one editing session and keeps the derived
state (segment lengths, loop topology, distance markers, edit selection)
consistent after every mutation.

Every operation is total: stale or out-of-range indices coming from a UI that
just mutated the list are ignored rather than raised, and queries beyond the
route return zero. Callers rely on this, so keep it that way.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .config import (
    DEFAULT_DISTANCE_INTERVAL_KM,
    DEFAULT_POINT_SIZE,
    DEFAULT_SHOW_DISTANCE_MARKERS,
    MIN_POINT_SIZE,
    POINT_SIZE_STEPS,
    ROUTE_BOUNDS_PADDING_RATIO,
)
from .geodesy import DistanceFn, distance_between, interpolate, segment_distances
from .models import Bounds, RoutePoint, RouteSnapshot

_LOG = logging.getLogger(__name__)

PointLike = RoutePoint | Sequence[float]
Listener = Callable[["RouteMeasurement"], None]


class RouteMeasurement:
    """Mutable route state plus the distance calculations built on it."""

    def __init__(
        self,
        *,
        distance_fn: Optional[DistanceFn] = None,
        distance_interval_km: float = DEFAULT_DISTANCE_INTERVAL_KM,
        show_distance_markers: bool = DEFAULT_SHOW_DISTANCE_MARKERS,
    ) -> None:
        self._distance_fn = distance_fn
        self._points: List[RoutePoint] = []
        self._segment_meters: List[float] = []
        self._distance_markers: List[RoutePoint] = []
        self._loop_closed = False
        self._measure_enabled = False
        self._edit_mode_enabled = False
        self._editing_index: Optional[int] = None
        self._show_distance_markers = show_distance_markers
        self._distance_interval_km = _validate_interval(distance_interval_km)
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def points(self) -> Tuple[RoutePoint, ...]:
        return tuple(self._points)

    @property
    def segment_distances(self) -> Tuple[float, ...]:
        return tuple(self._segment_meters)

    @property
    def distance_markers(self) -> Tuple[RoutePoint, ...]:
        return tuple(self._distance_markers)

    @property
    def loop_closed(self) -> bool:
        return self._loop_closed

    @property
    def total_distance(self) -> float:
        """Sum of all segment lengths in metres, closing segment included."""

        return float(sum(self._segment_meters))

    def __len__(self) -> int:
        return len(self._points)

    # ------------------------------------------------------------------
    # Mode flags
    # ------------------------------------------------------------------
    @property
    def measure_enabled(self) -> bool:
        return self._measure_enabled

    @measure_enabled.setter
    def measure_enabled(self, value: bool) -> None:
        self._measure_enabled = bool(value)
        self._notify()

    @property
    def edit_mode_enabled(self) -> bool:
        return self._edit_mode_enabled

    @edit_mode_enabled.setter
    def edit_mode_enabled(self, value: bool) -> None:
        self._edit_mode_enabled = bool(value)
        if not self._edit_mode_enabled:
            self._editing_index = None
        self._notify()

    @property
    def editing_index(self) -> Optional[int]:
        return self._editing_index

    @editing_index.setter
    def editing_index(self, value: Optional[int]) -> None:
        # Only a valid slot can be selected, and only while editing.
        if (
            value is None
            or not self._edit_mode_enabled
            or not 0 <= value < len(self._points)
        ):
            self._editing_index = None
        else:
            self._editing_index = value
        self._notify()

    @property
    def show_distance_markers(self) -> bool:
        return self._show_distance_markers

    @show_distance_markers.setter
    def show_distance_markers(self, value: bool) -> None:
        self._show_distance_markers = bool(value)
        self._refresh_markers()
        self._notify()

    @property
    def distance_interval_km(self) -> float:
        return self._distance_interval_km

    @distance_interval_km.setter
    def distance_interval_km(self, value: float) -> None:
        self._distance_interval_km = _validate_interval(value)
        self._refresh_markers()
        self._notify()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_route_point(self, point: PointLike) -> None:
        """Append a point; adding to a closed loop reopens it."""

        if self._loop_closed:
            _LOG.debug("Reopening loop to append point %d", len(self._points))
            self._loop_closed = False
        self._points.append(RoutePoint.coerce(point))
        self._recompute()

    def move_route_point(self, index: int, new_point: PointLike) -> None:
        """Relocate ``points[index]``; out-of-range indices are ignored."""

        if not 0 <= index < len(self._points):
            _LOG.debug("Ignoring move of stale index %s", index)
            return
        self._points[index] = RoutePoint.coerce(new_point)
        self._editing_index = None
        self._recompute()

    def delete_point(self, index: int) -> None:
        """Remove ``points[index]``; out-of-range indices are ignored."""

        if not 0 <= index < len(self._points):
            _LOG.debug("Ignoring delete of stale index %s", index)
            return
        del self._points[index]
        self._distance_markers.clear()
        if len(self._points) < 3:
            self._loop_closed = False
        if self._editing_index is not None:
            if not self._points or index == self._editing_index:
                self._editing_index = None
            elif index < self._editing_index:
                self._editing_index -= 1
        self._recompute()

    def add_point_between(self, index_a: int, index_b: int, point: PointLike) -> None:
        """Split the segment ``index_a -> index_b`` by inserting ``point``.

        ``index_b`` must follow ``index_a``; the closing segment of a loop is
        addressed as ``(len - 1, 0)`` and appends the point. Anything else is
        ignored. The new point becomes the edit selection while editing.
        """

        count = len(self._points)
        new_point = RoutePoint.coerce(point)
        if count >= 2 and index_a == count - 1 and index_b == 0:
            self._points.append(new_point)
            inserted_at = count
        elif 0 <= index_a < count - 1 and index_b == index_a + 1:
            self._points.insert(index_b, new_point)
            inserted_at = index_b
        else:
            _LOG.debug("Ignoring insert between non-adjacent %s/%s", index_a, index_b)
            return
        if self._edit_mode_enabled:
            self._editing_index = inserted_at
        self._recompute()

    def undo_last_point(self) -> None:
        """Drop the most recently added point."""

        if not self._points:
            return
        self._points.pop()
        if len(self._points) < 3:
            self._loop_closed = False
        if self._editing_index is not None and self._editing_index >= len(self._points):
            self._editing_index = None
        self._recompute()

    def clear_route(self) -> None:
        self._points.clear()
        self._segment_meters.clear()
        self._distance_markers.clear()
        self._loop_closed = False
        self._editing_index = None
        self._show_distance_markers = False
        self._notify()

    def load_route(self, points: Iterable[PointLike], loop_closed: bool = False) -> None:
        """Replace the whole route.

        A closed loop needs three points; a shorter route loaded as closed is
        stored open.
        """

        loaded = [RoutePoint.coerce(p) for p in points]
        if loop_closed and len(loaded) < 3:
            _LOG.debug(
                "Loaded route has %d points; storing it open instead of closed",
                len(loaded),
            )
        self._points = loaded
        self._loop_closed = bool(loop_closed) and len(loaded) >= 3
        self._editing_index = None
        self._distance_markers.clear()
        self._recompute()

    def toggle_loop(self) -> None:
        """Close or reopen the loop; refused below three points."""

        if len(self._points) < 3:
            return
        self._loop_closed = not self._loop_closed
        self._recompute()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def calculate_distance_to_point(self, index: int) -> float:
        """Distance along the route from the first point to ``points[index]``."""

        if not 0 <= index < len(self._points):
            return 0.0
        return float(sum(self._segment_meters[:index]))

    def generate_distance_markers(self) -> Tuple[RoutePoint, ...]:
        """Place a marker every ``distance_interval_km`` along the full path.

        Generating markers for a route of two or more points also switches
        ``show_distance_markers`` on, so later edits keep them up to date.
        """

        self._distance_markers.clear()
        count = len(self._points)
        if count < 2:
            return ()

        interval_m = self._distance_interval_km * 1000.0
        cumulative = 0.0
        next_marker = interval_m
        for start, end, seg_len in self._iter_segments():
            if seg_len <= 0.0:
                continue
            segment_end = cumulative + seg_len
            while next_marker <= segment_end:
                ratio = (next_marker - cumulative) / seg_len
                self._distance_markers.append(interpolate(start, end, ratio))
                next_marker += interval_m
            cumulative = segment_end
        self._show_distance_markers = True
        return tuple(self._distance_markers)

    def calculate_dynamic_point_size(self) -> float:
        """Marker size that grows with the average spacing between points.

        Zero-length segments are left out of the average. A route of two or
        more points all on one spot gets the smallest size.
        """

        if len(self._points) < 2:
            return DEFAULT_POINT_SIZE
        measure = self._distance_fn or distance_between
        lengths = [
            measure(self._points[i - 1], self._points[i])
            for i in range(1, len(self._points))
        ]
        valid = [value for value in lengths if value > 0]
        if not valid:
            # Every point stacked on the first: zero spacing.
            return MIN_POINT_SIZE
        average = sum(valid) / len(valid)
        for threshold, size in POINT_SIZE_STEPS:
            if average > threshold:
                return size
        return MIN_POINT_SIZE

    def bounds(self, padding_ratio: float = ROUTE_BOUNDS_PADDING_RATIO) -> Optional[Bounds]:
        """Padded bounding box of the route, ``None`` for an empty route."""

        return Bounds.around(self._points, padding_ratio)

    # ------------------------------------------------------------------
    # Snapshots and observers
    # ------------------------------------------------------------------
    def snapshot(self) -> RouteSnapshot:
        return RouteSnapshot(points=tuple(self._points), loop_closed=self._loop_closed)

    def restore(self, snapshot: RouteSnapshot) -> None:
        self.load_route(snapshot.points, loop_closed=snapshot.loop_closed)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change notifications; returns an unsubscriber."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _iter_segments(self) -> Iterable[Tuple[RoutePoint, RoutePoint, float]]:
        points = self._points
        for i in range(1, len(points)):
            yield points[i - 1], points[i], self._segment_meters[i - 1]
        if self._loop_closed and len(points) >= 3:
            yield points[-1], points[0], self._segment_meters[-1]

    def _recompute(self) -> None:
        self._segment_meters = segment_distances(
            self._points, self._loop_closed, self._distance_fn
        )
        self._refresh_markers()
        self._notify()

    def _refresh_markers(self) -> None:
        if self._show_distance_markers and len(self._points) >= 2:
            self.generate_distance_markers()
        else:
            self._distance_markers.clear()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


def _validate_interval(value: float) -> float:
    interval = float(value)
    if not math.isfinite(interval) or interval <= 0:
        raise ValueError("distance_interval_km must be a positive number")
    return interval


__all__ = ["RouteMeasurement"]
