"""Tests for the route measurement engine."""

from __future__ import annotations

import pytest

from gravel_route.geodesy import distance_between, path_length
from gravel_route.measurement import RouteMeasurement
from gravel_route.models import RoutePoint

from conftest import MILLI_DEGREE_M, make_north_route, make_points


def test_new_engine_defaults(engine: RouteMeasurement) -> None:
    assert engine.points == ()
    assert engine.segment_distances == ()
    assert engine.distance_markers == ()
    assert engine.loop_closed is False
    assert engine.measure_enabled is False
    assert engine.edit_mode_enabled is False
    assert engine.editing_index is None
    assert engine.distance_interval_km == 1.0
    assert engine.show_distance_markers is True


def test_scenario_open_route_distances(scenario_engine: RouteMeasurement) -> None:
    segments = scenario_engine.segment_distances
    assert len(segments) == 2
    assert segments[0] == pytest.approx(MILLI_DEGREE_M, rel=1e-6)
    assert segments[1] == pytest.approx(MILLI_DEGREE_M, rel=1e-6)
    assert scenario_engine.total_distance == pytest.approx(2 * MILLI_DEGREE_M, rel=1e-6)
    assert scenario_engine.generate_distance_markers() == ()


def test_scenario_toggle_loop_adds_closing_segment(scenario_engine: RouteMeasurement) -> None:
    open_total = scenario_engine.total_distance
    scenario_engine.toggle_loop()
    assert scenario_engine.loop_closed is True
    assert len(scenario_engine.segment_distances) == 3
    closing = scenario_engine.segment_distances[-1]
    assert closing == pytest.approx(2 * MILLI_DEGREE_M, rel=1e-6)
    assert scenario_engine.total_distance == pytest.approx(open_total + closing)


def test_scenario_add_point_reopens_loop(loop_engine: RouteMeasurement) -> None:
    loop_engine.add_route_point(RoutePoint(59.003, 18.0))
    assert loop_engine.loop_closed is False
    assert len(loop_engine.points) == 4
    assert len(loop_engine.segment_distances) == 3


def test_scenario_delete_point_opens_small_loop(loop_engine: RouteMeasurement) -> None:
    loop_engine.delete_point(1)
    assert len(loop_engine.points) == 2
    assert loop_engine.loop_closed is False
    assert len(loop_engine.segment_distances) == 1


@pytest.mark.parametrize("count", [0, 1, 2, 3, 5, 10])
def test_segment_count_invariant(engine: RouteMeasurement, count: int) -> None:
    engine.load_route(make_north_route(count))
    expected_open = max(count - 1, 0)
    assert len(engine.segment_distances) == expected_open
    engine.toggle_loop()
    expected = count if count >= 3 else expected_open
    assert len(engine.segment_distances) == expected
    assert engine.loop_closed is (count >= 3)


def test_toggle_loop_is_noop_below_three_points(engine: RouteMeasurement) -> None:
    engine.add_route_point((59.0, 18.0))
    engine.add_route_point((59.001, 18.0))
    before = (engine.points, engine.segment_distances, engine.loop_closed)
    engine.toggle_loop()
    assert (engine.points, engine.segment_distances, engine.loop_closed) == before


def test_toggle_loop_twice_restores_open_route(scenario_engine: RouteMeasurement) -> None:
    original = scenario_engine.segment_distances
    scenario_engine.toggle_loop()
    scenario_engine.toggle_loop()
    assert scenario_engine.loop_closed is False
    assert scenario_engine.segment_distances == pytest.approx(original)


def test_add_route_point_accepts_duplicates(engine: RouteMeasurement) -> None:
    engine.add_route_point((59.0, 18.0))
    engine.add_route_point((59.0, 18.0))
    assert len(engine.points) == 2
    assert engine.segment_distances == (0.0,)


def test_move_route_point(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.move_route_point(2, RoutePoint(59.004, 18.0))
    assert scenario_engine.points[2] == RoutePoint(59.004, 18.0)
    assert scenario_engine.segment_distances[1] == pytest.approx(3 * MILLI_DEGREE_M, rel=1e-6)


@pytest.mark.parametrize("index", [-1, 3, 100])
def test_move_route_point_ignores_stale_index(
    scenario_engine: RouteMeasurement, index: int
) -> None:
    before = scenario_engine.points
    scenario_engine.move_route_point(index, RoutePoint(0.0, 0.0))
    assert scenario_engine.points == before


def test_move_route_point_clears_edit_selection(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.edit_mode_enabled = True
    scenario_engine.editing_index = 1
    scenario_engine.move_route_point(1, RoutePoint(59.0015, 18.0))
    assert scenario_engine.editing_index is None
    assert scenario_engine.edit_mode_enabled is True


@pytest.mark.parametrize("index", [-1, 3, 42])
def test_delete_point_ignores_stale_index(
    scenario_engine: RouteMeasurement, index: int
) -> None:
    scenario_engine.delete_point(index)
    assert len(scenario_engine.points) == 3
    assert len(scenario_engine.segment_distances) == 2


def test_delete_point_keeps_loop_with_enough_points(engine: RouteMeasurement) -> None:
    engine.load_route(make_north_route(4), loop_closed=True)
    engine.delete_point(0)
    assert engine.loop_closed is True
    assert len(engine.segment_distances) == 3


def test_delete_point_shifts_editing_index(engine: RouteMeasurement) -> None:
    engine.load_route(make_north_route(5))
    engine.edit_mode_enabled = True
    engine.editing_index = 3
    engine.delete_point(1)
    assert engine.editing_index == 2
    engine.delete_point(4)  # stale after the first delete
    assert engine.editing_index == 2
    engine.delete_point(3)
    assert engine.editing_index == 2


def test_delete_point_clears_selected_index(engine: RouteMeasurement) -> None:
    engine.load_route(make_north_route(4))
    engine.edit_mode_enabled = True
    engine.editing_index = 2
    engine.delete_point(2)
    assert engine.editing_index is None


def test_delete_last_remaining_point_clears_selection(engine: RouteMeasurement) -> None:
    engine.load_route(make_north_route(1))
    engine.edit_mode_enabled = True
    engine.editing_index = 0
    engine.delete_point(0)
    assert engine.points == ()
    assert engine.editing_index is None


def test_add_point_between_splits_segment(scenario_engine: RouteMeasurement) -> None:
    total = scenario_engine.total_distance
    scenario_engine.edit_mode_enabled = True
    scenario_engine.add_point_between(0, 1, RoutePoint(59.0005, 18.0))
    assert scenario_engine.points[1] == RoutePoint(59.0005, 18.0)
    assert len(scenario_engine.segment_distances) == 3
    assert scenario_engine.total_distance == pytest.approx(total, rel=1e-9)
    assert scenario_engine.editing_index == 1


def test_add_point_between_closing_segment_appends(loop_engine: RouteMeasurement) -> None:
    loop_engine.add_point_between(2, 0, RoutePoint(59.001, 18.001))
    assert loop_engine.points[-1] == RoutePoint(59.001, 18.001)
    assert loop_engine.loop_closed is True
    assert len(loop_engine.segment_distances) == 4


def test_add_point_between_ignores_non_adjacent(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.add_point_between(0, 2, RoutePoint(1.0, 1.0))
    scenario_engine.add_point_between(5, 6, RoutePoint(1.0, 1.0))
    assert len(scenario_engine.points) == 3


def test_add_point_between_without_edit_mode_leaves_selection(
    scenario_engine: RouteMeasurement,
) -> None:
    scenario_engine.add_point_between(1, 2, RoutePoint(59.0015, 18.0))
    assert scenario_engine.editing_index is None


def test_clear_route(loop_engine: RouteMeasurement) -> None:
    loop_engine.distance_interval_km = 0.1
    assert loop_engine.distance_markers
    loop_engine.clear_route()
    assert loop_engine.points == ()
    assert loop_engine.segment_distances == ()
    assert loop_engine.distance_markers == ()
    assert loop_engine.loop_closed is False
    assert loop_engine.show_distance_markers is False


def test_load_route_replaces_points(scenario_engine: RouteMeasurement) -> None:
    new_points = make_north_route(4, lat=60.0)
    scenario_engine.load_route(new_points, loop_closed=True)
    assert list(scenario_engine.points) == new_points
    assert scenario_engine.loop_closed is True
    assert len(scenario_engine.segment_distances) == 4


def test_load_route_clamps_loop_below_three_points(engine: RouteMeasurement) -> None:
    engine.load_route(make_north_route(2), loop_closed=True)
    assert engine.loop_closed is False
    assert len(engine.segment_distances) == 1


def test_load_route_accepts_plain_pairs(engine: RouteMeasurement) -> None:
    engine.load_route([(59.0, 18.0), [59.001, 18.0]])
    assert engine.points == (RoutePoint(59.0, 18.0), RoutePoint(59.001, 18.0))


def test_undo_last_point(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.undo_last_point()
    assert len(scenario_engine.points) == 2
    assert len(scenario_engine.segment_distances) == 1


def test_undo_on_empty_route_is_noop(engine: RouteMeasurement) -> None:
    engine.undo_last_point()
    assert engine.points == ()


def test_undo_opens_loop_below_three_points(loop_engine: RouteMeasurement) -> None:
    loop_engine.undo_last_point()
    assert loop_engine.loop_closed is False
    assert len(loop_engine.segment_distances) == 1


def test_undo_clears_selection_of_removed_point(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.edit_mode_enabled = True
    scenario_engine.editing_index = 2
    scenario_engine.undo_last_point()
    assert scenario_engine.editing_index is None


def test_calculate_distance_to_point(scenario_engine: RouteMeasurement) -> None:
    assert scenario_engine.calculate_distance_to_point(0) == 0.0
    assert scenario_engine.calculate_distance_to_point(1) == pytest.approx(MILLI_DEGREE_M, rel=1e-6)
    assert scenario_engine.calculate_distance_to_point(2) == pytest.approx(
        2 * MILLI_DEGREE_M, rel=1e-6
    )


@pytest.mark.parametrize("index", [-1, 3, 1000])
def test_calculate_distance_to_point_out_of_range(
    loop_engine: RouteMeasurement, index: int
) -> None:
    assert loop_engine.calculate_distance_to_point(index) == 0.0


def test_total_distance_matches_segments(loop_engine: RouteMeasurement) -> None:
    assert loop_engine.total_distance == pytest.approx(sum(loop_engine.segment_distances))
    assert loop_engine.total_distance == pytest.approx(
        path_length(loop_engine.points, loop_closed=True)
    )


@pytest.mark.parametrize("count", [0, 1])
def test_generate_markers_needs_two_points(engine: RouteMeasurement, count: int) -> None:
    engine.load_route(make_north_route(count))
    assert engine.generate_distance_markers() == ()
    assert engine.distance_markers == ()


def test_generate_markers_interpolates_along_segment(engine: RouteMeasurement) -> None:
    engine.load_route(make_points((59.0, 18.0), (59.1, 18.0)))
    markers = engine.generate_distance_markers()
    segment = engine.segment_distances[0]
    assert len(markers) == int(segment // 1000)
    assert markers[0].lat == pytest.approx(59.0 + 0.1 * 1000.0 / segment)
    assert markers[0].lon == pytest.approx(18.0)
    assert all(a.lat < b.lat for a, b in zip(markers, markers[1:]))


def test_generate_markers_cover_closing_segment(engine: RouteMeasurement) -> None:
    engine.load_route(make_points((59.0, 18.0), (59.1, 18.0), (59.05, 18.1)))
    engine.distance_interval_km = 5.0
    open_markers = engine.generate_distance_markers()
    engine.toggle_loop()
    closed_markers = engine.generate_distance_markers()
    assert len(closed_markers) > len(open_markers)
    assert len(closed_markers) == int(engine.total_distance // 5000)


def test_generate_markers_skip_zero_length_segments(engine: RouteMeasurement) -> None:
    engine.load_route(make_points((59.0, 18.0), (59.0, 18.0), (59.01, 18.0)))
    markers = engine.generate_distance_markers()
    second = engine.segment_distances[1]
    assert engine.segment_distances[0] == 0.0
    assert len(markers) == 1
    assert markers[0].lat == pytest.approx(59.0 + 0.01 * 1000.0 / second)


def test_marker_count_non_increasing_with_interval(engine: RouteMeasurement) -> None:
    engine.load_route(make_points((59.0, 18.0), (59.1, 18.0), (59.05, 18.1)), loop_closed=True)
    counts = []
    for interval in (0.25, 0.5, 1.0, 2.0, 5.0, 50.0):
        engine.distance_interval_km = interval
        counts.append(len(engine.generate_distance_markers()))
    assert counts == sorted(counts, reverse=True)
    assert counts[-1] == 0


def test_markers_refresh_after_mutation(engine: RouteMeasurement) -> None:
    engine.load_route(make_points((59.0, 18.0), (59.02, 18.0)))
    assert len(engine.distance_markers) == 2
    engine.add_route_point((59.04, 18.0))
    assert len(engine.distance_markers) == 4


def test_hidden_markers_are_not_maintained(engine: RouteMeasurement) -> None:
    engine.show_distance_markers = False
    engine.load_route(make_points((59.0, 18.0), (59.02, 18.0)))
    assert engine.distance_markers == ()
    assert len(engine.generate_distance_markers()) == 2
    assert engine.show_distance_markers is True


def test_generate_markers_after_clear_keeps_them_updated(
    loop_engine: RouteMeasurement,
) -> None:
    loop_engine.clear_route()
    loop_engine.add_route_point((59.0, 18.0))
    loop_engine.add_route_point((59.02, 18.0))
    assert loop_engine.distance_markers == ()

    assert len(loop_engine.generate_distance_markers()) == 2
    assert loop_engine.show_distance_markers is True

    loop_engine.add_route_point((59.04, 18.0))
    assert len(loop_engine.distance_markers) == 4


def test_generate_markers_on_short_route_leaves_flag(engine: RouteMeasurement) -> None:
    engine.show_distance_markers = False
    engine.add_route_point((59.0, 18.0))
    assert engine.generate_distance_markers() == ()
    assert engine.show_distance_markers is False


@pytest.mark.parametrize("value", [0, -1.0, float("nan"), float("inf")])
def test_distance_interval_must_be_positive(engine: RouteMeasurement, value: float) -> None:
    with pytest.raises(ValueError):
        engine.distance_interval_km = value
    assert engine.distance_interval_km == 1.0


def test_dynamic_point_size_defaults(engine: RouteMeasurement) -> None:
    assert engine.calculate_dynamic_point_size() == 18.0
    engine.add_route_point((59.0, 18.0))
    assert engine.calculate_dynamic_point_size() == 18.0
    engine.add_route_point((59.0, 18.0))
    assert engine.calculate_dynamic_point_size() == 10.0


@pytest.mark.parametrize(
    "step_deg,expected",
    [(0.0001, 10.0), (0.0005, 12.0), (0.001, 14.0), (0.003, 16.0), (0.006, 18.0), (1.0, 20.0)],
)
def test_dynamic_point_size_steps(
    engine: RouteMeasurement, step_deg: float, expected: float
) -> None:
    engine.load_route(make_north_route(4, step_deg=step_deg))
    assert engine.calculate_dynamic_point_size() == expected


def test_dynamic_point_size_monotonic_and_bounded(engine: RouteMeasurement) -> None:
    sizes = []
    for step in (0.00001, 0.0002, 0.0008, 0.002, 0.005, 0.02, 0.2, 1.0):
        engine.load_route(make_north_route(3, step_deg=step))
        sizes.append(engine.calculate_dynamic_point_size())
    assert sizes == sorted(sizes)
    assert max(sizes) <= 20.0


def test_disabling_edit_mode_clears_selection(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.edit_mode_enabled = True
    scenario_engine.editing_index = 1
    assert scenario_engine.editing_index == 1
    scenario_engine.edit_mode_enabled = False
    assert scenario_engine.editing_index is None


def test_editing_index_requires_edit_mode(scenario_engine: RouteMeasurement) -> None:
    scenario_engine.editing_index = 1
    assert scenario_engine.editing_index is None
    scenario_engine.edit_mode_enabled = True
    scenario_engine.editing_index = 7
    assert scenario_engine.editing_index is None


def test_measure_mode_flag(engine: RouteMeasurement) -> None:
    engine.measure_enabled = True
    assert engine.measure_enabled is True
    engine.add_route_point((59.0, 18.0))
    assert len(engine.points) == 1


def test_snapshot_and_restore(loop_engine: RouteMeasurement) -> None:
    snapshot = loop_engine.snapshot()
    loop_engine.add_route_point((59.01, 18.0))
    loop_engine.restore(snapshot)
    assert loop_engine.points == snapshot.points
    assert loop_engine.loop_closed is True
    assert len(loop_engine.segment_distances) == 3


def test_bounds_are_padded(scenario_engine: RouteMeasurement) -> None:
    bounds = scenario_engine.bounds()
    assert bounds is not None
    assert bounds.south == pytest.approx(59.0 - 0.0002)
    assert bounds.north == pytest.approx(59.002 + 0.0002)
    assert bounds.west == pytest.approx(18.0)
    assert RouteMeasurement().bounds() is None


def test_subscribers_are_notified(engine: RouteMeasurement) -> None:
    seen = []
    unsubscribe = engine.subscribe(lambda e: seen.append(len(e.points)))
    engine.add_route_point((59.0, 18.0))
    engine.add_route_point((59.001, 18.0))
    unsubscribe()
    engine.add_route_point((59.002, 18.0))
    assert seen == [1, 2]


def test_injected_distance_function_is_used() -> None:
    calls = []

    def flat_distance(a: RoutePoint, b: RoutePoint) -> float:
        calls.append((a, b))
        return 500.0

    engine = RouteMeasurement(distance_fn=flat_distance)
    engine.load_route(make_north_route(3), loop_closed=True)
    assert engine.segment_distances == (500.0, 500.0, 500.0)
    assert len(engine.distance_markers) == 1
    assert engine.calculate_dynamic_point_size() == 16.0
    assert calls


def test_large_route_stays_consistent(engine: RouteMeasurement) -> None:
    points = make_north_route(5000, step_deg=0.0001)
    engine.load_route(points, loop_closed=True)
    assert len(engine.segment_distances) == 5000
    assert engine.segment_distances[0] == pytest.approx(
        distance_between(points[0], points[1])
    )
    assert len(engine.distance_markers) == int(engine.total_distance // 1000)
