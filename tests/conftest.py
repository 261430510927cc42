"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable routes, engines and stores so
the individual test modules stay short.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from gravel_route.measurement import RouteMeasurement
from gravel_route.models import RoutePoint
from gravel_route.route_store import RouteStore


# --- Factory helpers -------------------------------------------------
def make_points(*pairs):
    return [RoutePoint(lat, lon) for lat, lon in pairs]


def make_north_route(count, step_deg=0.001, lat=59.0, lon=18.0):
    """Straight route heading north with ``step_deg`` between points."""
    return [RoutePoint(lat + idx * step_deg, lon) for idx in range(count)]


# Haversine length of 0.001 degrees of latitude on a 6 371 km sphere.
MILLI_DEGREE_M = 111.19492664455873


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def scenario_points():
    return make_points((59.0, 18.0), (59.001, 18.0), (59.002, 18.0))


@pytest.fixture
def engine():
    return RouteMeasurement()


@pytest.fixture
def scenario_engine(scenario_points):
    measurement = RouteMeasurement()
    for point in scenario_points:
        measurement.add_route_point(point)
    return measurement


@pytest.fixture
def loop_engine(scenario_engine):
    scenario_engine.toggle_loop()
    assert scenario_engine.loop_closed
    return scenario_engine


@pytest.fixture
def store(tmp_path):
    route_store = RouteStore(tmp_path / "routes", max_routes=3)
    route_store.initialize()
    yield route_store
    route_store.close()
