"""Command-line entry point for measuring, converting and overlay download.

Usage examples:

    # Segment and total distances with 5 km markers
    python -m gravel_route measure ride.gpx --interval-km 5

    # Convert between formats, keeping loop state
    python -m gravel_route convert ride.gpx ride.geojson

    # Download gravel ways for a bounding box
    python -m gravel_route overlay --bbox 59.30 18.00 59.35 18.10 --output gravel.geojson
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from .errors import EmptyRouteError, OverpassAPIError, RouteFormatError
from .formatting import format_distance, format_segment_labels
from .measurement import RouteMeasurement
from .models import Bounds
from .overpass import GravelOverlayFetcher, polylines_to_geojson
from .route_files import load_route_file, save_route_file

_LOG = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _load_engine(path: Path, interval_km: Optional[float] = None) -> RouteMeasurement:
    imported = load_route_file(path)
    engine = RouteMeasurement()
    if interval_km is not None:
        engine.distance_interval_km = interval_km
    engine.load_route(imported.points, loop_closed=imported.loop_closed)
    return engine


def _cmd_measure(args: argparse.Namespace) -> int:
    engine = _load_engine(args.file, args.interval_km)
    labels = format_segment_labels(engine.segment_distances)
    for index, label in enumerate(labels, start=1):
        print(f"{index:>4}  {label}")
    markers = engine.generate_distance_markers()
    print(f"Points:  {len(engine)}")
    print(f"Loop:    {'closed' if engine.loop_closed else 'open'}")
    print(f"Total:   {format_distance(engine.total_distance)}")
    print(f"Markers: {len(markers)} (every {engine.distance_interval_km:g} km)")
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    imported = load_route_file(args.source)
    engine = RouteMeasurement(show_distance_markers=False)
    engine.load_route(imported.points, loop_closed=imported.loop_closed)
    save_route_file(args.destination, engine.snapshot(), name=imported.name)
    _LOG.info(
        "Converted %s -> %s (%d points, loop=%s)",
        args.source,
        args.destination,
        len(engine),
        engine.loop_closed,
    )
    return 0


def _cmd_overlay(args: argparse.Namespace) -> int:
    south, west, north, east = args.bbox
    bounds = Bounds(south=south, west=west, north=north, east=east)
    polylines = GravelOverlayFetcher().fetch_polylines(bounds, app_version=args.app_version)
    if polylines is None:
        raise OverpassAPIError("Gravel overlay could not be fetched")
    content = json.dumps(polylines_to_geojson(polylines), indent=2)
    if args.output is None:
        print(content)
        return 0
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as handle:
        handle.write(content)
    _LOG.info("Wrote %d gravel ways to %s", len(polylines), args.output)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gravel_route",
        description="Plan and measure gravel bike routes",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    measure = sub.add_parser("measure", help="Print segment and total distances")
    measure.add_argument("file", type=Path, help="GPX or GeoJSON route file")
    measure.add_argument(
        "--interval-km",
        type=float,
        help="Distance marker spacing in kilometres (default: 1)",
    )
    measure.set_defaults(handler=_cmd_measure)

    convert = sub.add_parser("convert", help="Convert between GPX and GeoJSON")
    convert.add_argument("source", type=Path)
    convert.add_argument("destination", type=Path)
    convert.set_defaults(handler=_cmd_convert)

    overlay = sub.add_parser("overlay", help="Download gravel ways as GeoJSON")
    overlay.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("SOUTH", "WEST", "NORTH", "EAST"),
        required=True,
    )
    overlay.add_argument("--output", type=Path, help="Write GeoJSON here instead of stdout")
    overlay.add_argument("--app-version", default="", help="Appended to the User-Agent")
    overlay.set_defaults(handler=_cmd_overlay)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)
    try:
        return args.handler(args)
    except (RouteFormatError, EmptyRouteError, OverpassAPIError, FileNotFoundError) as exc:
        logging.error("%s", exc)
        return 1
    except ValueError as exc:
        logging.error("Invalid argument: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
