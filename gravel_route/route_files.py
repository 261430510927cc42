"""Read and write route files, dispatching on the file extension."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from .errors import EmptyRouteError, RouteFormatError
from .geojson_io import decode_geojson, encode_geojson
from .gpx_io import decode_gpx, encode_gpx
from .models import ImportedRoute, RouteSnapshot

_LOG = logging.getLogger(__name__)

PathLike = Union[str, Path]

GPX_SUFFIXES = {".gpx"}
GEOJSON_SUFFIXES = {".geojson", ".json"}


def load_route_file(path: PathLike) -> ImportedRoute:
    """Decode a ``.gpx`` or ``.geojson``/``.json`` file.

    Raises:
        RouteFormatError: For unknown extensions, empty or malformed files.
        FileNotFoundError: If ``path`` does not exist.
    """

    file_path = Path(path)
    suffix = file_path.suffix.lower()
    if suffix not in GPX_SUFFIXES | GEOJSON_SUFFIXES:
        raise RouteFormatError(f"Unsupported route file type '{suffix}'")
    data = file_path.read_bytes()
    if not data:
        raise RouteFormatError(f"Selected file is empty: {file_path}")
    imported = decode_gpx(data) if suffix in GPX_SUFFIXES else decode_geojson(data)
    _LOG.info(
        "Imported %d points from %s (loop=%s)",
        len(imported.points),
        file_path,
        imported.loop_closed,
    )
    return imported


def save_route_file(path: PathLike, snapshot: RouteSnapshot, *, name: str | None = None) -> Path:
    """Encode ``snapshot`` according to the extension of ``path`` and write it."""

    if not snapshot.points:
        raise EmptyRouteError("No route to export")
    file_path = Path(path)
    suffix = file_path.suffix.lower()
    kwargs = {"name": name} if name else {}
    if suffix in GPX_SUFFIXES:
        content = encode_gpx(snapshot.points, snapshot.loop_closed, **kwargs)
    elif suffix in GEOJSON_SUFFIXES:
        content = encode_geojson(snapshot.points, snapshot.loop_closed, **kwargs)
    else:
        raise RouteFormatError(f"Unsupported route file type '{suffix}'")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as handle:
        handle.write(content)
    _LOG.info("Route written to %s", file_path)
    return file_path


__all__ = ["load_route_file", "save_route_file"]
