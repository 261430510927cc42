"""Central configuration for the gravel route planner.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Most values can be overridden through environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------
# Spacing between distance markers along the route.
DEFAULT_DISTANCE_INTERVAL_KM = _env_float("GRAVEL_DISTANCE_INTERVAL_KM", 1.0)
if DEFAULT_DISTANCE_INTERVAL_KM <= 0:
    DEFAULT_DISTANCE_INTERVAL_KM = 1.0

# Show distance markers for a fresh session.
DEFAULT_SHOW_DISTANCE_MARKERS = _env_bool("GRAVEL_SHOW_DISTANCE_MARKERS", True)

# Marker size used when point density is undefined (0 or 1 points).
DEFAULT_POINT_SIZE = 18.0

# Step curve mapping average segment length (metres) to marker size. Checked
# top to bottom; the first threshold exceeded wins.
POINT_SIZE_STEPS = (
    (1000.0, 20.0),
    (500.0, 18.0),
    (200.0, 16.0),
    (100.0, 14.0),
    (50.0, 12.0),
)
MIN_POINT_SIZE = 10.0

# Padding applied around route bounds when centring a map.
ROUTE_BOUNDS_PADDING_RATIO = 0.1

# Depth of the caller-owned undo history.
UNDO_HISTORY_DEPTH = _env_int("GRAVEL_UNDO_HISTORY_DEPTH", 50)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------
# Name written into exported files.
EXPORT_ROUTE_NAME = "Gravel route"
EXPORT_CREATOR = "gravel_route"

# Decimate imported GPX tracks above this many points.
GPX_DECIMATION_THRESHOLD = _env_int("GPX_DECIMATION_THRESHOLD", 2000)
# Minimum spacing (metres) kept between consecutive decimated points.
GPX_DECIMATION_MIN_SPACING_M = _env_float("GPX_DECIMATION_MIN_SPACING_M", 15.0)


# ---------------------------------------------------------------------------
# Local route storage
# ---------------------------------------------------------------------------
# Directory (absolute or relative) holding the saved route file.
ROUTE_STORE_DIR = os.getenv("GRAVEL_ROUTE_STORE_DIR", "saved_routes")
ROUTE_STORE_FILENAME = "routes.json"

# Oldest routes are evicted once this many are stored.
MAX_SAVED_ROUTES = _env_int("GRAVEL_MAX_SAVED_ROUTES", 50)


# ---------------------------------------------------------------------------
# Overpass gravel overlay
# ---------------------------------------------------------------------------
OVERPASS_URL = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
OVERPASS_USER_AGENT = "Gravel First"
OVERPASS_PROJECT_URL = "https://github.com/Aoli/gravel_biking"

# Request timeout in seconds.
OVERPASS_TIMEOUT = _env_int("OVERPASS_TIMEOUT", 30)

# Pause (seconds) after an HTTP 429 before another request is attempted.
OVERPASS_RATE_LIMIT_COOLDOWN_SECONDS = _env_int(
    "OVERPASS_RATE_LIMIT_COOLDOWN_SECONDS", 60
)

# In-memory cache of fetched overlay tiles.
OVERPASS_CACHE_SIZE = _env_int("OVERPASS_CACHE_SIZE", 32)
OVERPASS_CACHE_TTL_SECONDS = _env_int("OVERPASS_CACHE_TTL_SECONDS", 600)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4
