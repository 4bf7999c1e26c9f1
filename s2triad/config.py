"""
Configuration constants and default values.
"""
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Optional, Tuple

# Earth Engine authentication
# Service account key file path (if using service account authentication)
# Set to None to use user authentication, or provide a path to a service account JSON key file
# Common locations checked (in order):
# 1. Saved settings (~/.s2triad/settings.json)
# 2. GEE_SERVICE_ACCOUNT_KEY environment variable
# 3. "gee_service_account.json" in project root
# 4. "keys/gee_service_account.json" in project root
GEE_SERVICE_ACCOUNT_KEY = None
GEE_PROJECT = None  # Extracted from the key file if not set

# Earth Engine catalog
S2_SR_COLLECTION = "COPERNICUS/S2_SR_HARMONIZED"
S2_CLOUDPROB_COLLECTION = "COPERNICUS/S2_CLOUD_PROBABILITY"
CLOUDPROB_PROPERTY = "cloudprob"  # property the saveFirst join stores the match under

# Region of interest (Kandy, Sri Lanka)
DEFAULT_LAT = 7.2699
DEFAULT_LON = 80.5938
SQUARE_AREA_KM2 = 10.0
EXPORT_BUFFER_METERS = 30.0  # inset export region to reduce tile-edge artifacts

# Target date and windows
DEFAULT_TARGET_DATE = "2025-11-30"
PRE_LOOKBACK_DAYS = 30
POST_FORWARD_DAYS = 10
ON_FALLBACK_NEAREST_DAYS = 3  # if no exact image on target date, nearest within +/-N days

# Quality thresholds (empirical, treat as tuning knobs)
CLOUD_PROB_THRESH = 40      # per-pixel probability above which a pixel counts as cloudy
MAX_CLOUD_FRAC = 0.02       # allow up to 2% cloudy pixels in ROI
MIN_VALID_FRAC = 0.995      # require 99.5% valid coverage
CLOUD_TIE_TOLERANCE = 3.0   # mean cloud prob tie tolerance

# Metric reductions
CLOUD_METRIC_SCALE = 20  # S2 cloud probability native resolution
VALID_METRIC_SCALE = 10
VALID_REFERENCE_BAND = "B2"
MAX_PIXELS = 1e13

# Worst-case values substituted when a reduction yields nothing
DEFAULT_ROI_CLOUD = 100.0
DEFAULT_CLOUD_FRAC = 1.0
DEFAULT_VALID_FRAC = 0.0

# Export settings
OUT_FOLDER = "SL_pairs"
OUT_SCALE = 10
OUT_CRS = "EPSG:32644"  # UTM zone 44N
THUMB_DIMENSIONS = 512

# Visualization stretch for SR bands
RGB_BANDS = ("B4", "B3", "B2")
VIS_MIN = 0
VIS_MAX = 3000
VIS_GAMMA = 1.1

# Thumbnail download
DOWNLOAD_RETRIES = 3
DOWNLOAD_RETRY_DELAY = 2  # seconds, with exponential backoff

# Export task polling (only used with --wait)
EXPORT_POLL_INTERVAL = 8
EXPORT_POLL_TIMEOUT = 60 * 30

MANIFEST_CSV = "s2triad_manifest.csv"
LOG_DIR = "logs"


@dataclass(frozen=True)
class VisParams:
    """Linear stretch used to render SR bands to 8-bit RGB."""
    bands: Tuple[str, str, str] = RGB_BANDS
    min: float = VIS_MIN
    max: float = VIS_MAX
    gamma: float = VIS_GAMMA

    def as_dict(self) -> dict:
        return {"bands": list(self.bands), "min": self.min, "max": self.max, "gamma": self.gamma}


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable run configuration handed to every pipeline stage."""
    lat: float = DEFAULT_LAT
    lon: float = DEFAULT_LON
    target_date: date = date.fromisoformat(DEFAULT_TARGET_DATE)
    pre_lookback_days: int = PRE_LOOKBACK_DAYS
    post_forward_days: int = POST_FORWARD_DAYS
    on_fallback_nearest_days: int = ON_FALLBACK_NEAREST_DAYS
    cloud_prob_thresh: float = CLOUD_PROB_THRESH
    max_cloud_frac: float = MAX_CLOUD_FRAC
    min_valid_frac: float = MIN_VALID_FRAC
    cloud_tie_tolerance: float = CLOUD_TIE_TOLERANCE
    square_area_km2: float = SQUARE_AREA_KM2
    export_buffer_m: float = EXPORT_BUFFER_METERS
    out_folder: str = OUT_FOLDER
    out_scale: float = OUT_SCALE
    out_crs: Optional[str] = OUT_CRS  # None = UTM zone of the center point
    max_pixels: float = MAX_PIXELS
    cloud_metric_scale: float = CLOUD_METRIC_SCALE
    valid_metric_scale: float = VALID_METRIC_SCALE
    thumb_dimensions: int = THUMB_DIMENSIONS
    vis: VisParams = field(default_factory=VisParams)

    @property
    def square_area_m2(self) -> float:
        return self.square_area_km2 * 1e6


def _coerce(name: str, value):
    if name == "target_date" and isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Invalid target_date '{value}': expected YYYY-MM-DD")
    if name == "out_crs" and isinstance(value, str) and value.lower() == "auto":
        return None
    if name == "vis" and isinstance(value, dict):
        vis = dict(value)
        if "bands" in vis:
            vis["bands"] = tuple(vis["bands"])
        try:
            return VisParams(**vis)
        except TypeError as e:
            raise ValueError(f"Invalid vis settings {value!r}: {e}")
    return value


def build_config(base: Optional[PipelineConfig] = None, overrides: Optional[dict] = None) -> PipelineConfig:
    """
    Apply a dict of overrides (settings file or CLI) on top of a base config.

    Keys with a None value are ignored so unset CLI flags keep the base value.
    Unknown keys raise ValueError.
    """
    base = base or PipelineConfig()
    if not overrides:
        return base
    known = {f.name for f in fields(PipelineConfig)}
    changes = {}
    for name, value in overrides.items():
        if value is None:
            continue
        if name not in known:
            raise ValueError(f"Unknown configuration key: {name}")
        changes[name] = _coerce(name, value)
    if changes:
        logging.debug("Configuration overrides: %s", changes)
    return replace(base, **changes)
