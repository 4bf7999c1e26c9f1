"""
Sentinel-2 before / on / after image selection and export

Picks the best Sentinel-2 image before, on and after a target date over a
fixed-area square region, scores candidates by s2cloudless cloud probability,
renders them to 8-bit RGB and submits cloud-optimized GeoTIFF exports through
Google Earth Engine.
"""

__version__ = "1.0.0"

from .config import PipelineConfig, VisParams, build_config
from .region import RegionGeometry, build_region
from .quality_scoring import (
    Candidate,
    Thresholds,
    quality_tier,
    select_min_cloud_with_time_pref,
    select_on_day_exact_or_nearest,
)

__all__ = [
    'PipelineConfig',
    'VisParams',
    'build_config',
    'RegionGeometry',
    'build_region',
    'Candidate',
    'Thresholds',
    'quality_tier',
    'select_min_cloud_with_time_pref',
    'select_on_day_exact_or_nearest',
]
