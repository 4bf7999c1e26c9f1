"""
Utility functions for selection windows, acquisition dates and UTM zones.
"""
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple, Optional

BEFORE = "before"
ON = "on"
AFTER = "after"
ROLES = (BEFORE, ON, AFTER)

NODATA_TAG = "NODATA"


class DateWindow(NamedTuple):
    """Half-open [start, end) interval of UTC calendar dates."""
    role: str
    start: date
    end: date
    prefer_latest: bool = False

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    def contains(self, when: datetime) -> bool:
        return self.start <= when.astimezone(timezone.utc).date() < self.end

    def __str__(self):
        return f"{self.role} [{self.start_iso}, {self.end_iso})"


def before_window(target: date, lookback_days: int) -> DateWindow:
    """Strictly before the target date; ties go to the latest image."""
    return DateWindow(BEFORE, target - timedelta(days=lookback_days), target, prefer_latest=True)


def after_window(target: date, forward_days: int) -> DateWindow:
    """Strictly after the target date; ties go to the earliest image."""
    return DateWindow(AFTER, target + timedelta(days=1), target + timedelta(days=forward_days + 1))


def exact_day_window(target: date) -> DateWindow:
    return DateWindow(ON, target, target + timedelta(days=1))


def nearest_window(target: date, nearest_days: int) -> DateWindow:
    return DateWindow(ON, target - timedelta(days=nearest_days), target + timedelta(days=nearest_days + 1))


def selection_windows(cfg) -> dict:
    """
    Build the before / on / after windows for a PipelineConfig.

    The on entry is the widest window (the nearest-day fallback) so one
    catalog query covers both the exact-day and nearest pools.
    """
    return {
        BEFORE: before_window(cfg.target_date, cfg.pre_lookback_days),
        ON: nearest_window(cfg.target_date, cfg.on_fallback_nearest_days),
        AFTER: after_window(cfg.target_date, cfg.post_forward_days),
    }


def time_start_to_datetime(time_start_ms) -> datetime:
    """Convert an Earth Engine ``system:time_start`` (epoch ms) to an aware UTC datetime."""
    return datetime.fromtimestamp(float(time_start_ms) / 1000.0, tz=timezone.utc)


def day_start(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def abs_diff_days(when: datetime, target: date) -> float:
    """Fractional absolute distance in days between an acquisition time and target-day midnight UTC."""
    return abs((when - day_start(target)).total_seconds()) / 86400.0


def date_tag(when: Optional[datetime]) -> str:
    """YYYYMMDD tag used in export names; NODATA for an empty window."""
    if when is None:
        return NODATA_TAG
    return when.astimezone(timezone.utc).strftime("%Y%m%d")


def lonlat_to_utm_zone(lon: float, lat: float):
    """Calculate UTM zone number and hemisphere from longitude/latitude."""
    zone = int((lon + 180) / 6) + 1
    north = lat >= 0
    return zone, north


def utm_epsg_for(lon: float, lat: float) -> str:
    """WGS84 / UTM EPSG code covering a point, e.g. EPSG:32644."""
    zone, north = lonlat_to_utm_zone(lon, lat)
    zone = min(max(zone, 1), 60)
    return f"EPSG:{32600 + zone if north else 32700 + zone}"
