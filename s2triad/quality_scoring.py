"""
Quality tiers and selection policies for scored Sentinel-2 candidates.

Everything here is plain Python over ``Candidate`` records fetched from
Earth Engine, so the decision logic runs and is tested locally.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, NamedTuple, Optional, Sequence

from .config import DEFAULT_ROI_CLOUD, DEFAULT_CLOUD_FRAC, DEFAULT_VALID_FRAC
from .utils import abs_diff_days, exact_day_window, nearest_window, time_start_to_datetime

TIER_STRICT = "strict"
TIER_VALID = "valid-only"
TIER_ALL = "unfiltered"


def _number(value, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Candidate:
    """One scored observation over the export region."""
    image_id: str
    acquired: datetime
    mean_cloud_prob: float = DEFAULT_ROI_CLOUD
    cloud_fraction: float = DEFAULT_CLOUD_FRAC
    valid_fraction: float = DEFAULT_VALID_FRAC
    scene_cloud_pct: Optional[float] = None

    @property
    def acquired_date(self) -> date:
        return self.acquired.date()

    @classmethod
    def from_properties(cls, props: dict) -> "Candidate":
        """Build from fetched feature properties; missing metrics get worst-case values."""
        scene = props.get('CLOUDY_PIXEL_PERCENTAGE')
        return cls(
            image_id=str(props.get('id')),
            acquired=time_start_to_datetime(props['time_start']),
            mean_cloud_prob=_number(props.get('roiCloud'), DEFAULT_ROI_CLOUD),
            cloud_fraction=_number(props.get('cloudFrac'), DEFAULT_CLOUD_FRAC),
            valid_fraction=_number(props.get('validFrac'), DEFAULT_VALID_FRAC),
            scene_cloud_pct=None if scene is None else float(scene),
        )


class Thresholds(NamedTuple):
    min_valid_frac: float
    max_cloud_frac: float

    @classmethod
    def from_config(cls, cfg) -> "Thresholds":
        return cls(cfg.min_valid_frac, cfg.max_cloud_frac)


def strict_tier(candidates: Sequence[Candidate], th: Thresholds) -> List[Candidate]:
    return [c for c in candidates
            if c.valid_fraction >= th.min_valid_frac and c.cloud_fraction <= th.max_cloud_frac]


def valid_tier(candidates: Sequence[Candidate], th: Thresholds) -> List[Candidate]:
    return [c for c in candidates if c.valid_fraction >= th.min_valid_frac]


def quality_tier(candidates: Sequence[Candidate], th: Thresholds):
    """
    Strict quality -> valid-only -> everything; the first non-empty tier wins.

    Returns (tier_name, candidates). An empty input returns the empty
    unfiltered tier.
    """
    strict = strict_tier(candidates, th)
    if strict:
        return TIER_STRICT, strict
    valid = valid_tier(candidates, th)
    if valid:
        return TIER_VALID, valid
    return TIER_ALL, list(candidates)


def near_tie_band(candidates: Sequence[Candidate], tolerance: float) -> List[Candidate]:
    """Candidates whose mean cloud probability is within tolerance of the minimum."""
    if not candidates:
        return []
    min_cloud = min(c.mean_cloud_prob for c in candidates)
    return [c for c in candidates if c.mean_cloud_prob <= min_cloud + tolerance]


def select_min_cloud_with_time_pref(candidates: Sequence[Candidate], th: Thresholds,
                                    tolerance: float, prefer_latest: bool) -> Optional[Candidate]:
    """
    Pick the least cloudy candidate of a window, breaking near-ties by time.

    prefer_latest=True keeps the latest of the near-tie band (before window),
    False the earliest (after window). Returns None for an empty window.
    """
    if not candidates:
        return None
    tier, pool = quality_tier(candidates, th)
    best = sorted(near_tie_band(pool, tolerance), key=lambda c: c.acquired, reverse=prefer_latest)
    chosen = best[0]
    logging.debug("Tier %s: %d of %d candidates, %d in near-tie band, chose %s",
                  tier, len(pool), len(candidates), len(best), chosen.image_id)
    return chosen


def nearest_sort_key(candidate: Candidate, target: date) -> float:
    """Day distance dominates; mean cloud probability breaks ties at equal distance."""
    return abs_diff_days(candidate.acquired, target) * 1000 + candidate.mean_cloud_prob


class OnDaySelection(NamedTuple):
    candidate: Optional[Candidate]
    used_exact_on_day: bool


def select_on_day_exact_or_nearest(candidates: Sequence[Candidate], target: date,
                                   nearest_days: int, th: Thresholds) -> OnDaySelection:
    """
    Exact target-day image if one exists, otherwise the nearest within +/- nearest_days.

    Both pools pass through the quality tiers independently. Exact-day
    precedence is decided on the pool before tier filtering.
    """
    exact_day = exact_day_window(target)
    nearest = nearest_window(target, nearest_days)
    exact_all = [c for c in candidates if exact_day.contains(c.acquired)]
    nearest_all = [c for c in candidates if nearest.contains(c.acquired)]

    if exact_all:
        _, exact = quality_tier(exact_all, th)
        return OnDaySelection(min(exact, key=lambda c: c.mean_cloud_prob), True)

    if not nearest_all:
        return OnDaySelection(None, False)

    _, pool = quality_tier(nearest_all, th)
    return OnDaySelection(min(pool, key=lambda c: nearest_sort_key(c, target)), False)
