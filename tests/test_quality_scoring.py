from datetime import date, datetime, timedelta, timezone

import pytest

from s2triad import Candidate, Thresholds, quality_tier
from s2triad import select_min_cloud_with_time_pref, select_on_day_exact_or_nearest
from s2triad.quality_scoring import (
    TIER_ALL, TIER_STRICT, TIER_VALID,
    near_tie_band, nearest_sort_key, strict_tier, valid_tier,
)

TARGET = date(2025, 11, 30)
TH = Thresholds(min_valid_frac=0.995, max_cloud_frac=0.02)


def cand(name, days, cloud, cloud_frac=0.0, valid=1.0, hour=5):
    acquired = datetime(2025, 11, 30, hour, tzinfo=timezone.utc) + timedelta(days=days)
    return Candidate(name, acquired, cloud, cloud_frac, valid)


def test_from_properties_defaults_missing_metrics_to_worst_case():
    c = Candidate.from_properties({"id": "20251130T050659_T44NMM", "time_start": 1764479219000})
    assert c.image_id == "20251130T050659_T44NMM"
    assert c.mean_cloud_prob == 100
    assert c.cloud_fraction == 1
    assert c.valid_fraction == 0
    assert c.scene_cloud_pct is None
    assert c.acquired.tzinfo is not None


def test_from_properties_keeps_zero_metrics():
    c = Candidate.from_properties({
        "id": "a", "time_start": 1764479219000,
        "roiCloud": 0, "cloudFrac": 0, "validFrac": 1, "CLOUDY_PIXEL_PERCENTAGE": 3.5,
    })
    assert (c.mean_cloud_prob, c.cloud_fraction, c.valid_fraction) == (0.0, 0.0, 1.0)
    assert c.scene_cloud_pct == 3.5


def test_strict_tier_wins_when_available():
    good = cand("good", -2, 30, cloud_frac=0.01, valid=1.0)
    cloudy = cand("cloudy", -1, 5, cloud_frac=0.5, valid=1.0)
    tier, pool = quality_tier([good, cloudy], TH)
    assert tier == TIER_STRICT
    assert pool == [good]


def test_valid_only_tier_when_nothing_is_strict():
    cloudy = cand("cloudy", -1, 50, cloud_frac=0.5, valid=1.0)
    partial = cand("partial", -2, 1, cloud_frac=0.0, valid=0.6)
    tier, pool = quality_tier([cloudy, partial], TH)
    assert tier == TIER_VALID
    assert pool == [cloudy]


def test_unfiltered_tier_as_last_resort():
    a = cand("a", -1, 50, cloud_frac=0.5, valid=0.5)
    b = cand("b", -2, 60, cloud_frac=0.6, valid=0.4)
    tier, pool = quality_tier([a, b], TH)
    assert tier == TIER_ALL
    assert pool == [a, b]


def test_tiers_are_nested():
    pool = [
        cand("s", -1, 10, 0.01, 1.0),
        cand("v", -2, 40, 0.30, 0.999),
        cand("x", -3, 5, 0.00, 0.5),
        cand("y", -4, 90, 0.90, 0.2),
        cand("edge", -5, 20, 0.02, 0.995),
    ]
    strict = strict_tier(pool, TH)
    valid = valid_tier(pool, TH)
    assert set(strict) <= set(valid) <= set(pool)
    assert [c.image_id for c in strict] == ["s", "edge"]


def test_near_tie_band():
    pool = [cand("a", -1, 5), cand("b", -2, 7), cand("c", -3, 8.5), cand("d", -4, 9)]
    assert [c.image_id for c in near_tie_band(pool, 3)] == ["a", "b"]
    assert near_tie_band([], 3) == []


def test_before_prefers_latest_within_tie_band():
    pool = [cand("old", -10, 5), cand("recent", -2, 7), cand("latest_but_cloudy", -1, 9)]
    chosen = select_min_cloud_with_time_pref(pool, TH, 3, prefer_latest=True)
    assert chosen.image_id == "recent"
    assert chosen.mean_cloud_prob <= min(c.mean_cloud_prob for c in pool) + 3


def test_after_prefers_earliest_within_tie_band():
    pool = [cand("first_but_cloudy", 1, 20), cand("second", 2, 6), cand("late", 8, 4)]
    chosen = select_min_cloud_with_time_pref(pool, TH, 3, prefer_latest=False)
    assert chosen.image_id == "second"


def test_min_cloud_selection_uses_winning_tier_only():
    clear_but_partial = cand("partial", -1, 0, 0.0, 0.5)
    strict = cand("strict", -5, 15, 0.01, 1.0)
    chosen = select_min_cloud_with_time_pref([clear_but_partial, strict], TH, 3, prefer_latest=True)
    assert chosen.image_id == "strict"


def test_empty_window_selects_nothing():
    assert select_min_cloud_with_time_pref([], TH, 3, prefer_latest=True) is None


def test_exact_day_takes_precedence():
    exact = cand("exact", 0, 80, 0.5, 1.0)
    near = cand("near", 1, 0, 0.0, 1.0)
    result = select_on_day_exact_or_nearest([near, exact], TARGET, 3, TH)
    assert result.candidate.image_id == "exact"
    assert result.used_exact_on_day is True


def test_exact_precedence_is_decided_before_tier_filtering():
    exact_poor = cand("exact", 0, 90, 0.9, 0.3)
    near_strict = cand("near", -1, 0, 0.0, 1.0)
    result = select_on_day_exact_or_nearest([exact_poor, near_strict], TARGET, 3, TH)
    assert result.candidate.image_id == "exact"
    assert result.used_exact_on_day


def test_exact_pool_picks_lowest_cloud_of_its_tier():
    a = cand("a", 0, 30, 0.01, 1.0, hour=5)
    b = cand("b", 0, 10, 0.01, 1.0, hour=6)
    c = cand("c", 0, 2, 0.50, 1.0, hour=7)
    result = select_on_day_exact_or_nearest([a, b, c], TARGET, 3, TH)
    assert result.candidate.image_id == "b"


def test_nearest_distance_dominates_cloud():
    plus2 = cand("plus2", 2, 10)
    plus3 = cand("plus3", 3, 0)
    result = select_on_day_exact_or_nearest([plus3, plus2], TARGET, 3, TH)
    assert result.candidate.image_id == "plus2"
    assert result.used_exact_on_day is False


def test_nearest_equal_distance_breaks_on_cloud():
    a = cand("a", 2, 20)
    b = cand("b", 2, 5)
    assert nearest_sort_key(b, TARGET) < nearest_sort_key(a, TARGET)
    result = select_on_day_exact_or_nearest([a, b], TARGET, 3, TH)
    assert result.candidate.image_id == "b"


def test_nearest_sort_key():
    c = cand("a", 2, 10, hour=6)
    assert nearest_sort_key(c, TARGET) == pytest.approx(2.25 * 1000 + 10)


def test_nearest_ignores_candidates_outside_fallback_window():
    far = cand("far", 4, 0)
    assert select_on_day_exact_or_nearest([far], TARGET, 3, TH) == (None, False)


def test_on_day_with_no_candidates():
    result = select_on_day_exact_or_nearest([], TARGET, 3, TH)
    assert result.candidate is None
    assert result.used_exact_on_day is False
