from datetime import date, datetime, timezone

import pytest

from s2triad import PipelineConfig
from s2triad.utils import (
    AFTER, BEFORE, ON,
    abs_diff_days, after_window, before_window, date_tag, exact_day_window,
    lonlat_to_utm_zone, nearest_window, selection_windows, time_start_to_datetime, utm_epsg_for,
)

TARGET = date(2025, 11, 30)


def test_before_window_excludes_target_day():
    w = before_window(TARGET, 30)
    assert (w.start, w.end) == (date(2025, 10, 31), date(2025, 11, 30))
    assert w.prefer_latest
    assert not w.contains(datetime(2025, 11, 30, 0, 0, tzinfo=timezone.utc))
    assert w.contains(datetime(2025, 11, 29, 23, 59, tzinfo=timezone.utc))
    assert w.contains(datetime(2025, 10, 31, 0, 0, tzinfo=timezone.utc))


def test_after_window_starts_the_day_after():
    w = after_window(TARGET, 10)
    assert (w.start, w.end) == (date(2025, 12, 1), date(2025, 12, 11))
    assert not w.prefer_latest
    assert not w.contains(datetime(2025, 11, 30, 12, tzinfo=timezone.utc))
    assert w.contains(datetime(2025, 12, 10, 23, tzinfo=timezone.utc))


def test_on_windows():
    assert exact_day_window(TARGET)[1:3] == (date(2025, 11, 30), date(2025, 12, 1))
    w = nearest_window(TARGET, 3)
    assert (w.start, w.end) == (date(2025, 11, 27), date(2025, 12, 4))


def test_selection_windows_from_config():
    windows = selection_windows(PipelineConfig())
    assert windows[BEFORE].start_iso == "2025-10-31"
    assert windows[BEFORE].end_iso == "2025-11-30"
    assert windows[ON].start_iso == "2025-11-27"
    assert windows[ON].end_iso == "2025-12-04"
    assert windows[AFTER].end_iso == "2025-12-11"
    assert str(windows[BEFORE]) == "before [2025-10-31, 2025-11-30)"


def test_time_start_and_day_distance():
    when = time_start_to_datetime(1764655200000)  # 2025-12-02T06:00:00Z
    assert when == datetime(2025, 12, 2, 6, tzinfo=timezone.utc)
    assert abs_diff_days(when, TARGET) == pytest.approx(2.25)
    assert abs_diff_days(datetime(2025, 11, 29, 12, tzinfo=timezone.utc), TARGET) == pytest.approx(0.5)


def test_date_tag():
    assert date_tag(datetime(2025, 11, 3, 5, tzinfo=timezone.utc)) == "20251103"
    assert date_tag(None) == "NODATA"


def test_utm_zone():
    assert lonlat_to_utm_zone(80.5938, 7.2699) == (44, True)
    assert utm_epsg_for(80.5938, 7.2699) == "EPSG:32644"
    assert utm_epsg_for(-70.0, -33.0) == "EPSG:32719"
    assert utm_epsg_for(180.0, 10.0) == "EPSG:32660"
