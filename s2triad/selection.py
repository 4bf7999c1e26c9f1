"""
Pick one image per window (before, on, after) and annotate it for rendering.
"""
import logging
from typing import NamedTuple, Optional

import ee

from . import quality_scoring as policy
from .cloud_detection import add_cloud_probability, fetch_candidates, score_collection
from .ee_collections import window_collection
from .quality_scoring import Candidate, Thresholds
from .utils import BEFORE, ON, AFTER, DateWindow, selection_windows


class ChosenImage(NamedTuple):
    role: str
    window: DateWindow
    candidate: Optional[Candidate]
    image: object  # ee.Image
    used_exact_on_day: Optional[bool] = None
    candidate_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.candidate is None


def empty_image(bands):
    """
    Fully masked placeholder carrying the visualization bands, so it renders
    and exports as a blank image instead of failing the band lookup.
    """
    bands = list(bands)
    return ee.Image.constant([0] * len(bands)).rename(bands).updateMask(ee.Image(0))


def annotate(joined, candidate: Candidate):
    """The chosen image from the joined collection, carrying its fetched metrics."""
    img = add_cloud_probability(
        joined.filter(ee.Filter.eq('system:index', candidate.image_id)).first())
    return img.set({
        'roiCloud': candidate.mean_cloud_prob,
        'cloudFrac': candidate.cloud_fraction,
        'validFrac': candidate.valid_fraction,
    })


def window_candidates(joined, window: DateWindow, geometry, cfg):
    """Score a window server-side and fetch its candidates (one blocking round-trip)."""
    scored = score_collection(window_collection(joined, window), geometry, cfg)
    candidates = fetch_candidates(scored)
    logging.info("Window %s: %d images", window, len(candidates))
    return candidates


def choose_min_cloud(joined, window: DateWindow, geometry, cfg) -> ChosenImage:
    """Before/after policy: least cloudy near-tie, latest or earliest by window preference."""
    candidates = window_candidates(joined, window, geometry, cfg)
    chosen = policy.select_min_cloud_with_time_pref(
        candidates, Thresholds.from_config(cfg), cfg.cloud_tie_tolerance, window.prefer_latest)
    if chosen is None:
        logging.warning("No images in %s window; using masked placeholder", window)
        return ChosenImage(window.role, window, None, empty_image(cfg.vis.bands))
    return ChosenImage(window.role, window, chosen, annotate(joined, chosen),
                       candidate_count=len(candidates))


def choose_on_day(joined, window: DateWindow, geometry, cfg) -> ChosenImage:
    """On policy: exact target-day image, else nearest within the fallback window."""
    candidates = window_candidates(joined, window, geometry, cfg)
    result = policy.select_on_day_exact_or_nearest(
        candidates, cfg.target_date, cfg.on_fallback_nearest_days, Thresholds.from_config(cfg))
    if result.candidate is None:
        logging.warning("No images in %s window; using masked placeholder", window)
        image = empty_image(cfg.vis.bands).set('usedExactOnDay', False)
        return ChosenImage(window.role, window, None, image, used_exact_on_day=False)
    image = annotate(joined, result.candidate).set('usedExactOnDay', result.used_exact_on_day)
    return ChosenImage(window.role, window, result.candidate, image,
                       used_exact_on_day=result.used_exact_on_day,
                       candidate_count=len(candidates))


def select_all(joined, geometry, cfg) -> dict:
    """Chosen image per role, in before / on / after order."""
    windows = selection_windows(cfg)
    return {
        BEFORE: choose_min_cloud(joined, windows[BEFORE], geometry, cfg),
        ON: choose_on_day(joined, windows[ON], geometry, cfg),
        AFTER: choose_min_cloud(joined, windows[AFTER], geometry, cfg),
    }


def describe(chosen: ChosenImage) -> str:
    """One-line summary of a chosen image for the log."""
    c = chosen.candidate
    if chosen.is_empty:
        return f"{chosen.role.upper()}: no image in {chosen.window}"
    text = (f"{chosen.role.upper()} date: {c.acquired_date.isoformat()} "
            f"roiCloud: {c.mean_cloud_prob:.2f} cloudFrac: {c.cloud_fraction:.4f} "
            f"validFrac: {c.valid_fraction:.4f} scene cloud%: {c.scene_cloud_pct}"
            f" (best of {chosen.candidate_count})")
    if chosen.used_exact_on_day is not None:
        text += f" usedExactOnDay: {chosen.used_exact_on_day}"
    return text
