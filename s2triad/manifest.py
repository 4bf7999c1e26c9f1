"""
Manifest management for tracking selections and submitted exports.
"""
import os
import csv
from datetime import datetime, timezone

from .config import MANIFEST_CSV

FIELDS = [
    "run", "role", "window_start", "window_end", "image_id", "date",
    "roi_cloud", "cloud_frac", "valid_frac", "scene_cloud_pct",
    "used_exact_on_day", "status", "export", "task_id", "thumb_url",
]


def manifest_init(path: str = MANIFEST_CSV):
    """Initialize manifest CSV file with headers."""
    if not os.path.exists(path):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", newline="") as f:
            csv.writer(f).writerow(FIELDS)


def manifest_row(chosen, export: str = "", task_id: str = "", thumb_url: str = "", run: str = None) -> dict:
    c = chosen.candidate
    return {
        "run": run or datetime.now(timezone.utc).isoformat(),
        "role": chosen.role,
        "window_start": chosen.window.start_iso,
        "window_end": chosen.window.end_iso,
        "image_id": c.image_id if c else "",
        "date": c.acquired_date.isoformat() if c else "",
        "roi_cloud": c.mean_cloud_prob if c else "",
        "cloud_frac": c.cloud_fraction if c else "",
        "valid_frac": c.valid_fraction if c else "",
        "scene_cloud_pct": c.scene_cloud_pct if c and c.scene_cloud_pct is not None else "",
        "used_exact_on_day": "" if chosen.used_exact_on_day is None else chosen.used_exact_on_day,
        "status": "empty" if chosen.is_empty else "selected",
        "export": export,
        "task_id": task_id or "",
        "thumb_url": thumb_url,
    }


def manifest_append(row: dict, path: str = MANIFEST_CSV):
    """Append entry to manifest CSV."""
    manifest_init(path)
    with open(path, "a", newline="") as f:
        csv.DictWriter(f, fieldnames=FIELDS).writerow(row)
