"""
Export helpers: Drive export parameters, submission and optional task polling.
"""
import time
import logging

import ee

from .config import EXPORT_POLL_INTERVAL, EXPORT_POLL_TIMEOUT
from .utils import BEFORE, ON, AFTER, date_tag


def export_names(role: str, tag: str, cfg):
    """(description, fileNamePrefix) for a role and YYYYMMDD tag."""
    description = f"{role.upper()}_RGB8_{tag}"
    if role == BEFORE:
        suffix = f"_pre{cfg.pre_lookback_days}d"
    elif role == ON:
        suffix = "_target"
    elif role == AFTER:
        suffix = f"_post{cfg.post_forward_days}d"
    else:
        raise ValueError(f"Unknown role: {role}")
    return description, description + suffix


def build_export_params(rendered, role: str, acquired, region, crs: str, cfg) -> dict:
    """Keyword arguments for ee.batch.Export.image.toDrive."""
    description, prefix = export_names(role, date_tag(acquired), cfg)
    return {
        "image": rendered,
        "description": description,
        "folder": cfg.out_folder,
        "fileNamePrefix": prefix,
        "region": region,
        "scale": cfg.out_scale,
        "crs": crs,
        "maxPixels": cfg.max_pixels,
        "fileFormat": "GeoTIFF",
        "skipEmptyTiles": True,
        "formatOptions": {"cloudOptimized": True},
    }


def submit_export(params: dict):
    """Start a Drive export task; success or failure is only visible in the task list."""
    task = ee.batch.Export.image.toDrive(**params)
    task.start()
    logging.info("Export submitted: %s -> %s/%s (task %s)",
                 params["description"], params["folder"], params["fileNamePrefix"],
                 getattr(task, "id", None))
    return task


def wait_for_task_done(task, timeout_s: int = EXPORT_POLL_TIMEOUT, poll_interval: int = EXPORT_POLL_INTERVAL):
    """Wait for Earth Engine task to complete."""
    t0 = time.time()
    last_state = None
    while True:
        status = task.status()
        state = status.get("state")
        if state != last_state:
            logging.debug("Task state: %s", state)
            last_state = state
        if state in ("COMPLETED", "FAILED", "CANCELLED"):
            if state == "FAILED":
                error_msg = status.get("error_message", "Unknown error")
                logging.warning("Task failed: %s", error_msg)
            return status
        if time.time() - t0 > timeout_s:
            logging.warning("Task timeout after %d seconds", timeout_s)
            return {"state": "TIMEOUT"}
        time.sleep(poll_interval)
