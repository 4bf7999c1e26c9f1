"""
End-to-end run: region -> candidate scoring -> selection -> render -> export.
"""
import os
import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from .ee_collections import joined_collection
from .export import build_export_params, submit_export, wait_for_task_done
from .manifest import manifest_append, manifest_row
from .preview_map import save_preview_map
from .region import region_from_config
from .rendering import render_rgb8, thumb_url, tile_url, download_thumbnail
from .selection import ChosenImage, describe, select_all
from .utils import ROLES


class RunOptions(NamedTuple):
    dry_run: bool = False
    wait: bool = False
    thumb_dir: Optional[str] = None
    preview_html: Optional[str] = None
    manifest: Optional[str] = None


class RoleResult(NamedTuple):
    chosen: ChosenImage
    rendered: object
    thumb_url: str
    export_params: dict
    task: object = None


def run_pipeline(cfg, options: RunOptions = RunOptions()) -> dict:
    """
    Select, render and export the before / on / after images for cfg.

    Earth Engine must already be initialized. Remote failures propagate.
    """
    run_stamp = datetime.now(timezone.utc).isoformat()
    region = region_from_config(cfg)
    _roi, export_geom, roi_ll, export_ll = region.ee_geometries()
    logging.info("ROI %.0f m side in %s around (%.4f, %.4f), export inset %.0f m",
                 region.side_m, region.crs, cfg.lat, cfg.lon, cfg.export_buffer_m)

    joined = joined_collection(roi_ll)
    chosen = select_all(joined, export_geom, cfg)

    results = {}
    layers = {}
    for role in ROLES:
        c = chosen[role]
        logging.info(describe(c))

        rendered = render_rgb8(c.image, cfg.vis, export_geom)
        url = thumb_url(rendered, export_ll, cfg.thumb_dimensions)
        logging.info("%s PNG (thumb): %s", role.upper(), url)

        params = build_export_params(rendered, role, None if c.is_empty else c.candidate.acquired,
                                     export_geom, region.crs, cfg)
        if options.thumb_dir:
            out_png = os.path.join(options.thumb_dir, params["description"] + ".png")
            ok, err = download_thumbnail(url, out_png)
            if ok:
                logging.info("Thumbnail saved: %s", out_png)
            else:
                logging.warning("Thumbnail download failed for %s: %s", role, err)

        if options.preview_html:
            layers[f"{role.upper()} (RGB8)"] = tile_url(rendered)

        task = None
        if options.dry_run:
            logging.info("Dry run: skipping export %s", params["description"])
        else:
            task = submit_export(params)

        if options.manifest:
            manifest_append(manifest_row(c, export=params["fileNamePrefix"],
                                         task_id=getattr(task, "id", "") if task else "",
                                         thumb_url=url, run=run_stamp),
                            options.manifest)

        results[role] = RoleResult(c, rendered, url, params, task)

    if options.preview_html:
        save_preview_map(region, layers, options.preview_html)

    if options.wait and not options.dry_run:
        for role in ROLES:
            status = wait_for_task_done(results[role].task)
            logging.info("%s export finished: %s", role.upper(), status.get("state"))

    return results
