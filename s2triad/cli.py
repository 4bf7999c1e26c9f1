"""
Command line entry point and logging setup.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime

from .config import LOG_DIR, PipelineConfig, VisParams, build_config
from .settings import clear_settings, get_pipeline_overrides, save_settings

NOISY_LOGGERS = {
    'urllib3': logging.WARNING,
    'urllib3.connectionpool': logging.WARNING,
    'googleapiclient': logging.ERROR,
    'googleapiclient.http': logging.ERROR,
    'googleapiclient.discovery': logging.ERROR,
    'google.auth': logging.WARNING,
    'google.auth.transport': logging.WARNING,
}


def setup_logging(log_dir: str | None = LOG_DIR, verbose: bool = False) -> str | None:
    """Console at INFO (DEBUG with verbose) plus a timestamped DEBUG log file."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)
    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if not log_dir:
        return None
    os.makedirs(log_dir, exist_ok=True)
    log_filepath = os.path.join(log_dir, f"s2triad_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
    file_handler = logging.FileHandler(log_filepath, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] [%(filename)s:%(lineno)d] %(message)s"))
    logger.addHandler(file_handler)
    logging.info("Logging initialized. Log file: %s", log_filepath)
    return log_filepath


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="s2triad",
        description="Select before/on/after Sentinel-2 images around a date and export 8-bit RGB GeoTIFFs",
    )
    g = p.add_argument_group("region")
    g.add_argument("--lat", type=float)
    g.add_argument("--lon", type=float)
    g.add_argument("--area-km2", dest="square_area_km2", type=float)
    g.add_argument("--buffer-m", dest="export_buffer_m", type=float)
    g.add_argument("--crs", dest="out_crs", help="Projected CRS, or 'auto' for the UTM zone of the center")

    g = p.add_argument_group("windows")
    g.add_argument("--target-date", dest="target_date", help="YYYY-MM-DD")
    g.add_argument("--lookback-days", dest="pre_lookback_days", type=int)
    g.add_argument("--forward-days", dest="post_forward_days", type=int)
    g.add_argument("--nearest-days", dest="on_fallback_nearest_days", type=int)

    g = p.add_argument_group("quality")
    g.add_argument("--cloud-prob-thresh", dest="cloud_prob_thresh", type=float)
    g.add_argument("--max-cloud-frac", dest="max_cloud_frac", type=float)
    g.add_argument("--min-valid-frac", dest="min_valid_frac", type=float)
    g.add_argument("--cloud-tie-tolerance", dest="cloud_tie_tolerance", type=float)

    g = p.add_argument_group("output")
    g.add_argument("--folder", dest="out_folder")
    g.add_argument("--scale", dest="out_scale", type=float)
    g.add_argument("--vis-min", type=float)
    g.add_argument("--vis-max", type=float)
    g.add_argument("--vis-gamma", type=float)
    g.add_argument("--thumb-dir", help="Also download PNG thumbnails here")
    g.add_argument("--preview-html", help="Write a folium preview map to this HTML file")
    g.add_argument("--manifest", help="Append selections to this CSV manifest")
    g.add_argument("--dry-run", action="store_true", help="Select and log, but do not submit exports")
    g.add_argument("--wait", action="store_true", help="Poll export tasks until they finish")

    g = p.add_argument_group("earth engine")
    g.add_argument("--service-account-key")
    g.add_argument("--project")
    g.add_argument("--settings", help="Settings JSON (default ~/.s2triad/settings.json)")
    g.add_argument("--save-settings", action="store_true",
                   help="Persist key/project and the given pipeline flags to the settings file")
    g.add_argument("--clear-settings", action="store_true", help="Delete the settings file and exit")

    p.add_argument("--log-dir", default=LOG_DIR)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


CONFIG_FLAGS = (
    "lat", "lon", "square_area_km2", "export_buffer_m", "out_crs", "target_date",
    "pre_lookback_days", "post_forward_days", "on_fallback_nearest_days",
    "cloud_prob_thresh", "max_cloud_frac", "min_valid_frac", "cloud_tie_tolerance",
    "out_folder", "out_scale",
)


def cli_overrides(args: argparse.Namespace) -> dict:
    return {name: getattr(args, name) for name in CONFIG_FLAGS if getattr(args, name) is not None}


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Module defaults < settings file pipeline section < CLI flags."""
    cfg = build_config(PipelineConfig(), get_pipeline_overrides(args.settings))
    cfg = build_config(cfg, cli_overrides(args))
    if any(v is not None for v in (args.vis_min, args.vis_max, args.vis_gamma)):
        vis = VisParams(
            bands=cfg.vis.bands,
            min=cfg.vis.min if args.vis_min is None else args.vis_min,
            max=cfg.vis.max if args.vis_max is None else args.vis_max,
            gamma=cfg.vis.gamma if args.vis_gamma is None else args.vis_gamma,
        )
        cfg = build_config(cfg, {"vis": vis})
    return cfg


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_dir, args.verbose)

    if args.clear_settings:
        return 0 if clear_settings(args.settings) else 1

    try:
        cfg = config_from_args(args)
    except ValueError as e:
        logging.error("Invalid configuration: %s", e)
        return 2

    if args.save_settings:
        save_settings(service_account_key=args.service_account_key, project_id=args.project,
                      pipeline=cli_overrides(args), path=args.settings)

    from .earth_engine import initialize_earth_engine
    from .pipeline import RunOptions, run_pipeline

    try:
        initialize_earth_engine(args.service_account_key, args.project, args.settings)
        run_pipeline(cfg, RunOptions(
            dry_run=args.dry_run,
            wait=args.wait,
            thumb_dir=args.thumb_dir,
            preview_html=args.preview_html,
            manifest=args.manifest,
        ))
    except KeyboardInterrupt:
        logging.warning("Interrupted by user")
        return 130
    except Exception:  # noqa: BLE001
        logging.exception("Fatal error in main execution")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
