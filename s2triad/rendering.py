"""
8-bit RGB rendering, thumbnail links and thumbnail download.
"""
import os
import time
import logging
from typing import Optional, Tuple

import requests

from .config import DOWNLOAD_RETRIES, DOWNLOAD_RETRY_DELAY

PNG_MAGIC = b'\x89PNG'


def render_rgb8(image, vis, geometry):
    """
    Stretch B4/B3/B2 to 8-bit and clip to the export polygon.

    The result has bands vis-red, vis-green, vis-blue; display it with
    min=0, max=255 rather than the SR stretch.
    """
    return image.visualize(**vis.as_dict()).clip(geometry)


def thumb_url(rendered, region_ll, dimensions: int) -> str:
    return rendered.getThumbURL({'region': region_ll, 'dimensions': dimensions, 'format': 'png'})


def tile_url(rendered) -> str:
    """XYZ tile URL template for an already rendered image."""
    map_id = rendered.getMapId({'min': 0, 'max': 255})
    return map_id['tile_fetcher'].url_format


def download_thumbnail(url: str, out_png: str) -> Tuple[bool, Optional[str]]:
    """
    Download a PNG thumbnail with retry logic.

    Returns:
        (success: bool, error_message: Optional[str])
    """
    for attempt in range(DOWNLOAD_RETRIES):
        try:
            logging.debug("Downloading thumbnail to %s (attempt %d/%d)", out_png, attempt + 1, DOWNLOAD_RETRIES)
            r = requests.get(url, timeout=120)
            if r.status_code != 200:
                if attempt < DOWNLOAD_RETRIES - 1:
                    wait_time = DOWNLOAD_RETRY_DELAY * (2 ** attempt)
                    logging.warning("HTTP error %d for thumbnail, retrying in %d seconds...",
                                    r.status_code, wait_time)
                    time.sleep(wait_time)
                    continue
                return False, f"http_{r.status_code}: {r.text[:200]}"

            if not r.content.startswith(PNG_MAGIC):
                return False, "invalid_file_format"

            os.makedirs(os.path.dirname(out_png) or ".", exist_ok=True)
            with open(out_png, 'wb') as f:
                f.write(r.content)
            return True, None

        except requests.exceptions.Timeout:
            if attempt < DOWNLOAD_RETRIES - 1:
                wait_time = DOWNLOAD_RETRY_DELAY * (2 ** attempt)
                logging.warning("Thumbnail download timeout, retrying in %d seconds...", wait_time)
                time.sleep(wait_time)
                continue
            return False, "download_timeout"
        except requests.exceptions.RequestException as e:
            if attempt < DOWNLOAD_RETRIES - 1:
                wait_time = DOWNLOAD_RETRY_DELAY * (2 ** attempt)
                logging.warning("Thumbnail download error: %s, retrying in %d seconds...", str(e), wait_time)
                time.sleep(wait_time)
                continue
            return False, f"download_error: {str(e)}"

    return False, "max_retries_exceeded"
