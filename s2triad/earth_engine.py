"""
Earth Engine authentication and initialization.
"""
import os
import json
import logging
import warnings

import ee

from .config import GEE_SERVICE_ACCOUNT_KEY, GEE_PROJECT
from .settings import get_service_account_key, get_project_id

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def find_service_account_key(explicit: str = None, settings_path=None):
    """Find service account key file in common locations."""
    if explicit and os.path.exists(explicit):
        return explicit

    # Check saved settings first
    settings_key = get_service_account_key(settings_path)
    if settings_key:
        return settings_key

    if GEE_SERVICE_ACCOUNT_KEY and os.path.exists(GEE_SERVICE_ACCOUNT_KEY):
        return GEE_SERVICE_ACCOUNT_KEY

    env_key = os.environ.get('GEE_SERVICE_ACCOUNT_KEY')
    if env_key and os.path.exists(env_key):
        return env_key

    common_paths = [
        os.path.join(PROJECT_ROOT, "gee_service_account.json"),
        os.path.join(PROJECT_ROOT, "keys", "gee_service_account.json"),
        os.path.join(PROJECT_ROOT, "service_account_key.json"),
    ]
    for path in common_paths:
        if os.path.exists(path):
            return path

    return None


def resolve_project_id(explicit: str = None, key_file: str = None, settings_path=None):
    """Project ID from argument, settings, config, key file, or environment (in that order)."""
    project_id = explicit or get_project_id(settings_path) or GEE_PROJECT
    if not project_id and key_file:
        try:
            with open(key_file, 'r') as f:
                project_id = json.load(f).get('project_id')
        except (OSError, ValueError) as e:
            logging.debug("Could not read project_id from %s: %s", key_file, e)
    return project_id or os.environ.get('GEE_PROJECT') or os.environ.get('GOOGLE_CLOUD_PROJECT')


def _is_auth_error(exc: Exception) -> bool:
    error_str = str(exc).lower()
    return ("authenticate" in error_str or "authentication" in error_str
            or "credentials" in error_str or "permission_denied" in error_str)


def initialize_earth_engine(service_account_key: str = None, project: str = None, settings_path=None):
    """
    Initialize Earth Engine, preferring a service account key.

    Falls back to user credentials, running ee.Authenticate() once when the
    first attempt reports an authentication problem. Any other failure
    propagates to the caller.
    """
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore', category=UserWarning)

        key_file = find_service_account_key(service_account_key, settings_path)
        project_id = resolve_project_id(project, key_file, settings_path)

        if key_file:
            try:
                credentials = ee.ServiceAccountCredentials(None, key_file)
                ee.Initialize(credentials, project=project_id)
                logging.info("Initialized Earth Engine with service account from %s (project: %s)",
                             key_file, project_id)
                return
            except Exception as key_error:  # noqa: BLE001
                logging.warning("Service account authentication failed: %s", key_error)
                logging.info("Falling back to user authentication...")

        try:
            ee.Initialize(project=project_id)
        except Exception as e:  # noqa: BLE001
            if not _is_auth_error(e):
                raise
            logging.info("Earth Engine authentication required, opening browser sign-in...")
            ee.Authenticate()
            ee.Initialize(project=project_id)
        logging.info("Initialized Earth Engine with user credentials (project: %s)", project_id)
