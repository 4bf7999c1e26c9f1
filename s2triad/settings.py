"""
Settings management for Earth Engine authentication and pipeline overrides.
Stores settings persistently in the user's home directory (or AppData on Windows).
"""
import os
import json
import logging
from pathlib import Path

# Settings file location - use AppData\Local for user-specific settings
if os.name == 'nt':  # Windows
    SETTINGS_DIR = Path(os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))) / 'S2Triad'
else:
    SETTINGS_DIR = Path.home() / '.s2triad'

SETTINGS_FILE = SETTINGS_DIR / 'settings.json'


def load_settings(path=None):
    """Load settings from persistent storage."""
    path = Path(path) if path else SETTINGS_FILE
    if not path.exists():
        return {}

    try:
        with open(path, 'r') as f:
            settings = json.load(f)
        logging.info(f"Settings loaded from {path}")
        return settings
    except Exception as e:
        logging.warning(f"Failed to load settings: {e}")
        return {}


def save_settings(service_account_key: str = None, project_id: str = None,
                  pipeline: dict = None, path=None):
    """
    Save settings to persistent storage.

    Empty strings clear a stored value; None leaves it untouched.
    ``pipeline`` is merged into the stored ``pipeline`` section.
    """
    path = Path(path) if path else SETTINGS_FILE
    settings = load_settings(path)

    if service_account_key is not None:
        # Store absolute path
        if service_account_key and os.path.exists(service_account_key):
            settings['service_account_key'] = os.path.abspath(service_account_key)
        elif service_account_key == "":
            settings.pop('service_account_key', None)
        else:
            settings['service_account_key'] = service_account_key

    if project_id is not None:
        if project_id:
            settings['project_id'] = project_id
        else:
            settings.pop('project_id', None)

    if pipeline is not None:
        if pipeline:
            stored = settings.get('pipeline', {})
            stored.update(pipeline)
            settings['pipeline'] = stored
        else:
            settings.pop('pipeline', None)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(settings, f, indent=2, default=str)
        logging.info(f"Settings saved to {path}")
        return True
    except Exception as e:
        logging.error(f"Failed to save settings: {e}")
        return False


def get_service_account_key(path=None):
    """Get service account key path from settings."""
    settings = load_settings(path)
    key_path = settings.get('service_account_key')
    if key_path and os.path.exists(key_path):
        return key_path
    return None


def get_project_id(path=None):
    """Get project ID from settings."""
    settings = load_settings(path)
    return settings.get('project_id')


def get_pipeline_overrides(path=None) -> dict:
    """Get the stored pipeline configuration overrides."""
    return dict(load_settings(path).get('pipeline', {}))


def clear_settings(path=None):
    """Clear all settings."""
    path = Path(path) if path else SETTINGS_FILE
    try:
        if path.exists():
            path.unlink()
        logging.info("Settings cleared")
        return True
    except Exception as e:
        logging.error(f"Failed to clear settings: {e}")
        return False
