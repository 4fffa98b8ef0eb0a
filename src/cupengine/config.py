"""
Engine settings, read from a YAML file with defaults for anything missing.
"""
import copy
import logging
import os

import yaml

from cupengine.feeds import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def get_default_settings():
    return {
        'qualifiers_per_group': 2,
        'feed': {
            'max_workers': 4,
            'timeout_seconds': 10,
            'base_url': DEFAULT_BASE_URL,
        },
        'lock': {
            'timeout_seconds': 10,
        },
        'data_dir': os.path.join(BASE_DIR, 'data'),
    }


def _merge(defaults, overrides):
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if key not in merged:
            continue
        if isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


def load_settings(file_path=None):
    """
    Settings from file_path merged over the defaults.

    A missing or unparsable file falls back to the defaults. CUP_DATA_DIR
    overrides data_dir.
    """
    settings = get_default_settings()
    if file_path and os.path.exists(file_path):
        try:
            with open(file_path, mode='r', encoding='utf-8') as file:
                data = yaml.safe_load(file) or {}
            if isinstance(data, dict):
                settings = _merge(settings, data)
            else:
                logger.warning(f"Ignoring {file_path}: expected a mapping")
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse {file_path}: {e}")

    data_dir = os.environ.get('CUP_DATA_DIR')
    if data_dir:
        settings['data_dir'] = data_dir
    return settings
