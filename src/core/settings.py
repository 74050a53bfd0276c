"""
Tournament settings stored as settings.yaml in the data directory.
"""
import os
import yaml

from core.errors import InvalidGroupSize

SETTINGS_FILE_NAME = 'settings.yaml'


def get_default_settings():
    """Get default tournament settings."""
    return {
        'default_group_size': 5,
        # Category 1 plays head-to-head pairs
        'group_sizes': {1: 2},
        'auto_complete_byes': False,
        'lock_timeout_seconds': 10,
    }


def load_settings(data_dir):
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    path = os.path.join(data_dir, SETTINGS_FILE_NAME)
    if not os.path.exists(path):
        return defaults
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
        if not data:
            return defaults
        # Merge with defaults to ensure all keys exist
        for key, value in defaults.items():
            if key not in data:
                data[key] = value
        if data['group_sizes'] is None:
            data['group_sizes'] = {}
        return data


def save_settings(data_dir, settings):
    """Save settings to YAML file."""
    os.makedirs(data_dir, exist_ok=True)
    with open(os.path.join(data_dir, SETTINGS_FILE_NAME), 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)


def validate_group_size(size):
    if isinstance(size, bool) or not isinstance(size, int) or size < 2:
        raise InvalidGroupSize(f'Group size must be an integer of at least 2, got {size!r}')
    return size


def group_size_for(settings, category_id):
    """Return the configured group size for a category."""
    overrides = settings.get('group_sizes') or {}
    size = overrides.get(category_id)
    if size is None and category_id is not None:
        # YAML round-trips may turn keys into strings
        size = overrides.get(str(category_id))
    if size is None:
        size = settings.get('default_group_size', 5)
    return validate_group_size(size)
