"""
User Preferences Manager for the Mushroom Rig Dashboard

Keeps dashboard customizations (theme, sensor bands, plot count) in a
separate YAML file layered over the shipped config.yaml.
"""

import os
import copy
import yaml
import logging

logger = logging.getLogger(__name__)

PACKAGE_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))


class UserPreferencesManager:
    """
    Manages user preferences separately from the default config.yaml.
    User preferences override default config values.
    """

    def __init__(self, user_config_path='config/user_preferences.yaml', default_config_path='config/config.yaml'):
        """
        Args:
            user_config_path: Path to user preferences file (created on first save)
            default_config_path: Path to default config file (read-only)

        Relative paths are resolved against the package directory.
        """
        self.user_config_path = self._resolve(user_config_path)
        self.default_config_path = self._resolve(default_config_path)
        self.user_prefs = self._load_yaml(self.user_config_path, 'user preferences')
        self.default_config = self._load_yaml(self.default_config_path, 'default config')

    @staticmethod
    def _resolve(path):
        if os.path.isabs(path):
            return path
        return os.path.join(PACKAGE_ROOT, path)

    def _load_yaml(self, full_path, label):
        try:
            if not os.path.exists(full_path):
                logger.info(f"[CONFIG] No {label} file at {full_path}")
                return {}
            with open(full_path, 'r') as f:
                data = yaml.safe_load(f)
            logger.info(f"[CONFIG] Loaded {label} from {full_path}")
            return data if isinstance(data, dict) else {}
        except Exception as e:
            logger.error(f"[CONFIG] Failed to load {label}: {e}")
            return {}

    def save_user_preferences(self):
        """Save current user preferences to file."""
        try:
            directory = os.path.dirname(self.user_config_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self.user_config_path, 'w') as f:
                yaml.safe_dump(self.user_prefs, f, default_flow_style=False)

            logger.info(f"[CONFIG] Saved user preferences to {self.user_config_path}")
            return True
        except Exception as e:
            logger.error(f"[CONFIG] Failed to save user preferences: {e}")
            return False

    def get_merged_config(self):
        """Configuration with user preferences merged over defaults."""
        return self._deep_merge(copy.deepcopy(self.default_config), self.user_prefs)

    def _deep_merge(self, base, override):
        """Recursively merge override dict into base dict. Override values win."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                base[key] = self._deep_merge(base[key], value)
            else:
                base[key] = copy.deepcopy(value)
        return base

    def set_preference(self, path, value):
        """
        Set a user preference at a dot-separated path and persist it.

        Example:
            set_preference('ui.theme_mode', 'light')
            set_preference('sensors.temperature.optimal_max', 26)
        """
        keys = path.split('.')
        current = self.user_prefs

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        return self.save_user_preferences()

    def get_preference(self, path, default=None):
        """
        Get a preference at a dot-separated path.
        Falls back to the default config, then to `default`.
        """
        for source in (self.user_prefs, self.default_config):
            current = source
            for key in path.split('.'):
                if isinstance(current, dict) and key in current:
                    current = current[key]
                else:
                    break
            else:
                return current
        return default

    def reset_to_defaults(self):
        """Clear all user preferences and revert to defaults."""
        self.user_prefs = {}
        return self.save_user_preferences()
