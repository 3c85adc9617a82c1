import os
import configparser
from pathlib import Path

from reorder_suggestions.exceptions import ConfigError

CONFIG_ENV_VAR = 'REORDER_SUGGESTIONS_CONFIG'
DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'


class Config:
    """Configuration manager for the Reorder Suggestion Engine.

    Values are read from an INI file. When no file exists the built-in
    defaults are used and nothing is written until ``save()`` is called.
    """

    def __init__(self, path=None):
        """Load configuration.

        Args:
            path: Optional path to an INI file. Falls back to the
                  REORDER_SUGGESTIONS_CONFIG environment variable and then
                  to config/settings.ini.
        """
        if path is None:
            path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH

        self._config_path = Path(path)
        self._config = configparser.ConfigParser(interpolation=None)

        self._load_defaults()
        if self._config_path.exists():
            try:
                self._config.read(self._config_path)
            except configparser.Error as e:
                raise ConfigError(f"Invalid configuration file {self._config_path}: {str(e)}")

    def _load_defaults(self):
        """Populate the default sections."""
        self._config['DATABASE'] = {
            'url': 'sqlite:///reorder_suggestions.db',
            'echo': 'False'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'file_output': 'False',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['SUGGESTIONS'] = {
            'default_orders_per_year': '4',
            'service_level': '95',
            'include_seasonal_analysis': 'True',
            'min_days_before_reorder': '30',
            'enable_predictive_ordering': 'True',
            'stock_threshold_percent': '15',
            'use_time_based_prediction': 'True',
            'predictive_requires_urgent': 'False',
            'enable_dry_run': 'False',
            'default_lead_time': '14',
            'max_workers': '1'
        }

    @property
    def path(self):
        """Path of the backing INI file."""
        return self._config_path

    def save(self):
        """Save configuration to file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value (in memory; call save() to persist)."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return self.get('DATABASE', 'url', 'sqlite:///reorder_suggestions.db')

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'file_output': self.get_boolean('LOGGING', 'file_output', False),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def suggestion_settings(self):
        """Get reorder suggestion settings."""
        return {
            'default_orders_per_year': self.get_int('SUGGESTIONS', 'default_orders_per_year', 4),
            'service_level': self.get_int('SUGGESTIONS', 'service_level', 95),
            'include_seasonal_analysis': self.get_boolean('SUGGESTIONS', 'include_seasonal_analysis', True),
            'min_days_before_reorder': self.get_int('SUGGESTIONS', 'min_days_before_reorder', 30),
            'enable_predictive_ordering': self.get_boolean('SUGGESTIONS', 'enable_predictive_ordering', True),
            'stock_threshold_percent': self.get_float('SUGGESTIONS', 'stock_threshold_percent', 15.0),
            'use_time_based_prediction': self.get_boolean('SUGGESTIONS', 'use_time_based_prediction', True),
            'predictive_requires_urgent': self.get_boolean('SUGGESTIONS', 'predictive_requires_urgent', False),
            'enable_dry_run': self.get_boolean('SUGGESTIONS', 'enable_dry_run', False),
            'default_lead_time': self.get_int('SUGGESTIONS', 'default_lead_time', 14),
            'max_workers': self.get_int('SUGGESTIONS', 'max_workers', 1)
        }

# Default config instance for the command-line entry point and logging
config = Config()
