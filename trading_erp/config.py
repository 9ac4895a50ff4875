import os
import configparser
from pathlib import Path

from trading_erp.exceptions import ConfigError

class Config:
    """Configuration manager for the trading ERP."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_dir = Path(os.environ.get('TRADING_ERP_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)
        # Rate codes are upper case, keep them that way
        self._config.optionxform = str

        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'url': 'sqlite:///trading_erp.db',
            'echo': 'False'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['LEDGER'] = {
            'currency': 'AZN',
            'default_vat': '18',
            'default_markup': '70',
            'strict_currency_rates': 'False',
            'clamp_negative_stock': 'True'
        }

        self._config['CURRENCY_RATES'] = {
            'USD': '1.70',
            'EUR': '2.00',
            'RUB': '0.019'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
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
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return os.environ.get(
            'TRADING_ERP_DATABASE_URL',
            self.get('DATABASE', 'url', 'sqlite:///trading_erp.db')
        )

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def ledger_config(self):
        """Get ledger configuration."""
        return {
            'currency': self.get('LEDGER', 'currency', 'AZN').upper(),
            'default_vat': self.get_float('LEDGER', 'default_vat', 18.0),
            'default_markup': self.get_float('LEDGER', 'default_markup', 70.0),
            'strict_currency_rates': self.get_boolean('LEDGER', 'strict_currency_rates', False),
            'clamp_negative_stock': self.get_boolean('LEDGER', 'clamp_negative_stock', True)
        }

    @property
    def default_rates(self):
        """Get the initial currency rate table (rate to the ledger currency).

        Raises:
            ConfigError: If a rate is not a positive number
        """
        if not self._config.has_section('CURRENCY_RATES'):
            return {}

        rates = {}
        for code in self._config.options('CURRENCY_RATES'):
            value = self.get_float('CURRENCY_RATES', code)
            if value is None or value <= 0:
                raise ConfigError(
                    f"Invalid rate for {code} in [CURRENCY_RATES]: {self.get('CURRENCY_RATES', code)}",
                    code='INVALID_RATE',
                    details={'currency': code.upper()}
                )
            rates[code.upper()] = value
        return rates

# Global config instance
config = Config()
