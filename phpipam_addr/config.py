#!/usr/bin/env python3
"""Configuration management for phpIPAM Address Manager."""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any


# Environment fallbacks, consulted only when the key is not set in the file
ENV_VARS = {
    'server_url': 'PHPIPAM_SERVER_URL',
    'app_id': 'PHPIPAM_APP_ID',
    'username': 'PHPIPAM_USERNAME',
    'password': 'PHPIPAM_PASSWORD',
    'token': 'PHPIPAM_TOKEN',
    'ssl_skip_verify': 'PHPIPAM_SSL_SKIP_VERIFY',
    'timeout': 'PHPIPAM_TIMEOUT',
    'strict_names': 'PHPIPAM_STRICT_NAMES',
    'state_file': 'PHPIPAM_ADDR_STATE',
}


class ConfigError(Exception):
    """Missing or invalid configuration."""
    pass


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration handler for phpIPAM Address Manager.

    Values are layered: built-in defaults, then the YAML file, then
    environment variables for keys the file leaves unset, then explicit
    overrides (usually from the command line).
    """

    DEFAULT_CONFIG = {
        'server_url': '',
        'app_id': 'phpipam_addr',
        'username': '',
        'password': '',
        'token': '',
        'ssl_skip_verify': False,
        'timeout': 30,
        'strict_names': True,
        'state_file': 'phpipam_addr.state.yaml',
        'output_format': 'table',
    }

    def __init__(self, config_path: Optional[str] = None,
                 overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches default locations.
            overrides: Explicit values that win over file and environment.
        """
        self._config: Dict[str, Any] = self.DEFAULT_CONFIG.copy()
        self._config_path = config_path
        self._file_keys = set()
        self._load_config()
        self._apply_env()
        if overrides:
            self._config.update({k: v for k, v in overrides.items() if v is not None})

    def _find_config_file(self) -> Optional[Path]:
        """Find config file in default locations."""
        search_paths = [
            Path.cwd() / 'phpipam_addr.yaml',
            Path.cwd() / 'config.yaml',
            Path.cwd() / 'config.yml',
            Path.home() / '.phpipam_addr.yaml',
            Path('/etc/phpipam_addr/config.yaml'),
        ]

        for path in search_paths:
            if path.exists():
                return path
        return None

    def _load_config(self) -> None:
        """Load configuration from file."""
        config_file = None

        if self._config_path:
            config_file = Path(self._config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"Config file not found: {self._config_path}")
        else:
            config_file = self._find_config_file()

        self._loaded_config_file = config_file

        if config_file:
            with open(config_file, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {config_file} must contain a mapping")
            # Accept both a flat file and one nested under a 'phpipam' key
            file_config = file_config.get('phpipam', file_config)
            self._file_keys = set(file_config)
            self._config.update(file_config)

    def _apply_env(self) -> None:
        for key, env_name in ENV_VARS.items():
            if key in self._file_keys:
                continue
            value = os.getenv(env_name)
            if value is not None and value != '':
                self._config[key] = value

    @property
    def config_file_path(self) -> str:
        """Get the path of the loaded config file."""
        if self._loaded_config_file:
            return str(self._loaded_config_file.absolute())
        return ''

    @property
    def server_url(self) -> str:
        """phpIPAM server URL without the trailing /api."""
        url = str(self._config.get('server_url') or '').rstrip('/')
        if url.endswith('/api'):
            url = url[:-4]
        return url

    @property
    def app_id(self) -> str:
        return str(self._config.get('app_id') or 'phpipam_addr')

    @property
    def api_base_url(self) -> str:
        """Full API URL including the application ID."""
        return f"{self.server_url}/api/{self.app_id}"

    @property
    def username(self) -> str:
        return str(self._config.get('username') or '')

    @property
    def password(self) -> str:
        return str(self._config.get('password') or '')

    @property
    def token(self) -> str:
        """Static application token, if phpIPAM is set up for one."""
        return str(self._config.get('token') or '')

    @property
    def ssl_skip_verify(self) -> bool:
        return _to_bool(self._config.get('ssl_skip_verify', False))

    @property
    def verify_ssl(self) -> bool:
        return not self.ssl_skip_verify

    @property
    def timeout(self) -> int:
        try:
            return int(self._config.get('timeout', 30))
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid timeout: {self._config.get('timeout')!r}")

    @property
    def strict_names(self) -> bool:
        """Fail on duplicate section/subnet names instead of taking the last one."""
        return _to_bool(self._config.get('strict_names', True))

    @property
    def state_file(self) -> str:
        return str(self._config.get('state_file') or 'phpipam_addr.state.yaml')

    @property
    def output_format(self) -> str:
        return self._config.get('output_format', 'table')

    def validate(self) -> None:
        """Check that a phpIPAM connection can be configured.

        Raises:
            ConfigError: server URL or credentials are missing
        """
        if not self.server_url:
            raise ConfigError(
                f"phpIPAM server URL not set (config 'server_url' or {ENV_VARS['server_url']})")
        if not self.token and not (self.username and self.password):
            raise ConfigError(
                f"phpIPAM credentials not set (config 'username'/'password' or "
                f"{ENV_VARS['username']}/{ENV_VARS['password']}, or {ENV_VARS['token']})")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by key."""
        return self._config.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Return config as dictionary."""
        return self._config.copy()


# Global config instance
_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None,
               overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None or config_path is not None or overrides:
        _config = Config(config_path, overrides)
    return _config
