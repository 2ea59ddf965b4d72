"""
Configuration management for the report server client.
Handles .env-based configuration and YAML config files.
The password is loaded from the encrypted vault with .env fallback.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from decouple import config as env_config
from dotenv import find_dotenv, load_dotenv

from .secrets_vault import vault_config as secure_config

logger = logging.getLogger(__name__)

_ENV_REF = re.compile(r'\$\{([^}]+)\}')


def load_env_file() -> Optional[str]:
    """
    Load the nearest .env file (searching up from the working directory)
    into os.environ so vault_config and ${VAR} references can see it.
    Variables already set in the process environment are not overridden.

    Returns:
        Path of the loaded .env file, or None if there is none
    """
    env_path = find_dotenv(usecwd=True)
    if not env_path:
        return None
    load_dotenv(env_path)
    logger.debug(f"Loaded .env from {env_path}")
    return env_path


@dataclass
class ReportServerConfig:
    """
    Report server connection configuration.

    url may point at the server root (http://host/ReportServer) or
    directly at ReportService2005.asmx.
    """
    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    domain: Optional[str] = None
    timeout: int = 60  # Report definitions can be several MB
    retries: int = 3
    verify_ssl: bool = True

    def __repr__(self) -> str:
        """Safe representation without password"""
        return (f"ReportServerConfig(url={self.url}, username={self.username}, "
                f"domain={self.domain})")

    @classmethod
    def from_env(cls) -> 'ReportServerConfig':
        """
        Load configuration from environment variables (.env file).

        Raises:
            decouple.UndefinedValueError: If SSRS_URL is not set
        """
        load_env_file()
        return cls(
            url=env_config('SSRS_URL'),
            username=env_config('SSRS_USERNAME', default=None),
            password=secure_config('SSRS_PASSWORD'),  # From vault
            domain=env_config('SSRS_DOMAIN', default=None),
            timeout=env_config('SSRS_TIMEOUT', default=60, cast=int),
            retries=env_config('SSRS_RETRIES', default=3, cast=int),
            verify_ssl=env_config('SSRS_VERIFY_SSL', default=True, cast=bool),
        )

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'ReportServerConfig':
        """
        Load configuration from dictionary.

        Args:
            config_dict: Dictionary with configuration values

        Raises:
            ValueError: If url is missing
        """
        if not config_dict.get('url'):
            raise ValueError("Report server configuration requires 'url'")

        return cls(
            url=config_dict['url'],
            username=config_dict.get('username') or None,
            password=config_dict.get('password') or None,
            domain=config_dict.get('domain') or None,
            timeout=int(config_dict.get('timeout', 60)),
            retries=int(config_dict.get('retries', 3)),
            verify_ssl=_as_bool(config_dict.get('verify_ssl', True)),
        )

    @classmethod
    def from_yaml(cls, path: str) -> 'ReportServerConfig':
        """
        Load configuration from the report_server section of a YAML file.
        Environment variables (or vault secrets) can be referenced as ${VAR_NAME}.
        """
        config_file = Path(path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        load_env_file()
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}

        section = data.get('report_server', data)
        resolved = {key: _resolve_env(value) for key, value in section.items()}
        return cls.from_dict(resolved)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def _resolve_env(value: Any) -> Any:
    """Resolve ${VAR_NAME} references in string values."""
    if not isinstance(value, str):
        return value

    def replace(match):
        return secure_config(match.group(1), default='')

    return _ENV_REF.sub(replace, value)
