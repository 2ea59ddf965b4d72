"""
Local Secrets Vault

Encrypted storage for report server credentials, so SSRS_PASSWORD does not
have to live in plain text in .env files or YAML configs.
"""

import os
import json
import base64
import logging
from pathlib import Path
from typing import Any, Dict, Optional, List
from datetime import datetime, timezone
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)


class LocalSecretsVault:
    """
    Local encrypted secrets storage for report server credentials
    """

    VAULT_SALT = b'ssrs-admin-vault'

    SENSITIVE_KEYS = [
        'SSRS_PASSWORD',
    ]

    def __init__(self, vault_dir: str = ".vault", master_key_env: str = "SSRS_VAULT_MASTER_KEY"):
        """
        Initialize the local secrets vault

        Args:
            vault_dir: Directory to store encrypted secrets
            master_key_env: Environment variable name for master key
        """
        self.vault_dir = Path(vault_dir)
        self.master_key_env = master_key_env
        self.secrets_file = self.vault_dir / "secrets.enc"
        self.audit_log = self.vault_dir / "audit.log"

        self._fernet = None

        self._ensure_vault_structure()
        self._initialize_encryption()

    def _ensure_vault_structure(self):
        """Create vault directory if it doesn't exist"""
        self.vault_dir.mkdir(parents=True, exist_ok=True)

        # Owner only
        try:
            os.chmod(self.vault_dir, 0o700)
        except (OSError, PermissionError):
            logger.warning("Could not set restrictive permissions on vault directory")

    def _initialize_encryption(self):
        """Initialize encryption with master key"""
        master_key = os.environ.get(self.master_key_env)

        if not master_key:
            key_file = self.vault_dir / ".key"
            if key_file.exists():
                master_key = key_file.read_text(encoding='utf-8').strip()
            else:
                raise ValueError(
                    f"Master key not found. Set {self.master_key_env} environment variable "
                    f"or create {key_file}"
                )

        self._fernet = self._create_fernet(master_key)

    def _create_fernet(self, master_key: str) -> Fernet:
        """Create Fernet instance from master key"""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.VAULT_SALT,
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(master_key.encode()))
        return Fernet(key)

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """
        Get a secret value

        Args:
            key: Secret key
            default: Default value if key not found

        Returns:
            Decrypted secret value or default
        """
        return self._load_secrets().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a secret value

        Args:
            key: Secret key
            value: Secret value to encrypt and store
        """
        secrets = self._load_secrets()
        secrets[key] = value
        self._save_secrets(secrets)

        # Log the change (without the value)
        self._log_operation(f"SET: {key}")

    def delete(self, key: str) -> bool:
        """
        Delete a secret

        Returns:
            True if deleted, False if not found
        """
        secrets = self._load_secrets()
        if key in secrets:
            del secrets[key]
            self._save_secrets(secrets)
            self._log_operation(f"DELETE: {key}")
            return True
        return False

    def list_keys(self) -> List[str]:
        """List all secret keys (not values)"""
        return sorted(self._load_secrets().keys())

    def _load_secrets(self) -> Dict[str, Any]:
        """Load and decrypt secrets from file"""
        if not self.secrets_file.exists():
            return {}

        encrypted_data = self.secrets_file.read_bytes()
        if not encrypted_data:
            return {}

        try:
            decrypted_data = self._fernet.decrypt(encrypted_data)
        except InvalidToken:
            raise ValueError(f"Cannot decrypt {self.secrets_file}: wrong master key")
        return json.loads(decrypted_data.decode('utf-8'))

    def _save_secrets(self, secrets: Dict[str, Any]):
        """Encrypt and save secrets to file"""
        json_data = json.dumps(secrets)
        encrypted_data = self._fernet.encrypt(json_data.encode('utf-8'))
        self.secrets_file.write_bytes(encrypted_data)

        try:
            os.chmod(self.secrets_file, 0o600)
        except (OSError, PermissionError):
            pass

    def _is_sensitive_key(self, key: str) -> bool:
        """Check if a key should be considered sensitive"""
        return (
            key in self.SENSITIVE_KEYS or
            key.endswith('_PASSWORD') or
            key.endswith('_SECRET') or
            key.endswith('_TOKEN')
        )

    def migrate_from_env(self, env_file: str = ".env") -> Dict[str, str]:
        """
        Move sensitive values from a .env file into the vault

        Args:
            env_file: Path to .env file

        Returns:
            Dictionary of migrated keys
        """
        migrated = {}
        env_path = Path(env_file)

        if not env_path.exists():
            logger.warning(f"Environment file {env_file} not found")
            return migrated

        with open(env_path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue

                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                if self._is_sensitive_key(key) and value:
                    self.set(key, value)
                    migrated[key] = '***MIGRATED***'
                    logger.info(f"Migrated {key} to vault")

        self._log_operation(f"MIGRATION: Migrated {len(migrated)} secrets from {env_file}")
        return migrated

    def _log_operation(self, message: str):
        """Append to the vault audit log"""
        timestamp = datetime.now(timezone.utc).isoformat()
        with open(self.audit_log, 'a') as f:
            f.write(f"[{timestamp}] {message}\n")


# Singleton instance
_vault_instance = None


def get_vault(vault_dir: str = None, create: bool = True) -> LocalSecretsVault:
    """
    Get or create vault singleton instance

    Args:
        vault_dir: Path to vault directory. If None, searches for .vault
                   in current directory or parent directories.
        create: Create the vault directory when it does not exist yet
    """
    global _vault_instance

    if _vault_instance is None:
        if vault_dir is None:
            vault_dir = _find_vault_dir()
        if not create and not Path(vault_dir).exists():
            raise ValueError(f"No vault directory at {vault_dir}")
        _vault_instance = LocalSecretsVault(vault_dir=vault_dir)

    return _vault_instance


def reset_vault() -> None:
    """Drop the cached singleton (used when switching vault directories)."""
    global _vault_instance
    _vault_instance = None


def _find_vault_dir() -> str:
    """Find .vault directory by searching up from current directory"""
    current = Path.cwd()

    for _ in range(5):
        vault_path = current / ".vault"
        if vault_path.exists():
            return str(vault_path)
        if current.parent == current:
            break
        current = current.parent

    return ".vault"


def vault_config(
    key: str,
    default: Any = None,
    cast: type = None
) -> Any:
    """
    Get configuration value from vault with fallback to environment.
    Drop-in replacement for python-decouple's config().

    Args:
        key: Configuration key
        default: Default value if not found
        cast: Type to cast the value to (int, bool, float, etc.)

    Returns:
        Configuration value
    """
    value = None

    try:
        value = get_vault(create=False).get(key)
    except ValueError as e:
        logger.debug(f"Vault not available for {key}: {e}")

    if value is None:
        value = os.environ.get(key)

    if value is None:
        value = default

    if value is not None and cast is not None:
        if cast == bool:
            if isinstance(value, str):
                value = value.lower() in ('true', '1', 'yes', 'on')
            else:
                value = bool(value)
        else:
            value = cast(value)

    return value
