"""
t0ggles node Credential Manager — Encrypted storage and retrieval of the
t0ggles API key using Fernet symmetric encryption.

Provides:
    - ApiKeyCredential: The single-key credential holder handed to the dispatcher
    - CredentialManager: Encrypt/decrypt credential blobs kept in a JSON store file
    - Key derivation from a node secret (T0GGLES_SECRET_KEY env var)

Security model:
    - Credentials encrypted at rest using Fernet (AES-128-CBC + HMAC-SHA256)
    - Encryption key derived from T0GGLES_SECRET_KEY env var or a provided secret
    - The API key env var (T0GGLES_API_KEY by default) overrides the stored key
    - Decrypted only at runtime, in-memory, for the duration of the call
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from t0ggles_node.engine.errors import AuthenticationError

logger = logging.getLogger("t0ggles_node.engine.credentials")

CREDENTIAL_NAME = "t0gglesApi"

# Default secret key source (override via T0GGLES_SECRET_KEY env var)
_DEFAULT_SECRET_KEY = "t0ggles-dev-key-change-in-production"


class ApiKeyCredential(BaseModel):
    """API key for a t0ggles board (Board Settings → Services → API Key)."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: SecretStr = Field(default=SecretStr(""), alias="apiKey")

    def get_credentials(self, name: str = CREDENTIAL_NAME) -> Optional[Dict[str, str]]:
        value = self.api_key.get_secret_value()
        return {"apiKey": value} if value else None


class CredentialManager:
    """
    Encrypts and decrypts credential JSON blobs for the node.

    The store is a JSON file mapping credential name → Fernet token:

    1. CLI → set_credentials("t0gglesApi", {"apiKey": "..."}) → encrypt → write
    2. RequestDispatcher → get_credentials("t0gglesApi") → read → decrypt → dict

    Usage:
        manager = CredentialManager(store_path=".t0ggles/credentials.json")
        manager.set_credentials("t0gglesApi", {"apiKey": "tg_live_..."})
        creds = manager.get_credentials("t0gglesApi")
        # → {"apiKey": "tg_live_..."}
    """

    def __init__(
        self,
        store_path: Optional[str] = None,
        secret_key: Optional[str] = None,
        api_key_env_var: Optional[str] = "T0GGLES_API_KEY",
    ):
        self._store_path = Path(store_path) if store_path else None
        self._api_key_env_var = api_key_env_var
        self._fernet = self._build_fernet(secret_key)

    @staticmethod
    def _build_fernet(secret_key: Optional[str] = None, use_env: bool = True) -> Fernet:
        """
        Build a Fernet instance from a secret key.

        Uses T0GGLES_SECRET_KEY env var if available, otherwise falls back to
        the provided secret_key or the default dev key.
        """
        key_source = (
            (use_env and os.environ.get("T0GGLES_SECRET_KEY"))
            or secret_key
            or _DEFAULT_SECRET_KEY
        )

        # Fernet requires a URL-safe base64 32-byte key
        derived = hashlib.sha256(key_source.encode("utf-8")).digest()
        fernet_key = base64.urlsafe_b64encode(derived)

        return Fernet(fernet_key)

    # -----------------------------------------------------------------------
    # Encrypt / Decrypt
    # -----------------------------------------------------------------------

    def encrypt(self, credentials: Dict[str, Any]) -> bytes:
        """Encrypt a credentials dict to a Fernet token."""
        payload = json.dumps(credentials, sort_keys=True).encode("utf-8")
        return self._fernet.encrypt(payload)

    def decrypt(self, encrypted: bytes) -> Dict[str, Any]:
        """
        Decrypt a Fernet token back to a credentials dict.

        Raises:
            AuthenticationError: If decryption fails (wrong key, corrupted data).
        """
        try:
            decrypted = self._fernet.decrypt(encrypted)
            return json.loads(decrypted.decode("utf-8"))
        except InvalidToken:
            raise AuthenticationError(
                "Failed to decrypt credentials — encryption key may have changed",
                credential_name=CREDENTIAL_NAME,
            )
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise AuthenticationError(
                f"Corrupted credential data: {e}",
                credential_name=CREDENTIAL_NAME,
            )

    # -----------------------------------------------------------------------
    # Store operations
    # -----------------------------------------------------------------------

    def _read_store(self) -> Dict[str, str]:
        if self._store_path is None or not self._store_path.exists():
            return {}
        with open(self._store_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write_store(self, data: Dict[str, str]) -> None:
        if self._store_path is None:
            raise RuntimeError("No credential store path configured — cannot store credentials")
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._store_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def set_credentials(self, name: str, credentials: Dict[str, Any]) -> None:
        """Encrypt and store credentials under a name."""
        store = self._read_store()
        store[name] = self.encrypt(credentials).decode("ascii")
        self._write_store(store)
        logger.info(f"Stored encrypted credentials for: {name}")

    def get_credentials(self, name: str = CREDENTIAL_NAME) -> Optional[Dict[str, Any]]:
        """
        Retrieve and decrypt credentials.

        The API key env var, when set, wins over the stored value.

        Returns:
            Decrypted credentials dict, or None if nothing is configured.
        """
        if self._api_key_env_var:
            env_key = os.environ.get(self._api_key_env_var)
            if env_key:
                return {"apiKey": env_key}

        token = self._read_store().get(name)
        if not token:
            return None
        return self.decrypt(token.encode("ascii"))

    def delete_credentials(self, name: str = CREDENTIAL_NAME) -> bool:
        """Remove stored credentials. Returns True if something was removed."""
        store = self._read_store()
        if name not in store:
            return False
        del store[name]
        self._write_store(store)
        logger.info(f"Deleted credentials for: {name}")
        return True

    def has_credentials(self, name: str = CREDENTIAL_NAME) -> bool:
        """Check whether credentials are stored (without decrypting)."""
        return name in self._read_store()

    def rotate_key(self, new_secret_key: str) -> int:
        """
        Re-encrypt all stored credentials with a new key.

        Returns:
            Number of credentials rotated.
        """
        new_fernet = self._build_fernet(new_secret_key, use_env=False)
        store = self._read_store()

        rotated: Dict[str, str] = {}
        for name, token in store.items():
            creds = self.decrypt(token.encode("ascii"))
            payload = json.dumps(creds, sort_keys=True).encode("utf-8")
            rotated[name] = new_fernet.encrypt(payload).decode("ascii")

        self._write_store(rotated)
        self._fernet = new_fernet
        logger.info(f"Rotated encryption key for {len(rotated)} credential(s)")
        return len(rotated)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_credential_manager: Optional[CredentialManager] = None


def get_credential_manager(
    store_path: Optional[str] = None,
    secret_key: Optional[str] = None,
) -> CredentialManager:
    """Get or create the global CredentialManager singleton from node config."""
    global _credential_manager
    if _credential_manager is None:
        from t0ggles_node.engine.config import get_node_config

        cfg = get_node_config()
        _credential_manager = CredentialManager(
            store_path=store_path or cfg.credentials.store_path,
            secret_key=secret_key,
            api_key_env_var=cfg.credentials.env_var,
        )
    return _credential_manager
