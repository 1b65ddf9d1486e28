"""
Credential manager for secure credential operations.

Credential files are either plain ({"username", "password"}) or
encrypted ({"encrypted": true, "data", "salt_hash"}) with a Fernet key
derived from a master password through PBKDF2.
"""

import base64
import hashlib
import json
import logging
import secrets
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import SecretStr

from sqladminops.domain.config import Credential
from sqladminops.domain.errors import ConfigurationError
from .repository import ConfigRepository  # pylint: disable=relative-beyond-top-level

logger = logging.getLogger(__name__)

MASTER_PASSWORD_ENV = "SQLADMINOPS_MASTER_PASSWORD"


class CredentialManager:
    """
    Encryption/decryption of stored credentials.
    """

    SALT_LENGTH = 32
    ITERATIONS = 390000
    KEY_LENGTH = 32

    def __init__(self, repository: ConfigRepository, master_password: Optional[str] = None):
        """
        Args:
            repository: Config repository for file operations
            master_password: Master password; required only for encrypted files
        """
        self.repository = repository
        self.master_password = master_password
        self._encryption_key: Optional[bytes] = None
        self._salt: Optional[bytes] = None

    @property
    def salt_file(self):
        return self.repository.credentials_dir / ".salt"

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_LENGTH,
            salt=salt,
            iterations=self.ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def _get_salt(self, create: bool) -> bytes:
        if self._salt is not None:
            return self._salt

        if self.salt_file.exists():
            self._salt = self.salt_file.read_bytes()
            return self._salt

        if not create:
            raise ConfigurationError(f"Salt file not found: {self.salt_file}")

        self._salt = secrets.token_bytes(self.SALT_LENGTH)
        self.salt_file.parent.mkdir(parents=True, exist_ok=True)
        self.salt_file.write_bytes(self._salt)
        logger.info("Created new salt file")
        return self._salt

    def _get_encryption_key(self, create_salt: bool = False) -> bytes:
        if self._encryption_key is not None:
            return self._encryption_key

        if not self.master_password:
            raise ConfigurationError(
                f"Master password required for encrypted credentials (set {MASTER_PASSWORD_ENV})"
            )

        salt = self._get_salt(create=create_salt)
        self._encryption_key = self._derive_key(self.master_password, salt)
        return self._encryption_key

    def encrypt_credential(self, credential: Credential) -> Dict[str, Any]:
        """
        Encrypt a credential for storage.

        Raises:
            ConfigurationError: If no master password is available
        """
        fernet = Fernet(self._get_encryption_key(create_salt=True))
        payload = json.dumps({
            "username": credential.username,
            "password": credential.get_password(),
        }).encode()

        return {
            "encrypted": True,
            "data": fernet.encrypt(payload).decode(),
            "salt_hash": hashlib.sha256(self._get_salt(create=False)).hexdigest(),
        }

    def decrypt_credential(self, data: Dict[str, Any]) -> Credential:
        """
        Build a Credential from stored data, decrypting when needed.

        Raises:
            ConfigurationError: If decryption fails or data is invalid
        """
        try:
            if not data.get("encrypted", False):
                return Credential(
                    username=data["username"],
                    password=SecretStr(data["password"]),
                )

            fernet = Fernet(self._get_encryption_key())

            if "salt_hash" in data:
                expected_hash = hashlib.sha256(self._get_salt(create=False)).hexdigest()
                if data["salt_hash"] != expected_hash:
                    raise ConfigurationError("Salt hash mismatch - credential may be corrupted")

            decrypted = json.loads(fernet.decrypt(data["data"].encode()).decode())
            return Credential(
                username=decrypted["username"],
                password=SecretStr(decrypted["password"]),
            )
        except ConfigurationError:
            raise
        except InvalidToken as e:
            raise ConfigurationError("Credential decryption failed - wrong master password?") from e
        except Exception as e:  # KeyError, ValueError, pydantic.ValidationError
            raise ConfigurationError(f"Invalid credential data: {e}") from e

    def load(self, cred_ref: str) -> Credential:
        """Load and decrypt credentials/<cred_ref>.json."""
        return self.decrypt_credential(self.repository.load_credential_data(cred_ref))

    def save(self, cred_ref: str, credential: Credential, encrypt: bool = True) -> None:
        """Write credentials/<cred_ref>.json."""
        if encrypt:
            data = self.encrypt_credential(credential)
        else:
            data = {"username": credential.username, "password": credential.get_password()}
        self.repository.save_json_file(self.repository.credential_path(cred_ref), data)
