"""
Transparent decryption of secret configuration values.

Encrypted values carry the ``{cipher}`` prefix followed by a Fernet token.
Key management is left to the caller.
"""

import logging
from typing import Dict, Optional, Protocol, Union

from cryptography.fernet import Fernet, InvalidToken

from ..exceptions import DecryptionError
from .results import RefreshResult
from .sources import ConfigurationSource

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "{cipher}"


class ConfigurationDecryptor(Protocol):
    """Anything able to decrypt a prefixed value and pass plain values through."""

    def decrypt_if_needed(self, value: str) -> str:
        ...


class FernetConfigurationEncryptor:
    """
    Fernet (AES-128-CBC + HMAC-SHA256) encryptor for configuration values.

    Example:
        key = FernetConfigurationEncryptor.generate_key()
        encryptor = FernetConfigurationEncryptor(key)
        token = encryptor.encrypt("db-password")   # "{cipher}gAAAA..."
        encryptor.decrypt(token)                   # "db-password"
    """

    def __init__(self, key: Union[str, bytes]):
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    @staticmethod
    def is_encrypted(value: Optional[str]) -> bool:
        return value is not None and value.startswith(ENCRYPTED_PREFIX)

    def encrypt(self, plain_text: str) -> str:
        token = self._fernet.encrypt(plain_text.encode('utf-8'))
        return ENCRYPTED_PREFIX + token.decode('ascii')

    def decrypt(self, encrypted_text: str) -> str:
        if not self.is_encrypted(encrypted_text):
            raise DecryptionError(f"Value is not encrypted (missing {ENCRYPTED_PREFIX} prefix)")
        token = encrypted_text[len(ENCRYPTED_PREFIX):]
        try:
            return self._fernet.decrypt(token.encode('ascii')).decode('utf-8')
        except (InvalidToken, UnicodeError, ValueError) as e:
            raise DecryptionError("Decryption failed", cause=e) from e

    def decrypt_if_needed(self, value: str) -> str:
        if self.is_encrypted(value):
            return self.decrypt(value)
        return value


class EncryptedConfigurationSource(ConfigurationSource):
    """
    Wraps a source and decrypts ``{cipher}``-prefixed values on read.

    A value that fails to decrypt is logged and reported as absent, keeping
    the getter contract of never raising.
    """

    def __init__(self, delegate: ConfigurationSource, decryptor: ConfigurationDecryptor, name: Optional[str] = None):
        self._delegate = delegate
        self._decryptor = decryptor
        self._name = name or f"encrypted[{delegate.name}]"

    @property
    def name(self) -> str:
        return self._name

    def _decrypt(self, key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            return self._decryptor.decrypt_if_needed(value)
        except Exception as e:
            logger.error(f"Could not decrypt configuration value for key {key}: {e}")
            return None

    def get_string(self, key: str) -> Optional[str]:
        return self._decrypt(key, self._delegate.get_string(key))

    def contains_key(self, key: str) -> bool:
        return self._delegate.contains_key(key)

    def snapshot(self) -> Dict[str, str]:
        decrypted = {}
        for key, value in self._delegate.snapshot().items():
            plain = self._decrypt(key, value)
            if plain is not None:
                decrypted[key] = plain
        return decrypted

    def refresh(self) -> RefreshResult:
        result = self._delegate.refresh()
        if result.success:
            return RefreshResult.ok(self._name)
        return RefreshResult.failed(self._name, result.error_message or "refresh failed")
