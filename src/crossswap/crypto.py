"""Password-based encryption for wallet secrets.

Uses AES-256-GCM with a key derived from the user's password via PBKDF2.
The password itself is never stored; only a salted PBKDF2 hash of it is.

Envelope format (all parts hex encoded):
    salt:iv:auth_tag:ciphertext
"""

import hashlib
import hmac
import logging
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32
SALT_LENGTH = 16
IV_LENGTH = 16
TAG_LENGTH = 16
PASSWORD_HASH_LENGTH = 64


class DecryptionError(ValueError):
    """Raised when an envelope is malformed, tampered with or the password is wrong."""


@dataclass(frozen=True)
class CipherEnvelope:
    """The persisted form of one encrypted secret."""

    salt: bytes
    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    def serialize(self) -> str:
        return ":".join(
            part.hex() for part in (self.salt, self.iv, self.auth_tag, self.ciphertext)
        )

    @classmethod
    def parse(cls, data: str) -> "CipherEnvelope":
        parts = data.split(":")
        if len(parts) != 4:
            raise DecryptionError("Invalid encrypted data format")
        try:
            salt, iv, auth_tag, ciphertext = (bytes.fromhex(p) for p in parts)
        except ValueError as e:
            raise DecryptionError("Invalid encrypted data format") from e
        if len(salt) != SALT_LENGTH or len(iv) != IV_LENGTH or len(auth_tag) != TAG_LENGTH:
            raise DecryptionError("Invalid encrypted data format")
        return cls(salt=salt, iv=iv, auth_tag=auth_tag, ciphertext=ciphertext)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit AES key from a password using PBKDF2-HMAC-SHA256."""
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt,
        PBKDF2_ITERATIONS,
        dklen=KEY_LENGTH,
    )


class EncryptionService:
    """Encrypts and decrypts secrets (private keys, mnemonics) with a password.

    Usage:
        blob = EncryptionService.encrypt("0xabc...", "hunter2")
        secret = EncryptionService.decrypt(blob, "hunter2")
    """

    @staticmethod
    def encrypt(data: str, password: str) -> str:
        """Encrypt data with a password.

        Args:
            data: Plaintext secret
            password: User password

        Returns:
            Serialized CipherEnvelope
        """
        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = derive_key(password, salt)

        sealed = AESGCM(key).encrypt(iv, data.encode("utf-8"), None)
        envelope = CipherEnvelope(
            salt=salt,
            iv=iv,
            auth_tag=sealed[-TAG_LENGTH:],
            ciphertext=sealed[:-TAG_LENGTH],
        )
        return envelope.serialize()

    @staticmethod
    def decrypt(encrypted_data: str, password: str) -> str:
        """Decrypt a serialized envelope.

        Raises:
            DecryptionError: If the format is invalid, the data was tampered
                with, or the password is wrong
        """
        envelope = CipherEnvelope.parse(encrypted_data)
        key = derive_key(password, envelope.salt)

        try:
            plaintext = AESGCM(key).decrypt(
                envelope.iv, envelope.ciphertext + envelope.auth_tag, None
            )
        except InvalidTag as e:
            raise DecryptionError("Authentication failed: wrong password or corrupted data") from e

        return plaintext.decode("utf-8")

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password for storage as `salt:hash`."""
        salt = os.urandom(SALT_LENGTH).hex()
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS, dklen=PASSWORD_HASH_LENGTH
        )
        return f"{salt}:{digest.hex()}"

    @staticmethod
    def verify_password(password: str, stored_hash: str) -> bool:
        """Check a password against a stored `salt:hash`."""
        try:
            salt, expected = stored_hash.split(":", 1)
        except ValueError:
            logger.warning("Stored password hash has an invalid format")
            return False

        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS, dklen=PASSWORD_HASH_LENGTH
        )
        return hmac.compare_digest(digest.hex(), expected)
