"""Cryptographic utilities for private key storage.

Uses AES-256-GCM (authenticated encryption) with a fresh 96-bit IV per
encryption. The GCM tag is appended to the ciphertext.
"""

import hashlib
import logging
import os
import re
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from xionwallet.errors import DecryptionFailed

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 12
TAG_SIZE = 16
PBKDF2_ITERATIONS = 200_000

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class EncryptedSecret:
    """Ciphertext (with GCM tag) and IV, both hex encoded."""

    ciphertext: str
    iv: str


def generate_master_key() -> str:
    """Generate a new master encryption key.

    Returns:
        Hex-encoded 32-byte key suitable for MASTER_KEY
    """
    return secrets.token_hex(KEY_SIZE)


def derive_key_from_password(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte AES key from a passphrase using PBKDF2-HMAC-SHA256."""
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt,
        PBKDF2_ITERATIONS,
        dklen=KEY_SIZE,
    )


def key_from_master(master_key: str, salt: str) -> bytes:
    """Interpret MASTER_KEY: 64 hex chars are a raw key, anything else a passphrase."""
    if _HEX_KEY_RE.match(master_key):
        return bytes.fromhex(master_key)
    return derive_key_from_password(master_key, salt.encode())


class SecretCipher:
    """Encrypts and decrypts private keys with AES-256-GCM.

    Usage:
        cipher = SecretCipher.from_master_key(settings.master_key)
        secret = cipher.encrypt(private_key_bytes)
        private_key_bytes = cipher.decrypt(secret)
    """

    def __init__(self, key: bytes):
        """Initialize with a raw 32-byte key."""
        if len(key) != KEY_SIZE:
            raise ValueError(f"Encryption key must be {KEY_SIZE} bytes")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_master_key(cls, master_key: str, salt: str = "xionwallet") -> "SecretCipher":
        return cls(key_from_master(master_key, salt))

    def encrypt(self, plaintext: bytes) -> EncryptedSecret:
        """Encrypt secret bytes under a fresh random IV."""
        iv = os.urandom(IV_SIZE)
        ciphertext = self._aesgcm.encrypt(iv, bytes(plaintext), None)
        return EncryptedSecret(ciphertext=ciphertext.hex(), iv=iv.hex())

    def decrypt(self, secret: EncryptedSecret) -> bytes:
        """Decrypt and authenticate an EncryptedSecret.

        Raises:
            DecryptionFailed: On any failure (wrong key, tampered data, bad IV).
                The cause is not reported.
        """
        try:
            iv = bytes.fromhex(secret.iv)
            ciphertext = bytes.fromhex(secret.ciphertext)
        except (TypeError, ValueError):
            raise DecryptionFailed() from None

        if len(iv) != IV_SIZE or len(ciphertext) < TAG_SIZE:
            raise DecryptionFailed()

        try:
            return self._aesgcm.decrypt(iv, ciphertext, None)
        except InvalidTag:
            raise DecryptionFailed() from None

    def rotate(self, secret: EncryptedSecret, new_cipher: "SecretCipher") -> EncryptedSecret:
        """Re-encrypt a secret under another cipher's key."""
        plaintext = bytearray(self.decrypt(secret))
        try:
            return new_cipher.encrypt(bytes(plaintext))
        finally:
            for i in range(len(plaintext)):
                plaintext[i] = 0


def encrypt_secret(private_key: bytes, master_key: str, salt: str = "xionwallet") -> EncryptedSecret:
    """Encrypt under a master key or passphrase given per call."""
    return SecretCipher.from_master_key(master_key, salt).encrypt(private_key)


def decrypt_secret(secret: EncryptedSecret, master_key: str, salt: str = "xionwallet") -> bytes:
    """Decrypt with a master key or passphrase given per call.

    Raises:
        DecryptionFailed: If the secret does not authenticate under this key
    """
    return SecretCipher.from_master_key(master_key, salt).decrypt(secret)

