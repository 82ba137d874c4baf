"""Key material types.

Security: the private key is held in a mutable buffer so it can be wiped once
signing is done. It is excluded from repr() and never logged.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class KeyPair:
    """A secp256k1 key pair and its chain address."""

    private_key: bytearray = field(repr=False)
    public_key: bytes
    address: str
    derivation_path: Optional[str] = None

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    @property
    def private_key_bytes(self) -> bytes:
        """Immutable copy of the private key (for encryption/signing calls)."""
        if self.is_wiped:
            raise ValueError("Key material has been wiped")
        return bytes(self.private_key)

    @property
    def is_wiped(self) -> bool:
        return not any(self.private_key)

    def wipe(self) -> None:
        """Overwrite the private key buffer with zeros."""
        for i in range(len(self.private_key)):
            self.private_key[i] = 0


@dataclass
class WalletRecord:
    """Persisted wallet layout: everything needed to sign later, nothing in plaintext."""

    address: str
    encrypted_private_key: str
    iv: str
    public_key: str
