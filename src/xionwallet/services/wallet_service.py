"""Wallet creation and recovery.

Creation returns the persisted layout (address, encrypted key, IV, public key);
the plaintext private key never leaves this module.
"""

import logging
from typing import Optional

from xionwallet.crypto import SecretCipher
from xionwallet.errors import EncryptionError
from xionwallet.wallet.base import KeyPair, WalletRecord
from xionwallet.wallet.derivation import XionKeyDerivation

logger = logging.getLogger(__name__)


class WalletService:
    """Creates encrypted wallet records and recovers addresses from mnemonics."""

    def __init__(
        self,
        derivation: Optional[XionKeyDerivation] = None,
        cipher: Optional[SecretCipher] = None,
    ):
        self.derivation = derivation or XionKeyDerivation()
        self.cipher = cipher

    def _seal(self, keys: KeyPair) -> WalletRecord:
        """Encrypt the key pair into a WalletRecord and wipe the plaintext."""
        try:
            if self.cipher is None:
                raise EncryptionError("MASTER_KEY not configured; cannot encrypt private keys")
            secret = self.cipher.encrypt(keys.private_key_bytes)
            return WalletRecord(
                address=keys.address,
                encrypted_private_key=secret.ciphertext,
                iv=secret.iv,
                public_key=keys.public_key_hex,
            )
        finally:
            keys.wipe()

    def generate_wallet(self) -> WalletRecord:
        """Create a wallet from fresh randomness."""
        record = self._seal(self.derivation.generate())
        logger.info(f"Generated wallet {record.address}")
        return record

    def import_private_key(self, private_key_hex: str) -> WalletRecord:
        """Create a wallet record for an existing private key.

        Raises:
            InvalidPrivateKey: If the key is malformed or out of range
        """
        record = self._seal(self.derivation.from_private_key(private_key_hex))
        logger.info(f"Imported wallet {record.address}")
        return record

    def recover_address(self, mnemonic: str) -> str:
        """Derive the address for a mnemonic without keeping any key material.

        Raises:
            InvalidMnemonic: If the mnemonic fails validation
        """
        keys = self.derivation.from_mnemonic(mnemonic)
        keys.wipe()
        return keys.address
