"""Wallet key derivation and address encoding."""

from xionwallet.wallet.base import KeyPair, WalletRecord
from xionwallet.wallet.derivation import XionKeyDerivation, hash160

__all__ = [
    "KeyPair",
    "WalletRecord",
    "XionKeyDerivation",
    "hash160",
]
