"""Utility modules for xionwallet."""

from xionwallet.utils.locks import AddressLocks

__all__ = ["AddressLocks"]
