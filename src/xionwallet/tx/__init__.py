"""Transaction building, gas handling and signing."""

from xionwallet.tx.builder import TransactionBuilder, UnsignedTx
from xionwallet.tx.gas import GasPrice, parse_gas_limit

__all__ = ["GasPrice", "TransactionBuilder", "UnsignedTx", "parse_gas_limit"]
