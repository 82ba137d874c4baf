"""Node access: balances, account state, contract queries and broadcast."""

from xionwallet.chain.client import ChainClient
from xionwallet.chain.models import AccountState, Coin, TransactionResult, TxReceipt

__all__ = ["AccountState", "ChainClient", "Coin", "TransactionResult", "TxReceipt"]
