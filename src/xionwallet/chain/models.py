"""Chain state and result types."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Coin:
    """An amount in base units of a denomination."""

    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount} {self.denom}"

    def to_dict(self) -> dict:
        return {"denom": self.denom, "amount": str(self.amount)}


@dataclass
class AccountState:
    """On-chain account data needed to sign a transaction.

    Fetched fresh before every signed transaction; never cached.
    """

    address: str
    account_number: int
    sequence: int
    balance: Optional[Coin] = None


@dataclass
class TransactionResult:
    """Uniform result returned by query and execute flows."""

    success: bool
    result: Any = None

    def to_dict(self) -> dict:
        return {"success": self.success, "result": self.result}


@dataclass
class TxReceipt:
    """Inclusion data for a broadcast transaction."""

    txhash: str
    height: int = 0
    code: int = 0
    codespace: str = ""
    gas_wanted: int = 0
    gas_used: int = 0
    raw_log: str = ""
    events: list = field(default_factory=list)
    data: Optional[str] = None

    @classmethod
    def from_tx_response(cls, tx_response: dict) -> "TxReceipt":
        return cls(
            txhash=tx_response.get("txhash", ""),
            height=int(tx_response.get("height") or 0),
            code=int(tx_response.get("code") or 0),
            codespace=tx_response.get("codespace") or "",
            gas_wanted=int(tx_response.get("gas_wanted") or 0),
            gas_used=int(tx_response.get("gas_used") or 0),
            raw_log=tx_response.get("raw_log") or "",
            events=tx_response.get("events") or [],
            data=tx_response.get("data") or None,
        )

    def to_dict(self) -> dict:
        return {
            "txhash": self.txhash,
            "height": self.height,
            "code": self.code,
            "gas_wanted": self.gas_wanted,
            "gas_used": self.gas_used,
            "raw_log": self.raw_log,
            "events": self.events,
        }
