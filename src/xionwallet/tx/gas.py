"""Gas limit and gas price parsing."""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from xionwallet.errors import InvalidGasParameters

AUTO_GAS = "auto"
MAX_GAS_LIMIT = 100_000_000

# "<decimal amount><denom>", e.g. "0.025uxion" or "1ibc/27394FB0..."
_GAS_PRICE_RE = re.compile(r"^(\d+(?:\.\d+)?)([a-zA-Z][a-zA-Z0-9/:._-]{1,127})$")


@dataclass(frozen=True)
class GasPrice:
    """Fee rate paid per unit of gas."""

    amount: Decimal
    denom: str

    @classmethod
    def parse(cls, value: str) -> "GasPrice":
        """Parse "<amount><denom>".

        Raises:
            InvalidGasParameters: If malformed or non-positive
        """
        if not isinstance(value, str):
            raise InvalidGasParameters(f"Gas price must be a string like '0.025uxion', got {value!r}")

        match = _GAS_PRICE_RE.match(value.strip())
        if not match:
            raise InvalidGasParameters(f"Malformed gas price: {value!r}")

        try:
            amount = Decimal(match.group(1))
        except InvalidOperation:
            raise InvalidGasParameters(f"Malformed gas price amount: {value!r}") from None

        if amount <= 0:
            raise InvalidGasParameters(f"Gas price must be positive: {value!r}")

        return cls(amount=amount, denom=match.group(2))

    def fee_for(self, gas_limit: int) -> int:
        """Fee in base units for a gas limit, rounded up."""
        return math.ceil(self.amount * gas_limit)

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def is_auto(value) -> bool:
    return isinstance(value, str) and value.strip().lower() == AUTO_GAS


def parse_gas_limit(value: Union[int, str]) -> int:
    """Validate a gas limit given as an int or a digit string.

    Raises:
        InvalidGasParameters: If not a positive integer
    """
    # bool is an int subclass; True must not become a gas limit of 1
    if isinstance(value, bool):
        raise InvalidGasParameters(f"Malformed gas limit: {value!r}")

    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise InvalidGasParameters(f"Malformed gas limit: {value!r}")
        limit = int(text)
    elif isinstance(value, int):
        limit = value
    else:
        raise InvalidGasParameters(f"Malformed gas limit: {value!r}")

    if limit <= 0:
        raise InvalidGasParameters(f"Gas limit must be positive, got {limit}")
    if limit > MAX_GAS_LIMIT:
        raise InvalidGasParameters(f"Gas limit {limit} exceeds maximum {MAX_GAS_LIMIT}")
    return limit
