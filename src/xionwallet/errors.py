"""Error taxonomy for wallet and contract operations.

Client errors (bad input detected locally, before any network call) carry a
4xx status code. Server errors (node unreachable, broadcast rejected, no
confirmation in time) carry a 5xx status code.

Messages must never contain mnemonics, private keys or decrypted material.
"""

from typing import Optional


class WalletError(Exception):
    """Base class for all classified wallet errors."""

    status_code: int = 500
    error_code: str = "WalletError"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.error_code)
        self.detail = detail or self.error_code

    def to_dict(self) -> dict:
        """Error body returned to HTTP clients."""
        return {"error": self.error_code, "detail": self.detail}


# ======================
# Client errors
# ======================


class InvalidMnemonic(WalletError):
    """Mnemonic has a bad word count, unknown word or failed checksum."""

    status_code = 400
    error_code = "InvalidMnemonic"


class InvalidPrivateKey(WalletError):
    """Private key is not 32 bytes of hex or not a valid secp256k1 scalar."""

    status_code = 400
    error_code = "InvalidPrivateKey"


class DecryptionFailed(WalletError):
    """Encrypted secret could not be authenticated.

    Always raised with the same message so callers cannot tell a wrong key
    from corrupted data.
    """

    status_code = 400
    error_code = "DecryptionFailed"

    def __init__(self, detail: str = ""):
        super().__init__("Unable to decrypt secret")


class InvalidGasParameters(WalletError):
    status_code = 400
    error_code = "InvalidGasParameters"


class AddressNotFound(WalletError):
    """Address is malformed or unknown to the node."""

    status_code = 400
    error_code = "AddressNotFound"


class ContractQueryError(WalletError):
    """The contract rejected a smart query (bad msg, unknown query)."""

    status_code = 400
    error_code = "ContractQueryError"


class InvalidRequest(WalletError):
    """Request shape is wrong (non-object contract msg, missing or duplicate signer source)."""

    status_code = 400
    error_code = "InvalidRequest"


class SignerBusy(WalletError):
    """Another execute for the same signer address is still in flight."""

    status_code = 409
    error_code = "SignerBusy"


# ======================
# Server errors
# ======================


class NetworkError(WalletError):
    status_code = 500
    error_code = "NetworkError"


class EncryptionError(WalletError):
    """Private key encryption is unavailable (no MASTER_KEY configured)."""

    status_code = 500
    error_code = "EncryptionError"


class BroadcastError(WalletError):
    """The node rejected the transaction (bad sequence, no funds, failed execution)."""

    status_code = 500
    error_code = "BroadcastError"

    def __init__(
        self,
        detail: str = "",
        code: Optional[int] = None,
        txhash: Optional[str] = None,
        raw_log: Optional[str] = None,
    ):
        super().__init__(detail)
        self.code = code
        self.txhash = txhash
        self.raw_log = raw_log

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.code is not None:
            data["code"] = self.code
        if self.txhash:
            data["txhash"] = self.txhash
        return data


class TransactionTimeout(WalletError):
    """No confirmation within the bounded wait.

    The transaction may still be included; callers must re-query its status
    by hash before resubmitting.
    """

    status_code = 504
    error_code = "TimeoutError"

    def __init__(self, detail: str = "", txhash: Optional[str] = None):
        super().__init__(detail)
        self.txhash = txhash

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["txhash"] = self.txhash
        return data
