"""Request/response models for the HTTP API.

Field names on the wire are camelCase; secrets are SecretStr so they never
appear in reprs or logs.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WalletResponse(_CamelModel):
    """Persisted wallet layout. Never contains a plaintext key."""

    address: str
    encrypted_private_key: str = Field(..., alias="encryptedPrivateKey")
    iv: str
    public_key: str = Field(..., alias="publicKey")


class PrivateKeyRequest(_CamelModel):
    private_key: SecretStr = Field(..., alias="privateKey", description="32-byte hex private key")


class RecoverWalletRequest(_CamelModel):
    mnemonic: SecretStr = Field(..., description="12 or 24 word BIP-39 mnemonic")


class RecoverWalletResponse(_CamelModel):
    address: str


class BalanceResponse(_CamelModel):
    address: str
    balance: str = Field(..., description='"<amount> uxion"')


class QueryRequest(_CamelModel):
    msg: dict[str, Any] = Field(..., description="Contract query message")


class ExecuteRequest(_CamelModel):
    """Execute request. The signer is either a mnemonic or a stored encrypted key."""

    msg: dict[str, Any] = Field(..., description="Contract execute message")
    sender_mnemonic: Optional[SecretStr] = Field(None, alias="senderMnemonic")
    encrypted_private_key: Optional[str] = Field(None, alias="encryptedPrivateKey")
    iv: Optional[str] = None
    # Validated by the gas parser so malformed values map to InvalidGasParameters
    gas_limit: Optional[Any] = Field(None, alias="gasLimit", description='Positive integer or "auto"')
    gas_price: Optional[Any] = Field(None, alias="gasPrice", description='e.g. "0.025uxion"')
    memo: str = Field(default="", max_length=256)


class TransactionResponse(_CamelModel):
    success: bool
    result: Any = None
