"""Transaction building and signing for CosmWasm execute calls.

Signing flow:
1. Wrap the contract msg in MsgExecuteContract and a TxBody
2. Build AuthInfo (signer pubkey, sequence, fee, gas limit)
3. Serialize a SignDoc (body, auth info, chain id, account number)
4. Sign SHA256(SignDoc) with deterministic, low-S secp256k1 ECDSA
5. Serialize TxRaw for broadcast

The builder never fetches or caches sequence numbers: the caller passes a
freshly fetched AccountState for every build.
"""

import hashlib
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.signing.v1beta1.signing_pb2 import SignMode
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import (
    AuthInfo,
    Fee,
    ModeInfo,
    SignDoc,
    SignerInfo,
    TxBody,
    TxRaw,
)
from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import MsgExecuteContract
from ecdsa import SECP256k1, SigningKey, util
from google.protobuf.any_pb2 import Any as ProtoAny

from xionwallet.chain.models import AccountState
from xionwallet.tx.gas import GasPrice, parse_gas_limit
from xionwallet.wallet.base import KeyPair

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 200000
DEFAULT_GAS_PRICE = "0.025uxion"


def encode_contract_msg(msg: Any) -> bytes:
    """Compact JSON bytes of a contract message; contents are not inspected."""
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _pack(message) -> ProtoAny:
    """Pack a protobuf message into Any with the Cosmos "/" type URL prefix."""
    packed = ProtoAny()
    packed.Pack(message, type_url_prefix="/")
    return packed


def sign_bytes(private_key: bytes, data: bytes) -> bytes:
    """Sign SHA256(data) with RFC 6979 deterministic ECDSA, low-S form."""
    signing_key = SigningKey.from_string(private_key, curve=SECP256k1)
    return signing_key.sign_digest_deterministic(
        hashlib.sha256(data).digest(),
        hashfunc=hashlib.sha256,
        sigencode=util.sigencode_string_canonize,
    )


@dataclass
class UnsignedTx:
    """Serialized body and auth info plus the SignDoc bytes to sign."""

    body_bytes: bytes
    auth_info_bytes: bytes
    sign_doc_bytes: bytes
    gas_limit: int
    fee: str


class TransactionBuilder:
    """Builds signed MsgExecuteContract transactions.

    Usage:
        builder = TransactionBuilder(chain_id="xion-testnet-2")
        tx_bytes = builder.build_execute(contract, {"increment": {}}, keys, account)
    """

    def __init__(
        self,
        chain_id: str,
        default_gas_limit: int = DEFAULT_GAS_LIMIT,
        default_gas_price: str = DEFAULT_GAS_PRICE,
    ):
        self.chain_id = chain_id
        self.default_gas_limit = parse_gas_limit(default_gas_limit)
        self.default_gas_price = GasPrice.parse(default_gas_price)

    @classmethod
    def from_settings(cls, settings) -> "TransactionBuilder":
        return cls(
            chain_id=settings.chain_id,
            default_gas_limit=settings.default_gas_limit,
            default_gas_price=settings.default_gas_price,
        )

    def resolve_gas(
        self,
        gas_limit: Optional[Union[int, str]] = None,
        gas_price: Optional[str] = None,
    ) -> tuple[int, GasPrice]:
        """Apply defaults and validate gas parameters.

        Raises:
            InvalidGasParameters: If a supplied value is malformed or non-positive
        """
        limit = self.default_gas_limit if gas_limit is None else parse_gas_limit(gas_limit)
        price = self.default_gas_price if gas_price is None else GasPrice.parse(gas_price)
        return limit, price

    def build_unsigned(
        self,
        contract_address: str,
        msg: Any,
        signer: KeyPair,
        account_state: AccountState,
        gas_limit: Optional[Union[int, str]] = None,
        gas_price: Optional[str] = None,
        memo: str = "",
    ) -> UnsignedTx:
        """Assemble body, auth info and SignDoc for an execute call."""
        limit, price = self.resolve_gas(gas_limit, gas_price)
        fee_amount = price.fee_for(limit)

        execute = MsgExecuteContract(
            sender=signer.address,
            contract=contract_address,
            msg=encode_contract_msg(msg),
        )
        body = TxBody(messages=[_pack(execute)], memo=memo)

        signer_info = SignerInfo(
            public_key=_pack(PubKey(key=signer.public_key)),
            mode_info=ModeInfo(single=ModeInfo.Single(mode=SignMode.SIGN_MODE_DIRECT)),
            sequence=account_state.sequence,
        )
        fee = Fee(
            amount=[ProtoCoin(denom=price.denom, amount=str(fee_amount))],
            gas_limit=limit,
        )
        auth_info = AuthInfo(signer_infos=[signer_info], fee=fee)

        body_bytes = body.SerializeToString()
        auth_info_bytes = auth_info.SerializeToString()
        sign_doc = SignDoc(
            body_bytes=body_bytes,
            auth_info_bytes=auth_info_bytes,
            chain_id=self.chain_id,
            account_number=account_state.account_number,
        )

        logger.debug(
            f"Built execute for {contract_address} from {signer.address} "
            f"(account {account_state.account_number}, sequence {account_state.sequence}, "
            f"gas {limit}, fee {fee_amount}{price.denom})"
        )

        return UnsignedTx(
            body_bytes=body_bytes,
            auth_info_bytes=auth_info_bytes,
            sign_doc_bytes=sign_doc.SerializeToString(),
            gas_limit=limit,
            fee=f"{fee_amount}{price.denom}",
        )

    def sign(self, unsigned: UnsignedTx, signer: KeyPair) -> bytes:
        """Sign the SignDoc and serialize the TxRaw wire bytes."""
        signature = sign_bytes(signer.private_key_bytes, unsigned.sign_doc_bytes)
        tx_raw = TxRaw(
            body_bytes=unsigned.body_bytes,
            auth_info_bytes=unsigned.auth_info_bytes,
            signatures=[signature],
        )
        return tx_raw.SerializeToString()

    def build_execute(
        self,
        contract_address: str,
        msg: Any,
        signer: KeyPair,
        account_state: AccountState,
        gas_limit: Optional[Union[int, str]] = None,
        gas_price: Optional[str] = None,
        memo: str = "",
    ) -> bytes:
        """Build and sign an execute transaction, returning TxRaw bytes."""
        unsigned = self.build_unsigned(
            contract_address, msg, signer, account_state, gas_limit, gas_price, memo
        )
        return self.sign(unsigned, signer)

    async def estimate_gas(
        self,
        chain_client,
        contract_address: str,
        msg: Any,
        signer: KeyPair,
        account_state: AccountState,
        gas_price: Optional[str] = None,
        gas_adjustment: float = 1.3,
    ) -> int:
        """Simulate the execute and return adjusted gas usage."""
        tx_bytes = self.build_execute(
            contract_address, msg, signer, account_state, None, gas_price
        )
        gas_used = await chain_client.simulate(tx_bytes)
        estimate = math.ceil(gas_used * gas_adjustment)
        logger.debug(f"Simulated gas {gas_used}, adjusted to {estimate}")
        return parse_gas_limit(estimate)
