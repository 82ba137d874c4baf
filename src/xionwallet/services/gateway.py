"""Contract gateway: query and execute flows against XION smart contracts.

Query path:   RECEIVED -> VALIDATING -> FETCHING -> RESPONDING -> SUCCEEDED
Execute path: RECEIVED -> VALIDATING -> RESOLVING_SIGNER -> FETCHING_ACCOUNT_STATE
              -> BUILDING -> SIGNING -> BROADCASTING -> RESPONDING -> SUCCEEDED
Any failure moves straight to FAILED and the classified error propagates.

SECURITY:
- The query path never touches key material
- Decrypted or derived private keys live only until signing completes,
  then the buffer is wiped
- Executes for the same signer address are serialized so each one signs
  with a freshly fetched, unused sequence number
"""

import logging
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Optional, Union

from xionwallet.chain.client import ChainClient
from xionwallet.chain.models import Coin, TransactionResult
from xionwallet.crypto import EncryptedSecret, SecretCipher
from xionwallet.errors import EncryptionError, InvalidRequest
from xionwallet.tx.builder import TransactionBuilder
from xionwallet.tx.gas import GasPrice, is_auto
from xionwallet.utils.locks import AddressLocks
from xionwallet.wallet.base import KeyPair
from xionwallet.wallet.derivation import XionKeyDerivation

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    """Lifecycle states of a gateway request."""

    RECEIVED = "received"
    VALIDATING = "validating"
    FETCHING = "fetching"
    RESOLVING_SIGNER = "resolving_signer"
    FETCHING_ACCOUNT_STATE = "fetching_account_state"
    BUILDING = "building"
    SIGNING = "signing"
    BROADCASTING = "broadcasting"
    RESPONDING = "responding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset({RequestState.SUCCEEDED, RequestState.FAILED})


class RequestTrace:
    """Tracks and logs the state of one gateway request."""

    def __init__(self, kind: str):
        self.kind = kind
        self.request_id = uuid.uuid4().hex[:12]
        self.state = RequestState.RECEIVED
        self.history: list[RequestState] = [RequestState.RECEIVED]

    def transition(self, state: RequestState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Request {self.request_id} already {self.state.value}")
        logger.debug(f"{self.kind} {self.request_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        if self.state in TERMINAL_STATES:
            return
        logger.warning(
            f"{self.kind} {self.request_id} failed during {self.state.value}: "
            f"{type(error).__name__}: {error}"
        )
        self.transition(RequestState.FAILED)


@contextmanager
def signer_scope(keys: KeyPair):
    """Yield signer keys and wipe the private key on exit, whatever happens."""
    try:
        yield keys
    finally:
        keys.wipe()


class ContractGateway:
    """Orchestrates contract queries, signed executes and balance reads.

    The ChainClient handle is passed in explicitly; the gateway holds no
    connection state of its own.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        builder: TransactionBuilder,
        derivation: Optional[XionKeyDerivation] = None,
        cipher: Optional[SecretCipher] = None,
        locks: Optional[AddressLocks] = None,
        gas_adjustment: float = 1.3,
    ):
        self.chain = chain_client
        self.builder = builder
        self.derivation = derivation or XionKeyDerivation()
        self.cipher = cipher
        self.locks = locks or AddressLocks()
        self.gas_adjustment = gas_adjustment

    # ======================
    # Validation
    # ======================

    @staticmethod
    def _validate_msg(msg: Any) -> None:
        if not isinstance(msg, dict) or not msg:
            raise InvalidRequest("Contract msg must be a non-empty JSON object")

    def resolve_signer(
        self,
        sender_mnemonic: Optional[str] = None,
        encrypted_secret: Optional[EncryptedSecret] = None,
    ) -> KeyPair:
        """Produce signer keys from exactly one source.

        Raises:
            InvalidRequest: No source or both sources given
            InvalidMnemonic: Mnemonic fails validation
            DecryptionFailed: Encrypted secret does not authenticate
        """
        if (sender_mnemonic is None) == (encrypted_secret is None):
            raise InvalidRequest("Provide exactly one of senderMnemonic or encryptedPrivateKey/iv")

        if sender_mnemonic is not None:
            return self.derivation.from_mnemonic(sender_mnemonic)

        if self.cipher is None:
            raise EncryptionError("MASTER_KEY not configured; cannot decrypt stored keys")

        raw = bytearray(self.cipher.decrypt(encrypted_secret))
        try:
            return self.derivation.from_private_key(raw.hex())
        finally:
            for i in range(len(raw)):
                raw[i] = 0

    # ======================
    # Read flows
    # ======================

    async def get_balance(self, address: str, denom: Optional[str] = None) -> Coin:
        # Contracts and smart accounts (32-byte payloads) hold balances too
        self.derivation.validate_contract_address(address)
        return await self.chain.get_balance(address, denom)

    async def get_transaction(self, txhash: str) -> TransactionResult:
        """Re-query a transaction by hash (e.g. after a broadcast timeout)."""
        receipt = await self.chain.get_transaction(txhash)
        if receipt is None:
            return TransactionResult(success=False, result={"txhash": txhash, "status": "not_found"})
        return TransactionResult(success=receipt.code == 0, result=receipt.to_dict())

    async def query(self, contract_address: str, msg: Any) -> TransactionResult:
        """Read-only smart query. No signing, no sequence number."""
        trace = RequestTrace("query")
        try:
            trace.transition(RequestState.VALIDATING)
            self.derivation.validate_contract_address(contract_address)
            self._validate_msg(msg)

            trace.transition(RequestState.FETCHING)
            data = await self.chain.query(contract_address, msg)

            trace.transition(RequestState.RESPONDING)
            result = TransactionResult(success=True, result=data)
            trace.transition(RequestState.SUCCEEDED)
            return result
        except Exception as e:
            trace.fail(e)
            raise

    # ======================
    # Execute flow
    # ======================

    async def execute(
        self,
        contract_address: str,
        msg: Any,
        sender_mnemonic: Optional[str] = None,
        encrypted_secret: Optional[EncryptedSecret] = None,
        gas_limit: Optional[Union[int, str]] = None,
        gas_price: Optional[str] = None,
        memo: str = "",
    ) -> TransactionResult:
        """Sign and broadcast a MsgExecuteContract.

        All input validation happens before the first network call. A failed
        or timed-out broadcast is raised, never reported as success.

        Raises:
            InvalidRequest, InvalidMnemonic, DecryptionFailed,
            InvalidGasParameters, AddressNotFound: Client errors
            SignerBusy: Another execute holds this signer's lock too long
            NetworkError, BroadcastError: Node or chain failures
            TransactionTimeout: Submitted but not confirmed in time
        """
        trace = RequestTrace("execute")
        try:
            trace.transition(RequestState.VALIDATING)
            self.derivation.validate_contract_address(contract_address)
            self._validate_msg(msg)
            auto_gas = is_auto(gas_limit)
            if auto_gas:
                if gas_price is not None:
                    GasPrice.parse(gas_price)
            else:
                self.builder.resolve_gas(gas_limit, gas_price)

            trace.transition(RequestState.RESOLVING_SIGNER)
            keys = self.resolve_signer(sender_mnemonic, encrypted_secret)
            address = keys.address

            with signer_scope(keys):
                async with self.locks.hold(address, operation=f"execute:{trace.request_id}"):
                    trace.transition(RequestState.FETCHING_ACCOUNT_STATE)
                    account = await self.chain.get_account_state(address)

                    if auto_gas:
                        gas_limit = await self.builder.estimate_gas(
                            self.chain, contract_address, msg, keys, account,
                            gas_price=gas_price, gas_adjustment=self.gas_adjustment,
                        )

                    trace.transition(RequestState.BUILDING)
                    unsigned = self.builder.build_unsigned(
                        contract_address, msg, keys, account, gas_limit, gas_price, memo
                    )

                    trace.transition(RequestState.SIGNING)
                    tx_bytes = self.builder.sign(unsigned, keys)
                    keys.wipe()

                    trace.transition(RequestState.BROADCASTING)
                    logger.info(
                        f"execute {trace.request_id}: {contract_address} from {address} "
                        f"(sequence {account.sequence}, gas {unsigned.gas_limit}, fee {unsigned.fee})"
                    )
                    result = await self.chain.broadcast_transaction(tx_bytes)

            trace.transition(RequestState.RESPONDING)
            trace.transition(RequestState.SUCCEEDED)
            return result
        except Exception as e:
            trace.fail(e)
            raise
