"""LCD (REST) client for the XION node.

One client instance owns one httpx connection pool and is shared by every
request handler; calls on different addresses run concurrently.

Endpoints used:
- /cosmos/bank/v1beta1/balances/{address}/by_denom
- /cosmos/auth/v1beta1/accounts/{address}
- /cosmos/tx/v1beta1/simulate
- /cosmos/tx/v1beta1/txs (broadcast) and /cosmos/tx/v1beta1/txs/{hash}
- /cosmwasm/wasm/v1/contract/{address}/smart/{query}
"""

import asyncio
import base64
import hashlib
import json
import logging
from typing import Any, Optional

import httpx

from xionwallet.chain.models import AccountState, Coin, TransactionResult, TxReceipt
from xionwallet.errors import (
    AddressNotFound,
    BroadcastError,
    ContractQueryError,
    NetworkError,
    TransactionTimeout,
)

logger = logging.getLogger(__name__)

# Cosmos SDK error codes worth naming in broadcast failures
SDK_ERROR_REASONS = {
    5: "insufficient funds",
    11: "out of gas",
    13: "insufficient fee",
    19: "transaction already in mempool",
    32: "account sequence mismatch",
}


def tx_hash(tx_bytes: bytes) -> str:
    """Cosmos transaction hash: uppercase hex SHA256 of the TxRaw bytes."""
    return hashlib.sha256(tx_bytes).hexdigest().upper()


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extract the grpc-gateway error message from a non-200 response."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message") or data.get("error")
    return None


def _find_base_account(account: dict) -> Optional[dict]:
    """Locate the object holding account_number/sequence.

    Base accounts carry the fields directly; module, vesting and abstract
    accounts nest them under base_account (possibly several levels deep).
    """
    if "account_number" in account:
        return account
    for value in account.values():
        if isinstance(value, dict):
            found = _find_base_account(value)
            if found is not None:
                return found
    return None


class ChainClient:
    """Async client for the node's read and broadcast endpoints.

    Usage:
        client = ChainClient("https://api.xion-testnet-2.burnt.com")
        balance = await client.get_balance("xion1...")
        await client.aclose()
    """

    def __init__(
        self,
        lcd_url: str,
        denom: str = "uxion",
        request_timeout: float = 15.0,
        broadcast_timeout: float = 60.0,
        poll_interval: float = 1.5,
        max_connections: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.lcd_url = lcd_url.rstrip("/")
        self.denom = denom
        self.broadcast_timeout = broadcast_timeout
        self.poll_interval = poll_interval
        self._client = httpx.AsyncClient(
            base_url=self.lcd_url,
            timeout=request_timeout,
            limits=httpx.Limits(max_connections=max_connections),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ChainClient":
        return cls(
            lcd_url=settings.lcd_url,
            denom=settings.denom,
            request_timeout=settings.request_timeout,
            broadcast_timeout=settings.broadcast_timeout,
            poll_interval=settings.broadcast_poll_interval,
            max_connections=settings.max_connections,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a read request, mapping transport failures to NetworkError."""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"LCD {method} {path} failed: {type(e).__name__}: {e}")
            raise NetworkError(f"Node request failed: {type(e).__name__}") from e

        logger.debug(f"LCD {method} {path} -> {response.status_code}")
        return response

    # ======================
    # Reads
    # ======================

    async def get_balance(self, address: str, denom: Optional[str] = None) -> Coin:
        """Get the balance of one denomination.

        An account the chain has never seen has a zero balance, not an error.
        """
        denom = denom or self.denom
        response = await self._request(
            "GET",
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom",
            params={"denom": denom},
        )

        if response.status_code == 200:
            balance = response.json().get("balance") or {}
            return Coin(denom=balance.get("denom") or denom, amount=int(balance.get("amount") or 0))

        if response.status_code in (400, 404):
            raise AddressNotFound(_error_message(response) or f"Unknown address {address}")

        raise NetworkError(f"Balance query failed with HTTP {response.status_code}")

    async def get_account_state(self, address: str, include_balance: bool = False) -> AccountState:
        """Fetch account number and current sequence for signing.

        Raises:
            AddressNotFound: The account does not exist on chain yet (never funded)
            NetworkError: Node unreachable or returned an unexpected response
        """
        if include_balance:
            response, balance = await asyncio.gather(
                self._request("GET", f"/cosmos/auth/v1beta1/accounts/{address}"),
                self.get_balance(address),
            )
        else:
            response = await self._request("GET", f"/cosmos/auth/v1beta1/accounts/{address}")
            balance = None

        if response.status_code in (400, 404):
            raise AddressNotFound(
                _error_message(response) or f"Account {address} not found on chain"
            )
        if response.status_code != 200:
            raise NetworkError(f"Account query failed with HTTP {response.status_code}")

        account = _find_base_account(response.json().get("account") or {})
        if account is None:
            raise NetworkError(f"Unrecognized account format for {address}")

        return AccountState(
            address=address,
            account_number=int(account.get("account_number") or 0),
            sequence=int(account.get("sequence") or 0),
            balance=balance,
        )

    async def query(self, contract_address: str, msg: Any) -> Any:
        """Run a read-only smart contract query and return its decoded data."""
        query_data = json.dumps(msg, separators=(",", ":")).encode()
        encoded = base64.urlsafe_b64encode(query_data).decode()

        response = await self._request(
            "GET", f"/cosmwasm/wasm/v1/contract/{contract_address}/smart/{encoded}"
        )

        if response.status_code == 200:
            return response.json().get("data")

        message = _error_message(response)
        if response.status_code >= 502 or message is None:
            raise NetworkError(f"Contract query failed with HTTP {response.status_code}")
        raise ContractQueryError(message)

    async def get_transaction(self, txhash: str) -> Optional[TxReceipt]:
        """Look up an included transaction by hash. None if not (yet) found."""
        response = await self._request("GET", f"/cosmos/tx/v1beta1/txs/{txhash}")

        if response.status_code == 200:
            return TxReceipt.from_tx_response(response.json().get("tx_response") or {})
        if response.status_code in (400, 404):
            return None
        raise NetworkError(f"Transaction lookup failed with HTTP {response.status_code}")

    # ======================
    # Writes
    # ======================

    async def simulate(self, tx_bytes: bytes) -> int:
        """Simulate a signed transaction and return the gas it used."""
        response = await self._request(
            "POST",
            "/cosmos/tx/v1beta1/simulate",
            json={"tx_bytes": base64.b64encode(tx_bytes).decode()},
        )

        if response.status_code == 200:
            gas_info = response.json().get("gas_info") or {}
            return int(gas_info.get("gas_used") or 0)

        message = _error_message(response)
        if message is None:
            raise NetworkError(f"Simulation failed with HTTP {response.status_code}")
        raise BroadcastError(f"Simulation failed: {message}")

    async def broadcast_transaction(
        self,
        tx_bytes: bytes,
        wait_for_inclusion: bool = True,
    ) -> TransactionResult:
        """Broadcast a signed transaction and wait for it to be included.

        The submit is never retried: a timeout after sending means the
        transaction may still land, so TransactionTimeout carries the hash for
        the caller to re-query.

        Raises:
            BroadcastError: The node rejected the transaction or it failed on chain
            TransactionTimeout: No confirmation within broadcast_timeout
            NetworkError: The node could not be reached (nothing was submitted)
        """
        txhash = tx_hash(tx_bytes)
        payload = {
            "tx_bytes": base64.b64encode(tx_bytes).decode(),
            "mode": "BROADCAST_MODE_SYNC",
        }

        try:
            response = await self._client.post("/cosmos/tx/v1beta1/txs", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.error(f"Broadcast of {txhash} could not connect: {e}")
            raise NetworkError(f"Node unreachable: {type(e).__name__}") from e
        except httpx.TimeoutException as e:
            logger.warning(f"Broadcast of {txhash} timed out waiting for node response")
            raise TransactionTimeout(
                "Broadcast timed out; the transaction may still be included", txhash=txhash
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Broadcast of {txhash} failed: {type(e).__name__}: {e}")
            raise NetworkError(f"Broadcast request failed: {type(e).__name__}") from e

        logger.info(f"Broadcast {txhash} -> HTTP {response.status_code}")

        if response.status_code != 200:
            message = _error_message(response)
            if response.status_code >= 500 and message is None:
                raise NetworkError(f"Broadcast failed with HTTP {response.status_code}")
            raise BroadcastError(message or f"Broadcast rejected with HTTP {response.status_code}", txhash=txhash)

        try:
            tx_response = response.json().get("tx_response") or {}
        except (ValueError, AttributeError):
            # Submitted but unreadable: the transaction may still land
            logger.warning(f"Broadcast of {txhash} returned an unreadable body")
            raise TransactionTimeout(
                "Node response to broadcast was unreadable; the transaction may still be included",
                txhash=txhash,
            ) from None

        receipt = TxReceipt.from_tx_response(tx_response)
        if not receipt.txhash:
            receipt.txhash = txhash

        if receipt.code != 0:
            raise self._rejection(receipt, stage="CheckTx")

        if not wait_for_inclusion:
            return TransactionResult(success=True, result=receipt.to_dict())

        included = await self.wait_for_inclusion(receipt.txhash)
        if included.code != 0:
            raise self._rejection(included, stage="DeliverTx")

        logger.info(f"Transaction {included.txhash} included at height {included.height}")
        return TransactionResult(success=True, result=included.to_dict())

    async def wait_for_inclusion(self, txhash: str) -> TxReceipt:
        """Poll for the transaction until it is found or broadcast_timeout elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.broadcast_timeout

        while True:
            try:
                receipt = await self.get_transaction(txhash)
            except NetworkError as e:
                # Already submitted: keep polling rather than reporting failure
                logger.warning(f"Polling {txhash} failed: {e}")
                receipt = None

            if receipt is not None:
                return receipt

            if loop.time() >= deadline:
                raise TransactionTimeout(
                    f"Transaction not confirmed after {self.broadcast_timeout}s", txhash=txhash
                )

            await asyncio.sleep(self.poll_interval)

    @staticmethod
    def _rejection(receipt: TxReceipt, stage: str) -> BroadcastError:
        reason = "transaction failed"
        if receipt.codespace in ("", "sdk"):
            reason = SDK_ERROR_REASONS.get(receipt.code, reason)
        logger.error(f"Transaction {receipt.txhash} rejected at {stage} (code {receipt.code}): {receipt.raw_log}")
        return BroadcastError(
            f"{reason}: {receipt.raw_log}" if receipt.raw_log else reason,
            code=receipt.code,
            txhash=receipt.txhash,
            raw_log=receipt.raw_log,
        )
