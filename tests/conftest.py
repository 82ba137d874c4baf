"""Pytest configuration and fixtures."""

import asyncio
import base64
import hashlib
import json
import os
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from bip_utils import Bech32Decoder, Bech32Encoder
from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import AuthInfo, TxBody, TxRaw
from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import MsgExecuteContract
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"

from xionwallet.api.app import create_app
from xionwallet.chain.client import ChainClient
from xionwallet.config import Settings
from xionwallet.crypto import SecretCipher
from xionwallet.services.gateway import ContractGateway
from xionwallet.services.wallet_service import WalletService
from xionwallet.tx.builder import TransactionBuilder
from xionwallet.utils.locks import AddressLocks
from xionwallet.wallet.derivation import XionKeyDerivation

TEST_MASTER_KEY = "0f" * 32

# cosmjs faucet test vector (m/44'/118'/0'/0/0)
TEST_MNEMONIC = (
    "economy stock theory fatal elder harbor betray wasp final emotion task crumble "
    "siren bottom lizard educate guess current outdoor pair theory focus wife stone"
)
TEST_PUBKEY_B64 = "A08EGB7ro1ORuFhjOnZcSgwYlpe0DSFjVNUIkNNQxwKQ"
TEST_COSMOS_ADDRESS = "cosmos1pkptre7fdkl6gfrzlesjjvhxhlc3r4gmmk8rs6"

# BIP-39 12-word test phrase at the same path
ABANDON_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])
ABANDON_COSMOS_ADDRESS = "cosmos19rl4cm2hmr8afy4kldpxz3fka4jguq0auqdal4"


def as_xion(cosmos_address: str) -> str:
    """Re-encode a cosmos1 address with the xion prefix (same key, same payload)."""
    return Bech32Encoder.Encode("xion", Bech32Decoder.Decode("cosmos", cosmos_address))


CONTRACT_ADDRESS = Bech32Encoder.Encode("xion", hashlib.sha256(b"counter-contract").digest())


class MockChainNode:
    """In-memory stand-in for a XION LCD endpoint.

    Tracks account sequences and rejects transactions signed with a stale
    sequence the way a real node does (code 32).
    """

    def __init__(self, chain_id: str = "xion-testnet-2"):
        self.chain_id = chain_id
        self.accounts: dict[str, dict] = {}
        self.balances: dict[str, int] = {}
        self.query_result = {"count": 7}
        self.queries: list[dict] = []
        self.broadcasts: list[dict] = []
        self.included: dict[str, dict] = {}
        self.include_transactions = True
        self.deliver_code = 0
        self.simulate_gas = 150000
        self.account_latency = 0.0
        # Serve sequences this far behind the real one (simulates a lagging node)
        self.sequence_lag = 0
        self.broadcast_exception: Optional[Exception] = None
        self.height = 1000
        self._derivation = XionKeyDerivation()

    def fund(self, address: str, amount: int = 1_000_000, account_number: int = 42, sequence: int = 0):
        self.accounts[address] = {"account_number": account_number, "sequence": sequence}
        self.balances[address] = amount

    @staticmethod
    def _json(status_code: int, data: dict) -> httpx.Response:
        return httpx.Response(status_code, json=data)

    def decode_tx(self, tx_bytes: bytes) -> dict:
        """Decode the fields of a TxRaw that tests care about."""
        tx_raw = TxRaw()
        tx_raw.ParseFromString(tx_bytes)
        auth_info = AuthInfo()
        auth_info.ParseFromString(tx_raw.auth_info_bytes)
        body = TxBody()
        body.ParseFromString(tx_raw.body_bytes)

        execute = MsgExecuteContract()
        body.messages[0].Unpack(execute)
        pubkey = PubKey()
        auth_info.signer_infos[0].public_key.Unpack(pubkey)

        return {
            "tx_raw": tx_raw,
            "auth_info": auth_info,
            "body": body,
            "type_url": body.messages[0].type_url,
            "execute": execute,
            "msg": json.loads(execute.msg),
            "sequence": auth_info.signer_infos[0].sequence,
            "gas_limit": auth_info.fee.gas_limit,
            "fee": [(c.amount, c.denom) for c in auth_info.fee.amount],
            "signer": self._derivation.address_from_public_key(pubkey.key),
            "signature": tx_raw.signatures[0],
        }

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        parts = path.split("/")

        if path.startswith("/cosmos/bank/v1beta1/balances/"):
            address = parts[5]
            if not address.startswith("xion1"):
                return self._json(400, {"code": 3, "message": "invalid address", "details": []})
            amount = self.balances.get(address, 0)
            return self._json(200, {"balance": {"denom": request.url.params.get("denom"), "amount": str(amount)}})

        if path.startswith("/cosmos/auth/v1beta1/accounts/"):
            address = parts[5]
            # State is read when the request arrives; latency only delays the reply
            account = dict(self.accounts[address]) if address in self.accounts else None
            if self.account_latency:
                await asyncio.sleep(self.account_latency)
            if account is None:
                return self._json(404, {"code": 5, "message": f"account {address} not found", "details": []})
            return self._json(200, {
                "account": {
                    "@type": "/cosmos.auth.v1beta1.BaseAccount",
                    "address": address,
                    "pub_key": None,
                    "account_number": str(account["account_number"]),
                    "sequence": str(max(account["sequence"] - self.sequence_lag, 0)),
                }
            })

        if path.startswith("/cosmwasm/wasm/v1/contract/"):
            msg = json.loads(base64.urlsafe_b64decode(parts[7]))
            self.queries.append(msg)
            if "fail" in msg:
                return self._json(500, {"code": 2, "message": "query wasm contract failed: unknown variant `fail`"})
            return self._json(200, {"data": self.query_result})

        if path == "/cosmos/tx/v1beta1/simulate":
            return self._json(200, {"gas_info": {"gas_wanted": "0", "gas_used": str(self.simulate_gas)}})

        if path == "/cosmos/tx/v1beta1/txs" and request.method == "POST":
            return self._broadcast(request)

        if path.startswith("/cosmos/tx/v1beta1/txs/"):
            tx_response = self.included.get(parts[5])
            if tx_response is None:
                return self._json(404, {"code": 5, "message": "tx not found"})
            return self._json(200, {"tx": {}, "tx_response": tx_response})

        return self._json(501, {"code": 12, "message": f"Not implemented: {path}"})

    def _broadcast(self, request: httpx.Request) -> httpx.Response:
        if self.broadcast_exception is not None:
            raise self.broadcast_exception

        payload = json.loads(request.content)
        tx_bytes = base64.b64decode(payload["tx_bytes"])
        txhash = hashlib.sha256(tx_bytes).hexdigest().upper()
        decoded = self.decode_tx(tx_bytes)
        account = self.accounts.get(decoded["signer"])

        if account is None:
            return self._json(200, {"tx_response": {
                "txhash": txhash, "code": 4, "codespace": "sdk",
                "raw_log": "unauthorized: account not found",
            }})

        if decoded["sequence"] != account["sequence"]:
            return self._json(200, {"tx_response": {
                "txhash": txhash, "code": 32, "codespace": "sdk",
                "raw_log": (
                    f"account sequence mismatch, expected {account['sequence']}, "
                    f"got {decoded['sequence']}: incorrect account sequence"
                ),
            }})

        account["sequence"] += 1
        self.broadcasts.append(decoded)

        if self.include_transactions:
            self.height += 1
            self.included[txhash] = {
                "txhash": txhash,
                "height": str(self.height),
                "code": self.deliver_code,
                "codespace": "wasm" if self.deliver_code else "",
                "gas_wanted": str(decoded["gas_limit"]),
                "gas_used": "123456",
                "raw_log": "execute wasm contract failed" if self.deliver_code else "",
                "events": [{"type": "execute", "attributes": []}],
            }

        return self._json(200, {"tx_response": {"txhash": txhash, "code": 0, "height": "0", "raw_log": ""}})


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the mock node with short timeouts."""
    return Settings(
        _env_file=None,
        master_key=TEST_MASTER_KEY,
        lcd_url="http://mock-node",
        chain_id="xion-testnet-2",
        broadcast_timeout=0.5,
        broadcast_poll_interval=0.01,
        signer_lock_timeout=5.0,
    )


@pytest.fixture
def mock_node() -> MockChainNode:
    return MockChainNode()


@pytest.fixture
def derivation() -> XionKeyDerivation:
    return XionKeyDerivation()


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher.from_master_key(TEST_MASTER_KEY)


@pytest_asyncio.fixture
async def chain_client(settings, mock_node) -> AsyncGenerator[ChainClient, None]:
    """Chain client whose transport is the mock node."""
    client = ChainClient.from_settings(settings, transport=httpx.MockTransport(mock_node.handler))
    yield client
    await client.aclose()


@pytest.fixture
def gateway(settings, chain_client, derivation, cipher) -> ContractGateway:
    return ContractGateway(
        chain_client=chain_client,
        builder=TransactionBuilder.from_settings(settings),
        derivation=derivation,
        cipher=cipher,
        locks=AddressLocks(timeout=settings.signer_lock_timeout),
    )


@pytest.fixture
def wallet_service(derivation, cipher) -> WalletService:
    return WalletService(derivation=derivation, cipher=cipher)


@pytest_asyncio.fixture
async def client(settings, chain_client) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the API backed by the mock node."""
    app = create_app(settings, chain_client=chain_client)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
