"""Tests for gas parsing and transaction building/signing."""

import hashlib
from decimal import Decimal

import pytest
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import SignDoc
from ecdsa import SECP256k1, VerifyingKey
from ecdsa.util import sigdecode_string

from xionwallet.chain.models import AccountState
from xionwallet.errors import InvalidGasParameters
from xionwallet.tx.builder import TransactionBuilder, encode_contract_msg
from xionwallet.tx.gas import GasPrice, is_auto, parse_gas_limit

from tests.conftest import CONTRACT_ADDRESS, MockChainNode


@pytest.fixture
def builder() -> TransactionBuilder:
    return TransactionBuilder(chain_id="xion-testnet-2")


@pytest.fixture
def signer(derivation):
    return derivation.from_private_key("2a" * 32)


@pytest.fixture
def account(signer) -> AccountState:
    return AccountState(address=signer.address, account_number=42, sequence=7)


class TestGasParameters:
    """Gas limit and price validation."""

    @pytest.mark.parametrize("value,expected", [(200000, 200000), ("300000", 300000), (1, 1)])
    def test_valid_limits(self, value, expected):
        assert parse_gas_limit(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "0", "-5", "abc", "1.5", 1.5, True, None, "", 10**12])
    def test_invalid_limits(self, value):
        with pytest.raises(InvalidGasParameters):
            parse_gas_limit(value)

    def test_parse_price(self):
        price = GasPrice.parse("0.025uxion")
        assert price.amount == Decimal("0.025")
        assert price.denom == "uxion"

    @pytest.mark.parametrize("value", ["0uxion", "0.0uxion", "uxion", "0.025", "-1uxion", "abc", "", 25])
    def test_invalid_prices(self, value):
        with pytest.raises(InvalidGasParameters):
            GasPrice.parse(value)

    def test_fee_rounds_up(self):
        assert GasPrice.parse("0.025uxion").fee_for(200000) == 5000
        assert GasPrice.parse("0.025uxion").fee_for(200001) == 5001

    def test_auto_detection(self):
        assert is_auto("auto")
        assert is_auto(" AUTO ")
        assert not is_auto(200000)


class TestTransactionBuilder:
    """Execute envelope, fee and signature."""

    def test_defaults_applied(self, builder, signer, account):
        decoded = MockChainNode().decode_tx(
            builder.build_execute(CONTRACT_ADDRESS, {"increment": {}}, signer, account)
        )

        assert decoded["gas_limit"] == 200000
        assert decoded["fee"] == [("5000", "uxion")]

    def test_envelope_contents(self, builder, signer, account):
        msg = {"transfer": {"recipient": "xion1abc", "amount": "10", "nested": [1, {"a": None}]}}
        decoded = MockChainNode().decode_tx(
            builder.build_execute(CONTRACT_ADDRESS, msg, signer, account, gas_limit=300000, gas_price="0.1uxion")
        )

        assert decoded["type_url"] == "/cosmwasm.wasm.v1.MsgExecuteContract"
        assert decoded["execute"].sender == signer.address
        assert decoded["execute"].contract == CONTRACT_ADDRESS
        assert decoded["msg"] == msg
        assert decoded["sequence"] == 7
        assert decoded["gas_limit"] == 300000
        assert decoded["fee"] == [("30000", "uxion")]
        assert decoded["signer"] == signer.address

    def test_msg_passed_through_unmodified(self):
        msg = {"b": 1, "a": {"unicode": "é"}}
        assert encode_contract_msg(msg) == '{"b":1,"a":{"unicode":"é"}}'.encode("utf-8")

    def test_signature_verifies_and_is_low_s(self, builder, signer, account):
        unsigned = builder.build_unsigned(CONTRACT_ADDRESS, {"increment": {}}, signer, account)
        tx_bytes = builder.sign(unsigned, signer)
        decoded = MockChainNode().decode_tx(tx_bytes)
        signature = decoded["signature"]

        sign_doc = SignDoc(
            body_bytes=decoded["tx_raw"].body_bytes,
            auth_info_bytes=decoded["tx_raw"].auth_info_bytes,
            chain_id="xion-testnet-2",
            account_number=42,
        ).SerializeToString()
        assert sign_doc == unsigned.sign_doc_bytes

        verifying_key = VerifyingKey.from_string(signer.public_key, curve=SECP256k1)
        assert verifying_key.verify_digest(
            signature, hashlib.sha256(sign_doc).digest(), sigdecode=sigdecode_string
        )

        s = int.from_bytes(signature[32:], "big")
        assert len(signature) == 64
        assert s <= SECP256k1.order // 2

    def test_deterministic_for_identical_inputs(self, builder, signer, account):
        first = builder.build_execute(CONTRACT_ADDRESS, {"increment": {}}, signer, account)
        second = builder.build_execute(CONTRACT_ADDRESS, {"increment": {}}, signer, account)
        assert first == second

    def test_sequence_changes_signature(self, builder, signer, account):
        next_account = AccountState(address=account.address, account_number=42, sequence=8)
        first = builder.build_execute(CONTRACT_ADDRESS, {"increment": {}}, signer, account)
        second = builder.build_execute(CONTRACT_ADDRESS, {"increment": {}}, signer, next_account)
        assert first != second

    def test_chain_id_is_signed(self, signer, account):
        testnet = TransactionBuilder(chain_id="xion-testnet-2")
        mainnet = TransactionBuilder(chain_id="xion-mainnet-1")
        assert (
            testnet.build_unsigned(CONTRACT_ADDRESS, {"a": {}}, signer, account).sign_doc_bytes
            != mainnet.build_unsigned(CONTRACT_ADDRESS, {"a": {}}, signer, account).sign_doc_bytes
        )

    @pytest.mark.parametrize("gas_limit,gas_price", [(0, None), (-5, None), ("lots", None), (None, "free"), (None, "0uxion")])
    def test_invalid_gas_rejected(self, builder, signer, account, gas_limit, gas_price):
        with pytest.raises(InvalidGasParameters):
            builder.build_execute(CONTRACT_ADDRESS, {"a": {}}, signer, account, gas_limit, gas_price)

    def test_wiped_signer_cannot_sign(self, builder, signer, account):
        unsigned = builder.build_unsigned(CONTRACT_ADDRESS, {"a": {}}, signer, account)
        signer.wipe()
        with pytest.raises(ValueError):
            builder.sign(unsigned, signer)

    @pytest.mark.asyncio
    async def test_estimate_gas_applies_adjustment(self, builder, signer, account, chain_client, mock_node):
        mock_node.simulate_gas = 100000
        gas = await builder.estimate_gas(chain_client, CONTRACT_ADDRESS, {"a": {}}, signer, account, gas_adjustment=1.5)
        assert gas == 150000
