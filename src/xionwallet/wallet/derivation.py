"""XION key derivation.

XION is a Cosmos-SDK chain, so it uses the Cosmos conventions:
- secp256k1 keys
- BIP-39 mnemonics and the BIP-44 path m/44'/118'/0'/0/0
- Address = bech32("xion", RIPEMD160(SHA256(compressed_pubkey)))
"""

import logging
import re
import secrets

from bip_utils import (
    Bech32Decoder,
    Bech32Encoder,
    Bip39Languages,
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
    Bip44,
    Bip44Changes,
    Bip44Coins,
)
from bip_utils.bech32 import Bech32ChecksumError
from bip_utils.utils.crypto import Hash160
from ecdsa import SECP256k1, SigningKey

from xionwallet.errors import AddressNotFound, InvalidMnemonic, InvalidPrivateKey
from xionwallet.wallet.base import KeyPair

logger = logging.getLogger(__name__)

PRIVATE_KEY_SIZE = 32
ADDRESS_PAYLOAD_SIZE = 20
CONTRACT_PAYLOAD_SIZE = 32

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")

_WORDS_NUM = {
    12: Bip39WordsNum.WORDS_NUM_12,
    15: Bip39WordsNum.WORDS_NUM_15,
    18: Bip39WordsNum.WORDS_NUM_18,
    21: Bip39WordsNum.WORDS_NUM_21,
    24: Bip39WordsNum.WORDS_NUM_24,
}


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data)), the Cosmos account address payload."""
    return Hash160.QuickDigest(data)


def is_valid_scalar(raw: bytes) -> bool:
    """True if raw is a 32-byte secp256k1 private key (0 < k < n)."""
    if len(raw) != PRIVATE_KEY_SIZE:
        return False
    k = int.from_bytes(raw, "big")
    return 0 < k < SECP256k1.order


def public_key_from_private(raw: bytes) -> bytes:
    """Compressed (33-byte) SEC1 public key for a private scalar."""
    signing_key = SigningKey.from_string(raw, curve=SECP256k1)
    return signing_key.get_verifying_key().to_string("compressed")


def normalize_mnemonic(mnemonic: str) -> str:
    """Lowercase and collapse whitespace so pasted phrases validate."""
    return " ".join(mnemonic.strip().lower().split())


class XionKeyDerivation:
    """Derives XION key pairs from mnemonics, raw keys or fresh randomness.

    Usage:
        derivation = XionKeyDerivation()
        keys = derivation.from_mnemonic("abandon abandon ... about")
        keys.address  # "xion1..."
    """

    COIN_TYPE: int = 118  # Standard Cosmos coin type
    BECH32_PREFIX: str = "xion"

    def __init__(self, prefix: str = BECH32_PREFIX):
        self.prefix = prefix

    @property
    def derivation_path(self) -> str:
        return f"m/44'/{self.COIN_TYPE}'/0'/0/0"

    # ----------------------
    # Addresses
    # ----------------------

    def address_from_public_key(self, public_key: bytes) -> str:
        """Encode the bech32 address for a compressed public key."""
        return Bech32Encoder.Encode(self.prefix, hash160(public_key))

    def decode_address(self, address: str, sizes: tuple = (ADDRESS_PAYLOAD_SIZE,)) -> bytes:
        """Decode an address to its payload.

        Only the canonical lowercase encoding with this chain's prefix is
        accepted. Account addresses carry 20 bytes; CosmWasm contract
        addresses carry 32.

        Raises:
            AddressNotFound: If the address is malformed
        """
        if not isinstance(address, str) or address != address.lower():
            raise AddressNotFound(f"Invalid {self.prefix} address: {address!r}")

        try:
            payload = Bech32Decoder.Decode(self.prefix, address)
        except (Bech32ChecksumError, ValueError) as e:
            raise AddressNotFound(f"Invalid {self.prefix} address: {address!r}") from e

        if len(payload) not in sizes:
            raise AddressNotFound(
                f"Invalid {self.prefix} address payload length: {len(payload)}"
            )
        return payload

    def validate_address(self, address: str) -> str:
        """Return the account address unchanged if it decodes, else raise AddressNotFound."""
        self.decode_address(address)
        return address

    def validate_contract_address(self, address: str) -> str:
        """Accept a 20-byte account or a 32-byte contract or smart-account address."""
        self.decode_address(address, sizes=(ADDRESS_PAYLOAD_SIZE, CONTRACT_PAYLOAD_SIZE))
        return address

    # ----------------------
    # Key pairs
    # ----------------------

    def _key_pair(self, raw: bytes, derivation_path=None) -> KeyPair:
        public_key = public_key_from_private(raw)
        return KeyPair(
            private_key=bytearray(raw),
            public_key=public_key,
            address=self.address_from_public_key(public_key),
            derivation_path=derivation_path,
        )

    def from_mnemonic(self, mnemonic: str) -> KeyPair:
        """Derive the account key at m/44'/118'/0'/0/0.

        Raises:
            InvalidMnemonic: On bad word count, unknown word or checksum failure
        """
        if not isinstance(mnemonic, str):
            raise InvalidMnemonic("Mnemonic must be a string")

        phrase = normalize_mnemonic(mnemonic)
        word_count = len(phrase.split())
        if word_count not in _WORDS_NUM:
            raise InvalidMnemonic(f"Mnemonic must have 12-24 words (multiple of 3), got {word_count}")

        validator = Bip39MnemonicValidator(Bip39Languages.ENGLISH)
        if not validator.IsValid(phrase):
            raise InvalidMnemonic("Mnemonic checksum or word list validation failed")

        seed = Bip39SeedGenerator(phrase, Bip39Languages.ENGLISH).Generate()
        bip44_ctx = Bip44.FromSeed(seed, Bip44Coins.COSMOS)
        account = (
            bip44_ctx.Purpose()
            .Coin()
            .Account(0)
            .Change(Bip44Changes.CHAIN_EXT)
            .AddressIndex(0)
        )
        raw = account.PrivateKey().Raw().ToBytes()
        return self._key_pair(raw, derivation_path=self.derivation_path)

    def from_private_key(self, raw_hex: str) -> KeyPair:
        """Build a key pair from a 32-byte hex private key.

        Raises:
            InvalidPrivateKey: If the input is not 64 hex chars or not a valid scalar
        """
        if not isinstance(raw_hex, str):
            raise InvalidPrivateKey("Private key must be a hex string")

        value = raw_hex.strip()
        if value.startswith(("0x", "0X")):
            value = value[2:]

        if not _HEX_KEY_RE.match(value):
            raise InvalidPrivateKey("Private key must be exactly 32 bytes of hex")

        raw = bytes.fromhex(value)
        if not is_valid_scalar(raw):
            raise InvalidPrivateKey("Private key is out of range for secp256k1")

        return self._key_pair(raw)

    def generate(self) -> KeyPair:
        """Generate a key pair from 32 bytes of CSPRNG output."""
        while True:
            raw = secrets.token_bytes(PRIVATE_KEY_SIZE)
            if is_valid_scalar(raw):
                return self._key_pair(raw)
            logger.warning("Generated out-of-range secp256k1 scalar, retrying")

    @staticmethod
    def generate_mnemonic(words: int = 24) -> str:
        """Generate a new BIP-39 English mnemonic."""
        if words not in _WORDS_NUM:
            raise ValueError(f"Unsupported mnemonic length: {words}")
        return Bip39MnemonicGenerator(Bip39Languages.ENGLISH).FromWordsNumber(_WORDS_NUM[words]).ToStr()
