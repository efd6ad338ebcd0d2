"""Shared fixtures for the relay extractor tests."""

import pytest
from eth_abi import encode
from web3 import Web3

from relay_extractor.abi_registry import AbiRegistry
from relay_extractor.models import TransactionRecord

SENDER = Web3.to_checksum_address("0x" + "bb" * 20)
RECIPIENT = Web3.to_checksum_address("0x" + "22" * 20)
PROTOCOL = Web3.to_checksum_address("0x781870080c8c24a2fd6882296c49c837b06a65e6")
DELEGATE = Web3.to_checksum_address("0x17233e07c67d086464fd408148c3abb56245fa64")
SPENDER = Web3.to_checksum_address("0x" + "aa" * 20)
TOKEN_A = Web3.to_checksum_address("0x" + "a1" * 20)
TOKEN_B = Web3.to_checksum_address("0x" + "b2" * 20)
TX_HASH = "0x" + "ab" * 32
BLOCK_HASH = "0x" + "cd" * 32


def build_call(signature: str, types: list[str], values: list) -> str:
    """Hex call-data for ``signature`` with ABI-encoded ``values``."""
    selector = bytes(Web3.keccak(text=signature)[:4])
    return Web3.to_hex(selector + encode(types, values))


@pytest.fixture
def encode_call():
    """Factory building hex call-data."""
    return build_call


@pytest.fixture
def make_tx():
    """Factory for TransactionRecord with sensible defaults."""
    def _make_tx(**overrides) -> TransactionRecord:
        fields = {
            "hash": TX_HASH,
            "block_hash": BLOCK_HASH,
            "block_number": 5_000_000,
            "transaction_index": 3,
            "sender": SENDER,
            "recipient": PROTOCOL,
            "gas": 300_000,
            "gas_price": 20_000_000_000,
            "nonce": 7,
            "value": 0,
            "input": "0x",
        }
        fields.update(overrides)
        return TransactionRecord(**fields)

    return _make_tx


@pytest.fixture(scope="session")
def registry():
    """AbiRegistry over the packaged contract ABIs."""
    return AbiRegistry.from_directory()
