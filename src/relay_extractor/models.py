#!/usr/bin/env python3
"""Data models for the relay extractor.

This module provides immutable data classes for the transaction records
consumed by the extractor and for the domain events it produces.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from hexbytes import HexBytes
from web3 import Web3

METHOD_UNKNOWN = "unknown"


class TxStatus(Enum):
    """Execution status of a transaction."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def to_hex_str(value: HexBytes | bytes | str | None) -> str | None:
    """Normalize a hash-like value to a lowercase 0x-prefixed hex string."""
    match value:
        case None:
            return None
        case bytes():
            return Web3.to_hex(value)
        case str():
            return value.lower() if value.startswith(("0x", "0X")) else "0x" + value.lower()
        case _:
            raise ValueError(f"Unexpected hex value type: {type(value)}")


def to_int(value: int | str | None, default: int = 0) -> int:
    """Normalize an int or hex-quantity string to an int."""
    match value:
        case None:
            return default
        case bool():
            raise ValueError("Quantity cannot be a boolean")
        case int():
            return value
        case str():
            return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        case _:
            raise ValueError(f"Unexpected quantity type: {type(value)}")


def to_address(value: str | bytes | None) -> str | None:
    """Checksum an address, keeping None for contract creations."""
    if value is None:
        return None
    return Web3.to_checksum_address(value)


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A transaction as read from the ledger.

    Attributes:
        hash: Transaction hash
        block_hash: Hash of the including block (None while pending)
        block_number: Number of the including block (None while pending)
        transaction_index: Position within the block
        sender: Address that signed the transaction
        recipient: Called address (None for contract creation)
        gas: Gas limit
        gas_price: Gas price in wei
        nonce: Sender nonce
        value: Native value attached to the call, in wei
        input: Hex-encoded call-data, "0x" when empty
    """

    hash: str
    block_hash: str | None
    block_number: int | None
    transaction_index: int
    sender: str
    recipient: str | None
    gas: int
    gas_price: int
    nonce: int
    value: int
    input: str = "0x"

    @classmethod
    def from_web3(cls, tx: Mapping[str, Any]) -> "TransactionRecord":
        """Build a record from a web3.py ``TxData`` mapping."""
        block_number = tx.get("blockNumber")
        return cls(
            hash=to_hex_str(tx["hash"]),
            block_hash=to_hex_str(tx.get("blockHash")),
            block_number=None if block_number is None else to_int(block_number),
            transaction_index=to_int(tx.get("transactionIndex")),
            sender=to_address(tx["from"]),
            recipient=to_address(tx.get("to")),
            gas=to_int(tx.get("gas")),
            gas_price=to_int(tx.get("gasPrice")),
            nonce=to_int(tx.get("nonce")),
            value=to_int(tx.get("value")),
            input=to_hex_str(tx.get("input")) or "0x",
        )

    @property
    def has_call_data(self) -> bool:
        """Whether the transaction carries any call-data at all."""
        return self.input not in ("", "0x")


@dataclass(frozen=True, slots=True)
class ReceiptRecord:
    """The part of a transaction receipt the extractor needs."""

    gas_used: int
    failed: bool = False

    @classmethod
    def from_web3(cls, receipt: Mapping[str, Any], tx: TransactionRecord) -> "ReceiptRecord":
        """Build a record from a web3.py ``TxReceipt`` mapping.

        Post-Byzantium receipts report a status field. Older receipts do not,
        and a transaction that consumed its whole gas limit is treated as failed.
        """
        gas_used = to_int(receipt.get("gasUsed"))
        status = receipt.get("status")
        if status is None:
            failed = gas_used == tx.gas
        else:
            failed = to_int(status) == 0
        return cls(gas_used=gas_used, failed=failed)


@dataclass(frozen=True, slots=True)
class TransactionContext:
    """Canonical transaction metadata embedded in every event."""

    block_number: int | None
    block_hash: str | None
    block_time: int
    tx_hash: str
    tx_index: int
    sender: str
    recipient: str | None
    protocol: str | None
    delegate_address: str | None
    gas_limit: int
    gas_used: int
    gas_price: int
    nonce: int
    value: int
    status: TxStatus
    identify: str
    log_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True, slots=True)
class Order:
    """A protocol order rebuilt from method arguments."""

    owner: str
    token_s: str
    token_b: str
    wallet_address: str
    auth_addr: str
    amount_s: int
    amount_b: int
    valid_since: int
    valid_until: int
    lrc_fee: int
    buy_no_more_than_amount_b: bool
    margin_split_percentage: int
    v: int
    r: str
    s: str
    protocol: str | None = None
    delegate_address: str | None = None
    hash: str | None = None

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"Order(owner={self.owner[:8]}..., "
            f"tokenS={self.token_s[:8]}..., tokenB={self.token_b[:8]}..., "
            f"amountS={self.amount_s}, amountB={self.amount_b})"
        )


@dataclass(frozen=True, slots=True)
class RingSubmissionEvent:
    """A batched order-matching transaction."""
    ctx: TransactionContext
    orders: tuple[Order, ...]
    fee_recipient: str
    fee_selections: int
    err: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "ctx": self.ctx.to_dict(),
            "orders": [asdict(order) for order in self.orders],
            "fee_recipient": self.fee_recipient,
            "fee_selections": self.fee_selections,
            "err": self.err,
        }


@dataclass(frozen=True, slots=True)
class OrderCancelledEvent:
    ctx: TransactionContext
    order_hash: str
    amount_cancelled: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "ctx": self.ctx.to_dict(),
            "order_hash": self.order_hash,
            "amount_cancelled": self.amount_cancelled,
        }


@dataclass(frozen=True, slots=True)
class CutoffEvent:
    """All orders of ``owner`` created before ``cutoff`` are invalid."""
    ctx: TransactionContext
    owner: str
    cutoff: int

    def to_dict(self) -> dict[str, Any]:
        return {"ctx": self.ctx.to_dict(), "owner": self.owner, "cutoff": self.cutoff}


@dataclass(frozen=True, slots=True)
class CutoffPairEvent:
    """Orders of ``owner`` on one token pair created before ``cutoff`` are invalid."""
    ctx: TransactionContext
    owner: str
    token1: str
    token2: str
    cutoff: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "ctx": self.ctx.to_dict(),
            "owner": self.owner,
            "token1": self.token1,
            "token2": self.token2,
            "cutoff": self.cutoff,
        }


@dataclass(frozen=True, slots=True)
class ApprovalEvent:
    ctx: TransactionContext
    owner: str
    spender: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "ctx": self.ctx.to_dict(),
            "owner": self.owner,
            "spender": self.spender,
            "amount": self.amount,
        }


@dataclass(frozen=True, slots=True)
class TransferEvent:
    """Token-contract or native-value transfer."""
    ctx: TransactionContext
    sender: str
    receiver: str | None
    amount: int

    @property
    def status(self) -> TxStatus:
        return self.ctx.status

    def to_dict(self) -> dict[str, Any]:
        return {
            "ctx": self.ctx.to_dict(),
            "sender": self.sender,
            "receiver": self.receiver,
            "amount": self.amount,
        }


@dataclass(frozen=True, slots=True)
class WethDepositEvent:
    ctx: TransactionContext
    dst: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"ctx": self.ctx.to_dict(), "dst": self.dst, "amount": self.amount}


@dataclass(frozen=True, slots=True)
class WethWithdrawalEvent:
    ctx: TransactionContext
    src: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"ctx": self.ctx.to_dict(), "src": self.src, "amount": self.amount}


Event = (
    RingSubmissionEvent
    | OrderCancelledEvent
    | CutoffEvent
    | CutoffPairEvent
    | ApprovalEvent
    | TransferEvent
    | WethDepositEvent
    | WethWithdrawalEvent
)
