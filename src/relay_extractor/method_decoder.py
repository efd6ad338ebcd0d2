"""
Call-data decoding for the contract methods the relay understands.

Strips the 4-byte selector from a transaction's input, decodes the rest with
``eth_abi`` against the method's ABI entry and narrows the result into one
of the typed payloads below.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from .abi_registry import function_selector, input_types
from .errors import DecodeError

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4


class MethodName(str, Enum):
    """Contract methods that map to relay events."""
    SUBMIT_RING = "submitRing"
    CANCEL_ORDER = "cancelOrder"
    CUTOFF_ALL = "cancelAllOrders"
    CUTOFF_PAIR = "cancelAllOrdersByTradingPair"
    APPROVE = "approve"
    TRANSFER = "transfer"
    WETH_DEPOSIT = "deposit"
    WETH_WITHDRAWAL = "withdraw"


def _address(value: Any) -> str:
    return Web3.to_checksum_address(value)


def _hex32(value: bytes) -> str:
    return Web3.to_hex(value)


@dataclass(frozen=True, slots=True)
class SubmitRingInputs:
    """Arguments of ``submitRing``; one row per order in each list.

    address_list rows are (owner, tokenS, wallet, authAddr); uint_args_list
    rows are (amountS, amountB, validSince, validUntil, lrcFee, rateAmountS).
    v/r/s hold the order signatures followed by the ring signatures.
    """
    address_list: tuple[tuple[str, str, str, str], ...]
    uint_args_list: tuple[tuple[int, ...], ...]
    uint8_args_list: tuple[tuple[int], ...]
    buy_no_more_than_amount_b_list: tuple[bool, ...]
    v_list: tuple[int, ...]
    r_list: tuple[str, ...]
    s_list: tuple[str, ...]
    miner: str
    fee_selections: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "SubmitRingInputs":
        addresses, uints, uint8s, buy_no_more, vs, rs, ss, miner, fee_selections = args
        return cls(
            address_list=tuple(tuple(_address(a) for a in row) for row in addresses),
            uint_args_list=tuple(tuple(row) for row in uints),
            uint8_args_list=tuple(tuple(row) for row in uint8s),
            buy_no_more_than_amount_b_list=tuple(buy_no_more),
            v_list=tuple(vs),
            r_list=tuple(_hex32(r) for r in rs),
            s_list=tuple(_hex32(s) for s in ss),
            miner=_address(miner),
            fee_selections=fee_selections,
        )


@dataclass(frozen=True, slots=True)
class CancelOrderInputs:
    """Arguments of ``cancelOrder``.

    addresses are (owner, tokenS, tokenB, wallet, authAddr); order_values are
    (amountS, amountB, validSince, validUntil, lrcFee, cancelAmount).
    """
    addresses: tuple[str, str, str, str, str]
    order_values: tuple[int, int, int, int, int, int]
    buy_no_more_than_amount_b: bool
    margin_split_percentage: int
    v: int
    r: str
    s: str

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "CancelOrderInputs":
        addresses, values, buy_no_more, margin_split, v, r, s = args
        return cls(
            addresses=tuple(_address(a) for a in addresses),
            order_values=tuple(values),
            buy_no_more_than_amount_b=buy_no_more,
            margin_split_percentage=margin_split,
            v=v,
            r=_hex32(r),
            s=_hex32(s),
        )


@dataclass(frozen=True, slots=True)
class CutoffAllInputs:
    cutoff: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "CutoffAllInputs":
        (cutoff,) = args
        return cls(cutoff=cutoff)


@dataclass(frozen=True, slots=True)
class CutoffPairInputs:
    token1: str
    token2: str
    cutoff: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "CutoffPairInputs":
        token1, token2, cutoff = args
        return cls(token1=_address(token1), token2=_address(token2), cutoff=cutoff)


@dataclass(frozen=True, slots=True)
class ApproveInputs:
    spender: str
    value: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "ApproveInputs":
        spender, value = args
        return cls(spender=_address(spender), value=value)


@dataclass(frozen=True, slots=True)
class TransferInputs:
    receiver: str
    value: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "TransferInputs":
        receiver, value = args
        return cls(receiver=_address(receiver), value=value)


@dataclass(frozen=True, slots=True)
class DepositInputs:
    """``deposit()`` takes no arguments; the amount is the call's value."""

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "DepositInputs":
        if len(args):
            raise ValueError(f"deposit takes no arguments, got {len(args)}")
        return cls()


@dataclass(frozen=True, slots=True)
class WithdrawalInputs:
    value: int

    @classmethod
    def from_args(cls, args: Sequence[Any]) -> "WithdrawalInputs":
        (value,) = args
        return cls(value=value)


MethodPayload = (
    SubmitRingInputs
    | CancelOrderInputs
    | CutoffAllInputs
    | CutoffPairInputs
    | ApproveInputs
    | TransferInputs
    | DepositInputs
    | WithdrawalInputs
)

PAYLOAD_TYPES: dict[MethodName, type[MethodPayload]] = {
    MethodName.SUBMIT_RING: SubmitRingInputs,
    MethodName.CANCEL_ORDER: CancelOrderInputs,
    MethodName.CUTOFF_ALL: CutoffAllInputs,
    MethodName.CUTOFF_PAIR: CutoffPairInputs,
    MethodName.APPROVE: ApproveInputs,
    MethodName.TRANSFER: TransferInputs,
    MethodName.WETH_DEPOSIT: DepositInputs,
    MethodName.WETH_WITHDRAWAL: WithdrawalInputs,
}


@dataclass(frozen=True, slots=True)
class DecodedMethod:
    """A decoded method call.

    Attributes:
        selector: 0x-prefixed 4-byte selector
        name: Method name from the ABI entry
        abi: ABI entry used for decoding
        args: Decoded arguments keyed by ABI input name (or position)
        payload: Typed payload, None for methods without a relay event
    """
    selector: str
    name: str
    abi: dict[str, Any]
    args: dict[str, Any]
    payload: MethodPayload | None


def _to_bytes(raw_input: str | bytes) -> bytes:
    if isinstance(raw_input, bytes):
        return bytes(raw_input)
    try:
        return Web3.to_bytes(hexstr=raw_input)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"call-data is not valid hex: {e}") from e


class MethodDecoder:
    """Decodes raw call-data against an ABI entry."""

    @staticmethod
    def selector(raw_input: str | bytes) -> str:
        """
        Extract the method selector from call-data.

        Args:
            raw_input: Hex string or bytes of the transaction input

        Returns:
            0x-prefixed lowercase selector

        Raises:
            DecodeError: If the input is shorter than the selector
        """
        data = _to_bytes(raw_input)
        if len(data) < SELECTOR_SIZE:
            raise DecodeError(
                f"call-data is {len(data)} bytes, shorter than the {SELECTOR_SIZE}-byte selector"
            )
        return Web3.to_hex(data[:SELECTOR_SIZE])

    def decode(self, abi_entry: dict[str, Any], raw_input: str | bytes) -> DecodedMethod:
        """
        Decode call-data into a DecodedMethod.

        Args:
            abi_entry: Function ABI entry describing the arguments
            raw_input: Hex string or bytes of the transaction input

        Returns:
            DecodedMethod with a typed payload for handled methods

        Raises:
            DecodeError: If the input is truncated, malformed, or does not
                match the ABI entry
        """
        name: str = abi_entry["name"]
        data = _to_bytes(raw_input)
        selector = self.selector(data)

        expected = function_selector(abi_entry)
        if selector != expected:
            raise DecodeError(f"selector {selector} does not match {expected}", method=name)

        types = input_types(abi_entry)
        try:
            values = abi_decode(types, data[SELECTOR_SIZE:])
        except (DecodingError, ValueError) as e:
            raise DecodeError(f"arguments do not decode as ({','.join(types)}): {e}", method=name) from e

        args = {
            (param.get("name") or str(i)): value
            for i, (param, value) in enumerate(zip(abi_entry.get("inputs", []), values))
        }

        payload = None
        try:
            payload_type = PAYLOAD_TYPES[MethodName(name)]
        except ValueError:
            logger.debug(f"No payload type for method {name}")
        else:
            try:
                payload = payload_type.from_args(values)
            except (TypeError, ValueError) as e:
                raise DecodeError(
                    f"arguments do not match {payload_type.__name__}: {e}", method=name
                ) from e

        return DecodedMethod(selector=selector, name=name, abi=abi_entry, args=args, payload=payload)
