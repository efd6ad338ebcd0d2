#!/usr/bin/env python3
"""Unit tests for EventNormalizer dispatch."""

from unittest.mock import MagicMock

import pytest

from relay_extractor.errors import DecodeError, PrecheckError, ShapeMismatchError
from relay_extractor.event_normalizer import EventNormalizer
from relay_extractor.method_decoder import (
    ApproveInputs,
    CancelOrderInputs,
    CutoffAllInputs,
    CutoffPairInputs,
    DecodedMethod,
    DepositInputs,
    SubmitRingInputs,
    TransferInputs,
    WithdrawalInputs,
)
from relay_extractor.models import (
    ApprovalEvent,
    CutoffEvent,
    CutoffPairEvent,
    OrderCancelledEvent,
    ReceiptRecord,
    RingSubmissionEvent,
    TransferEvent,
    TxStatus,
    WethDepositEvent,
    WethWithdrawalEvent,
)
from relay_extractor.tx_info import build_tx_context

from conftest import DELEGATE, PROTOCOL, RECIPIENT, SENDER, SPENDER, TOKEN_A, TOKEN_B

R = "0x" + "01" * 32
S = "0x" + "02" * 32

RING_INPUTS = SubmitRingInputs(
    address_list=((SENDER, TOKEN_A, DELEGATE, SPENDER), (SPENDER, TOKEN_B, DELEGATE, SENDER)),
    uint_args_list=((1000, 2000, 1, 2, 3, 1000), (2000, 1000, 4, 5, 6, 2000)),
    uint8_args_list=((10,), (20,)),
    buy_no_more_than_amount_b_list=(False, True),
    v_list=(27, 28, 27, 28),
    r_list=(R, R, R, R),
    s_list=(S, S, S, S),
    miner=RECIPIENT,
    fee_selections=1,
)

CANCEL_INPUTS = CancelOrderInputs(
    addresses=(SENDER, TOKEN_A, TOKEN_B, DELEGATE, SPENDER),
    order_values=(1000, 2000, 1, 2, 3, 400),
    buy_no_more_than_amount_b=False,
    margin_split_percentage=50,
    v=27,
    r=R,
    s=S,
)

VALID_PAYLOADS = [
    ("submitRing", RING_INPUTS, RingSubmissionEvent),
    ("cancelOrder", CANCEL_INPUTS, OrderCancelledEvent),
    ("cancelAllOrders", CutoffAllInputs(cutoff=1_520_000_000), CutoffEvent),
    ("cancelAllOrdersByTradingPair", CutoffPairInputs(TOKEN_A, TOKEN_B, 1_520_000_000), CutoffPairEvent),
    ("approve", ApproveInputs(spender=SPENDER, value=100), ApprovalEvent),
    ("transfer", TransferInputs(receiver=RECIPIENT, value=7), TransferEvent),
    ("deposit", DepositInputs(), WethDepositEvent),
    ("withdraw", WithdrawalInputs(value=9), WethWithdrawalEvent),
]


def decoded(name, payload):
    return DecodedMethod(selector="0x00000000", name=name, abi={}, args={}, payload=payload)


@pytest.fixture
def order_hasher():
    return MagicMock(return_value="0x" + "ee" * 32)


@pytest.fixture
def normalizer(order_hasher):
    return EventNormalizer(order_hasher=order_hasher)


@pytest.fixture
def make_ctx(make_tx):
    def _make_ctx(method_name, receipt=ReceiptRecord(gas_used=50_000), delegate=DELEGATE, **tx_fields):
        return build_tx_context(make_tx(**tx_fields), receipt, 1_520_000_000, method_name, delegate)
    return _make_ctx


class TestDispatch:
    """Every handled method yields exactly its event variant."""

    @pytest.mark.parametrize("name, payload, event_type", VALID_PAYLOADS)
    def test_handled_methods(self, normalizer, make_ctx, name, payload, event_type):
        ctx = make_ctx(name)
        event = normalizer.dispatch(name, decoded(name, payload), ctx)

        assert type(event) is event_type
        assert event.ctx is ctx

    @pytest.mark.parametrize("name", ["transferFrom", "balanceOf", "unknown"])
    def test_unhandled_method_yields_no_event(self, normalizer, make_ctx, name):
        assert normalizer.dispatch(name, decoded(name, None), make_ctx(name)) is None

    @pytest.mark.parametrize("name, payload, _", VALID_PAYLOADS)
    def test_shape_mismatch(self, normalizer, make_ctx, name, payload, _):
        wrong = WithdrawalInputs(value=1) if not isinstance(payload, WithdrawalInputs) else DepositInputs()

        with pytest.raises(ShapeMismatchError, match=name):
            normalizer.dispatch(name, decoded(name, wrong), make_ctx(name))

    def test_missing_payload_is_shape_mismatch(self, normalizer, make_ctx):
        with pytest.raises(ShapeMismatchError):
            normalizer.dispatch("approve", decoded("approve", None), make_ctx("approve"))


class TestFieldRules:
    """Method-specific field mapping."""

    def test_approve_owner_is_sender(self, normalizer, make_ctx):
        """approve(spender=0xAAA.., 100) sent by 0xBBB.. -> owner 0xBBB.."""
        ctx = make_ctx("approve")
        event = normalizer.dispatch("approve", decoded("approve", ApproveInputs(SPENDER, 100)), ctx)

        assert event == ApprovalEvent(ctx=ctx, owner=SENDER, spender=SPENDER, amount=100)

    def test_transfer_sender_is_tx_sender(self, normalizer, make_ctx):
        event = normalizer.dispatch("transfer", decoded("transfer", TransferInputs(RECIPIENT, 7)), make_ctx("transfer"))

        assert event.sender == SENDER
        assert event.receiver == RECIPIENT
        assert event.amount == 7

    def test_cutoff_owner_is_sender(self, normalizer, make_ctx):
        event = normalizer.dispatch(
            "cancelAllOrders", decoded("cancelAllOrders", CutoffAllInputs(1_520_000_000)), make_ctx("cancelAllOrders")
        )
        assert event.owner == SENDER
        assert event.cutoff == 1_520_000_000

    def test_cutoff_pair_fields(self, normalizer, make_ctx):
        name = "cancelAllOrdersByTradingPair"
        event = normalizer.dispatch(name, decoded(name, CutoffPairInputs(TOKEN_A, TOKEN_B, 99)), make_ctx(name))

        assert (event.owner, event.token1, event.token2, event.cutoff) == (SENDER, TOKEN_A, TOKEN_B, 99)

    def test_deposit_amount_is_tx_value(self, normalizer, make_ctx):
        """deposit() carries no amount argument; the attached value is used."""
        ctx = make_ctx("deposit", value=10**18)
        event = normalizer.dispatch("deposit", decoded("deposit", DepositInputs()), ctx)

        assert event.dst == SENDER
        assert event.amount == 10**18

    def test_withdrawal_source_is_sender(self, normalizer, make_ctx):
        event = normalizer.dispatch("withdraw", decoded("withdraw", WithdrawalInputs(55)), make_ctx("withdraw"))

        assert event.src == SENDER
        assert event.amount == 55


class TestSubmitRing:

    def test_orders_rebuilt(self, normalizer, make_ctx):
        event = normalizer.dispatch("submitRing", decoded("submitRing", RING_INPUTS), make_ctx("submitRing"))

        first, second = event.orders
        assert first.owner == SENDER
        assert first.token_s == TOKEN_A
        assert first.token_b == TOKEN_B
        assert second.token_b == TOKEN_A
        assert second.buy_no_more_than_amount_b is True
        assert second.margin_split_percentage == 20
        assert first.protocol == PROTOCOL
        assert first.delegate_address == DELEGATE
        assert event.fee_recipient == RECIPIENT
        assert event.fee_selections == 1
        assert event.err is None

    def test_failed_ring_carries_note(self, normalizer, make_ctx):
        ctx = make_ctx("submitRing", receipt=ReceiptRecord(gas_used=300_000, failed=True))
        event = normalizer.dispatch("submitRing", decoded("submitRing", RING_INPUTS), ctx)

        assert event.ctx.status == TxStatus.FAILED
        assert event.err == "method submitRing transaction failed"

    def test_inconsistent_ring_arrays(self, normalizer, make_ctx):
        broken = SubmitRingInputs(
            address_list=RING_INPUTS.address_list,
            uint_args_list=RING_INPUTS.uint_args_list[:1],
            uint8_args_list=RING_INPUTS.uint8_args_list,
            buy_no_more_than_amount_b_list=RING_INPUTS.buy_no_more_than_amount_b_list,
            v_list=RING_INPUTS.v_list,
            r_list=RING_INPUTS.r_list,
            s_list=RING_INPUTS.s_list,
            miner=RING_INPUTS.miner,
            fee_selections=0,
        )
        with pytest.raises(DecodeError, match="convert error"):
            normalizer.dispatch("submitRing", decoded("submitRing", broken), make_ctx("submitRing"))


class TestCancelOrder:

    def test_cancel_order_hash_and_amount(self, normalizer, order_hasher, make_ctx):
        event = normalizer.dispatch("cancelOrder", decoded("cancelOrder", CANCEL_INPUTS), make_ctx("cancelOrder"))

        assert event.order_hash == "0x" + "ee" * 32
        assert event.amount_cancelled == 400
        order = order_hasher.call_args.args[0]
        assert order.protocol == PROTOCOL
        assert order.delegate_address == DELEGATE
        assert order.token_b == TOKEN_B
        assert order.amount_s == 1000

    def test_missing_delegate_fails_precheck(self, normalizer, order_hasher, make_ctx):
        ctx = make_ctx("cancelOrder", delegate=None)

        with pytest.raises(PrecheckError, match="delegate"):
            normalizer.dispatch("cancelOrder", decoded("cancelOrder", CANCEL_INPUTS), ctx)
        order_hasher.assert_not_called()

    def test_check_preconditions_only_for_cancel(self, make_ctx):
        EventNormalizer.check_preconditions("approve", make_ctx("approve", delegate=None))
        with pytest.raises(PrecheckError):
            EventNormalizer.check_preconditions("cancelOrder", make_ctx("cancelOrder", delegate=None))
