"""
Event normalization for decoded method calls.

Turns a DecodedMethod plus its TransactionContext into exactly one relay
event, applying the field rules of each method.
"""

import logging
from collections.abc import Callable

from .errors import DecodeError, PrecheckError, ShapeMismatchError
from .method_decoder import (
    ApproveInputs,
    CancelOrderInputs,
    CutoffAllInputs,
    CutoffPairInputs,
    DecodedMethod,
    DepositInputs,
    MethodName,
    SubmitRingInputs,
    TransferInputs,
    WithdrawalInputs,
)
from .models import (
    ApprovalEvent,
    CutoffEvent,
    CutoffPairEvent,
    Event,
    Order,
    OrderCancelledEvent,
    RingSubmissionEvent,
    TransactionContext,
    TransferEvent,
    TxStatus,
    WethDepositEvent,
    WethWithdrawalEvent,
)
from .order_hash import loopring_order_hash

logger = logging.getLogger(__name__)

OrderHasher = Callable[[Order], str]


class EventNormalizer:
    """Dispatches decoded methods to their event converters."""

    def __init__(self, order_hasher: OrderHasher = loopring_order_hash) -> None:
        """
        Args:
            order_hasher: Computes the canonical hash of a cancelled order
        """
        self.order_hasher = order_hasher

    @staticmethod
    def check_preconditions(method_name: str, ctx: TransactionContext) -> None:
        """
        Run method-specific checks that must pass before decoding.

        Raises:
            PrecheckError: If cancelOrder is called without a known delegate
        """
        if method_name == MethodName.CANCEL_ORDER and not ctx.delegate_address:
            raise PrecheckError(
                "cannot get delegate address", method=method_name, tx_hash=ctx.tx_hash
            )

    def dispatch(self, method_name: str, decoded: DecodedMethod, ctx: TransactionContext) -> Event | None:
        """
        Convert a decoded method into its event.

        Args:
            method_name: Name of the invoked method
            decoded: Decoded call-data
            ctx: Transaction context to attach

        Returns:
            The event, or None for methods without a relay event

        Raises:
            ShapeMismatchError: If the payload is not the method's payload type
            PrecheckError: If a method precondition is unmet
            DecodeError: If ring arguments are inconsistent
        """
        match method_name, decoded.payload:
            case MethodName.SUBMIT_RING, SubmitRingInputs() as inputs:
                return self._submit_ring(inputs, ctx)
            case MethodName.CANCEL_ORDER, CancelOrderInputs() as inputs:
                return self._cancel_order(inputs, ctx)
            case MethodName.CUTOFF_ALL, CutoffAllInputs() as inputs:
                return self._cutoff_all(inputs, ctx)
            case MethodName.CUTOFF_PAIR, CutoffPairInputs() as inputs:
                return self._cutoff_pair(inputs, ctx)
            case MethodName.APPROVE, ApproveInputs() as inputs:
                return self._approve(inputs, ctx)
            case MethodName.TRANSFER, TransferInputs() as inputs:
                return self._transfer(inputs, ctx)
            case MethodName.WETH_DEPOSIT, DepositInputs():
                return self._deposit(ctx)
            case MethodName.WETH_WITHDRAWAL, WithdrawalInputs() as inputs:
                return self._withdrawal(inputs, ctx)
            case (
                MethodName.SUBMIT_RING
                | MethodName.CANCEL_ORDER
                | MethodName.CUTOFF_ALL
                | MethodName.CUTOFF_PAIR
                | MethodName.APPROVE
                | MethodName.TRANSFER
                | MethodName.WETH_DEPOSIT
                | MethodName.WETH_WITHDRAWAL
            ), payload:
                raise ShapeMismatchError(
                    f"inputs type error, got {type(payload).__name__}",
                    method=method_name,
                    tx_hash=ctx.tx_hash,
                )
            case _:
                logger.debug(f"extractor,tx:{ctx.tx_hash} method {method_name} has no event, skipped")
                return None

    def _submit_ring(self, inputs: SubmitRingInputs, ctx: TransactionContext) -> RingSubmissionEvent:
        try:
            orders = self._ring_orders(inputs, ctx)
        except (IndexError, ValueError) as e:
            raise DecodeError(
                f"inputs convert error: {e}", method=MethodName.SUBMIT_RING.value, tx_hash=ctx.tx_hash
            ) from e

        err = None
        if ctx.status == TxStatus.FAILED:
            err = f"method {MethodName.SUBMIT_RING.value} transaction failed"

        event = RingSubmissionEvent(
            ctx=ctx,
            orders=orders,
            fee_recipient=inputs.miner,
            fee_selections=inputs.fee_selections,
            err=err,
        )
        logger.debug(
            f"extractor,tx:{ctx.tx_hash} submitRing method orders:{len(orders)}, "
            f"gas:{ctx.gas_used}, gasprice:{ctx.gas_price}, status:{ctx.status.value}"
        )
        return event

    @staticmethod
    def _ring_orders(inputs: SubmitRingInputs, ctx: TransactionContext) -> tuple[Order, ...]:
        """Rebuild ring orders; order i buys the token order i+1 sells."""
        size = len(inputs.address_list)
        if size == 0:
            raise ValueError("ring has no orders")
        for name, column in (
            ("uintArgsList", inputs.uint_args_list),
            ("uint8ArgsList", inputs.uint8_args_list),
            ("buyNoMoreThanAmountBList", inputs.buy_no_more_than_amount_b_list),
        ):
            if len(column) != size:
                raise ValueError(f"{name} has {len(column)} entries, expected {size}")
        if min(len(inputs.v_list), len(inputs.r_list), len(inputs.s_list)) < size:
            raise ValueError(f"fewer signatures than the {size} orders")

        orders = []
        for i, (owner, token_s, wallet, auth_addr) in enumerate(inputs.address_list):
            amount_s, amount_b, valid_since, valid_until, lrc_fee, _rate_amount_s = inputs.uint_args_list[i]
            orders.append(
                Order(
                    owner=owner,
                    token_s=token_s,
                    token_b=inputs.address_list[(i + 1) % size][1],
                    wallet_address=wallet,
                    auth_addr=auth_addr,
                    amount_s=amount_s,
                    amount_b=amount_b,
                    valid_since=valid_since,
                    valid_until=valid_until,
                    lrc_fee=lrc_fee,
                    buy_no_more_than_amount_b=inputs.buy_no_more_than_amount_b_list[i],
                    margin_split_percentage=inputs.uint8_args_list[i][0],
                    v=inputs.v_list[i],
                    r=inputs.r_list[i],
                    s=inputs.s_list[i],
                    protocol=ctx.protocol,
                    delegate_address=ctx.delegate_address,
                )
            )
        return tuple(orders)

    def _cancel_order(self, inputs: CancelOrderInputs, ctx: TransactionContext) -> OrderCancelledEvent:
        self.check_preconditions(MethodName.CANCEL_ORDER.value, ctx)

        owner, token_s, token_b, wallet, auth_addr = inputs.addresses
        amount_s, amount_b, valid_since, valid_until, lrc_fee, cancel_amount = inputs.order_values
        order = Order(
            owner=owner,
            token_s=token_s,
            token_b=token_b,
            wallet_address=wallet,
            auth_addr=auth_addr,
            amount_s=amount_s,
            amount_b=amount_b,
            valid_since=valid_since,
            valid_until=valid_until,
            lrc_fee=lrc_fee,
            buy_no_more_than_amount_b=inputs.buy_no_more_than_amount_b,
            margin_split_percentage=inputs.margin_split_percentage,
            v=inputs.v,
            r=inputs.r,
            s=inputs.s,
            protocol=ctx.protocol,
            delegate_address=ctx.delegate_address,
        )
        order_hash = self.order_hasher(order)

        logger.debug(
            f"extractor,tx:{ctx.tx_hash} cancelOrder method order tokenS:{token_s}, tokenB:{token_b}, "
            f"amountS:{amount_s}, amountB:{amount_b}, hash:{order_hash}"
        )
        return OrderCancelledEvent(ctx=ctx, order_hash=order_hash, amount_cancelled=cancel_amount)

    @staticmethod
    def _cutoff_all(inputs: CutoffAllInputs, ctx: TransactionContext) -> CutoffEvent:
        event = CutoffEvent(ctx=ctx, owner=ctx.sender, cutoff=inputs.cutoff)
        logger.debug(f"extractor,tx:{ctx.tx_hash} cutoff method owner:{event.owner}, cutoff:{event.cutoff}")
        return event

    @staticmethod
    def _cutoff_pair(inputs: CutoffPairInputs, ctx: TransactionContext) -> CutoffPairEvent:
        event = CutoffPairEvent(
            ctx=ctx,
            owner=ctx.sender,
            token1=inputs.token1,
            token2=inputs.token2,
            cutoff=inputs.cutoff,
        )
        logger.debug(
            f"extractor,tx:{ctx.tx_hash} cutoffpair method owner:{event.owner}, "
            f"token1:{event.token1}, token2:{event.token2}, cutoff:{event.cutoff}"
        )
        return event

    @staticmethod
    def _approve(inputs: ApproveInputs, ctx: TransactionContext) -> ApprovalEvent:
        event = ApprovalEvent(ctx=ctx, owner=ctx.sender, spender=inputs.spender, amount=inputs.value)
        logger.debug(
            f"extractor,tx:{ctx.tx_hash} approve method owner:{event.owner}, "
            f"spender:{event.spender}, value:{event.amount}"
        )
        return event

    @staticmethod
    def _transfer(inputs: TransferInputs, ctx: TransactionContext) -> TransferEvent:
        event = TransferEvent(ctx=ctx, sender=ctx.sender, receiver=inputs.receiver, amount=inputs.value)
        logger.debug(
            f"extractor,tx:{ctx.tx_hash} transfer method sender:{event.sender}, "
            f"receiver:{event.receiver}, value:{event.amount}"
        )
        return event

    @staticmethod
    def _deposit(ctx: TransactionContext) -> WethDepositEvent:
        event = WethDepositEvent(ctx=ctx, dst=ctx.sender, amount=ctx.value)
        logger.debug(f"extractor,tx:{ctx.tx_hash} wethDeposit method dst:{event.dst}, value:{event.amount}")
        return event

    @staticmethod
    def _withdrawal(inputs: WithdrawalInputs, ctx: TransactionContext) -> WethWithdrawalEvent:
        event = WethWithdrawalEvent(ctx=ctx, src=ctx.sender, amount=inputs.value)
        logger.debug(f"extractor,tx:{ctx.tx_hash} wethWithdrawal method src:{event.src}, value:{event.amount}")
        return event
