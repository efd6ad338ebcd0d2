"""
Transaction extractor.

Wires status resolution, context building, call-data decoding and event
normalization into one per-transaction pipeline, and hands each produced
event to an injected publisher.
"""

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol

from web3 import Web3

from .errors import DecodeError, ExtractorError, PublishError
from .event_normalizer import EventNormalizer, OrderHasher
from .method_decoder import MethodDecoder, MethodName
from .models import (
    METHOD_UNKNOWN,
    Event,
    ReceiptRecord,
    TransactionRecord,
    TransferEvent,
)
from .order_hash import loopring_order_hash
from .tx_info import build_tx_context

logger = logging.getLogger(__name__)


class EventTopic(str, Enum):
    """Topics events are published under."""
    SUBMIT_RING = "SubmitRing"
    CANCEL_ORDER = "CancelOrder"
    CUTOFF_ALL = "CutoffAll"
    CUTOFF_PAIR = "CutoffPair"
    APPROVE = "Approve"
    TRANSFER = "Transfer"
    WETH_DEPOSIT = "WethDeposit"
    WETH_WITHDRAWAL = "WethWithdrawal"
    ETH_TRANSFER = "EthTransfer"


METHOD_TOPICS: dict[MethodName, EventTopic] = {
    MethodName.SUBMIT_RING: EventTopic.SUBMIT_RING,
    MethodName.CANCEL_ORDER: EventTopic.CANCEL_ORDER,
    MethodName.CUTOFF_ALL: EventTopic.CUTOFF_ALL,
    MethodName.CUTOFF_PAIR: EventTopic.CUTOFF_PAIR,
    MethodName.APPROVE: EventTopic.APPROVE,
    MethodName.TRANSFER: EventTopic.TRANSFER,
    MethodName.WETH_DEPOSIT: EventTopic.WETH_DEPOSIT,
    MethodName.WETH_WITHDRAWAL: EventTopic.WETH_WITHDRAWAL,
}


class SelectorResolver(Protocol):
    def resolve(self, selector: str) -> tuple[str, dict[str, Any]] | None: ...


class DelegateResolver(Protocol):
    def resolve(self, protocol: str) -> str | None: ...


Publisher = Callable[[str, Event], bool]


class StaticDelegateResolver:
    """Resolves delegate addresses from a fixed protocol→delegate map."""

    def __init__(self, delegates: Mapping[str, str]) -> None:
        self.delegates = {
            Web3.to_checksum_address(protocol): Web3.to_checksum_address(delegate)
            for protocol, delegate in delegates.items()
        }

    def resolve(self, protocol: str) -> str | None:
        return self.delegates.get(Web3.to_checksum_address(protocol))


class TransactionExtractor:
    """Turns transactions into relay events and publishes them.

    The extractor keeps no per-transaction state beyond the counters in
    ``get_metrics``, which are not synchronized; use one instance per thread.
    """

    def __init__(
        self,
        resolver: SelectorResolver,
        publisher: Publisher,
        order_hasher: OrderHasher = loopring_order_hash,
        delegate_resolver: DelegateResolver | None = None,
    ) -> None:
        """
        Initialize the extractor.

        Args:
            resolver: Maps selectors to (method name, ABI entry)
            publisher: Delivers an event under a topic, returns success
            order_hasher: Canonical order hash used for cancellations
            delegate_resolver: Maps protocol addresses to delegate addresses
        """
        self.resolver = resolver
        self.publisher = publisher
        self.delegate_resolver = delegate_resolver
        self.decoder = MethodDecoder()
        self.normalizer = EventNormalizer(order_hasher=order_hasher)

        # Metrics tracking
        self.events_published = 0
        self.plain_transfers = 0
        self.methods_skipped = 0
        self.publish_failures = 0
        self.errors = 0

    def process(
        self,
        tx: TransactionRecord,
        receipt: ReceiptRecord | None,
        block_time: int,
    ) -> Event | None:
        """
        Extract and publish the event carried by one transaction.

        Transactions without a selector known to the resolver are native-value
        transfers. Known methods without a relay event produce nothing.

        Args:
            tx: Transaction record
            receipt: Receipt, None while the transaction is pending
            block_time: Block timestamp in seconds

        Returns:
            The published event, or None when the method has no event

        Raises:
            DecodeError: If the call-data does not match the method's ABI
            ShapeMismatchError: If the decoded payload has the wrong type
            PrecheckError: If a method precondition is unmet
            PublishError: If the publisher rejects the event
        """
        try:
            match self._lookup_method(tx):
                case None:
                    return self.handle_plain_transfer(tx, receipt, block_time)
                case (method_name, abi_entry):
                    return self.handle_method(tx, receipt, block_time, method_name, abi_entry)
        except ExtractorError as e:
            self.errors += 1
            logger.debug(f"extractor,tx:{tx.hash} {e}")
            raise

    def _lookup_method(self, tx: TransactionRecord) -> tuple[str, dict[str, Any]] | None:
        if not tx.has_call_data:
            return None
        try:
            selector = self.decoder.selector(tx.input)
        except DecodeError:
            return None
        return self.resolver.resolve(selector)

    def _delegate_for(self, tx: TransactionRecord) -> str | None:
        if self.delegate_resolver is None or tx.recipient is None:
            return None
        return self.delegate_resolver.resolve(tx.recipient)

    def handle_method(
        self,
        tx: TransactionRecord,
        receipt: ReceiptRecord | None,
        block_time: int,
        method_name: str,
        abi_entry: dict[str, Any],
    ) -> Event | None:
        """
        Decode a recognized method call and publish its event.

        Preconditions run before decoding; nothing is published on failure.
        """
        ctx = build_tx_context(
            tx, receipt, block_time, method_name, delegate_address=self._delegate_for(tx)
        )
        self.normalizer.check_preconditions(method_name, ctx)

        decoded = self.decoder.decode(abi_entry, tx.input)
        event = self.normalizer.dispatch(method_name, decoded, ctx)
        if event is None:
            self.methods_skipped += 1
            return None

        self._publish(METHOD_TOPICS[MethodName(method_name)], event)
        return event

    def handle_plain_transfer(
        self,
        tx: TransactionRecord,
        receipt: ReceiptRecord | None,
        block_time: int,
    ) -> TransferEvent:
        """
        Build and publish a native-value transfer event.

        Args:
            tx: Transaction record
            receipt: Receipt, None while the transaction is pending
            block_time: Block timestamp in seconds

        Returns:
            TransferEvent published on the EthTransfer topic

        Raises:
            PublishError: If the publisher rejects the event
        """
        ctx = build_tx_context(tx, receipt, block_time, METHOD_UNKNOWN)
        event = TransferEvent(ctx=ctx, sender=tx.sender, receiver=tx.recipient, amount=tx.value)

        logger.debug(
            f"extractor,tx:{tx.hash} handleEthTransfer from:{tx.sender}, to:{tx.recipient}, "
            f"value:{tx.value}, gasUsed:{ctx.gas_used}, status:{ctx.status.value}"
        )
        self.plain_transfers += 1
        self._publish(EventTopic.ETH_TRANSFER, event)
        return event

    def _publish(self, topic: EventTopic, event: Event) -> None:
        if not self.publisher(topic.value, event):
            self.publish_failures += 1
            logger.warning(f"Failed to publish {topic.value} event for tx {event.ctx.tx_hash}")
            raise PublishError(
                f"publisher rejected {topic.value} event", method=event.ctx.identify, tx_hash=event.ctx.tx_hash
            )
        self.events_published += 1

    def get_metrics(self) -> dict[str, int]:
        """
        Get current extraction metrics.

        Returns:
            Dictionary of metric names to values
        """
        return {
            "events_published": self.events_published,
            "plain_transfers": self.plain_transfers,
            "methods_skipped": self.methods_skipped,
            "publish_failures": self.publish_failures,
            "errors": self.errors,
        }

    def log_metrics(self) -> None:
        """Log current extraction metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"Extractor Metrics: "
            f"Published={metrics['events_published']}, "
            f"EthTransfers={metrics['plain_transfers']}, "
            f"Skipped={metrics['methods_skipped']}, "
            f"PublishFailures={metrics['publish_failures']}, "
            f"Errors={metrics['errors']}"
        )
