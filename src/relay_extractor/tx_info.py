"""
Transaction metadata helpers.

Derives execution status and builds the canonical TransactionContext that
every produced event carries.
"""

from .models import (
    ReceiptRecord,
    TransactionContext,
    TransactionRecord,
    TxStatus,
)


def resolve_status(receipt: ReceiptRecord | None) -> TxStatus:
    """Derive execution status from an optional receipt.

    Args:
        receipt: Receipt of the transaction, None while it is pending

    Returns:
        PENDING without a receipt, FAILED when the receipt marks failure,
        SUCCESS otherwise
    """
    if receipt is None:
        return TxStatus.PENDING
    if receipt.failed:
        return TxStatus.FAILED
    return TxStatus.SUCCESS


def get_gas_used(receipt: ReceiptRecord | None) -> int:
    # gas cost of a pending transaction is not known yet
    return 0 if receipt is None else receipt.gas_used


def build_tx_context(
    tx: TransactionRecord,
    receipt: ReceiptRecord | None,
    block_time: int,
    method_name: str,
    delegate_address: str | None = None,
) -> TransactionContext:
    """Map transaction and receipt fields into a TransactionContext.

    Args:
        tx: Transaction record
        receipt: Optional receipt
        block_time: Block timestamp in seconds
        method_name: Name of the invoked method, or "unknown"
        delegate_address: Delegate of the called protocol, if resolvable

    Returns:
        Immutable TransactionContext with log_index 0
    """
    return TransactionContext(
        block_number=tx.block_number,
        block_hash=tx.block_hash,
        block_time=int(block_time),
        tx_hash=tx.hash,
        tx_index=tx.transaction_index,
        sender=tx.sender,
        recipient=tx.recipient,
        protocol=tx.recipient,
        delegate_address=delegate_address,
        gas_limit=tx.gas,
        gas_used=get_gas_used(receipt),
        gas_price=tx.gas_price,
        nonce=tx.nonce,
        value=tx.value,
        status=resolve_status(receipt),
        identify=method_name,
        log_index=0,
    )
