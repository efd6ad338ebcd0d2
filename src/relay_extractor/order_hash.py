"""Canonical order hashing for the Loopring v1 protocol."""

from web3 import Web3

from .models import Order

ORDER_HASH_TYPES = [
    "address",  # delegate
    "address",  # owner
    "address",  # tokenS
    "address",  # tokenB
    "address",  # wallet
    "address",  # authAddr
    "uint256",  # amountS
    "uint256",  # amountB
    "uint256",  # validSince
    "uint256",  # validUntil
    "uint256",  # lrcFee
    "bool",
    "uint8",
]


def loopring_order_hash(order: Order) -> str:
    """
    Tightly packed keccak256 over the order fields the protocol signs.

    Args:
        order: Order with its delegate address attached

    Returns:
        0x-prefixed order hash

    Raises:
        ValueError: If the order has no delegate address
    """
    if not order.delegate_address:
        raise ValueError("Order hash requires a delegate address")

    digest = Web3.solidity_keccak(
        ORDER_HASH_TYPES,
        [
            order.delegate_address,
            order.owner,
            order.token_s,
            order.token_b,
            order.wallet_address,
            order.auth_addr,
            order.amount_s,
            order.amount_b,
            order.valid_since,
            order.valid_until,
            order.lrc_fee,
            order.buy_no_more_than_amount_b,
            order.margin_split_percentage,
        ],
    )
    return Web3.to_hex(digest)
