"""
Relay Extractor package.

Decodes transaction call-data into canonical trading-relay events.
"""

from .abi_registry import AbiRegistry
from .config import ExtractorConfig
from .errors import DecodeError, ExtractorError, PrecheckError, PublishError, ShapeMismatchError
from .event_normalizer import EventNormalizer
from .extractor import EventTopic, StaticDelegateResolver, TransactionExtractor
from .method_decoder import DecodedMethod, MethodDecoder, MethodName
from .models import ReceiptRecord, TransactionContext, TransactionRecord, TxStatus
from .order_hash import loopring_order_hash
from .tx_info import build_tx_context, resolve_status

__all__ = [
    "AbiRegistry",
    "DecodeError",
    "DecodedMethod",
    "EventNormalizer",
    "EventTopic",
    "ExtractorConfig",
    "ExtractorError",
    "MethodDecoder",
    "MethodName",
    "PrecheckError",
    "PublishError",
    "ReceiptRecord",
    "ShapeMismatchError",
    "StaticDelegateResolver",
    "TransactionContext",
    "TransactionExtractor",
    "TransactionRecord",
    "TxStatus",
    "build_tx_context",
    "loopring_order_hash",
    "resolve_status",
]
__version__ = "0.1.0"
