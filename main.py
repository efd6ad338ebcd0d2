#!/usr/bin/env python3
"""Entry point for the relay extractor command-line tool.

Fetches transactions by hash, extracts their relay events and logs them
as JSON.
"""

import argparse
import json
import logging
import os
import sys


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)

from web3 import Web3
from web3.exceptions import TransactionNotFound

from relay_extractor.abi_registry import AbiRegistry
from relay_extractor.config import ExtractorConfig
from relay_extractor.errors import ExtractorError
from relay_extractor.extractor import StaticDelegateResolver, TransactionExtractor
from relay_extractor.models import Event, ReceiptRecord, TransactionRecord


def log_publisher(topic: str, event: Event) -> bool:
    """Publisher that writes each event to the log as JSON."""
    logger.info(f"[{topic}] {json.dumps(event.to_dict(), default=str)}")
    return True


def extract_transaction(w3: Web3, extractor: TransactionExtractor, tx_hash: str) -> Event | None:
    """Fetch one transaction with its receipt and block time, then extract it."""
    tx = TransactionRecord.from_web3(w3.eth.get_transaction(tx_hash))

    try:
        receipt = ReceiptRecord.from_web3(w3.eth.get_transaction_receipt(tx_hash), tx)
    except TransactionNotFound:
        receipt = None

    block_time = 0
    if tx.block_number is not None:
        block_time = w3.eth.get_block(tx.block_number)["timestamp"]

    return extractor.process(tx, receipt, block_time)


def main() -> None:
    """Main entry point for the relay extractor tool.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Relay Extractor - Decode transactions into trading-relay events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL              - RPC endpoint (default: http://localhost:8545)
  ABI_DIR              - Directory of contract ABI JSON files (default: packaged ABIs)
  PROTOCOL_DELEGATES   - Comma-separated protocol:delegate address pairs
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument("tx_hashes", nargs="+", help="Transaction hashes to extract")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    try:
        config: ExtractorConfig = ExtractorConfig.from_env()
        config.log_config()
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - RPC_URL: RPC endpoint")
        logger.error("  - ABI_DIR: Directory of contract ABI JSON files")
        logger.error("  - PROTOCOL_DELEGATES: protocol:delegate address pairs")
        sys.exit(1)

    w3 = Web3(Web3.HTTPProvider(config.rpc_url))
    extractor = TransactionExtractor(
        resolver=AbiRegistry.from_directory(config.abi_dir),
        publisher=log_publisher,
        delegate_resolver=StaticDelegateResolver(config.protocol_delegates),
    )

    failed = False
    for tx_hash in args.tx_hashes:
        try:
            if extract_transaction(w3, extractor, tx_hash) is None:
                logger.info(f"No event for tx {tx_hash}")
        except ExtractorError as e:
            failed = True
            logger.error(f"Extraction failed: {e}")
        except TransactionNotFound:
            failed = True
            logger.error(f"Transaction not found: {tx_hash}")
        except Exception as e:
            logger.error(f"Fatal Error: {e}", exc_info=True)
            sys.exit(1)

    extractor.log_metrics()
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
