#!/usr/bin/env python3
"""Configuration management for the relay extractor.

Configuration is loaded from environment variables into a validated,
immutable dataclass.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)


def parse_protocol_delegates(raw: str) -> dict[str, str]:
    """Parse ``protocol:delegate`` pairs separated by commas.

    Args:
        raw: e.g. ``"0xProto1:0xDelegate1,0xProto2:0xDelegate2"``

    Returns:
        Mapping of checksummed protocol address to checksummed delegate address

    Raises:
        ValueError: If a pair is malformed or holds an invalid address
    """
    delegates: dict[str, str] = {}
    for pair in filter(None, (p.strip() for p in raw.split(","))):
        protocol, sep, delegate = pair.partition(":")
        if not sep:
            raise ValueError(f"Invalid protocol delegate pair: {pair}. Expected protocol:delegate")
        for address in (protocol, delegate):
            if not Web3.is_address(address.strip()):
                raise ValueError(f"Invalid address in PROTOCOL_DELEGATES: {address}")
        delegates[Web3.to_checksum_address(protocol.strip())] = Web3.to_checksum_address(delegate.strip())
    return delegates


@dataclass(frozen=True, slots=True)
class ExtractorConfig:
    """Main configuration for the relay extractor.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint used by the command-line tool
        abi_dir: Directory of ABI JSON files, None for the packaged ABIs
        protocol_delegates: Protocol address → delegate address
        log_level: Logging level name
    """

    rpc_url: str = "http://localhost:8545"
    abi_dir: str | None = None
    protocol_delegates: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    def __post_init__(self) -> None:
        """Validate extractor configuration."""
        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http or https"
            )

        if self.abi_dir is not None and not Path(self.abi_dir).is_dir():
            raise ValueError(f"ABI directory not found: {self.abi_dir}")

        if self.log_level.upper() not in self.LOG_LEVELS:
            raise ValueError(
                f"Unsupported log level: {self.log_level}. "
                f"Supported levels: {', '.join(sorted(self.LOG_LEVELS))}"
            )

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Load configuration from environment variables.

        Returns:
            ExtractorConfig instance with loaded values

        Raises:
            ValueError: If environment variables are invalid
        """
        return cls(
            rpc_url=os.environ.get("RPC_URL", "http://localhost:8545"),
            abi_dir=os.environ.get("ABI_DIR") or None,
            protocol_delegates=parse_protocol_delegates(os.environ.get("PROTOCOL_DELEGATES", "")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Relay Extractor Configuration")
        logger.info("=" * 60)
        logger.info(f"  RPC URL: {self.rpc_url}")
        logger.info(f"  ABI Dir: {self.abi_dir or '[PACKAGED]'}")
        logger.info(f"  Protocol Delegates: {len(self.protocol_delegates)}")
        for protocol, delegate in self.protocol_delegates.items():
            logger.info(f"    {protocol} -> {delegate}")
        logger.info(f"  Log Level: {self.log_level}")
        logger.info("=" * 60)
