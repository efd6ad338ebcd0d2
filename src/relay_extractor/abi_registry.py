"""
Selector registry built from contract ABIs.

Maps 4-byte function selectors to the method name and ABI entry that
describe them. The registry is read-only once built, so lookups are safe
from concurrent callers.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from web3 import Web3

logger = logging.getLogger(__name__)

DEFAULT_ABI_DIR = Path(__file__).parent / "abi"


def canonical_type(param: Mapping[str, Any]) -> str:
    """Canonical ABI type string of a parameter, expanding tuples."""
    abi_type: str = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def input_types(abi_entry: Mapping[str, Any]) -> list[str]:
    return [canonical_type(p) for p in abi_entry.get("inputs", [])]


def function_signature(abi_entry: Mapping[str, Any]) -> str:
    """e.g. ``approve(address,uint256)``"""
    return f"{abi_entry['name']}({','.join(input_types(abi_entry))})"


def function_selector(abi_entry: Mapping[str, Any]) -> str:
    """0x-prefixed 4-byte selector of a function ABI entry."""
    return Web3.to_hex(Web3.keccak(text=function_signature(abi_entry))[:4])


class AbiRegistry:
    """Resolves function selectors to (method name, ABI entry)."""

    def __init__(self, abis: Iterable[list[dict[str, Any]]]) -> None:
        """
        Index every function entry of the given ABIs.

        When two ABIs declare the same selector the first one wins; the
        signature is identical so either entry decodes the same bytes.

        Args:
            abis: Iterable of contract ABIs (lists of ABI entries)
        """
        index: dict[str, tuple[str, dict[str, Any]]] = {}
        for abi in abis:
            for entry in abi:
                if entry.get("type", "function") != "function":
                    continue
                selector = function_selector(entry)
                if selector in index:
                    logger.debug(f"Selector {selector} already registered as {index[selector][0]}")
                    continue
                index[selector] = (entry["name"], entry)

        self._index: Mapping[str, tuple[str, dict[str, Any]]] = MappingProxyType(index)
        logger.info(f"AbiRegistry initialized with {len(self._index)} selectors")

    @classmethod
    def from_directory(cls, abi_dir: Path | str | None = None) -> "AbiRegistry":
        """
        Load every ``*.json`` ABI file from a directory.

        Files may hold a bare ABI list or a build artifact with an ``abi`` key.

        Args:
            abi_dir: Directory to scan, defaults to the packaged ABIs

        Returns:
            AbiRegistry over all loaded ABIs

        Raises:
            ValueError: If the directory does not exist or a file is not an ABI
        """
        directory = Path(abi_dir) if abi_dir else DEFAULT_ABI_DIR
        if not directory.is_dir():
            raise ValueError(f"ABI directory not found: {directory}")

        abis = []
        for path in sorted(directory.glob("*.json")):
            with path.open() as file:
                contract_data = json.load(file)
            match contract_data:
                case list():
                    abis.append(contract_data)
                case {"abi": list() as abi}:
                    abis.append(abi)
                case _:
                    raise ValueError(f"Not an ABI file: {path}")
            logger.debug(f"Loaded ABI {path.name}")

        return cls(abis)

    def resolve(self, selector: str) -> tuple[str, dict[str, Any]] | None:
        """
        Look up a selector.

        Args:
            selector: 0x-prefixed 4-byte selector (case-insensitive)

        Returns:
            (method name, ABI entry), or None for an unknown selector
        """
        return self._index.get(selector.lower())

    def __contains__(self, selector: str) -> bool:
        return selector.lower() in self._index

    def __len__(self) -> int:
        return len(self._index)
