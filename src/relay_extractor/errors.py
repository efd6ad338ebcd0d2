"""
Error types raised while turning a transaction into an event.

Every error aborts the event for the transaction being processed and is
returned to the caller; other transactions are unaffected.
"""


class ExtractorError(Exception):
    """Base class for extraction failures."""

    def __init__(self, message: str, method: str | None = None, tx_hash: str | None = None):
        self.method = method
        self.tx_hash = tx_hash
        prefix = ""
        if method:
            prefix += f"{method}: "
        if tx_hash:
            prefix += f"tx {tx_hash}: "
        super().__init__(f"{prefix}{message}")


class DecodeError(ExtractorError):
    """Call-data is malformed or does not match the declared argument types."""


class ShapeMismatchError(ExtractorError):
    """Decoded payload is not the type the method expects."""


class PrecheckError(ExtractorError):
    """A method-specific precondition is unmet."""


class PublishError(ExtractorError):
    """The publisher did not accept the event."""
