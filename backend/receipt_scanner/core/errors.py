"""Error taxonomy for the receipt pipeline.

Only the vision call and the storage write can fail a request. Parse
degradation and enum corrections are handled inside the pipeline and never
surface as exceptions.
"""

from __future__ import annotations


class ReceiptScannerError(Exception):
    """Base class for user-visible pipeline failures."""


class ConfigurationError(ReceiptScannerError):
    """A required credential or provider setting is missing."""


class ExternalServiceError(ReceiptScannerError):
    """The vision service returned a non-success status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(ReceiptScannerError):
    """The expense store rejected or failed the write."""
