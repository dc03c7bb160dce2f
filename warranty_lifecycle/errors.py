"""
Lookup Errors
=============
Exceptions raised by credential handling, manufacturer backends and the
lookup dispatcher.

Per-device errors are caught by the dispatcher and turned into error
records. Run-level errors surface as a failed ``LookupResult``.
"""

from typing import Optional


class WarrantyLookupError(Exception):
    """Base class for all warranty lookup failures."""
    pass


class MissingCredentialsError(WarrantyLookupError):
    """Raised when the credential bundle has no entry for a manufacturer."""

    def __init__(self, manufacturer: str):
        self.manufacturer = manufacturer
        super().__init__(f"Missing credentials for manufacturer '{manufacturer}'")


class UnsupportedManufacturerError(WarrantyLookupError):
    """Raised when no warranty backend exists for a manufacturer."""

    def __init__(self, manufacturer: Optional[str]):
        self.manufacturer = manufacturer
        super().__init__(f"Unsupported manufacturer: {manufacturer or 'unknown'}")


class InvalidWarrantyResponseError(WarrantyLookupError):
    """Raised when a manufacturer API answers without usable warranty dates."""
    pass


class CredentialRetrievalError(WarrantyLookupError):
    """Raised when the credential provider cannot produce a bundle."""
    pass


class BatchLookupError(WarrantyLookupError):
    """Raised when the batch warranty endpoint rejects the whole request."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class PlatformWriteError(WarrantyLookupError):
    """Raised when a source platform rejects a warranty write-back."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
