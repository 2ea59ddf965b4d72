"""
Exceptions raised by the report server client and catalog operations.
"""

from typing import Optional


class ReportServerError(Exception):
    """Base exception for report server operations."""
    pass


class SOAPFaultError(ReportServerError):
    """Exception raised when a SOAP fault is encountered."""

    def __init__(
        self,
        message: str,
        faultcode: Optional[str] = None,
        faultstring: Optional[str] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.faultcode = faultcode
        self.faultstring = faultstring
        self.error_code = error_code


class ItemNotFoundError(SOAPFaultError):
    """Raised when a catalog item (report, folder, data source) does not exist."""
    pass


class ItemAlreadyExistsError(SOAPFaultError):
    """Raised when creating or moving onto a path that is already taken."""
    pass


# SSRS error codes mapped to the exception raised for them
ERROR_CODE_MAP = {
    'rsItemNotFound': ItemNotFoundError,
    'rsItemAlreadyExists': ItemAlreadyExistsError,
}
