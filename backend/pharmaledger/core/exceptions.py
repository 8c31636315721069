"""
Domain errors and safe HTTP error builders.

Domain errors (LedgerError subclasses) are raised by the services and carry
the HTTP status they map to. The API layer turns them into responses with a
single exception handler, so a service never imports FastAPI.

BusinessError keeps request-level failures generic: detailed logging
internally, non-leaky messages externally.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for every recoverable inventory/order failure."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {identifier} not found")


class NotConnectedError(LedgerError):
    """Order placement without an approved pharmacy-distributor link."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, pharmacy_id: int, distributor_id: int):
        self.pharmacy_id = pharmacy_id
        self.distributor_id = distributor_id
        super().__init__("You are not connected to this distributor.")


class InsufficientStockError(LedgerError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: int, needed: int, available: int, product_name: str | None = None):
        self.product_id = product_id
        self.needed = needed
        self.available = available
        self.product_name = product_name
        label = f"'{product_name}'" if product_name else f"product {product_id}"
        super().__init__(f"Insufficient stock for {label}: need {needed}, have {available}")


class InvalidOtpError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Invalid delivery OTP")


class DuplicateKeyError(LedgerError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} '{value}' already exists")


class InvalidTransitionError(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class ConcurrentUpdateError(LedgerError):
    """Another request changed the same order or batch first."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "The record was modified by another request. Please retry."):
        super().__init__(message)


class ValidationError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST


class BusinessError:
    """Request-level HTTP errors with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404 that doesn't confirm resource existence.

        SECURITY: Returns same response whether resource doesn't exist,
        or the tenant lacks access to it.
        """
        if reason:
            logger.warning(f"Access denied / not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found",
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.

        OK to include specific details here since the caller caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

