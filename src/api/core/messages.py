"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"

    # Accounts & credits
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    CREDITS_GRANTED = "CREDITS_GRANTED"
    CHECKOUT_CREATED = "CHECKOUT_CREATED"
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"
    PAYMENT_NOT_COMPLETED = "PAYMENT_NOT_COMPLETED"

    # Agents
    AGENT_CREATED = "AGENT_CREATED"
    AGENT_UPDATED = "AGENT_UPDATED"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"

    # Executions
    EXECUTION_SUCCEEDED = "EXECUTION_SUCCEEDED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"

    # Earnings & payouts
    PAYOUT_REQUESTED = "PAYOUT_REQUESTED"
    PAYOUT_PROCESSED = "PAYOUT_PROCESSED"
    PAYOUT_NOT_FOUND = "PAYOUT_NOT_FOUND"
    PAYOUT_ALREADY_PROCESSED = "PAYOUT_ALREADY_PROCESSED"

    # Reconciliation
    RECONCILIATION_CLEAN = "RECONCILIATION_CLEAN"
    RECONCILIATION_ISSUES_FOUND = "RECONCILIATION_ISSUES_FOUND"
    REPAIRED = "REPAIRED"
    INTERNAL_INCONSISTENCY = "INTERNAL_INCONSISTENCY"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Validation and conflicts
    CONFLICT = "CONFLICT"
    INVALID_INPUT = "INVALID_INPUT"

    # Service Errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.FORBIDDEN: "Access denied",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    MessageCode.ADMIN_REQUIRED: "Administrator access required",
    # Accounts & credits
    MessageCode.ACCOUNT_NOT_FOUND: "Account not found",
    MessageCode.INSUFFICIENT_CREDITS: "Insufficient credits",
    MessageCode.INVALID_AMOUNT: "Invalid amount",
    MessageCode.CREDITS_GRANTED: "Credits granted successfully",
    MessageCode.CHECKOUT_CREATED: "Checkout session created",
    MessageCode.PURCHASE_NOT_FOUND: "Purchase not found",
    MessageCode.PAYMENT_NOT_COMPLETED: "Payment has not been completed",
    # Agents
    MessageCode.AGENT_CREATED: "Agent registered successfully",
    MessageCode.AGENT_UPDATED: "Agent updated successfully",
    MessageCode.AGENT_NOT_FOUND: "Agent not found",
    # Executions
    MessageCode.EXECUTION_SUCCEEDED: "Agent executed successfully",
    MessageCode.UPSTREAM_UNAVAILABLE: "Agent webhook unavailable, no credits were charged",
    # Earnings & payouts
    MessageCode.PAYOUT_REQUESTED: "Payout requested successfully",
    MessageCode.PAYOUT_PROCESSED: "Payout processed",
    MessageCode.PAYOUT_NOT_FOUND: "Payout not found",
    MessageCode.PAYOUT_ALREADY_PROCESSED: "Payout has already been processed",
    # Reconciliation
    MessageCode.RECONCILIATION_CLEAN: "No inconsistencies found",
    MessageCode.RECONCILIATION_ISSUES_FOUND: "Inconsistencies found",
    MessageCode.REPAIRED: "Cached values repaired",
    MessageCode.INTERNAL_INCONSISTENCY: "Internal inconsistency detected",
    # Rate limiting
    MessageCode.RATE_LIMIT_EXCEEDED: "Rate limit exceeded",
    # Validation and conflicts
    MessageCode.CONFLICT: "Conflicting write, nothing was applied",
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Service Errors
    MessageCode.EXTERNAL_SERVICE_ERROR: "External service error",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class PaginationInfo(BaseModel):
    """Common pagination information."""

    total: int
    limit: int
    offset: int
    has_more: bool


class Paginated(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T]
    pagination: PaginationInfo


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
