"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``code`` is the caller-facing
    error code.
    """

    code = "INTERNAL_SERVER_ERROR"


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    code = "BAD_REQUEST"

    def __init__(self, message: str, field_errors: Optional[dict[str, list[str]]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class UnauthorizedError(DomainError):
    """No authenticated user for a protected operation."""

    code = "UNAUTHORIZED"


class NotFoundError(DomainError):
    """Requested entity does not exist or is not owned by the caller."""

    code = "NOT_FOUND"


class ForbiddenError(DomainError):
    """Caller named entities it does not own."""

    code = "FORBIDDEN"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    code = "CONFLICT"


class PreconditionFailedError(DomainError):
    """A required external credential is missing."""

    code = "PRECONDITION_FAILED"


class InternalError(DomainError):
    """Unexpected store or transport failure."""

    code = "INTERNAL_SERVER_ERROR"


def invoice_not_found(invoice_id: str) -> str:
    """Return message for a missing or foreign invoice."""
    return f"Invoice {invoice_id} not found or you do not have permission to access it"


def template_not_found(template_id: str) -> str:
    """Return message for a missing or foreign template."""
    return f"Template {template_id} not found"


def reminder_not_found(reminder_id: str) -> str:
    """Return message for a missing or foreign reminder record."""
    return f"Reminder {reminder_id} not found"


def feature_request_not_found(request_id: str) -> str:
    return f"Feature request {request_id} not found"


def generated_invoice_not_found(invoice_id: str) -> str:
    return f"Saved invoice {invoice_id} not found"


def duplicate_invoice_number(invoice_number: str) -> str:
    """Return message for an invoice number already used by the owner."""
    return f"Invoice number '{invoice_number}' is already in use"


def email_not_connected() -> str:
    return "Email account not connected. Please connect an email account first."


def not_owned(ids: list[str], action: str) -> str:
    """Return message for bulk operations naming foreign invoices."""
    return f"You do not have permission to {action} invoices: {', '.join(ids)}"
