"""Saved generated invoices.

An owner can keep the invoice documents they render to PDF and come back to
them later. Each saved invoice gets a share token when it is created; the
token resolves to the document only while the owner has sharing turned on.
Deleting a saved invoice hides it everywhere but keeps the row.
"""

import logging
from typing import Any, Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, require_auth
from invoicetrack.domain.entities import GeneratedInvoice
from invoicetrack.domain.errors import NotFoundError, ValidationError, generated_invoice_not_found
from invoicetrack.domain.pdf import InvoiceDocument
from invoicetrack.domain.schemas import validate

logger = logging.getLogger(__name__)

MAX_SAVED_INVOICES = 50


def _columns(document: InvoiceDocument) -> dict[str, Any]:
    return {
        "invoice_number": document.invoice_number,
        "issue_date": document.issue_date,
        "due_date": document.due_date,
        "currency": document.currency.upper(),
        "document_json": document.model_dump_json(),
        "total_amount": document.total,
    }


def load_document(invoice: GeneratedInvoice) -> InvoiceDocument:
    """Rebuild the stored document of a saved invoice."""
    return InvoiceDocument.model_validate_json(invoice.document_json)


class GeneratedInvoiceService:
    """Service for an owner's saved invoice documents."""

    def __init__(self, db: Database):
        self.db = db

    def _get_owned(self, ctx: AuthContext, invoice_id: str) -> GeneratedInvoice:
        invoice = self.db.get_generated_invoice(ctx.user_id, invoice_id)
        if invoice is None:
            raise NotFoundError(generated_invoice_not_found(invoice_id))
        return invoice

    def save(self, ctx: Optional[AuthContext], document: InvoiceDocument | dict[str, Any]) -> GeneratedInvoice:
        """Validate and save a document. New saved invoices are not shared.

        Raises:
            ValidationError: If the document is invalid
        """
        ctx = require_auth(ctx)
        document = validate(InvoiceDocument, document)
        invoice = self.db.create_generated_invoice(ctx.user_id, _columns(document))
        logger.info("Saved invoice %s (%s) for user %s", invoice.id, invoice.invoice_number, ctx.user_id)
        return invoice

    def list_saved(self, ctx: Optional[AuthContext], limit: int = MAX_SAVED_INVOICES) -> list[GeneratedInvoice]:
        """The owner's saved invoices, most recently updated first."""
        ctx = require_auth(ctx)
        if not 1 <= limit <= MAX_SAVED_INVOICES:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_SAVED_INVOICES}",
                field_errors={"limit": [f"must be between 1 and {MAX_SAVED_INVOICES}"]},
            )
        return self.db.list_generated_invoices(ctx.user_id, limit)

    def get(self, ctx: Optional[AuthContext], invoice_id: str) -> GeneratedInvoice:
        ctx = require_auth(ctx)
        return self._get_owned(ctx, invoice_id)

    def update(
        self, ctx: Optional[AuthContext], invoice_id: str, document: InvoiceDocument | dict[str, Any]
    ) -> GeneratedInvoice:
        """Replace the document of a saved invoice; the share token is kept."""
        ctx = require_auth(ctx)
        document = validate(InvoiceDocument, document)
        updated = self.db.update_generated_invoice(ctx.user_id, invoice_id, _columns(document))
        if updated is None:
            raise NotFoundError(generated_invoice_not_found(invoice_id))
        return updated

    def delete(self, ctx: Optional[AuthContext], invoice_id: str) -> None:
        ctx = require_auth(ctx)
        if not self.db.delete_generated_invoice(ctx.user_id, invoice_id):
            raise NotFoundError(generated_invoice_not_found(invoice_id))
        logger.info("Deleted saved invoice %s for user %s", invoice_id, ctx.user_id)

    def set_public(self, ctx: Optional[AuthContext], invoice_id: str, is_public: bool) -> GeneratedInvoice:
        """Turn the share link of a saved invoice on or off."""
        ctx = require_auth(ctx)
        updated = self.db.update_generated_invoice(ctx.user_id, invoice_id, {"is_public": is_public})
        if updated is None:
            raise NotFoundError(generated_invoice_not_found(invoice_id))
        return updated

    def load_public(self, share_token: str) -> GeneratedInvoice:
        """Look up a shared invoice by token. No sign-in is needed.

        Raises:
            NotFoundError: If the token is unknown, sharing is off or the invoice was deleted
        """
        invoice = self.db.find_public_generated_invoice(share_token)
        if invoice is None:
            raise NotFoundError("Invoice not found or not publicly accessible")
        return invoice
