"""Invoice domain service."""

import logging
from datetime import datetime, time
from decimal import Decimal
from typing import Any, Optional, Sequence

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, Clock, require_auth, utcnow
from invoicetrack.domain.entities import (
    DashboardData,
    Invoice,
    InvoiceStats,
    InvoiceStatus,
    InvoiceWithReminders,
    MonthlyAmount,
    StatusFilter,
)
from invoicetrack.domain.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
    duplicate_invoice_number,
    invoice_not_found,
    not_owned,
)
from invoicetrack.domain.schemas import InvoiceInput, validate
from invoicetrack.utils.date_parser import days_between

logger = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
MAX_PAGE_SIZE = 100
RECENT_INVOICE_COUNT = 5


def due_datetime(invoice: Invoice) -> datetime:
    """The instant an invoice falls due: midnight at the start of its due date."""
    return datetime.combine(invoice.due_date, time.min)


def is_overdue(invoice: Invoice, now: datetime) -> bool:
    """Whether an invoice is presented as overdue.

    Only stored ``pending`` invoices qualify; the stored status is left as is.
    """
    return invoice.status == InvoiceStatus.PENDING and due_datetime(invoice) < now


class InvoiceService:
    """Service for managing client invoices."""

    def __init__(self, db: Database, clock: Clock = utcnow):
        """Initialize invoice service.

        Args:
            db: Database instance
            clock: Callable returning the current naive UTC time
        """
        self.db = db
        self.clock = clock

    def _get_owned(self, ctx: AuthContext, invoice_id: str) -> Invoice:
        invoice = self.db.get_invoice(ctx.user_id, invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def _ensure_number_free(self, ctx: AuthContext, invoice_number: str, exclude_id: Optional[str] = None) -> None:
        if self.db.find_invoice_by_number(ctx.user_id, invoice_number, exclude_id=exclude_id) is not None:
            raise ConflictError(duplicate_invoice_number(invoice_number))

    def create(self, ctx: Optional[AuthContext], data: InvoiceInput | dict[str, Any]) -> Invoice:
        """Create an invoice for the caller.

        Args:
            ctx: Authenticated context
            data: Invoice form values

        Returns:
            The stored invoice

        Raises:
            ValidationError: If the form is invalid
            ConflictError: If the caller already uses the invoice number
        """
        ctx = require_auth(ctx)
        form = validate(InvoiceInput, data)
        self._ensure_number_free(ctx, form.invoice_number)

        invoice_id = self.db.create_invoice(
            owner_id=ctx.user_id,
            client_name=form.client_name,
            client_email=form.client_email,
            invoice_number=form.invoice_number,
            amount=form.amount,
            currency=form.currency,
            issue_date=form.issue_date,
            due_date=form.due_date,
            description=form.description,
            additional_notes=form.additional_notes,
            status=form.status,
        )
        logger.info("Created invoice %s (%s) for user %s", invoice_id, form.invoice_number, ctx.user_id)
        return self._get_owned(ctx, invoice_id)

    def get(self, ctx: Optional[AuthContext], invoice_id: str) -> Invoice:
        """Get an owned invoice.

        Raises:
            NotFoundError: If the invoice is missing or owned by someone else
        """
        ctx = require_auth(ctx)
        return self._get_owned(ctx, invoice_id)

    def list_invoices(self, ctx: Optional[AuthContext], limit: int = 50, offset: int = 0) -> list[Invoice]:
        """List the caller's invoices, newest first."""
        ctx = require_auth(ctx)
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_PAGE_SIZE}",
                field_errors={"limit": [f"must be between 1 and {MAX_PAGE_SIZE}"]},
            )
        if offset < 0:
            raise ValidationError("Offset cannot be negative", field_errors={"offset": ["must be >= 0"]})
        return self.db.list_invoices(ctx.user_id, limit=limit, offset=offset)

    def update(self, ctx: Optional[AuthContext], invoice_id: str, data: InvoiceInput | dict[str, Any]) -> Invoice:
        """Replace an owned invoice's form values.

        The number uniqueness check ignores the invoice being edited.
        """
        ctx = require_auth(ctx)
        form = validate(InvoiceInput, data)
        self._get_owned(ctx, invoice_id)
        self._ensure_number_free(ctx, form.invoice_number, exclude_id=invoice_id)

        values = form.model_dump(exclude=None if "status" in form.model_fields_set else {"status"})
        updated = self.db.update_invoice(ctx.user_id, invoice_id, values)
        if updated is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return updated

    def delete(self, ctx: Optional[AuthContext], invoice_id: str) -> None:
        """Hard-delete an owned invoice together with its reminder history."""
        ctx = require_auth(ctx)
        self._get_owned(ctx, invoice_id)
        self.db.delete_invoices(ctx.user_id, [invoice_id])
        logger.info("Deleted invoice %s for user %s", invoice_id, ctx.user_id)

    def get_by_status(self, ctx: Optional[AuthContext], status: StatusFilter | str) -> list[Invoice]:
        """List invoices by status filter.

        ``overdue`` selects stored ``pending`` invoices whose due date has
        passed; it never reads the stored ``overdue`` status.
        """
        ctx = require_auth(ctx)
        try:
            status = StatusFilter(status)
        except ValueError as e:
            raise ValidationError(
                f"Invalid status filter '{status}'",
                field_errors={"status": ["must be one of pending, paid, overdue, all"]},
            ) from e

        if status == StatusFilter.ALL:
            return self.db.list_invoices(ctx.user_id)
        if status == StatusFilter.OVERDUE:
            now = self.clock()
            pending = self.db.list_invoices(ctx.user_id, status=InvoiceStatus.PENDING)
            return [inv for inv in pending if is_overdue(inv, now)]
        return self.db.list_invoices(ctx.user_id, status=InvoiceStatus(status.value))

    def list_with_reminder_counts(
        self, ctx: Optional[AuthContext], status: StatusFilter | str = StatusFilter.ALL
    ) -> list[InvoiceWithReminders]:
        """List invoices by status filter with their reminder count and last reminder time."""
        ctx = require_auth(ctx)
        invoices = self.get_by_status(ctx, status)
        summary = self.db.get_reminder_summary(ctx.user_id)
        result = []
        for invoice in invoices:
            count, last_sent = summary.get(invoice.id, (0, None))
            result.append(InvoiceWithReminders(invoice=invoice, reminder_count=count, last_reminder_at=last_sent))
        return result

    def update_status(self, ctx: Optional[AuthContext], invoice_id: str, status: InvoiceStatus | str) -> Invoice:
        """Set the stored status of an owned invoice.

        Marking an invoice paid stamps its payment date.
        """
        ctx = require_auth(ctx)
        status = self._parse_status(status)
        self._get_owned(ctx, invoice_id)

        values: dict[str, Any] = {"status": status}
        if status == InvoiceStatus.PAID:
            values["payment_date"] = self.clock()
        updated = self.db.update_invoice(ctx.user_id, invoice_id, values)
        if updated is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        logger.info("Invoice %s status set to %s", invoice_id, status.value)
        return updated

    def mark_as_paid(self, ctx: Optional[AuthContext], invoice_id: str) -> Invoice:
        return self.update_status(ctx, invoice_id, InvoiceStatus.PAID)

    def bulk_update_status(
        self, ctx: Optional[AuthContext], invoice_ids: Sequence[str], status: InvoiceStatus | str
    ) -> list[str]:
        """Set status on several invoices at once.

        Raises:
            ForbiddenError: If any id is not owned by the caller; nothing is changed
        """
        ctx = require_auth(ctx)
        status = self._parse_status(status)
        ids = self._check_bulk_ownership(ctx, invoice_ids, "update")
        payment_date = self.clock() if status == InvoiceStatus.PAID else None
        return self.db.update_invoice_statuses(ctx.user_id, ids, status, payment_date=payment_date)

    def bulk_delete(self, ctx: Optional[AuthContext], invoice_ids: Sequence[str]) -> list[str]:
        """Delete several invoices at once.

        Raises:
            ForbiddenError: If any id is not owned by the caller; nothing is deleted
        """
        ctx = require_auth(ctx)
        ids = self._check_bulk_ownership(ctx, invoice_ids, "delete")
        deleted = self.db.delete_invoices(ctx.user_id, ids)
        logger.info("Deleted %d invoices for user %s", len(deleted), ctx.user_id)
        return deleted

    def check_invoice_number(
        self, ctx: Optional[AuthContext], invoice_number: str, exclude_id: Optional[str] = None
    ) -> tuple[bool, Optional[str]]:
        """Check whether the caller already uses an invoice number.

        Returns:
            Tuple of (exists, id of the invoice using it)
        """
        ctx = require_auth(ctx)
        existing = self.db.find_invoice_by_number(ctx.user_id, invoice_number.strip(), exclude_id=exclude_id)
        if existing is None:
            return False, None
        return True, existing.id

    def unique_clients(self, ctx: Optional[AuthContext]) -> list[tuple[str, str]]:
        """Distinct (name, email) pairs of the caller's clients, keyed by email."""
        ctx = require_auth(ctx)
        seen: dict[str, tuple[str, str]] = {}
        for invoice in self.db.list_invoices(ctx.user_id):
            key = invoice.client_email.lower()
            if key not in seen:
                seen[key] = (invoice.client_name, invoice.client_email)
        return list(seen.values())

    def get_stats(self, ctx: Optional[AuthContext]) -> InvoiceStats:
        """Dashboard counters; degrades to zeroed stats when the store fails."""
        ctx = require_auth(ctx)
        try:
            invoices = self.db.list_invoices(ctx.user_id)
        except InternalError:
            logger.exception("Failed to compute invoice stats for user %s", ctx.user_id)
            return InvoiceStats()

        now = self.clock()
        outstanding = sum(
            (inv.amount for inv in invoices if inv.status != InvoiceStatus.PAID), Decimal("0")
        )
        return InvoiceStats(
            pending_invoices=sum(1 for inv in invoices if inv.status == InvoiceStatus.PENDING),
            overdue_invoices=sum(1 for inv in invoices if is_overdue(inv, now)),
            paid_invoices=sum(1 for inv in invoices if inv.status == InvoiceStatus.PAID),
            outstanding_amount=outstanding,
            recent_invoices=invoices[:RECENT_INVOICE_COUNT],
        )

    def get_monthly_data(self, ctx: Optional[AuthContext], year: Optional[int] = None) -> list[MonthlyAmount]:
        """Invoice totals per issue month for a year (defaults to the current year)."""
        ctx = require_auth(ctx)
        year = year or self.clock().year
        totals = [Decimal("0")] * 12
        try:
            invoices = self.db.list_invoices(ctx.user_id)
        except InternalError:
            logger.exception("Failed to compute monthly data for user %s", ctx.user_id)
            invoices = []

        for invoice in invoices:
            if invoice.issue_date.year == year:
                totals[invoice.issue_date.month - 1] += invoice.amount
        return [MonthlyAmount(name=name, amount=total) for name, total in zip(MONTH_NAMES, totals)]

    def get_dashboard_data(self, ctx: Optional[AuthContext]) -> DashboardData:
        return DashboardData(stats=self.get_stats(ctx), monthly_data=self.get_monthly_data(ctx))

    @staticmethod
    def _parse_status(status: InvoiceStatus | str) -> InvoiceStatus:
        try:
            return InvoiceStatus(status)
        except ValueError as e:
            choices = ", ".join(s.value for s in InvoiceStatus)
            raise ValidationError(
                f"Invalid status '{status}'", field_errors={"status": [f"must be one of {choices}"]}
            ) from e

    def _check_bulk_ownership(self, ctx: AuthContext, invoice_ids: Sequence[str], action: str) -> list[str]:
        ids = list(dict.fromkeys(invoice_ids))
        if not ids:
            raise ValidationError("At least one invoice id is required", field_errors={"ids": ["must not be empty"]})
        foreign = [invoice_id for invoice_id in ids if self.db.get_invoice(ctx.user_id, invoice_id) is None]
        if foreign:
            raise ForbiddenError(not_owned(foreign, action))
        return ids


def days_overdue(invoice: Invoice, now: datetime) -> int:
    """Whole days since the invoice fell due, floored; negative before the due date."""
    return days_between(due_datetime(invoice), now)
