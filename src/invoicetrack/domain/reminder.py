"""Reminder domain service.

Sending a reminder is a three step write:

1. reserve a record with the next sequence number (status ``queued``),
2. hand the message to the transport,
3. mark the record ``sent``.

If sending fails for any reason the reserved record is released, so the
history only ever lists reminders the transport accepted.
"""

import logging
import os
from datetime import datetime
from typing import Any, Iterable, Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, Clock, require_auth, utcnow
from invoicetrack.domain.email import EmailTransport, OutgoingEmail, TransportError
from invoicetrack.domain.entities import (
    BulkSendItem,
    BulkSendResult,
    DeliveryStatus,
    EmailConnection,
    Invoice,
    ReminderRecord,
    ReminderStats,
    ReminderTone,
    UserSettings,
)
from invoicetrack.domain.errors import (
    DomainError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
    email_not_connected,
    invoice_not_found,
    reminder_not_found,
)
from invoicetrack.domain.rendering import DEFAULT_BUSINESS_NAME, RenderData, RenderedEmail, render_reminder
from invoicetrack.domain.scheduler import tone_for_sequence
from invoicetrack.domain.schemas import (
    LogReminderInput,
    ReminderStatusInput,
    SendReminderInput,
    parse_tone,
    validate,
)
from invoicetrack.domain.settings import load_or_create_settings

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Timestamp column stamped when a reminder reaches a delivery status
STATUS_TIMESTAMPS = {
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.OPENED: "opened_at",
    DeliveryStatus.CLICKED: "clicked_at",
    DeliveryStatus.REPLIED: "response_received_at",
}


def sender_name(settings: UserSettings) -> str:
    return settings.from_name or settings.business_name or DEFAULT_BUSINESS_NAME


def _percent(part: int, total: int) -> float:
    return (part / total) * 100 if total > 0 else 0.0


class ReminderService:
    """Service for sending reminders and reading reminder history."""

    def __init__(
        self,
        db: Database,
        transport: EmailTransport,
        clock: Clock = utcnow,
        app_url: Optional[str] = None,
    ):
        """Initialize reminder service.

        Args:
            db: Database instance
            transport: Outbound email transport
            clock: Callable returning the current naive UTC time
            app_url: Base URL for invoice links (defaults to INVOICETRACK_APP_URL)
        """
        self.db = db
        self.transport = transport
        self.clock = clock
        self.app_url = app_url if app_url is not None else os.environ.get("INVOICETRACK_APP_URL")

    def _get_owned_invoice(self, ctx: AuthContext, invoice_id: str) -> Invoice:
        invoice = self.db.get_invoice(ctx.user_id, invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def _require_connection(self, owner_id: str) -> EmailConnection:
        connection = self.db.get_email_connection(owner_id)
        if connection is None:
            raise PreconditionFailedError(email_not_connected())
        return connection

    def compose(
        self,
        settings: UserSettings,
        invoice: Invoice,
        tone: ReminderTone,
        now: datetime,
    ) -> RenderedEmail:
        """Render a reminder using the owner's default template for the tone, if any.

        Template usage is counted by ``deliver`` once the message is sent.
        """
        data = RenderData.from_invoice(
            invoice,
            now,
            sender_name=sender_name(settings),
            company_name=settings.business_name or DEFAULT_BUSINESS_NAME,
            email_signature=settings.email_signature,
            app_url=self.app_url,
        )
        template = self.db.get_default_template(settings.owner_id, tone)
        return render_reminder(tone, data, template)

    def deliver(
        self,
        settings: UserSettings,
        connection: EmailConnection,
        invoice: Invoice,
        tone: ReminderTone,
        subject: str,
        body: str,
        is_html: bool,
        now: datetime,
        text: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> ReminderRecord:
        """Reserve a sequence number, send through the transport and mark the record sent.

        ``template_id`` names the owner template the message was rendered from;
        its usage count goes up only after the transport accepted the message.

        Raises:
            ConflictError: If a concurrent send claimed the same sequence number
            InternalError: If the message could not be sent
        """
        record = self.db.reserve_reminder(
            invoice_id=invoice.id,
            owner_id=settings.owner_id,
            tone=tone,
            subject=subject,
            content=body,
            sent_at=now,
        )

        bcc = [settings.default_bcc] if settings.default_bcc else []
        if settings.send_copy_to_self:
            bcc.append(connection.email)
        message = OutgoingEmail(
            to=invoice.client_email,
            subject=subject,
            body=body,
            is_html=is_html,
            text=text,
            sender_name=sender_name(settings),
            cc=[settings.default_cc] if settings.default_cc else [],
            bcc=bcc,
        )
        try:
            self.transport.send(message, connection)
        except TransportError as e:
            logger.error("Transport refused reminder #%d for invoice %s: %s", record.sequence_number, invoice.id, e)
            self.db.delete_reminder(record.id)
            raise InternalError(f"Failed to send reminder for invoice {invoice.invoice_number}") from e
        except Exception as e:
            logger.exception("Unexpected error sending reminder #%d for invoice %s", record.sequence_number, invoice.id)
            self.db.delete_reminder(record.id)
            raise InternalError(f"Failed to send reminder for invoice {invoice.invoice_number}") from e

        sent = self.db.update_reminder(settings.owner_id, record.id, {"status": DeliveryStatus.SENT})
        if template_id is not None:
            self.db.increment_template_usage(template_id)
        logger.info(
            "Sent reminder #%d (%s) for invoice %s to %s",
            record.sequence_number,
            tone.value,
            invoice.id,
            invoice.client_email,
        )
        return sent or record

    def send_reminder(
        self,
        ctx: Optional[AuthContext],
        invoice_id: str,
        subject: str,
        content: str,
        tone: ReminderTone | str = ReminderTone.POLITE,
        is_html: bool = True,
    ) -> ReminderRecord:
        """Send a reminder with caller-provided subject and body.

        Manual sends ignore the automation flag and the reminder ceiling.

        Raises:
            NotFoundError: If the invoice is missing or not owned
            PreconditionFailedError: If no email account is connected
            InternalError: If the transport fails
        """
        ctx = require_auth(ctx)
        form = validate(
            SendReminderInput,
            {"invoice_id": invoice_id, "subject": subject, "content": content, "tone": tone, "is_html": is_html},
        )
        invoice = self._get_owned_invoice(ctx, form.invoice_id)
        connection = self._require_connection(ctx.user_id)
        settings = load_or_create_settings(self.db, ctx.user_id)
        return self.deliver(
            settings, connection, invoice, form.tone, form.subject, form.content, form.is_html, self.clock()
        )

    def bulk_send(self, ctx: Optional[AuthContext], reminders: Iterable[SendReminderInput | dict[str, Any]]) -> BulkSendResult:
        """Send several reminders; one failure does not stop the rest."""
        ctx = require_auth(ctx)
        results = []
        for item in reminders:
            invoice_id = item.invoice_id if isinstance(item, SendReminderInput) else item.get("invoice_id", "")
            try:
                form = validate(SendReminderInput, item)
                record = self.send_reminder(ctx, form.invoice_id, form.subject, form.content, form.tone, form.is_html)
            except DomainError as e:
                logger.warning("Bulk reminder for invoice %s failed: %s", invoice_id, e)
                results.append(BulkSendItem(invoice_id=invoice_id, success=False, error=str(e)))
            else:
                results.append(
                    BulkSendItem(invoice_id=invoice_id, success=True, sequence_number=record.sequence_number)
                )

        result = BulkSendResult(results=results)
        logger.info("Bulk send: %d of %d reminders sent", result.successful, result.total)
        return result

    def get_history(self, ctx: Optional[AuthContext], invoice_id: str) -> list[ReminderRecord]:
        """Reminder history of an owned invoice, newest first."""
        ctx = require_auth(ctx)
        self._get_owned_invoice(ctx, invoice_id)
        return self.db.list_reminders(invoice_id)

    def get_last_reminder(self, ctx: Optional[AuthContext], invoice_id: str) -> Optional[ReminderRecord]:
        history = self.get_history(ctx, invoice_id)
        return history[0] if history else None

    def list_all(self, ctx: Optional[AuthContext], limit: int = 50, offset: int = 0) -> list[ReminderRecord]:
        ctx = require_auth(ctx)
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_PAGE_SIZE}",
                field_errors={"limit": [f"must be between 1 and {MAX_PAGE_SIZE}"]},
            )
        return self.db.list_owner_reminders(ctx.user_id, limit=limit, offset=max(offset, 0))

    def update_status(
        self, ctx: Optional[AuthContext], reminder_id: str, status: DeliveryStatus | str
    ) -> ReminderRecord:
        """Record a delivery status reported after sending, stamping its timestamp."""
        ctx = require_auth(ctx)
        form = validate(ReminderStatusInput, {"status": status})
        values: dict[str, Any] = {"status": form.status}
        column = STATUS_TIMESTAMPS.get(form.status)
        if column is not None:
            values[column] = self.clock()
        if form.status == DeliveryStatus.REPLIED:
            values["response_received"] = True

        updated = self.db.update_reminder(ctx.user_id, reminder_id, values)
        if updated is None:
            raise NotFoundError(reminder_not_found(reminder_id))
        return updated

    def log_reminder(
        self,
        ctx: Optional[AuthContext],
        invoice_id: str,
        subject: str,
        content: str,
        tone: ReminderTone | str = ReminderTone.POLITE,
    ) -> ReminderRecord:
        """Record a reminder that was sent outside the application."""
        ctx = require_auth(ctx)
        form = validate(
            LogReminderInput, {"invoice_id": invoice_id, "subject": subject, "content": content, "tone": tone}
        )
        invoice = self._get_owned_invoice(ctx, form.invoice_id)
        record = self.db.reserve_reminder(
            invoice_id=invoice.id,
            owner_id=ctx.user_id,
            tone=form.tone,
            subject=form.subject,
            content=form.content,
            sent_at=self.clock(),
            status=DeliveryStatus.SENT,
        )
        logger.info("Logged reminder #%d for invoice %s", record.sequence_number, invoice.id)
        return record

    def get_reminder_stats(self, ctx: Optional[AuthContext]) -> ReminderStats:
        """Reminder counters and rates (percent); zeroed when the store fails."""
        ctx = require_auth(ctx)
        try:
            reminders = self.db.list_owner_reminders(ctx.user_id)
        except InternalError:
            logger.exception("Failed to compute reminder stats for user %s", ctx.user_id)
            return ReminderStats()

        total = len(reminders)
        delivered = sum(1 for r in reminders if r.status == DeliveryStatus.DELIVERED)
        opened = sum(1 for r in reminders if r.opened_at is not None)
        replied = sum(1 for r in reminders if r.response_received)
        return ReminderStats(
            total=total,
            sent=sum(1 for r in reminders if r.status == DeliveryStatus.SENT),
            delivered=delivered,
            opened=opened,
            replied=replied,
            delivery_rate=_percent(delivered, total),
            open_rate=_percent(opened, total),
            response_rate=_percent(replied, total),
        )

    def preview(
        self, ctx: Optional[AuthContext], invoice_id: str, tone: Optional[ReminderTone | str] = None
    ) -> RenderedEmail:
        """Render the next reminder for an invoice without sending or recording it.

        Without a tone, the tone the policy assigns to the next sequence number is used.
        """
        ctx = require_auth(ctx)
        invoice = self._get_owned_invoice(ctx, invoice_id)
        settings = load_or_create_settings(self.db, ctx.user_id)
        if tone is None:
            history = self.db.list_reminders(invoice.id)
            next_sequence = history[0].sequence_number + 1 if history else 1
            tone = tone_for_sequence(settings.policy, next_sequence)
        else:
            tone = parse_tone(tone)
        return self.compose(settings, invoice, tone, self.clock())
