"""Reminder escalation scheduler.

For each pending invoice the scheduler decides whether a reminder is due and,
if so, which sequence number and tone it gets:

- With no history, the first reminder is due once the invoice is overdue
  (``days_overdue >= 0``). A negative ``first_reminder_days`` instead waits
  until ``days_overdue >= abs(first_reminder_days)``.
- With history, nothing more is sent once the latest sequence number reaches
  ``max_reminders``. Otherwise the next reminder is due ``follow_up_frequency``
  days after the latest one.
- Sequence 1 uses the first tone, 2 the second, 3 and later the third.

``decide`` is pure; the ``ReminderScheduler`` class feeds it from the store
and sends through the ``ReminderService``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, Clock, require_auth, utcnow
from invoicetrack.domain.entities import (
    EmailConnection,
    Invoice,
    InvoiceStatus,
    ReminderPolicy,
    ReminderRecord,
    ReminderTone,
    UserSettings,
)
from invoicetrack.domain.errors import DomainError, NotFoundError, invoice_not_found
from invoicetrack.domain.invoice import days_overdue as invoice_days_overdue
from invoicetrack.domain.settings import load_or_create_settings
from invoicetrack.utils.date_parser import days_between

if TYPE_CHECKING:
    from invoicetrack.domain.reminder import ReminderService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderDecision:
    """Outcome of evaluating one invoice.

    When ``send`` is False, ``sequence_number`` and ``tone`` describe the
    latest reminder already sent (0 and None when there is none).
    """

    send: bool
    sequence_number: int
    tone: Optional[ReminderTone]
    days_overdue: int


@dataclass(frozen=True)
class BatchResult:
    owners: int = 0
    skipped_owners: int = 0
    invoices_checked: int = 0
    sent: int = 0
    failed: int = 0

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            owners=self.owners + other.owners,
            skipped_owners=self.skipped_owners + other.skipped_owners,
            invoices_checked=self.invoices_checked + other.invoices_checked,
            sent=self.sent + other.sent,
            failed=self.failed + other.failed,
        )


def tone_for_sequence(policy: ReminderPolicy, sequence_number: int) -> ReminderTone:
    if sequence_number <= 1:
        return policy.first_reminder_tone
    if sequence_number == 2:
        return policy.second_reminder_tone
    return policy.third_reminder_tone


def first_reminder_due(policy: ReminderPolicy, days_overdue: int) -> bool:
    # TODO: negative first_reminder_days reads as "days before due" in settings but
    # is compared against days overdue; confirm the intended meaning with product.
    if policy.first_reminder_days >= 0:
        return days_overdue >= 0
    return days_overdue >= abs(policy.first_reminder_days)


def decide(
    invoice: Invoice,
    policy: ReminderPolicy,
    history: Sequence[ReminderRecord],
    now: datetime,
) -> ReminderDecision:
    """Decide whether a reminder is due for an invoice.

    Args:
        invoice: The invoice to evaluate
        policy: The owner's reminder policy
        history: Prior reminders for the invoice, newest first
        now: Current naive UTC time

    Returns:
        The decision; non-pending invoices never get a reminder
    """
    days_overdue = invoice_days_overdue(invoice, now)
    last = history[0] if history else None
    skip = ReminderDecision(
        send=False,
        sequence_number=last.sequence_number if last else 0,
        tone=last.tone if last else None,
        days_overdue=days_overdue,
    )

    if invoice.status != InvoiceStatus.PENDING:
        return skip

    if last is None:
        if first_reminder_due(policy, days_overdue):
            return ReminderDecision(
                send=True, sequence_number=1, tone=policy.first_reminder_tone, days_overdue=days_overdue
            )
        return skip

    if last.sequence_number >= policy.max_reminders:
        return skip

    days_since_last = days_between(last.sent_at, now)
    if days_since_last >= policy.follow_up_frequency:
        next_sequence = last.sequence_number + 1
        return ReminderDecision(
            send=True,
            sequence_number=next_sequence,
            tone=tone_for_sequence(policy, next_sequence),
            days_overdue=days_overdue,
        )
    return skip


class ReminderScheduler:
    """Applies reminder decisions to stored invoices."""

    def __init__(self, db: Database, reminders: "ReminderService", clock: Clock = utcnow):
        """Initialize reminder scheduler.

        Args:
            db: Database instance
            reminders: Service used to render and send reminders
            clock: Callable returning the current naive UTC time
        """
        self.db = db
        self.reminders = reminders
        self.clock = clock

    def evaluate(self, ctx: Optional[AuthContext], invoice_id: str, now: Optional[datetime] = None) -> ReminderDecision:
        """Decide for one owned invoice without sending anything."""
        ctx = require_auth(ctx)
        invoice = self.db.get_invoice(ctx.user_id, invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        settings = load_or_create_settings(self.db, ctx.user_id)
        return decide(invoice, settings.policy, self.db.list_reminders(invoice.id), now or self.clock())

    def process_scheduled_reminders(self, now: Optional[datetime] = None) -> BatchResult:
        """Run the automatic reminder pass for every owner with automation enabled.

        Owners are processed one after another. A failure on one invoice is
        logged and counted; reminders already sent stay sent and the pass
        moves on.
        """
        now = now or self.clock()
        owners = self.db.list_automated_settings()
        logger.info("Processing scheduled reminders for %d users", len(owners))

        total = BatchResult()
        for settings in owners:
            try:
                total = total + self._process_owner(settings, now)
            except DomainError:
                logger.exception("Scheduled reminders failed for user %s", settings.owner_id)
                total = total + BatchResult(owners=1)

        logger.info(
            "Scheduled reminders done: %d users, %d invoices checked, %d sent, %d failed",
            total.owners,
            total.invoices_checked,
            total.sent,
            total.failed,
        )
        return total

    def run_for_owner(self, ctx: Optional[AuthContext], now: Optional[datetime] = None) -> BatchResult:
        """Run the automatic reminder pass for the caller only.

        Respects the caller's automation flag.
        """
        ctx = require_auth(ctx)
        settings = load_or_create_settings(self.db, ctx.user_id)
        if not settings.is_automated_reminders:
            logger.info("Automated reminders disabled for user %s", ctx.user_id)
            return BatchResult()
        return self._process_owner(settings, now or self.clock())

    def _process_owner(self, settings: UserSettings, now: datetime) -> BatchResult:
        owner_id = settings.owner_id
        connection = self.db.get_email_connection(owner_id)
        if connection is None:
            logger.warning("Skipping scheduled reminders for user %s: no email account connected", owner_id)
            return BatchResult(skipped_owners=1)

        invoices = self.db.list_invoices(owner_id, status=InvoiceStatus.PENDING)
        logger.debug("Found %d pending invoices for user %s", len(invoices), owner_id)

        sent = failed = 0
        for invoice in invoices:
            try:
                if self._process_invoice(settings, connection, invoice, now):
                    sent += 1
            except DomainError:
                logger.exception("Failed to send scheduled reminder for invoice %s", invoice.id)
                failed += 1

        logger.info("Processed %d reminders for user %s", sent, owner_id)
        return BatchResult(owners=1, invoices_checked=len(invoices), sent=sent, failed=failed)

    def _process_invoice(
        self, settings: UserSettings, connection: EmailConnection, invoice: Invoice, now: datetime
    ) -> bool:
        decision = decide(invoice, settings.policy, self.db.list_reminders(invoice.id), now)
        if not decision.send:
            logger.debug(
                "No reminder for invoice %s (last #%d, %d days overdue)",
                invoice.id,
                decision.sequence_number,
                decision.days_overdue,
            )
            return False

        logger.debug(
            "Reminder #%d due for invoice %s, %d days overdue",
            decision.sequence_number,
            invoice.id,
            decision.days_overdue,
        )
        rendered = self.reminders.compose(settings, invoice, decision.tone, now)
        self.reminders.deliver(
            settings,
            connection,
            invoice,
            decision.tone,
            rendered.subject,
            rendered.html,
            is_html=True,
            now=now,
            text=rendered.text,
            template_id=rendered.template_id,
        )
        return True
