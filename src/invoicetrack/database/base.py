"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Iterable
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from invoicetrack.domain.entities import (
    Invoice,
    ReminderRecord,
    UserSettings,
    EmailTemplate,
    EmailConnection,
    Feedback,
    FeatureRequest,
    WaitlistEntry,
    GeneratedInvoice,
    InvoiceStatus,
    DeliveryStatus,
    ReminderTone,
)


class Database(ABC):
    """Abstract database interface for invoicetrack.

    Every invoice-scoped read takes the owner id, so a record owned by someone
    else is reported exactly like a missing one.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        owner_id: str,
        client_name: str,
        client_email: str,
        invoice_number: str,
        amount: Decimal,
        currency: str,
        issue_date: date,
        due_date: date,
        description: Optional[str] = None,
        additional_notes: Optional[str] = None,
        status: InvoiceStatus = InvoiceStatus.PENDING,
    ) -> str:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, owner_id: str, invoice_id: str) -> Optional[Invoice]:
        """Get an owned invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(
        self,
        owner_id: str,
        status: Optional[InvoiceStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Invoice]:
        """List an owner's invoices, newest first, optionally by stored status."""
        pass

    @abstractmethod
    def find_invoice_by_number(
        self, owner_id: str, invoice_number: str, exclude_id: Optional[str] = None
    ) -> Optional[Invoice]:
        """Find an owner's invoice by number, ignoring ``exclude_id``."""
        pass

    @abstractmethod
    def update_invoice(self, owner_id: str, invoice_id: str, values: dict[str, Any]) -> Optional[Invoice]:
        """Update invoice columns. Returns None when the invoice is not owned."""
        pass

    @abstractmethod
    def update_invoice_statuses(
        self,
        owner_id: str,
        invoice_ids: Iterable[str],
        status: InvoiceStatus,
        payment_date: Optional[datetime] = None,
    ) -> list[str]:
        """Set status on owned invoices. Returns the IDs that were updated."""
        pass

    @abstractmethod
    def delete_invoices(self, owner_id: str, invoice_ids: Iterable[str]) -> list[str]:
        """Hard-delete owned invoices. Returns the IDs that were deleted."""
        pass

    @abstractmethod
    def get_reminder_summary(self, owner_id: str) -> dict[str, tuple[int, Optional[datetime]]]:
        """Map invoice ID to (reminder count, last sent_at) for an owner."""
        pass

    # Reminder operations
    @abstractmethod
    def reserve_reminder(
        self,
        invoice_id: str,
        owner_id: str,
        tone: ReminderTone,
        subject: str,
        content: str,
        sent_at: datetime,
        status: DeliveryStatus = DeliveryStatus.QUEUED,
    ) -> ReminderRecord:
        """Insert a reminder record with the next sequence number for the invoice.

        Counting existing records and inserting the new one happen in one
        transaction; a concurrent writer that picked the same number fails.
        """
        pass

    @abstractmethod
    def list_reminders(self, invoice_id: str) -> list[ReminderRecord]:
        """List reminder records for an invoice, newest first."""
        pass

    @abstractmethod
    def list_owner_reminders(
        self, owner_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> list[ReminderRecord]:
        """List all reminder records of an owner, newest first."""
        pass

    @abstractmethod
    def update_reminder(
        self, owner_id: str, reminder_id: str, values: dict[str, Any]
    ) -> Optional[ReminderRecord]:
        """Update reminder columns. Returns None when the record is not owned."""
        pass

    @abstractmethod
    def delete_reminder(self, reminder_id: str) -> None:
        """Delete a reminder record."""
        pass

    # Settings operations
    @abstractmethod
    def get_settings(self, owner_id: str) -> Optional[UserSettings]:
        """Get settings row for an owner."""
        pass

    @abstractmethod
    def create_settings(self, owner_id: str) -> UserSettings:
        """Create a settings row with defaults."""
        pass

    @abstractmethod
    def update_settings(self, owner_id: str, values: dict[str, Any]) -> UserSettings:
        """Update settings columns, creating the row first if needed."""
        pass

    @abstractmethod
    def list_automated_settings(self) -> list[UserSettings]:
        """List settings of every owner with automated reminders enabled."""
        pass

    # Template operations
    @abstractmethod
    def create_template(self, owner_id: str, values: dict[str, Any]) -> EmailTemplate:
        """Create an email template."""
        pass

    @abstractmethod
    def get_template(self, owner_id: str, template_id: str) -> Optional[EmailTemplate]:
        """Get an owned template by ID."""
        pass

    @abstractmethod
    def list_templates(self, owner_id: str, tone: Optional[ReminderTone] = None) -> list[EmailTemplate]:
        """List an owner's templates ordered by name."""
        pass

    @abstractmethod
    def update_template(
        self, owner_id: str, template_id: str, values: dict[str, Any]
    ) -> Optional[EmailTemplate]:
        """Update template columns. Returns None when the template is not owned."""
        pass

    @abstractmethod
    def delete_template(self, owner_id: str, template_id: str) -> bool:
        """Delete an owned template. Returns False when nothing was deleted."""
        pass

    @abstractmethod
    def clear_default_templates(
        self, owner_id: str, tone: ReminderTone, exclude_id: Optional[str] = None
    ) -> int:
        """Unset is_default on an owner's templates of a tone. Returns rows changed."""
        pass

    @abstractmethod
    def get_default_template(self, owner_id: str, tone: ReminderTone) -> Optional[EmailTemplate]:
        """Get the active default template for an owner and tone."""
        pass

    @abstractmethod
    def increment_template_usage(self, template_id: str) -> None:
        """Bump a template's usage counter."""
        pass

    # Email connection operations
    @abstractmethod
    def save_email_connection(
        self, owner_id: str, email: str, credential: str, name: Optional[str] = None
    ) -> EmailConnection:
        """Create or replace an owner's email connection."""
        pass

    @abstractmethod
    def get_email_connection(self, owner_id: str) -> Optional[EmailConnection]:
        """Get an owner's email connection."""
        pass

    @abstractmethod
    def delete_email_connection(self, owner_id: str) -> bool:
        """Remove an owner's email connection."""
        pass

    # Help center operations
    @abstractmethod
    def create_feedback(self, owner_id: str, content: str, stars: int) -> Feedback:
        pass

    @abstractmethod
    def list_feedback(self, owner_id: str) -> list[Feedback]:
        pass

    @abstractmethod
    def create_feature_request(
        self, owner_id: str, title: str, description: str, priority: str
    ) -> FeatureRequest:
        pass

    @abstractmethod
    def list_feature_requests(self, owner_id: str) -> list[FeatureRequest]:
        pass

    @abstractmethod
    def update_feature_request_status(self, request_id: str, status: str) -> Optional[FeatureRequest]:
        pass

    # Waitlist operations
    @abstractmethod
    def add_waitlist_entry(self, email: str) -> WaitlistEntry:
        pass

    @abstractmethod
    def get_waitlist_entry(self, email: str) -> Optional[WaitlistEntry]:
        pass

    @abstractmethod
    def list_waitlist_entries(self) -> list[WaitlistEntry]:
        pass

    @abstractmethod
    def count_waitlist_entries(self) -> int:
        pass

    # Generated invoice operations
    @abstractmethod
    def create_generated_invoice(self, owner_id: str, values: dict[str, Any]) -> GeneratedInvoice:
        """Save a generated invoice document with a fresh share token."""
        pass

    @abstractmethod
    def get_generated_invoice(self, owner_id: str, invoice_id: str) -> Optional[GeneratedInvoice]:
        """Get an owned saved invoice; deleted ones are treated as missing."""
        pass

    @abstractmethod
    def list_generated_invoices(self, owner_id: str, limit: int) -> list[GeneratedInvoice]:
        """List an owner's saved invoices, most recently updated first."""
        pass

    @abstractmethod
    def update_generated_invoice(
        self, owner_id: str, invoice_id: str, values: dict[str, Any]
    ) -> Optional[GeneratedInvoice]:
        """Update a saved invoice. Returns None when it is missing, deleted or not owned."""
        pass

    @abstractmethod
    def delete_generated_invoice(self, owner_id: str, invoice_id: str) -> bool:
        """Mark a saved invoice deleted. Returns False when nothing changed."""
        pass

    @abstractmethod
    def find_public_generated_invoice(self, share_token: str) -> Optional[GeneratedInvoice]:
        """Get a shared, not deleted invoice by its share token."""
        pass
