"""Domain model entities for invoicetrack.

These are pure data classes representing business concepts, independent of
database schema. Services and the CLI only ever see these types; ORM rows are
converted at the database boundary by the mappers.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class InvoiceStatus(str, Enum):
    """Stored invoice status."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    DRAFT = "draft"
    PARTIALLY_PAID = "partially_paid"


class StatusFilter(str, Enum):
    """Status filter accepted by invoice listings.

    OVERDUE is computed from due date, not read from the stored status.
    """

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    ALL = "all"


class ReminderTone(str, Enum):
    """Rhetorical register of a reminder email."""

    POLITE = "polite"
    FRIENDLY = "friendly"
    NEUTRAL = "neutral"
    FIRM = "firm"
    DIRECT = "direct"
    ASSERTIVE = "assertive"
    URGENT = "urgent"
    FINAL = "final"
    SERIOUS = "serious"


class DeliveryStatus(str, Enum):
    """Delivery state of a reminder record.

    QUEUED means the sequence number is reserved but the transport has not
    accepted the message yet. SENT means the transport accepted it.
    """

    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    REPLIED = "replied"
    BOUNCED = "bounced"


class TemplateType(str, Enum):
    SYSTEM = "system"
    CUSTOM = "custom"


class TemplateCategory(str, Enum):
    REMINDER = "reminder"
    THANK_YOU = "thank_you"
    FOLLOW_UP = "follow_up"
    NOTICE = "notice"
    WELCOME = "welcome"
    CUSTOM = "custom"


class FeaturePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FeatureStatus(str, Enum):
    NEW = "new"
    UNDER_REVIEW = "under_review"
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"


@dataclass(frozen=True)
class Invoice:
    """Client invoice domain entity."""

    id: str
    owner_id: str
    client_name: str
    client_email: str
    invoice_number: str
    amount: Decimal
    currency: str
    issue_date: date
    due_date: date
    description: Optional[str]
    additional_notes: Optional[str]
    status: InvoiceStatus
    payment_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReminderRecord:
    """One reminder sent (or reserved) for an invoice."""

    id: str
    invoice_id: str
    owner_id: str
    sequence_number: int
    tone: ReminderTone
    subject: str
    content: str
    status: DeliveryStatus
    sent_at: datetime
    delivered_at: Optional[datetime]
    opened_at: Optional[datetime]
    clicked_at: Optional[datetime]
    response_received: bool
    response_received_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReminderPolicy:
    """Per-owner configuration governing reminder timing and tone escalation."""

    owner_id: str
    is_automated_reminders: bool = True
    first_reminder_days: int = 3
    follow_up_frequency: int = 7
    max_reminders: int = 3
    first_reminder_tone: ReminderTone = ReminderTone.POLITE
    second_reminder_tone: ReminderTone = ReminderTone.FIRM
    third_reminder_tone: ReminderTone = ReminderTone.URGENT


@dataclass(frozen=True)
class UserSettings:
    """All per-owner settings: reminder policy, account profile and email."""

    id: str
    owner_id: str
    is_automated_reminders: bool
    first_reminder_days: int
    follow_up_frequency: int
    max_reminders: int
    first_reminder_tone: ReminderTone
    second_reminder_tone: ReminderTone
    third_reminder_tone: ReminderTone
    business_name: Optional[str]
    phone_number: Optional[str]
    from_name: Optional[str]
    email_signature: Optional[str]
    default_cc: Optional[str]
    default_bcc: Optional[str]
    preview_emails: bool
    cc_accountant: bool
    use_branded_emails: bool
    send_copy_to_self: bool
    created_at: datetime
    updated_at: datetime

    @property
    def account(self) -> "AccountSettings":
        return AccountSettings(business_name=self.business_name, phone_number=self.phone_number)

    @property
    def email(self) -> "EmailSettings":
        return EmailSettings(
            from_name=self.from_name,
            email_signature=self.email_signature,
            default_cc=self.default_cc,
            default_bcc=self.default_bcc,
            preview_emails=self.preview_emails,
            cc_accountant=self.cc_accountant,
            use_branded_emails=self.use_branded_emails,
            send_copy_to_self=self.send_copy_to_self,
        )

    @property
    def policy(self) -> ReminderPolicy:
        return ReminderPolicy(
            owner_id=self.owner_id,
            is_automated_reminders=self.is_automated_reminders,
            first_reminder_days=self.first_reminder_days,
            follow_up_frequency=self.follow_up_frequency,
            max_reminders=self.max_reminders,
            first_reminder_tone=self.first_reminder_tone,
            second_reminder_tone=self.second_reminder_tone,
            third_reminder_tone=self.third_reminder_tone,
        )


@dataclass(frozen=True)
class EmailTemplate:
    """User override of a built-in tone template."""

    id: str
    owner_id: str
    name: str
    subject: str
    content: str
    html_content: Optional[str]
    text_content: Optional[str]
    tone: ReminderTone
    template_type: TemplateType
    category: TemplateCategory
    is_default: bool
    is_active: bool
    usage_count: int
    description: Optional[str]
    tags: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class EmailConnection:
    """Outbound mail credential connected by an owner."""

    id: str
    owner_id: str
    email: str
    name: Optional[str]
    credential: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Feedback:
    id: str
    owner_id: str
    content: str
    stars: int
    created_at: datetime


@dataclass(frozen=True)
class FeatureRequest:
    id: str
    owner_id: str
    title: str
    description: str
    priority: FeaturePriority
    status: FeatureStatus
    admin_notes: Optional[str]
    upvotes: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class WaitlistEntry:
    id: str
    email: str
    created_at: datetime


@dataclass(frozen=True)
class GeneratedInvoice:
    """A saved invoice document.

    ``document_json`` holds the full document; the other columns are copies
    of its headline fields for listings. ``share_token`` only resolves while
    ``is_public`` is set.
    """

    id: str
    owner_id: str
    invoice_number: str
    issue_date: date
    due_date: date
    currency: str
    document_json: str
    total_amount: Decimal
    share_token: str
    is_public: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class InvoiceWithReminders:
    """Invoice joined with its reminder count and last reminder time."""

    invoice: Invoice
    reminder_count: int
    last_reminder_at: Optional[datetime]


@dataclass(frozen=True)
class MonthlyAmount:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class InvoiceStats:
    """Dashboard counters. The zero value is what a failed read degrades to."""

    pending_invoices: int = 0
    overdue_invoices: int = 0
    paid_invoices: int = 0
    outstanding_amount: Decimal = Decimal("0")
    recent_invoices: list[Invoice] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardData:
    stats: InvoiceStats
    monthly_data: list[MonthlyAmount]


@dataclass(frozen=True)
class ReminderStats:
    total: int = 0
    sent: int = 0
    delivered: int = 0
    opened: int = 0
    replied: int = 0
    delivery_rate: float = 0.0
    open_rate: float = 0.0
    response_rate: float = 0.0


@dataclass(frozen=True)
class BulkSendItem:
    invoice_id: str
    success: bool
    sequence_number: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class BulkSendResult:
    results: list[BulkSendItem]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def success(self) -> bool:
        return self.successful > 0


@dataclass(frozen=True)
class TemplateStats:
    total_templates: int
    active_templates: int
    default_templates: int
    by_category: dict[str, int]
    by_tone: dict[str, int]


@dataclass(frozen=True)
class AccountSettings:
    business_name: Optional[str]
    phone_number: Optional[str]


@dataclass(frozen=True)
class EmailSettings:
    from_name: Optional[str]
    email_signature: Optional[str]
    default_cc: Optional[str]
    default_bcc: Optional[str]
    preview_emails: bool
    cc_accountant: bool
    use_branded_emails: bool
    send_copy_to_self: bool


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    email: Optional[str] = None
    name: Optional[str] = None
