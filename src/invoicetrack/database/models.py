"""SQLAlchemy models for invoicetrack database."""

import uuid
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Index,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

from invoicetrack.domain.context import utcnow

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class DecimalString(TypeDecorator):
    """Exact decimal stored as its string form."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class ClientInvoice(Base):
    """Invoice issued by an owner to a client."""

    __tablename__ = "client_invoices"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False)
    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=False)
    invoice_number = Column(String, nullable=False)
    amount = Column(DecimalString, nullable=False)
    currency = Column(String, nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    additional_notes = Column(Text, nullable=True)
    status = Column(String, default="pending", nullable=False)
    payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "invoice_number", name="uq_owner_invoice_number"),
        Index("ix_client_invoices_owner_status_due", "owner_id", "status", "due_date"),
    )

    # Relationships
    reminders = relationship(
        "InvoiceReminder", back_populates="invoice", cascade="all, delete-orphan", passive_deletes=True
    )


class InvoiceReminder(Base):
    """Reminder record appended to an invoice's history."""

    __tablename__ = "invoice_reminders"

    id = Column(String, primary_key=True, default=new_id)
    invoice_id = Column(String, ForeignKey("client_invoices.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(String, nullable=False)
    sequence_number = Column(Integer, nullable=False)
    tone = Column(String, nullable=False)
    subject = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String, default="queued", nullable=False)
    sent_at = Column(DateTime, default=utcnow, nullable=False)
    delivered_at = Column(DateTime, nullable=True)
    opened_at = Column(DateTime, nullable=True)
    clicked_at = Column(DateTime, nullable=True)
    response_received = Column(Boolean, default=False, nullable=False)
    response_received_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Two writers racing for the same invoice cannot both claim a sequence number
    __table_args__ = (
        UniqueConstraint("invoice_id", "sequence_number", name="uq_invoice_reminder_sequence"),
        Index("ix_invoice_reminders_invoice_sent", "invoice_id", "sent_at"),
    )

    invoice = relationship("ClientInvoice", back_populates="reminders")


class UserSettings(Base):
    """Per-owner reminder policy, account profile and email settings."""

    __tablename__ = "user_settings"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, unique=True, nullable=False)

    # Reminder settings
    is_automated_reminders = Column(Boolean, default=True, nullable=False)
    first_reminder_days = Column(Integer, default=3, nullable=False)
    follow_up_frequency = Column(Integer, default=7, nullable=False)
    max_reminders = Column(Integer, default=3, nullable=False)
    first_reminder_tone = Column(String, default="polite", nullable=False)
    second_reminder_tone = Column(String, default="firm", nullable=False)
    third_reminder_tone = Column(String, default="urgent", nullable=False)

    # Account settings
    business_name = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)

    # Email settings
    from_name = Column(String, nullable=True)
    email_signature = Column(String, default="Best regards,", nullable=True)
    default_cc = Column(String, nullable=True)
    default_bcc = Column(String, nullable=True)
    preview_emails = Column(Boolean, default=True, nullable=False)
    cc_accountant = Column(Boolean, default=False, nullable=False)
    use_branded_emails = Column(Boolean, default=False, nullable=False)
    send_copy_to_self = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class EmailTemplate(Base):
    """Owner-defined email template for a reminder tone."""

    __tablename__ = "email_templates"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    html_content = Column(Text, nullable=True)
    text_content = Column(Text, nullable=True)
    tone = Column(String, nullable=False)
    template_type = Column(String, default="custom", nullable=False)
    category = Column(String, default="reminder", nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("ix_email_templates_owner_tone", "owner_id", "tone"),)


class EmailConnection(Base):
    """Mail account an owner sends reminders from."""

    __tablename__ = "email_connections"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=False)
    name = Column(String, nullable=True)
    credential = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    stars = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class FeatureRequest(Base):
    __tablename__ = "feature_requests"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String, default="medium", nullable=False)
    status = Column(String, default="new", nullable=False)
    admin_notes = Column(Text, nullable=True)
    upvotes = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class WaitlistEntry(Base):
    __tablename__ = "waitlist"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class GeneratedInvoice(Base):
    """Invoice document an owner generated and saved."""

    __tablename__ = "generated_invoices"

    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, nullable=False)
    invoice_number = Column(String, nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    currency = Column(String, nullable=False)
    document_json = Column(Text, nullable=False)
    total_amount = Column(DecimalString, nullable=False)
    share_token = Column(String, unique=True, nullable=False, default=new_id)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_generated_invoices_owner_updated", "owner_id", "updated_at"),)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on ON DELETE CASCADE for SQLite connections."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
