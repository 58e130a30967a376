"""Input validation models.

Every service operation that accepts user input validates it here before
touching the store. Pydantic failures are converted into ``ValidationError``
with per-field messages.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from invoicetrack.domain.entities import (
    DeliveryStatus,
    FeaturePriority,
    FeatureStatus,
    InvoiceStatus,
    ReminderTone,
    TemplateCategory,
    TemplateType,
)
from invoicetrack.domain.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


def _single_line(value: Optional[str]) -> Optional[str]:
    # Subjects end up in a mail header
    if value is not None and ("\r" in value or "\n" in value):
        raise ValueError("Subject must be a single line")
    return value


class InvoiceInput(_Input):
    """Invoice create/edit form."""

    client_name: str = Field(min_length=1)
    client_email: EmailStr
    invoice_number: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    currency: str = Field(min_length=1, max_length=10)
    issue_date: date
    due_date: date
    description: Optional[str] = None
    additional_notes: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.PENDING

    @field_validator("amount")
    @classmethod
    def _finite_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("Amount must be a finite number")
        return value

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


class SendReminderInput(_Input):
    invoice_id: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    tone: ReminderTone = ReminderTone.POLITE
    is_html: bool = True

    @field_validator("subject")
    @classmethod
    def _subject_line(cls, value: str) -> str:
        return _single_line(value)


class LogReminderInput(_Input):
    invoice_id: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    tone: ReminderTone = ReminderTone.POLITE

    @field_validator("subject")
    @classmethod
    def _subject_line(cls, value: str) -> str:
        return _single_line(value)


class ReminderStatusInput(_Input):
    """Delivery status transitions a caller may report after sending."""

    status: DeliveryStatus

    @field_validator("status")
    @classmethod
    def _reported_status(cls, value: DeliveryStatus) -> DeliveryStatus:
        if value in (DeliveryStatus.QUEUED, DeliveryStatus.SENT):
            raise ValueError("Status must be one of delivered, opened, clicked, replied, bounced")
        return value


class ReminderPolicyInput(_Input):
    is_automated_reminders: bool = True
    first_reminder_days: int = Field(default=3, ge=-30, le=30)
    follow_up_frequency: int = Field(default=7, ge=1, le=30)
    max_reminders: int = Field(default=3, ge=1, le=10)
    first_reminder_tone: ReminderTone = ReminderTone.POLITE
    second_reminder_tone: ReminderTone = ReminderTone.FIRM
    third_reminder_tone: ReminderTone = ReminderTone.URGENT


class AccountSettingsInput(_Input):
    business_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)


class EmailSettingsInput(_Input):
    from_name: Optional[str] = Field(default=None, max_length=100)
    email_signature: str = Field(default="Best regards,", max_length=500)
    default_cc: Optional[EmailStr] = None
    default_bcc: Optional[EmailStr] = None
    preview_emails: bool = True
    cc_accountant: bool = False
    use_branded_emails: bool = False
    send_copy_to_self: bool = False

    @field_validator("default_cc", "default_bcc", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TemplateInput(_Input):
    name: str = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=1, max_length=150)
    content: str = Field(min_length=1, max_length=100000)
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    tone: ReminderTone
    template_type: TemplateType = TemplateType.CUSTOM
    category: TemplateCategory = TemplateCategory.REMINDER
    is_default: bool = False
    is_active: bool = True
    description: Optional[str] = None
    tags: Optional[str] = None

    @field_validator("subject")
    @classmethod
    def _subject_line(cls, value: str) -> str:
        return _single_line(value)


class TemplateUpdateInput(_Input):
    """Partial template update; only fields that were set are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=150)
    content: Optional[str] = Field(default=None, min_length=1, max_length=100000)
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    tone: Optional[ReminderTone] = None
    template_type: Optional[TemplateType] = None
    category: Optional[TemplateCategory] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None
    tags: Optional[str] = None

    @field_validator("subject")
    @classmethod
    def _subject_line(cls, value: Optional[str]) -> Optional[str]:
        return _single_line(value)


class ConnectionInput(_Input):
    email: EmailStr
    credential: str = Field(min_length=1)
    name: Optional[str] = Field(default=None, max_length=100)


class FeedbackInput(_Input):
    content: str = Field(min_length=5, max_length=500)
    stars: int = Field(ge=1, le=5)


class FeatureRequestInput(_Input):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    priority: FeaturePriority = FeaturePriority.MEDIUM


class FeatureStatusInput(_Input):
    status: FeatureStatus


class WaitlistInput(_Input):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


def field_errors(error: pydantic.ValidationError) -> dict[str, list[str]]:
    """Group pydantic error messages by dotted field path."""
    errors: dict[str, list[str]] = {}
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "__root__"
        errors.setdefault(field, []).append(item["msg"])
    return errors


def validate(model: type[M], data: Any) -> M:
    """Validate ``data`` against ``model``.

    Raises:
        ValidationError: With ``field_errors`` naming every invalid field.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = field_errors(e)
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        raise ValidationError(f"Invalid input ({summary})", field_errors=errors) from e


def parse_tone(value: ReminderTone | str) -> ReminderTone:
    """Parse a tone name, raising ValidationError for unknown tones."""
    try:
        return ReminderTone(value)
    except ValueError as e:
        choices = ", ".join(t.value for t in ReminderTone)
        raise ValidationError(f"Invalid tone '{value}'", field_errors={"tone": [f"must be one of {choices}"]}) from e
