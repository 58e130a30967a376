"""Reminder email rendering.

Templates use ``{placeholder}`` markers. Substitution happens in one pass, so
a substituted value is never itself scanned for placeholders. Unknown
placeholders are left untouched.
"""

import html
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from invoicetrack.domain.entities import EmailTemplate, Invoice, ReminderTone
from invoicetrack.domain.invoice import days_overdue
from invoicetrack.utils.amount_parser import format_amount
from invoicetrack.utils.date_parser import format_date

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

DEFAULT_SIGNATURE = "Best regards,"
DEFAULT_BUSINESS_NAME = "Your Business"

PLACEHOLDERS = {
    "{client_name}": "Client full name",
    "{client_email}": "Client email address",
    "{invoice_number}": "Invoice number",
    "{invoice_amount}": "Formatted invoice amount",
    "{currency}": "Currency code",
    "{due_date}": "Formatted due date",
    "{issue_date}": "Formatted issue date",
    "{days_overdue}": "Days overdue count",
    "{sender_name}": "Your name",
    "{company_name}": "Your company name",
    "{invoice_link}": "Link to invoice",
    "{payment_link}": "Payment link",
    "{current_date}": "Current date",
    "{custom_message}": "Custom message",
}

# A template missing one of these still renders but reads oddly
RECOMMENDED_PLACEHOLDERS = ["{client_name}", "{invoice_number}", "{invoice_amount}"]

# Tones without a built-in template borrow the closest one
TONE_FAMILIES = {
    ReminderTone.POLITE: ReminderTone.POLITE,
    ReminderTone.FRIENDLY: ReminderTone.POLITE,
    ReminderTone.NEUTRAL: ReminderTone.POLITE,
    ReminderTone.FIRM: ReminderTone.FIRM,
    ReminderTone.DIRECT: ReminderTone.FIRM,
    ReminderTone.ASSERTIVE: ReminderTone.FIRM,
    ReminderTone.URGENT: ReminderTone.URGENT,
    ReminderTone.FINAL: ReminderTone.URGENT,
    ReminderTone.SERIOUS: ReminderTone.URGENT,
}


@dataclass(frozen=True)
class RenderData:
    """Values substituted into a reminder template."""

    client_name: str
    client_email: str
    invoice_number: str
    invoice_amount: Decimal
    currency: str
    due_date: date
    issue_date: date
    days_overdue: int
    sender_name: str
    current_date: date
    company_name: Optional[str] = None
    invoice_link: Optional[str] = None
    email_signature: str = DEFAULT_SIGNATURE
    custom_fields: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_invoice(
        cls,
        invoice: Invoice,
        now: datetime,
        sender_name: str,
        company_name: Optional[str] = None,
        email_signature: Optional[str] = None,
        app_url: Optional[str] = None,
    ) -> "RenderData":
        return cls(
            client_name=invoice.client_name,
            client_email=invoice.client_email,
            invoice_number=invoice.invoice_number,
            invoice_amount=invoice.amount,
            currency=invoice.currency,
            due_date=invoice.due_date,
            issue_date=invoice.issue_date,
            days_overdue=days_overdue(invoice, now),
            sender_name=sender_name,
            current_date=now.date(),
            company_name=company_name,
            invoice_link=f"{app_url.rstrip('/')}/invoice/{invoice.id}" if app_url else None,
            email_signature=email_signature or DEFAULT_SIGNATURE,
        )

    def values(self) -> dict[str, str]:
        """Placeholder name to display string."""
        link = self.invoice_link or "#"
        values = {
            "client_name": self.client_name,
            "client_email": self.client_email,
            "invoice_number": self.invoice_number,
            "invoice_amount": format_amount(self.invoice_amount, self.currency),
            "currency": self.currency,
            "due_date": format_date(self.due_date),
            "issue_date": format_date(self.issue_date),
            "days_overdue": format_days_overdue(self.days_overdue),
            "sender_name": self.sender_name,
            "company_name": self.company_name or self.sender_name,
            "invoice_link": link,
            "payment_link": link,
            "current_date": format_date(self.current_date),
            "email_signature": self.email_signature,
        }
        values.update(self.custom_fields)
        return values


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str
    template_id: Optional[str] = None


@dataclass(frozen=True)
class BuiltinTemplate:
    """Built-in reminder text. ``content_not_due`` is used before the due date."""

    subject: str
    content: str
    content_not_due: Optional[str] = None


BUILTIN_TEMPLATES = {
    ReminderTone.POLITE: BuiltinTemplate(
        subject="Friendly reminder: Invoice #{invoice_number} payment",
        content=(
            "Dear {client_name},\n\n"
            "I hope this email finds you well. This is a friendly reminder about invoice "
            "#{invoice_number} for {invoice_amount}, which was due on {due_date} and is "
            "currently {days_overdue} overdue.\n\n"
            "If you've already sent your payment, please disregard this message. Otherwise, "
            "I would appreciate your prompt attention to this matter.\n\n"
            "Please let me know if you have any questions about this invoice.\n\n"
            "Thank you for your business.\n\n"
            "{email_signature}\n{company_name}"
        ),
        content_not_due=(
            "Dear {client_name},\n\n"
            "I hope this email finds you well. This is a friendly reminder about invoice "
            "#{invoice_number} for {invoice_amount}, which is due on {due_date}.\n\n"
            "If you've already sent your payment, please disregard this message. Otherwise, "
            "I would appreciate your prompt attention to this matter.\n\n"
            "Please let me know if you have any questions about this invoice.\n\n"
            "Thank you for your business.\n\n"
            "{email_signature}\n{company_name}"
        ),
    ),
    ReminderTone.FIRM: BuiltinTemplate(
        subject="REMINDER: Invoice #{invoice_number} is {days_overdue} overdue",
        content=(
            "Dear {client_name},\n\n"
            "This is a reminder that invoice #{invoice_number} for {invoice_amount} was due on "
            "{due_date} and is currently {days_overdue} overdue.\n\n"
            "Please process this payment as soon as possible to avoid any late fees or further action.\n\n"
            "If you have any questions or concerns about this invoice, please contact us immediately.\n\n"
            "Thank you for your attention to this matter.\n\n"
            "{email_signature}\n{company_name}"
        ),
    ),
    ReminderTone.URGENT: BuiltinTemplate(
        subject="URGENT: Invoice #{invoice_number} requires immediate attention",
        content=(
            "Dear {client_name},\n\n"
            "URGENT REMINDER: Invoice #{invoice_number} for {invoice_amount} was due on {due_date} "
            "and is now {days_overdue} overdue. This requires your immediate attention.\n\n"
            "Please process this payment within 48 hours to avoid additional late fees and "
            "further consequences.\n\n"
            "If you're experiencing difficulties with payment, please contact us immediately "
            "to discuss payment options.\n\n"
            "{email_signature}\n{company_name}"
        ),
    ),
}


def format_days_overdue(days: int) -> str:
    if days <= 0:
        return "0 days"
    return f"{days} day{'s' if days != 1 else ''}"


def _substitute(template: str, values: dict[str, str], escape: bool) -> str:
    def replace(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return html.escape(value) if escape else value

    return PLACEHOLDER_PATTERN.sub(replace, template)


def _one_line(value: str) -> str:
    return " ".join(value.split())


def render_text(template: str, data: RenderData) -> str:
    return _substitute(template, data.values(), escape=False)


def render_html(template: str, data: RenderData) -> str:
    """Render for an HTML body: values are escaped and newlines become <br>."""
    return _substitute(template, data.values(), escape=True).replace("\n", "<br>")


def extract_placeholders(content: str) -> list[str]:
    """Distinct ``{name}`` markers in order of first appearance."""
    return list(dict.fromkeys(match.group(0) for match in PLACEHOLDER_PATTERN.finditer(content)))


def validate_template(content: str, required: Optional[list[str]] = None) -> tuple[bool, list[str]]:
    """Check that every required placeholder appears.

    Returns:
        Tuple of (valid, missing placeholders)
    """
    found = set(extract_placeholders(content))
    missing = [placeholder for placeholder in required or [] if placeholder not in found]
    return not missing, missing


def builtin_template(tone: ReminderTone) -> BuiltinTemplate:
    return BUILTIN_TEMPLATES[TONE_FAMILIES[ReminderTone(tone)]]


def render_reminder(
    tone: ReminderTone, data: RenderData, template: Optional[EmailTemplate] = None
) -> RenderedEmail:
    """Render a reminder email for a tone.

    An owner's template, when given, replaces the built-in text. Its
    ``html_content``/``text_content`` are preferred for the matching part.
    """
    if template is not None:
        text_source = template.text_content or template.content
        html_source = template.html_content or template.content
        return RenderedEmail(
            subject=_one_line(render_text(template.subject, data)),
            text=render_text(text_source, data),
            html=render_html(html_source, data),
            template_id=template.id,
        )

    builtin = builtin_template(tone)
    content = builtin.content
    if builtin.content_not_due is not None and data.days_overdue <= 0:
        content = builtin.content_not_due
    return RenderedEmail(
        subject=_one_line(render_text(builtin.subject, data)),
        text=render_text(content, data),
        html=render_html(content, data),
    )


def sample_render_data(now: datetime) -> RenderData:
    """Sample values for previewing a template without an invoice."""
    today = now.date()
    return RenderData(
        client_name="John Smith",
        client_email="john.smith@example.com",
        invoice_number="INV-001234",
        invoice_amount=Decimal("1250.00"),
        currency="USD",
        due_date=today + timedelta(days=7),
        issue_date=today,
        days_overdue=5,
        sender_name="Jane Doe",
        current_date=today,
        company_name="Acme Corporation",
        invoice_link="https://example.com/invoice/001234",
        custom_fields={"custom_message": "Thank you for your business!"},
    )
