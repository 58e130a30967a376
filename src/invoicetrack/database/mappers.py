"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic, so string columns become enums and
nullable storage defaults are settled in one place.
"""

from invoicetrack.domain import entities as domain
from invoicetrack.database.models import (
    ClientInvoice as ORMInvoice,
    InvoiceReminder as ORMReminder,
    UserSettings as ORMUserSettings,
    EmailTemplate as ORMEmailTemplate,
    EmailConnection as ORMEmailConnection,
    Feedback as ORMFeedback,
    FeatureRequest as ORMFeatureRequest,
    WaitlistEntry as ORMWaitlistEntry,
    GeneratedInvoice as ORMGeneratedInvoice,
)


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy ClientInvoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        owner_id=orm_invoice.owner_id,
        client_name=orm_invoice.client_name,
        client_email=orm_invoice.client_email,
        invoice_number=orm_invoice.invoice_number,
        amount=orm_invoice.amount,
        currency=orm_invoice.currency,
        issue_date=orm_invoice.issue_date,
        due_date=orm_invoice.due_date,
        description=orm_invoice.description,
        additional_notes=orm_invoice.additional_notes,
        status=domain.InvoiceStatus(orm_invoice.status),
        payment_date=orm_invoice.payment_date,
        created_at=orm_invoice.created_at,
        updated_at=orm_invoice.updated_at,
    )


def reminder_to_domain(orm_reminder: ORMReminder) -> domain.ReminderRecord:
    """Convert SQLAlchemy InvoiceReminder model to domain ReminderRecord entity."""
    return domain.ReminderRecord(
        id=orm_reminder.id,
        invoice_id=orm_reminder.invoice_id,
        owner_id=orm_reminder.owner_id,
        sequence_number=orm_reminder.sequence_number,
        tone=domain.ReminderTone(orm_reminder.tone),
        subject=orm_reminder.subject,
        content=orm_reminder.content,
        status=domain.DeliveryStatus(orm_reminder.status),
        sent_at=orm_reminder.sent_at,
        delivered_at=orm_reminder.delivered_at,
        opened_at=orm_reminder.opened_at,
        clicked_at=orm_reminder.clicked_at,
        response_received=bool(orm_reminder.response_received),
        response_received_at=orm_reminder.response_received_at,
        created_at=orm_reminder.created_at,
        updated_at=orm_reminder.updated_at,
    )


def settings_to_domain(orm_settings: ORMUserSettings) -> domain.UserSettings:
    """Convert SQLAlchemy UserSettings model to domain UserSettings entity."""
    return domain.UserSettings(
        id=orm_settings.id,
        owner_id=orm_settings.owner_id,
        is_automated_reminders=bool(orm_settings.is_automated_reminders),
        first_reminder_days=orm_settings.first_reminder_days,
        follow_up_frequency=orm_settings.follow_up_frequency,
        max_reminders=orm_settings.max_reminders,
        first_reminder_tone=domain.ReminderTone(orm_settings.first_reminder_tone),
        second_reminder_tone=domain.ReminderTone(orm_settings.second_reminder_tone),
        third_reminder_tone=domain.ReminderTone(orm_settings.third_reminder_tone),
        business_name=orm_settings.business_name,
        phone_number=orm_settings.phone_number,
        from_name=orm_settings.from_name,
        email_signature=orm_settings.email_signature,
        default_cc=orm_settings.default_cc,
        default_bcc=orm_settings.default_bcc,
        preview_emails=bool(orm_settings.preview_emails),
        cc_accountant=bool(orm_settings.cc_accountant),
        use_branded_emails=bool(orm_settings.use_branded_emails),
        send_copy_to_self=bool(orm_settings.send_copy_to_self),
        created_at=orm_settings.created_at,
        updated_at=orm_settings.updated_at,
    )


def template_to_domain(orm_template: ORMEmailTemplate) -> domain.EmailTemplate:
    """Convert SQLAlchemy EmailTemplate model to domain EmailTemplate entity."""
    return domain.EmailTemplate(
        id=orm_template.id,
        owner_id=orm_template.owner_id,
        name=orm_template.name,
        subject=orm_template.subject,
        content=orm_template.content,
        html_content=orm_template.html_content,
        text_content=orm_template.text_content,
        tone=domain.ReminderTone(orm_template.tone),
        template_type=domain.TemplateType(orm_template.template_type),
        category=domain.TemplateCategory(orm_template.category),
        is_default=bool(orm_template.is_default),
        is_active=bool(orm_template.is_active),
        usage_count=orm_template.usage_count or 0,
        description=orm_template.description,
        tags=orm_template.tags,
        created_at=orm_template.created_at,
        updated_at=orm_template.updated_at,
    )


def connection_to_domain(orm_connection: ORMEmailConnection) -> domain.EmailConnection:
    return domain.EmailConnection(
        id=orm_connection.id,
        owner_id=orm_connection.owner_id,
        email=orm_connection.email,
        name=orm_connection.name,
        credential=orm_connection.credential,
        created_at=orm_connection.created_at,
        updated_at=orm_connection.updated_at,
    )


def feedback_to_domain(orm_feedback: ORMFeedback) -> domain.Feedback:
    return domain.Feedback(
        id=orm_feedback.id,
        owner_id=orm_feedback.owner_id,
        content=orm_feedback.content,
        stars=orm_feedback.stars,
        created_at=orm_feedback.created_at,
    )


def feature_request_to_domain(orm_request: ORMFeatureRequest) -> domain.FeatureRequest:
    return domain.FeatureRequest(
        id=orm_request.id,
        owner_id=orm_request.owner_id,
        title=orm_request.title,
        description=orm_request.description,
        priority=domain.FeaturePriority(orm_request.priority),
        status=domain.FeatureStatus(orm_request.status),
        admin_notes=orm_request.admin_notes,
        upvotes=orm_request.upvotes or 0,
        created_at=orm_request.created_at,
        updated_at=orm_request.updated_at,
    )


def waitlist_entry_to_domain(orm_entry: ORMWaitlistEntry) -> domain.WaitlistEntry:
    return domain.WaitlistEntry(id=orm_entry.id, email=orm_entry.email, created_at=orm_entry.created_at)


def generated_invoice_to_domain(orm_invoice: ORMGeneratedInvoice) -> domain.GeneratedInvoice:
    return domain.GeneratedInvoice(
        id=orm_invoice.id,
        owner_id=orm_invoice.owner_id,
        invoice_number=orm_invoice.invoice_number,
        issue_date=orm_invoice.issue_date,
        due_date=orm_invoice.due_date,
        currency=orm_invoice.currency,
        document_json=orm_invoice.document_json,
        total_amount=orm_invoice.total_amount,
        share_token=orm_invoice.share_token,
        is_public=bool(orm_invoice.is_public),
        created_at=orm_invoice.created_at,
        updated_at=orm_invoice.updated_at,
        deleted_at=orm_invoice.deleted_at,
    )
