"""Tests for ReminderService."""

import pytest

from invoicetrack.domain.email import EmailTransport
from invoicetrack.domain.entities import DeliveryStatus, ReminderTone
from invoicetrack.domain.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
    ValidationError,
)
from invoicetrack.domain.reminder import ReminderService
from invoicetrack.domain.scheduler import ReminderScheduler


def test_send_reminder(reminder_service, owner, sample_invoice, connected, transport, clock):
    """A manual send stores a sent record and hands the message to the transport."""
    record = reminder_service.send_reminder(
        owner, sample_invoice.id, "Invoice INV-001", "<p>Please pay</p>", tone="firm"
    )

    assert record.sequence_number == 1
    assert record.tone == ReminderTone.FIRM
    assert record.status == DeliveryStatus.SENT
    assert record.sent_at == clock.now

    message, connection = transport.sent[0]
    assert message.to == "billing@acme.example.com"
    assert message.subject == "Invoice INV-001"
    assert message.is_html is True
    assert connection.credential == "app-password"


def test_send_requires_connection(reminder_service, owner, sample_invoice, transport, temp_db):
    """Without a connected account the send fails before anything is stored."""
    with pytest.raises(PreconditionFailedError) as exc_info:
        reminder_service.send_reminder(owner, sample_invoice.id, "Subject", "Body")

    assert exc_info.value.code == "PRECONDITION_FAILED"
    assert transport.sent == []
    assert temp_db.list_reminders(sample_invoice.id) == []


def test_send_checks_ownership(reminder_service, other_owner, sample_invoice, connection_service):
    connection_service.connect(other_owner, "other@example.com", "secret")

    with pytest.raises(NotFoundError):
        reminder_service.send_reminder(other_owner, sample_invoice.id, "Subject", "Body")
    with pytest.raises(UnauthorizedError):
        reminder_service.send_reminder(None, sample_invoice.id, "Subject", "Body")


def test_send_validates_input(reminder_service, owner, sample_invoice, connected):
    with pytest.raises(ValidationError) as exc_info:
        reminder_service.send_reminder(owner, sample_invoice.id, "", "Body", tone="shouty")

    assert {"subject", "tone"} <= set(exc_info.value.field_errors)


def test_transport_failure_leaves_no_record(temp_db, owner, sample_invoice, connected, failing_transport, clock):
    """A refused message raises InternalError and releases the reserved sequence number."""
    service = ReminderService(temp_db, failing_transport, clock=clock)

    with pytest.raises(InternalError):
        service.send_reminder(owner, sample_invoice.id, "Subject", "Body")

    assert failing_transport.attempts == 1
    assert temp_db.list_reminders(sample_invoice.id) == []


def test_manual_sends_ignore_ceiling_and_number_serially(
    reminder_service, settings_service, owner, sample_invoice, connected
):
    """Manual sends go out past max_reminders with gapless sequence numbers."""
    settings_service.update_reminder_policy(owner, {"max_reminders": 1, "is_automated_reminders": False})

    numbers = [
        reminder_service.send_reminder(owner, sample_invoice.id, f"Reminder {i}", "Body").sequence_number
        for i in range(3)
    ]

    assert numbers == [1, 2, 3]


def test_send_copies_from_email_settings(reminder_service, settings_service, owner, sample_invoice, connected, transport):
    settings_service.update_email_settings(
        owner,
        {"from_name": "Jane at Studio", "default_cc": "accounts@studio.example.com", "send_copy_to_self": True},
    )

    reminder_service.send_reminder(owner, sample_invoice.id, "Subject", "Body")

    message, _ = transport.sent[0]
    assert message.sender_name == "Jane at Studio"
    assert message.cc == ["accounts@studio.example.com"]
    assert message.bcc == ["owner@example.com"]


def test_bulk_send_reports_each_item(reminder_service, owner, sample_invoice, connected):
    """One failing item does not stop the others."""
    result = reminder_service.bulk_send(
        owner,
        [
            {"invoice_id": sample_invoice.id, "subject": "Reminder", "content": "Please pay"},
            {"invoice_id": "missing", "subject": "Reminder", "content": "Please pay"},
            {"invoice_id": sample_invoice.id, "subject": "", "content": "Please pay"},
        ],
    )

    assert result.total == 3
    assert result.successful == 1
    assert result.failed == 2
    assert result.success is True
    assert result.results[0].sequence_number == 1
    assert "not found" in result.results[1].error


def test_history_and_last_reminder(reminder_service, owner, other_owner, sample_invoice, clock):
    assert reminder_service.get_last_reminder(owner, sample_invoice.id) is None

    reminder_service.log_reminder(owner, sample_invoice.id, "First", "Body")
    clock.advance(days=7)
    reminder_service.log_reminder(owner, sample_invoice.id, "Second", "Body", tone="firm")

    history = reminder_service.get_history(owner, sample_invoice.id)
    assert [r.sequence_number for r in history] == [2, 1]
    assert reminder_service.get_last_reminder(owner, sample_invoice.id).subject == "Second"
    with pytest.raises(NotFoundError):
        reminder_service.get_history(other_owner, sample_invoice.id)


def test_log_reminder_does_not_send(reminder_service, owner, sample_invoice, transport):
    record = reminder_service.log_reminder(owner, sample_invoice.id, "Called the client", "Phoned about payment")

    assert record.status == DeliveryStatus.SENT
    assert record.sequence_number == 1
    assert transport.sent == []


def test_duplicate_sequence_is_a_conflict(temp_db, owner, sample_invoice, clock):
    """The (invoice, sequence) constraint turns a racing duplicate into a conflict."""
    temp_db.reserve_reminder(sample_invoice.id, owner.user_id, ReminderTone.POLITE, "A", "Body", clock.now)
    temp_db.reserve_reminder(sample_invoice.id, owner.user_id, ReminderTone.POLITE, "B", "Body", clock.now)
    first = temp_db.list_reminders(sample_invoice.id)[-1]
    temp_db.delete_reminder(first.id)

    # One record left with sequence 2; counting gives 1 + 1 = 2 again
    with pytest.raises(ConflictError):
        temp_db.reserve_reminder(sample_invoice.id, owner.user_id, ReminderTone.POLITE, "C", "Body", clock.now)


def test_update_status_stamps_timestamps(reminder_service, owner, other_owner, sample_invoice, clock):
    record = reminder_service.log_reminder(owner, sample_invoice.id, "Subject", "Body")
    clock.advance(hours=2)

    delivered = reminder_service.update_status(owner, record.id, "delivered")
    assert delivered.status == DeliveryStatus.DELIVERED
    assert delivered.delivered_at == clock.now

    replied = reminder_service.update_status(owner, record.id, DeliveryStatus.REPLIED)
    assert replied.response_received is True
    assert replied.response_received_at == clock.now

    with pytest.raises(ValidationError):
        reminder_service.update_status(owner, record.id, "queued")
    with pytest.raises(NotFoundError):
        reminder_service.update_status(other_owner, record.id, "opened")


def test_list_all_and_stats(reminder_service, invoice_service, owner, sample_invoice, invoice_data):
    second = invoice_service.create(owner, invoice_data(invoice_number="INV-002"))
    first_record = reminder_service.log_reminder(owner, sample_invoice.id, "A", "Body")
    reminder_service.log_reminder(owner, second.id, "B", "Body")
    reminder_service.update_status(owner, first_record.id, "delivered")
    reminder_service.update_status(owner, first_record.id, "opened")

    assert len(reminder_service.list_all(owner)) == 2
    assert len(reminder_service.list_all(owner, limit=1)) == 1

    stats = reminder_service.get_reminder_stats(owner)
    assert stats.total == 2
    assert stats.sent == 1
    assert stats.opened == 1
    assert stats.open_rate == 50.0
    assert stats.response_rate == 0.0


def test_stats_degrade_on_store_failure(reminder_service, owner, monkeypatch):
    def broken(*args, **kwargs):
        raise InternalError("Failed to fetch reminders")

    monkeypatch.setattr(reminder_service.db, "list_owner_reminders", broken)

    stats = reminder_service.get_reminder_stats(owner)
    assert stats.total == 0
    assert stats.delivery_rate == 0.0


def test_preview_uses_next_tone_without_recording(reminder_service, template_service, owner, sample_invoice, temp_db):
    """Previews follow the policy's next tone and never touch history or usage counts."""
    template = template_service.create(
        owner,
        {
            "name": "Firm custom",
            "tone": "firm",
            "subject": "Second notice for {invoice_number}",
            "content": "Hi {client_name}, {invoice_amount} is {days_overdue} late.",
            "is_default": True,
        },
    )

    first = reminder_service.preview(owner, sample_invoice.id)
    assert first.subject.startswith("Friendly reminder")
    assert "Acme Corp" in first.text

    reminder_service.log_reminder(owner, sample_invoice.id, "First", "Body")
    second = reminder_service.preview(owner, sample_invoice.id)
    assert second.subject == "Second notice for INV-001"
    assert second.text == "Hi Acme Corp, $1,250.00 is 9 days late."

    assert len(temp_db.list_reminders(sample_invoice.id)) == 1
    assert template_service.get(owner, template.id).usage_count == 0


def test_scheduled_send_counts_template_usage(scheduler, settings_service, template_service, owner, sample_invoice, connected, clock, transport):
    settings_service.get_settings(owner)
    template = template_service.create(
        owner,
        {"name": "Polite", "tone": "polite", "subject": "About {invoice_number}", "content": "Hello {client_name}", "is_default": True},
    )

    scheduler.process_scheduled_reminders()

    message, _ = transport.sent[0]
    assert message.subject == "About INV-001"
    assert message.text == "Hello Acme Corp"
    assert template_service.get(owner, template.id).usage_count == 1


class BrokenTransport(EmailTransport):
    """Transport failing with an error that is not a TransportError."""

    def send(self, message, connection):
        raise RuntimeError("connection pool exhausted")


def test_multiline_subject_is_rejected(reminder_service, owner, sample_invoice, connected, transport, temp_db):
    """A subject with a line break never reaches the transport or the history."""
    with pytest.raises(ValidationError) as exc_info:
        reminder_service.send_reminder(owner, sample_invoice.id, "Invoice\nreminder", "Body")

    assert "subject" in exc_info.value.field_errors
    assert transport.sent == []
    assert temp_db.list_reminders(sample_invoice.id) == []

    with pytest.raises(ValidationError):
        reminder_service.log_reminder(owner, sample_invoice.id, "Called\r\nthem", "Body")


def test_unexpected_send_error_releases_record(temp_db, scheduler, owner, sample_invoice, connected, clock):
    """Any send failure is an InternalError and the first reminder stays due."""
    service = ReminderService(temp_db, BrokenTransport(), clock=clock)

    with pytest.raises(InternalError) as exc_info:
        service.send_reminder(owner, sample_invoice.id, "Subject", "Body")

    assert exc_info.value.code == "INTERNAL_SERVER_ERROR"
    assert temp_db.list_reminders(sample_invoice.id) == []
    decision = scheduler.evaluate(owner, sample_invoice.id)
    assert decision.send is True
    assert decision.sequence_number == 1


def test_bulk_send_reports_multiline_subject(reminder_service, owner, sample_invoice, connected, transport):
    result = reminder_service.bulk_send(
        owner,
        [
            {"invoice_id": sample_invoice.id, "subject": "A\nB", "content": "Please pay"},
            {"invoice_id": sample_invoice.id, "subject": "Reminder", "content": "Please pay"},
        ],
    )

    assert [item.success for item in result.results] == [False, True]
    assert "single line" in result.results[0].error
    assert result.results[1].sequence_number == 1
    assert len(transport.sent) == 1


def test_failed_scheduled_send_does_not_count_template_usage(
    temp_db, settings_service, template_service, owner, sample_invoice, connected, clock, failing_transport
):
    settings_service.get_settings(owner)
    template = template_service.create(
        owner,
        {"name": "Polite", "tone": "polite", "subject": "About {invoice_number}", "content": "Hello", "is_default": True},
    )
    scheduler = ReminderScheduler(temp_db, ReminderService(temp_db, failing_transport, clock=clock), clock=clock)

    result = scheduler.process_scheduled_reminders()

    assert result.failed == 1
    assert template_service.get(owner, template.id).usage_count == 0
