"""Tests for InvoiceService."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from invoicetrack.domain.entities import InvoiceStatus, StatusFilter
from invoicetrack.domain.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from invoicetrack.domain.invoice import days_overdue, is_overdue


def test_create_invoice(invoice_service, owner, invoice_data):
    """Test creating an invoice with defaults."""
    invoice = invoice_service.create(owner, invoice_data(currency="usd"))

    assert invoice.id
    assert invoice.owner_id == owner.user_id
    assert invoice.amount == Decimal("1250.00")
    assert invoice.currency == "USD"
    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.payment_date is None


def test_create_requires_auth(invoice_service, invoice_data):
    """Protected operations reject a missing context."""
    with pytest.raises(UnauthorizedError):
        invoice_service.create(None, invoice_data())


def test_create_validation_reports_fields(invoice_service, owner, invoice_data):
    """Invalid input is rejected with per-field messages before anything is stored."""
    with pytest.raises(ValidationError) as exc_info:
        invoice_service.create(owner, invoice_data(client_email="not-an-email", amount=Decimal("0"), client_name=""))

    assert set(exc_info.value.field_errors) >= {"client_email", "amount", "client_name"}
    assert exc_info.value.code == "BAD_REQUEST"
    assert invoice_service.list_invoices(owner) == []


def test_duplicate_number_rejected_per_owner(invoice_service, owner, other_owner, invoice_data):
    """Invoice numbers are unique per owner, not globally."""
    invoice_service.create(owner, invoice_data())

    with pytest.raises(ConflictError):
        invoice_service.create(owner, invoice_data())

    other = invoice_service.create(other_owner, invoice_data())
    assert other.owner_id == other_owner.user_id


def test_update_keeps_own_number(invoice_service, owner, sample_invoice, invoice_data):
    """Saving an invoice with its unchanged number is not a conflict."""
    updated = invoice_service.update(owner, sample_invoice.id, invoice_data(amount=Decimal("1400")))

    assert updated.amount == Decimal("1400")
    assert updated.invoice_number == "INV-001"


def test_update_rejects_number_of_another_invoice(invoice_service, owner, sample_invoice, invoice_data):
    """Renumbering onto an existing number is a conflict."""
    second = invoice_service.create(owner, invoice_data(invoice_number="INV-002"))

    with pytest.raises(ConflictError):
        invoice_service.update(owner, second.id, invoice_data(invoice_number="INV-001"))


def test_update_keeps_status_unless_given(invoice_service, owner, sample_invoice, invoice_data):
    """A form update without a status leaves the stored status alone."""
    invoice_service.update_status(owner, sample_invoice.id, InvoiceStatus.CANCELLED)

    updated = invoice_service.update(owner, sample_invoice.id, invoice_data(description="Changed"))

    assert updated.status == InvoiceStatus.CANCELLED
    assert updated.description == "Changed"


def test_foreign_invoice_looks_missing(invoice_service, other_owner, sample_invoice):
    """Another owner's invoice is indistinguishable from a missing one."""
    with pytest.raises(NotFoundError):
        invoice_service.get(other_owner, sample_invoice.id)
    with pytest.raises(NotFoundError):
        invoice_service.delete(other_owner, sample_invoice.id)
    with pytest.raises(NotFoundError):
        invoice_service.get(other_owner, "does-not-exist")


def test_delete_removes_reminders(invoice_service, reminder_service, owner, sample_invoice, temp_db):
    """Deleting an invoice deletes its reminder history."""
    reminder_service.log_reminder(owner, sample_invoice.id, "Reminder", "Please pay")

    invoice_service.delete(owner, sample_invoice.id)

    assert temp_db.get_invoice(owner.user_id, sample_invoice.id) is None
    assert temp_db.list_reminders(sample_invoice.id) == []


def test_get_by_status_overdue_is_computed(invoice_service, owner, invoice_data):
    """Overdue means stored pending with a past due date, never the stored overdue status."""
    late = invoice_service.create(owner, invoice_data(invoice_number="LATE"))
    invoice_service.create(owner, invoice_data(invoice_number="FUTURE", due_date=date(2024, 2, 1)))
    paid = invoice_service.create(owner, invoice_data(invoice_number="PAID"))
    invoice_service.mark_as_paid(owner, paid.id)
    invoice_service.create(owner, invoice_data(invoice_number="STORED", status=InvoiceStatus.OVERDUE))

    overdue = invoice_service.get_by_status(owner, "overdue")

    assert [inv.invoice_number for inv in overdue] == ["LATE"]
    assert overdue[0].id == late.id
    assert len(invoice_service.get_by_status(owner, StatusFilter.PENDING)) == 2
    assert len(invoice_service.get_by_status(owner, "paid")) == 1
    assert len(invoice_service.get_by_status(owner, "all")) == 4


def test_get_by_status_rejects_unknown_filter(invoice_service, owner):
    with pytest.raises(ValidationError):
        invoice_service.get_by_status(owner, "late")


def test_is_overdue_and_days_overdue(sample_invoice):
    """Derived display state follows the due instant at midnight."""
    assert is_overdue(sample_invoice, datetime(2024, 1, 1, 0, 0, 1))
    assert not is_overdue(sample_invoice, datetime(2024, 1, 1))
    assert days_overdue(sample_invoice, datetime(2024, 1, 10, 23, 0)) == 9
    assert days_overdue(sample_invoice, datetime(2023, 12, 31, 23, 0)) == -1


def test_mark_as_paid_stamps_payment_date(invoice_service, owner, sample_invoice, clock):
    paid = invoice_service.mark_as_paid(owner, sample_invoice.id)

    assert paid.status == InvoiceStatus.PAID
    assert paid.payment_date == clock.now


def test_update_status_validates_enum(invoice_service, owner, sample_invoice):
    with pytest.raises(ValidationError):
        invoice_service.update_status(owner, sample_invoice.id, "settled")


def test_bulk_update_status(invoice_service, owner, invoice_data):
    first = invoice_service.create(owner, invoice_data(invoice_number="A"))
    second = invoice_service.create(owner, invoice_data(invoice_number="B"))

    updated = invoice_service.bulk_update_status(owner, [first.id, second.id], "paid")

    assert sorted(updated) == sorted([first.id, second.id])
    assert invoice_service.get(owner, first.id).status == InvoiceStatus.PAID
    assert invoice_service.get(owner, second.id).payment_date is not None


def test_bulk_operations_are_all_or_nothing(invoice_service, owner, other_owner, invoice_data):
    """Naming a foreign invoice fails the whole bulk operation."""
    mine = invoice_service.create(owner, invoice_data(invoice_number="MINE"))
    theirs = invoice_service.create(other_owner, invoice_data(invoice_number="THEIRS"))

    with pytest.raises(ForbiddenError) as exc_info:
        invoice_service.bulk_update_status(owner, [mine.id, theirs.id], "paid")
    assert theirs.id in str(exc_info.value)
    assert invoice_service.get(owner, mine.id).status == InvoiceStatus.PENDING

    with pytest.raises(ForbiddenError):
        invoice_service.bulk_delete(owner, [mine.id, theirs.id])
    assert invoice_service.get(owner, mine.id) is not None
    assert invoice_service.get(other_owner, theirs.id) is not None


def test_bulk_delete(invoice_service, owner, invoice_data):
    first = invoice_service.create(owner, invoice_data(invoice_number="A"))
    second = invoice_service.create(owner, invoice_data(invoice_number="B"))

    deleted = invoice_service.bulk_delete(owner, [first.id, second.id, first.id])

    assert sorted(deleted) == sorted([first.id, second.id])
    assert invoice_service.list_invoices(owner) == []


def test_check_invoice_number(invoice_service, owner, sample_invoice):
    assert invoice_service.check_invoice_number(owner, "INV-001") == (True, sample_invoice.id)
    assert invoice_service.check_invoice_number(owner, "INV-001", exclude_id=sample_invoice.id) == (False, None)
    assert invoice_service.check_invoice_number(owner, "INV-999") == (False, None)


def test_list_invoices_paging(invoice_service, owner, invoice_data):
    for number in range(3):
        invoice_service.create(owner, invoice_data(invoice_number=f"N-{number}"))

    assert len(invoice_service.list_invoices(owner, limit=2)) == 2
    assert len(invoice_service.list_invoices(owner, limit=2, offset=2)) == 1
    with pytest.raises(ValidationError):
        invoice_service.list_invoices(owner, limit=0)
    with pytest.raises(ValidationError):
        invoice_service.list_invoices(owner, limit=101)


def test_unique_clients(invoice_service, owner, invoice_data):
    invoice_service.create(owner, invoice_data(invoice_number="A"))
    invoice_service.create(owner, invoice_data(invoice_number="B", client_email="BILLING@acme.example.com"))
    invoice_service.create(
        owner, invoice_data(invoice_number="C", client_name="Globex", client_email="ap@globex.example.com")
    )

    clients = invoice_service.unique_clients(owner)

    assert len(clients) == 2
    assert ("Globex", "ap@globex.example.com") in clients


def test_list_with_reminder_counts(invoice_service, reminder_service, owner, sample_invoice, invoice_data, clock):
    other = invoice_service.create(owner, invoice_data(invoice_number="INV-002"))
    reminder_service.log_reminder(owner, sample_invoice.id, "First", "Please pay")
    reminder_service.log_reminder(owner, sample_invoice.id, "Second", "Please pay now")

    rows = {row.invoice.id: row for row in invoice_service.list_with_reminder_counts(owner)}

    assert rows[sample_invoice.id].reminder_count == 2
    assert rows[sample_invoice.id].last_reminder_at == clock.now
    assert rows[other.id].reminder_count == 0
    assert rows[other.id].last_reminder_at is None


def test_stats_and_monthly_data(invoice_service, owner, invoice_data):
    invoice_service.create(owner, invoice_data(invoice_number="A", amount=Decimal("100.10")))
    invoice_service.create(
        owner,
        invoice_data(invoice_number="B", amount=Decimal("200.20"), issue_date=date(2024, 1, 5), due_date=date(2024, 2, 5)),
    )
    paid = invoice_service.create(owner, invoice_data(invoice_number="C", amount=Decimal("50")))
    invoice_service.mark_as_paid(owner, paid.id)

    stats = invoice_service.get_stats(owner)
    assert stats.pending_invoices == 2
    assert stats.overdue_invoices == 1
    assert stats.paid_invoices == 1
    assert stats.outstanding_amount == Decimal("300.30")
    assert len(stats.recent_invoices) == 3

    monthly = invoice_service.get_monthly_data(owner, year=2024)
    assert len(monthly) == 12
    assert monthly[0].name == "Jan"
    assert monthly[0].amount == Decimal("200.20")
    assert sum(bucket.amount for bucket in monthly) == Decimal("200.20")

    dashboard = invoice_service.get_dashboard_data(owner)
    assert dashboard.stats == stats
    assert dashboard.monthly_data == monthly


def test_stats_degrade_on_store_failure(invoice_service, owner, monkeypatch):
    """Dashboard reads return zeroed values instead of failing."""

    def broken(*args, **kwargs):
        raise InternalError("Failed to fetch invoices")

    monkeypatch.setattr(invoice_service.db, "list_invoices", broken)

    stats = invoice_service.get_stats(owner)
    assert stats.pending_invoices == 0
    assert stats.outstanding_amount == Decimal("0")
    assert all(bucket.amount == 0 for bucket in invoice_service.get_monthly_data(owner))
