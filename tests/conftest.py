"""Shared pytest fixtures for invoicetrack tests."""

import os
import tempfile
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from invoicetrack.database.factories import create_sqlite_database
from invoicetrack.domain.connection import ConnectionService
from invoicetrack.domain.context import AuthContext
from invoicetrack.domain.email import EmailTransport, TransportError
from invoicetrack.domain.feedback import FeedbackService
from invoicetrack.domain.invoice import InvoiceService
from invoicetrack.domain.reminder import ReminderService
from invoicetrack.domain.scheduler import ReminderScheduler
from invoicetrack.domain.settings import SettingsService
from invoicetrack.domain.templates import TemplateService
from invoicetrack.domain.waitlist import WaitlistService

NOW = datetime(2024, 1, 10, 9, 30)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


class RecordingTransport(EmailTransport):
    """Transport that keeps sent messages in memory."""

    def __init__(self):
        self.sent = []

    def send(self, message, connection):
        self.sent.append((message, connection))


class FailingTransport(EmailTransport):
    """Transport that refuses every message."""

    def __init__(self):
        self.attempts = 0

    def send(self, message, connection):
        self.attempts += 1
        raise TransportError("relay refused the message")


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """A clock fixed at NOW."""
    return FixedClock()


@pytest.fixture
def transport():
    """An in-memory transport recording every message."""
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    """A transport that refuses every message."""
    return FailingTransport()


@pytest.fixture
def owner():
    """The signed-in user most tests act as."""
    return AuthContext(user_id="user-1", email="owner@example.com")


@pytest.fixture
def other_owner():
    """A second user whose data must stay invisible to the first."""
    return AuthContext(user_id="user-2", email="other@example.com")


@pytest.fixture
def invoice_service(temp_db, clock):
    """Create an InvoiceService with a temporary database."""
    return InvoiceService(temp_db, clock=clock)


@pytest.fixture
def reminder_service(temp_db, transport, clock):
    """Create a ReminderService sending through the recording transport."""
    return ReminderService(temp_db, transport, clock=clock, app_url="https://app.example.com")


@pytest.fixture
def scheduler(temp_db, reminder_service, clock):
    """Create a ReminderScheduler with a temporary database."""
    return ReminderScheduler(temp_db, reminder_service, clock=clock)


@pytest.fixture
def settings_service(temp_db):
    """Create a SettingsService with a temporary database."""
    return SettingsService(temp_db)


@pytest.fixture
def template_service(temp_db, clock):
    """Create a TemplateService with a temporary database."""
    return TemplateService(temp_db, clock=clock)


@pytest.fixture
def connection_service(temp_db):
    """Create a ConnectionService with a temporary database."""
    return ConnectionService(temp_db)


@pytest.fixture
def feedback_service(temp_db):
    """Create a FeedbackService with a temporary database."""
    return FeedbackService(temp_db)


@pytest.fixture
def waitlist_service(temp_db):
    """Create a WaitlistService with a temporary database."""
    return WaitlistService(temp_db)


@pytest.fixture
def invoice_data():
    """Factory for valid invoice form values."""

    def make(**overrides):
        data = {
            "client_name": "Acme Corp",
            "client_email": "billing@acme.example.com",
            "invoice_number": "INV-001",
            "amount": Decimal("1250.00"),
            "currency": "USD",
            "issue_date": date(2023, 12, 1),
            "due_date": date(2024, 1, 1),
            "description": "Website redesign",
        }
        data.update(overrides)
        return data

    return make


@pytest.fixture
def sample_invoice(invoice_service, owner, invoice_data):
    """A pending invoice that fell due on 2024-01-01."""
    return invoice_service.create(owner, invoice_data())


@pytest.fixture
def connected(connection_service, owner):
    """Connect an email account for the owner."""
    return connection_service.connect(owner, "owner@example.com", "app-password", name="Jane Owner")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
