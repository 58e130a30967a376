"""Tests for SettingsService."""

import pytest

from invoicetrack.domain.entities import ReminderTone
from invoicetrack.domain.errors import UnauthorizedError, ValidationError


def test_defaults_created_lazily(settings_service, owner, temp_db):
    """The first read creates the settings row with defaults."""
    assert temp_db.get_settings(owner.user_id) is None

    settings = settings_service.get_settings(owner)

    assert settings.is_automated_reminders is True
    assert settings.first_reminder_days == 3
    assert settings.follow_up_frequency == 7
    assert settings.max_reminders == 3
    assert settings.first_reminder_tone == ReminderTone.POLITE
    assert settings.second_reminder_tone == ReminderTone.FIRM
    assert settings.third_reminder_tone == ReminderTone.URGENT
    assert settings.email_signature == "Best regards,"
    assert settings.preview_emails is True
    assert settings.send_copy_to_self is False
    assert temp_db.get_settings(owner.user_id) is not None

    assert settings_service.get_settings(owner).id == settings.id


def test_requires_auth(settings_service):
    with pytest.raises(UnauthorizedError):
        settings_service.get_settings(None)


def test_update_reminder_policy(settings_service, owner):
    policy = settings_service.update_reminder_policy(
        owner,
        {
            "is_automated_reminders": False,
            "first_reminder_days": -3,
            "follow_up_frequency": 5,
            "max_reminders": 5,
            "first_reminder_tone": "friendly",
            "second_reminder_tone": "direct",
            "third_reminder_tone": "final",
        },
    )

    assert policy.is_automated_reminders is False
    assert policy.first_reminder_days == -3
    assert policy.third_reminder_tone == ReminderTone.FINAL
    assert settings_service.get_reminder_policy(owner) == policy


@pytest.mark.parametrize(
    "field, value",
    [
        ("first_reminder_days", 31),
        ("first_reminder_days", -31),
        ("follow_up_frequency", 0),
        ("follow_up_frequency", 31),
        ("max_reminders", 0),
        ("max_reminders", 11),
        ("first_reminder_tone", "rude"),
    ],
)
def test_reminder_policy_ranges(settings_service, owner, field, value):
    """Out-of-range values are rejected and name the field."""
    with pytest.raises(ValidationError) as exc_info:
        settings_service.update_reminder_policy(owner, {field: value})

    assert field in exc_info.value.field_errors
    assert settings_service.get_reminder_policy(owner).max_reminders == 3


def test_update_account_settings(settings_service, owner):
    account = settings_service.update_account_settings(owner, {"business_name": "Studio Nine", "phone_number": "555-0100"})

    assert account.business_name == "Studio Nine"
    assert settings_service.get_account_settings(owner).phone_number == "555-0100"

    with pytest.raises(ValidationError):
        settings_service.update_account_settings(owner, {"phone_number": "5" * 21})


def test_update_email_settings(settings_service, owner):
    email = settings_service.update_email_settings(
        owner, {"from_name": "Jane", "default_cc": "cc@studio.example.com", "default_bcc": "  ", "send_copy_to_self": True}
    )

    assert email.from_name == "Jane"
    assert email.default_cc == "cc@studio.example.com"
    assert email.default_bcc is None
    assert email.send_copy_to_self is True
    assert settings_service.get_email_settings(owner) == email


def test_email_settings_validation(settings_service, owner):
    with pytest.raises(ValidationError) as exc_info:
        settings_service.update_email_settings(owner, {"default_cc": "nope", "email_signature": "x" * 501})

    assert {"default_cc", "email_signature"} <= set(exc_info.value.field_errors)


def test_settings_are_per_owner(settings_service, owner, other_owner):
    settings_service.update_reminder_policy(owner, {"max_reminders": 7})

    assert settings_service.get_reminder_policy(other_owner).max_reminders == 3
