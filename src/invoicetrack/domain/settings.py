"""Settings domain service."""

import logging
from typing import Any, Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, require_auth
from invoicetrack.domain.entities import AccountSettings, EmailSettings, ReminderPolicy, UserSettings
from invoicetrack.domain.errors import ConflictError
from invoicetrack.domain.schemas import AccountSettingsInput, EmailSettingsInput, ReminderPolicyInput, validate

logger = logging.getLogger(__name__)


def load_or_create_settings(db: Database, owner_id: str) -> UserSettings:
    """Fetch an owner's settings row, creating it with defaults on first use."""
    settings = db.get_settings(owner_id)
    if settings is not None:
        return settings
    try:
        settings = db.create_settings(owner_id)
    except ConflictError:
        # Another writer created the row first
        settings = db.get_settings(owner_id)
        if settings is None:
            raise
    logger.info("Created default settings for user %s", owner_id)
    return settings


class SettingsService:
    """Service for per-user reminder policy, account profile and email settings."""

    def __init__(self, db: Database):
        """Initialize settings service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_settings(self, ctx: Optional[AuthContext]) -> UserSettings:
        """Get the caller's settings, initializing defaults on first read."""
        ctx = require_auth(ctx)
        return load_or_create_settings(self.db, ctx.user_id)

    def get_reminder_policy(self, ctx: Optional[AuthContext]) -> ReminderPolicy:
        return self.get_settings(ctx).policy

    def get_account_settings(self, ctx: Optional[AuthContext]) -> AccountSettings:
        return self.get_settings(ctx).account

    def get_email_settings(self, ctx: Optional[AuthContext]) -> EmailSettings:
        return self.get_settings(ctx).email

    def update_reminder_policy(
        self, ctx: Optional[AuthContext], data: ReminderPolicyInput | dict[str, Any]
    ) -> ReminderPolicy:
        """Replace the caller's reminder policy.

        Raises:
            ValidationError: If a value is out of range or a tone is unknown
        """
        ctx = require_auth(ctx)
        form = validate(ReminderPolicyInput, data)
        settings = self.db.update_settings(ctx.user_id, form.model_dump())
        logger.info(
            "Reminder policy updated for user %s (automated=%s, first=%d, every=%d, max=%d)",
            ctx.user_id,
            settings.is_automated_reminders,
            settings.first_reminder_days,
            settings.follow_up_frequency,
            settings.max_reminders,
        )
        return settings.policy

    def update_account_settings(
        self, ctx: Optional[AuthContext], data: AccountSettingsInput | dict[str, Any]
    ) -> AccountSettings:
        ctx = require_auth(ctx)
        form = validate(AccountSettingsInput, data)
        return self.db.update_settings(ctx.user_id, form.model_dump()).account

    def update_email_settings(
        self, ctx: Optional[AuthContext], data: EmailSettingsInput | dict[str, Any]
    ) -> EmailSettings:
        ctx = require_auth(ctx)
        form = validate(EmailSettingsInput, data)
        return self.db.update_settings(ctx.user_id, form.model_dump()).email
