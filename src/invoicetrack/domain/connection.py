"""Email connection domain service."""

import logging
from typing import Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, require_auth
from invoicetrack.domain.entities import ConnectionStatus, EmailConnection
from invoicetrack.domain.errors import NotFoundError
from invoicetrack.domain.schemas import ConnectionInput, validate

logger = logging.getLogger(__name__)


class ConnectionService:
    """Service for the mail account an owner sends reminders from."""

    def __init__(self, db: Database):
        self.db = db

    def connect(
        self, ctx: Optional[AuthContext], email: str, credential: str, name: Optional[str] = None
    ) -> EmailConnection:
        """Store (or replace) the caller's mail account credential."""
        ctx = require_auth(ctx)
        form = validate(ConnectionInput, {"email": email, "credential": credential, "name": name})
        connection = self.db.save_email_connection(ctx.user_id, form.email, form.credential, name=form.name)
        logger.info("Connected email account %s for user %s", connection.email, ctx.user_id)
        return connection

    def get_status(self, ctx: Optional[AuthContext]) -> ConnectionStatus:
        ctx = require_auth(ctx)
        connection = self.db.get_email_connection(ctx.user_id)
        if connection is None:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(connected=True, email=connection.email, name=connection.name)

    def disconnect(self, ctx: Optional[AuthContext]) -> None:
        ctx = require_auth(ctx)
        if not self.db.delete_email_connection(ctx.user_id):
            raise NotFoundError("No email account connected")
        logger.info("Disconnected email account for user %s", ctx.user_id)
