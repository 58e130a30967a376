"""Public waitlist service."""

import logging

from invoicetrack.database.base import Database
from invoicetrack.domain.entities import WaitlistEntry
from invoicetrack.domain.errors import ConflictError
from invoicetrack.domain.schemas import WaitlistInput, validate

logger = logging.getLogger(__name__)


class WaitlistService:
    """Service for early-access signups. No authentication is required."""

    def __init__(self, db: Database):
        self.db = db

    def signup(self, email: str) -> WaitlistEntry:
        """Add an email address to the waitlist.

        Addresses are compared case-insensitively.

        Raises:
            ValidationError: If the address is not a valid email
            ConflictError: If the address is already on the waitlist
        """
        form = validate(WaitlistInput, {"email": email})
        if self.db.get_waitlist_entry(form.email) is not None:
            raise ConflictError(f"{form.email} is already on the waitlist")
        entry = self.db.add_waitlist_entry(form.email)
        logger.info("Added %s to the waitlist", entry.email)
        return entry

    def count(self) -> int:
        return self.db.count_waitlist_entries()

    def list_entries(self) -> list[WaitlistEntry]:
        return self.db.list_waitlist_entries()
