"""Email template domain service."""

import logging
from collections import Counter
from typing import Any, Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, Clock, require_auth, utcnow
from invoicetrack.domain.entities import EmailTemplate, ReminderTone, TemplateStats
from invoicetrack.domain.errors import NotFoundError, template_not_found
from invoicetrack.domain.rendering import RenderedEmail, render_reminder, sample_render_data
from invoicetrack.domain.schemas import TemplateInput, TemplateUpdateInput, parse_tone, validate

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"html_content", "text_content", "description", "tags"}


class TemplateService:
    """Service for an owner's email template overrides.

    At most one template per (owner, tone) is the default. Marking a template
    default unsets the flag on the owner's other templates of that tone.
    """

    def __init__(self, db: Database, clock: Clock = utcnow):
        """Initialize template service.

        Args:
            db: Database instance
            clock: Callable returning the current naive UTC time
        """
        self.db = db
        self.clock = clock

    def _get_owned(self, ctx: AuthContext, template_id: str) -> EmailTemplate:
        template = self.db.get_template(ctx.user_id, template_id)
        if template is None:
            raise NotFoundError(template_not_found(template_id))
        return template

    def list_templates(self, ctx: Optional[AuthContext]) -> list[EmailTemplate]:
        ctx = require_auth(ctx)
        return self.db.list_templates(ctx.user_id)

    def get(self, ctx: Optional[AuthContext], template_id: str) -> EmailTemplate:
        ctx = require_auth(ctx)
        return self._get_owned(ctx, template_id)

    def list_by_tone(self, ctx: Optional[AuthContext], tone: ReminderTone | str) -> list[EmailTemplate]:
        ctx = require_auth(ctx)
        return self.db.list_templates(ctx.user_id, tone=parse_tone(tone))

    def create(self, ctx: Optional[AuthContext], data: TemplateInput | dict[str, Any]) -> EmailTemplate:
        """Create a template.

        Raises:
            ValidationError: If the template is invalid
        """
        ctx = require_auth(ctx)
        form = validate(TemplateInput, data)
        if form.is_default:
            self.db.clear_default_templates(ctx.user_id, form.tone)
        template = self.db.create_template(ctx.user_id, form.model_dump())
        logger.info("Created %s template %s for user %s", template.tone.value, template.id, ctx.user_id)
        return template

    def update(
        self, ctx: Optional[AuthContext], template_id: str, data: TemplateUpdateInput | dict[str, Any]
    ) -> EmailTemplate:
        """Apply the fields that were provided to an owned template."""
        ctx = require_auth(ctx)
        form = validate(TemplateUpdateInput, data)
        current = self._get_owned(ctx, template_id)
        values = {
            key: value
            for key, value in form.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }

        tone = values.get("tone") or current.tone
        is_default = values.get("is_default", current.is_default)
        if is_default:
            self.db.clear_default_templates(ctx.user_id, tone, exclude_id=template_id)

        updated = self.db.update_template(ctx.user_id, template_id, values)
        if updated is None:
            raise NotFoundError(template_not_found(template_id))
        return updated

    def delete(self, ctx: Optional[AuthContext], template_id: str) -> None:
        ctx = require_auth(ctx)
        if not self.db.delete_template(ctx.user_id, template_id):
            raise NotFoundError(template_not_found(template_id))
        logger.info("Deleted template %s for user %s", template_id, ctx.user_id)

    def toggle_active(self, ctx: Optional[AuthContext], template_id: str) -> EmailTemplate:
        ctx = require_auth(ctx)
        current = self._get_owned(ctx, template_id)
        updated = self.db.update_template(ctx.user_id, template_id, {"is_active": not current.is_active})
        if updated is None:
            raise NotFoundError(template_not_found(template_id))
        return updated

    def get_with_stats(self, ctx: Optional[AuthContext]) -> tuple[list[EmailTemplate], TemplateStats]:
        """List templates together with counts by state, category and tone."""
        ctx = require_auth(ctx)
        templates = self.db.list_templates(ctx.user_id)
        stats = TemplateStats(
            total_templates=len(templates),
            active_templates=sum(1 for t in templates if t.is_active),
            default_templates=sum(1 for t in templates if t.is_default),
            by_category=dict(Counter(t.category.value for t in templates)),
            by_tone=dict(Counter(t.tone.value for t in templates)),
        )
        return templates, stats

    def get_default_for_tone(self, ctx: Optional[AuthContext], tone: ReminderTone | str) -> Optional[EmailTemplate]:
        ctx = require_auth(ctx)
        return self.db.get_default_template(ctx.user_id, parse_tone(tone))

    def preview(self, ctx: Optional[AuthContext], template_id: str) -> RenderedEmail:
        """Render an owned template with sample invoice data."""
        ctx = require_auth(ctx)
        template = self._get_owned(ctx, template_id)
        return render_reminder(template.tone, sample_render_data(self.clock()), template)

