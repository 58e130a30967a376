"""Help center domain service: product feedback and feature requests."""

import logging
from typing import Optional

from invoicetrack.database.base import Database
from invoicetrack.domain.context import AuthContext, require_auth
from invoicetrack.domain.entities import FeaturePriority, FeatureRequest, FeatureStatus, Feedback
from invoicetrack.domain.errors import NotFoundError, feature_request_not_found
from invoicetrack.domain.schemas import FeatureRequestInput, FeatureStatusInput, FeedbackInput, validate

logger = logging.getLogger(__name__)


class FeedbackService:
    """Service for feedback and feature requests submitted by users."""

    def __init__(self, db: Database):
        """Initialize feedback service.

        Args:
            db: Database instance
        """
        self.db = db

    def submit_feedback(self, ctx: Optional[AuthContext], content: str, stars: int) -> Feedback:
        """Store a feedback entry with a 1-5 star rating.

        Raises:
            ValidationError: If content is not 5-500 characters or stars is out of range
        """
        ctx = require_auth(ctx)
        form = validate(FeedbackInput, {"content": content, "stars": stars})
        feedback = self.db.create_feedback(ctx.user_id, form.content, form.stars)
        logger.info("Received %d star feedback from user %s", feedback.stars, ctx.user_id)
        return feedback

    def list_feedback(self, ctx: Optional[AuthContext]) -> list[Feedback]:
        ctx = require_auth(ctx)
        return self.db.list_feedback(ctx.user_id)

    def submit_feature_request(
        self,
        ctx: Optional[AuthContext],
        title: str,
        description: str,
        priority: FeaturePriority | str = FeaturePriority.MEDIUM,
    ) -> FeatureRequest:
        """Store a feature request; new requests start with status ``new``.

        Raises:
            ValidationError: If title, description or priority is invalid
        """
        ctx = require_auth(ctx)
        form = validate(
            FeatureRequestInput, {"title": title, "description": description, "priority": priority}
        )
        request = self.db.create_feature_request(ctx.user_id, form.title, form.description, form.priority)
        logger.info("Received feature request %s from user %s", request.id, ctx.user_id)
        return request

    def list_feature_requests(self, ctx: Optional[AuthContext]) -> list[FeatureRequest]:
        ctx = require_auth(ctx)
        return self.db.list_feature_requests(ctx.user_id)

    def update_feature_request_status(
        self, ctx: Optional[AuthContext], request_id: str, status: FeatureStatus | str
    ) -> FeatureRequest:
        """Move a feature request through its review workflow.

        Raises:
            ValidationError: If the status is unknown
            NotFoundError: If the request does not exist
        """
        require_auth(ctx)
        form = validate(FeatureStatusInput, {"status": status})
        updated = self.db.update_feature_request_status(request_id, form.status)
        if updated is None:
            raise NotFoundError(feature_request_not_found(request_id))
        logger.info("Feature request %s is now %s", request_id, updated.status.value)
        return updated
