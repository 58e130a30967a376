"""Domain layer for invoicetrack application.

Services live in their own modules (``invoicetrack.domain.invoice`` and so
on) and are imported from there; this package only re-exports the entity
and error types so that the database layer can import them without pulling
in the services.
"""

from invoicetrack.domain.entities import (
    DeliveryStatus,
    EmailConnection,
    EmailTemplate,
    FeaturePriority,
    FeatureRequest,
    FeatureStatus,
    Feedback,
    GeneratedInvoice,
    Invoice,
    InvoiceStatus,
    ReminderPolicy,
    ReminderRecord,
    ReminderTone,
    StatusFilter,
    UserSettings,
    WaitlistEntry,
)
from invoicetrack.domain.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "DeliveryStatus",
    "EmailConnection",
    "EmailTemplate",
    "FeaturePriority",
    "FeatureRequest",
    "FeatureStatus",
    "Feedback",
    "GeneratedInvoice",
    "Invoice",
    "InvoiceStatus",
    "ReminderPolicy",
    "ReminderRecord",
    "ReminderTone",
    "StatusFilter",
    "UserSettings",
    "WaitlistEntry",
    "ConflictError",
    "DomainError",
    "ForbiddenError",
    "InternalError",
    "NotFoundError",
    "PreconditionFailedError",
    "UnauthorizedError",
    "ValidationError",
]
