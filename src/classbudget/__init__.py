"""Class budget package: allocation, collection and expense ledgers for a parent committee."""

from .admin import AuditEvent, AuditLog
from .allocation import AllocationPlan
from .api import ApiExporter
from .catalog import EVENT_TEMPLATES, EventTemplate
from .collection import CollectionHealth, CollectionLedger, CollectionSummary
from .exceptions import (
    ClassBudgetError,
    DuplicateEventError,
    EmptyDescriptionError,
    EmptyNameError,
    InvalidAmountError,
    NoEventsSelectedError,
    NotCustomError,
    NotFoundError,
    OverAllocatedError,
)
from .expenses import ExpenseLedger
from .i18n import Translator
from .metrics import compute, event_breakdown, overspent_events
from .models import (
    Audience,
    BudgetMetrics,
    BudgetMode,
    ClassBudgetConfig,
    EventAllocation,
    EventBudgetLine,
    EventKind,
    ExpenseRecord,
    OverBudgetWarning,
    PaymentRecord,
    PaymentStatus,
    ValidationMode,
)
from .notifications import Notification, NotificationCenter, NotificationType
from .onboarding import SetupState, SetupTask, TaskStatus
from .ops import StructuredLogger
from .roster import Roster, RosterChild, StaffMember
from .service import ClassBudget
from .validation import AllocationValidator

__all__ = [
    "AllocationPlan",
    "AllocationValidator",
    "ApiExporter",
    "Audience",
    "AuditEvent",
    "AuditLog",
    "BudgetMetrics",
    "BudgetMode",
    "ClassBudget",
    "ClassBudgetConfig",
    "ClassBudgetError",
    "CollectionHealth",
    "CollectionLedger",
    "CollectionSummary",
    "DuplicateEventError",
    "EVENT_TEMPLATES",
    "EmptyDescriptionError",
    "EmptyNameError",
    "EventAllocation",
    "EventBudgetLine",
    "EventKind",
    "EventTemplate",
    "ExpenseLedger",
    "ExpenseRecord",
    "InvalidAmountError",
    "NoEventsSelectedError",
    "NotCustomError",
    "NotFoundError",
    "Notification",
    "NotificationCenter",
    "NotificationType",
    "OverAllocatedError",
    "OverBudgetWarning",
    "PaymentRecord",
    "PaymentStatus",
    "Roster",
    "RosterChild",
    "SetupState",
    "SetupTask",
    "StaffMember",
    "StructuredLogger",
    "TaskStatus",
    "Translator",
    "ValidationMode",
    "compute",
    "event_breakdown",
    "overspent_events",
]
