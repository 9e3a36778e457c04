"""Custom exception hierarchy for the classbudget package."""

from __future__ import annotations

from decimal import Decimal


class ClassBudgetError(Exception):
    """Base class for all class budget specific errors."""


class InvalidAmountError(ClassBudgetError, ValueError):
    """Raised when an amount or headcount is negative, non-finite or malformed."""


class EmptyNameError(ClassBudgetError, ValueError):
    """Raised when an event name is blank after trimming."""


class EmptyDescriptionError(ClassBudgetError, ValueError):
    """Raised when an expense description is blank after trimming."""


class NotCustomError(ClassBudgetError):
    """Raised when attempting to remove a built-in event."""


class NotFoundError(ClassBudgetError, LookupError):
    """Raised when an event, child or expense lookup fails."""


class DuplicateEventError(ClassBudgetError):
    """Raised when an event id is registered twice in the same plan."""


class NoEventsSelectedError(ClassBudgetError):
    """Raised when first-time setup is finished without any enabled event."""


class OverAllocatedError(ClassBudgetError):
    """Raised when a strict-mode finish is attempted on an over-allocated plan."""

    def __init__(self, allocation_remaining: Decimal, message: str | None = None) -> None:
        self.allocation_remaining = allocation_remaining
        super().__init__(
            message
            or f"Allocations exceed the total budget by {-allocation_remaining:.2f}."
        )
