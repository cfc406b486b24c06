"""Exceptions raised by reminder adapters and the scheduling engine."""

from typing import List, Optional

from ...models.reminders import TriggerRecord


class ReminderError(Exception):
    """Base class for reminder scheduling errors."""


class AdapterFailure(ReminderError):
    """A key-value store or notification scheduler operation failed."""


class PermissionDenied(AdapterFailure):
    """The host declined notification permission."""


class CategorySchedulingError(AdapterFailure):
    """Registering a category's triggers failed part way.

    ``records`` holds the triggers that were registered before the failure so
    the caller can still track them.
    """

    def __init__(self, category: str, message: str, records: Optional[List[TriggerRecord]] = None):
        super().__init__(f"{category}: {message}")
        self.category = category
        self.records = list(records or [])
