# src/dev_task_scheduler/core/errors.py

"""
Error taxonomy.

Each error is handled at the seam that owns it:
- ValidationError     -> task creation (CLI reports it, nothing is written)
- ConfigurationError  -> scheduler start (reported once, loop never begins)
- DeliveryError       -> one task in one tick (logged, task stays pending)
- PersistenceError    -> one tick (aborted, previous durable state kept)
"""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for all dev_task_scheduler errors."""


class ValidationError(SchedulerError):
    """Task creation input was rejected."""


class ConfigurationError(SchedulerError):
    """The scheduler cannot start: no notifier is configured, or its stored config is invalid."""


class DeliveryError(SchedulerError):
    """A notifier failed to deliver one message."""


class PersistenceError(SchedulerError):
    """The task store failed to read or write."""
