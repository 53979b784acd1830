"""dev-task-scheduler: one-shot task reminders delivered by a polling scheduler."""

__version__ = "0.1.0"
