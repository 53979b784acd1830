"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, NotifierConfig, ReminderMessage)
- task_store.py: SQLite-backed store for the whole task collection + notifier config
- task_registry.py: validation, id assignment and collection access
- task_scheduler.py: polling scheduler that delivers due reminders
"""
