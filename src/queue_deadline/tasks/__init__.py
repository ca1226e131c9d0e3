"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, TaskType, TaskFilter)
- deadline.py: time remaining, urgency classification and formatting
- task_repository.py: JSON persistence, import/export
- reminder_scheduler.py: per-task reminder scheduling over a NotificationCenter
- task_store.py: the live collection, derived views and mutations
"""
