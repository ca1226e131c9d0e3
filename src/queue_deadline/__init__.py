"""queue-deadline: a deadline queue / idea stack task tracker with reminders."""

__version__ = "0.1.0"
