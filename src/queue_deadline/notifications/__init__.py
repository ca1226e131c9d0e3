"""Notification facilities used by the reminder scheduler."""
