"""Notification model and suppression state machine."""
