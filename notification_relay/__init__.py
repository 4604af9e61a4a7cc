"""Notification relay: RabbitMQ consumer forwarding push notifications to Firebase."""

__version__ = "0.1.0"
