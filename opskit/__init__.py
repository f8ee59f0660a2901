"""Registered metrics, token-bucket rate limiting, queued logging and inter-thread routing queues."""

__version__ = "0.1.0"