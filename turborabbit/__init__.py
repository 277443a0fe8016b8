"""Resilient RabbitMQ client: connection pooling, publishing, consuming, topology and payload helpers."""

__version__ = "2.0.0"