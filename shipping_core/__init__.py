"""Carrier abstraction layer: rates, shipments, tracking and cancellation."""

__version__ = "1.0.0"
