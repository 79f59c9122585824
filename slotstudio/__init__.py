"""SlotStudio: variadic slot management for graph editor nodes."""

__version__ = "1.0.0"
