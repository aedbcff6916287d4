"""Daily recurring reminders backed by scheduled local notifications."""

__version__ = "1.0.0"
