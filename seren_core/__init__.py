"""SerenAI recurring notification core: scheduler, notification log and settings sync."""

__version__ = "0.1.0"
