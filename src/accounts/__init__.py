"""User accounts service: users with multiple email addresses and a primary-email invariant."""

__version__ = "1.0.0"
