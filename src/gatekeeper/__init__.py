"""Gatekeeper - role-based access control with declarative reconciliation."""

__version__ = "0.1.0"
