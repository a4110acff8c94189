"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

from enum import StrEnum


# String field lengths
MAX_ROLE_NAME_LENGTH = 100
MAX_PERMISSION_NAME_LENGTH = 150
MAX_GRANT_SOURCE_LENGTH = 20

# Database
DEFAULT_DATABASE_TIMEOUT = 30.0  # seconds


class GrantSource(StrEnum):
    """Origin of a role -> permission link."""

    CONFIG = "config"  # attached by reconciliation
    MANUAL = "manual"  # attached by an administrative action
