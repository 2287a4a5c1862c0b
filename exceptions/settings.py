"""
Restaurant settings exceptions.
"""

from .base import RestaurantException


class SettingsException(RestaurantException):
    """Base exception for restaurant settings errors."""
    pass


class InvalidSettingsException(SettingsException):
    """Raised when an administrator submits an out-of-range settings value."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid value for '{field}': {reason}",
            details={'field': field, 'reason': reason}
        )
        self.field = field
        self.reason = reason
