"""
Root of the pricing engine's exception hierarchy.
"""


class RestaurantException(Exception):
    """
    Expected, user-facing failure of an engine operation.

    Attributes:
        message: Text safe to show to the customer or administrator
        details: Context for the API error body (ids, amounts, codes)
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if not self.details:
            return f"{self.__class__.__name__}('{self.message}')"
        context = ', '.join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.__class__.__name__}('{self.message}', {context})"
