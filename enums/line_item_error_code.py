from enum import Enum


class LineItemErrorCode(str, Enum):
    """Reasons a line item is rejected before any persistence."""
    SIZE_REQUIRED_FOR_PIZZA = "SIZE_REQUIRED_FOR_PIZZA"
    SIZE_NOT_ALLOWED = "SIZE_NOT_ALLOWED"
    TOPPINGS_NOT_ALLOWED = "TOPPINGS_NOT_ALLOWED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    NEGATIVE_PRICE = "NEGATIVE_PRICE"
    INSTRUCTIONS_TOO_LONG = "INSTRUCTIONS_TOO_LONG"
