from enum import Enum


class PizzaSize(str, Enum):
    """
    Size tiers for pizza line items.

    Only lines whose snapshot category is "pizza" carry a size; every other
    category is priced with its single catalog price.
    """
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
