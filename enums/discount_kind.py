from enum import Enum


class DiscountKind(str, Enum):
    """
    How a promotion's discount_value is interpreted.

    PERCENTAGE: discount_value is a percent in (0, 100], optionally capped
    FLAT: discount_value is a fixed amount off the subtotal
    """
    PERCENTAGE = "percentage"
    FLAT = "flat"

    @classmethod
    def from_string(cls, value: str) -> 'DiscountKind':
        """
        Convert string to DiscountKind.

        Accepts "fixed" as an alias of FLAT (legacy offer payloads).
        """
        normalized = (value or "").strip().lower()
        if normalized == "fixed":
            return cls.FLAT
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(
            f"Invalid discount kind '{value}'. Valid kinds: {', '.join(k.value for k in cls)}"
        )
