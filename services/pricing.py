import logging
from collections import Counter
from decimal import Decimal

from enums.line_item_error_code import LineItemErrorCode
from exceptions.cart import LineItemValidationException
from models.cart import CartDTO
from models.cartItem import LineItemDTO
from models.restaurant_settings import RestaurantSettingsDTO
from utils.money import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)

MAX_LINE_QUANTITY = 50
MAX_INSTRUCTIONS_LENGTH = 200
PIZZA_CATEGORY = "pizza"


class PricingService:
    """
    Cart Aggregator: derives every cart total from its lines and the settings.

    All methods are pure and synchronous. Nothing here touches the database;
    callers load the cart and the settings, recompute, then persist.
    """

    @staticmethod
    def is_pizza(line: LineItemDTO) -> bool:
        return line.snapshot.category.strip().lower() == PIZZA_CATEGORY

    @staticmethod
    def validate_line_item(line: LineItemDTO) -> None:
        """
        Check the per-line invariants.

        Pizza lines must carry a size; any other category must carry neither
        a size nor toppings. Quantity must lie in [1, MAX_LINE_QUANTITY],
        prices must be non-negative and the instructions short enough.

        Raises:
            LineItemValidationException: with the first violated rule's code
        """
        if PricingService.is_pizza(line):
            if line.size is None:
                raise LineItemValidationException(
                    LineItemErrorCode.SIZE_REQUIRED_FOR_PIZZA,
                    f"Please select a size for {line.snapshot.name}",
                    line.product_id
                )
        else:
            if line.size is not None:
                raise LineItemValidationException(
                    LineItemErrorCode.SIZE_NOT_ALLOWED,
                    f"{line.snapshot.name} does not come in sizes",
                    line.product_id
                )
            if line.toppings:
                raise LineItemValidationException(
                    LineItemErrorCode.TOPPINGS_NOT_ALLOWED,
                    "Toppings can only be added to pizzas",
                    line.product_id
                )

        if line.quantity < 1 or line.quantity > MAX_LINE_QUANTITY:
            raise LineItemValidationException(
                LineItemErrorCode.INVALID_QUANTITY,
                f"Quantity must be between 1 and {MAX_LINE_QUANTITY}",
                line.product_id
            )

        if line.selected_price < 0 or any(topping.price < 0 for topping in line.toppings):
            raise LineItemValidationException(
                LineItemErrorCode.NEGATIVE_PRICE,
                "Prices cannot be negative",
                line.product_id
            )

        if len(line.special_instructions) > MAX_INSTRUCTIONS_LENGTH:
            raise LineItemValidationException(
                LineItemErrorCode.INSTRUCTIONS_TOO_LONG,
                f"Special instructions cannot exceed {MAX_INSTRUCTIONS_LENGTH} characters",
                line.product_id
            )

    @staticmethod
    def compute_line_subtotal(line: LineItemDTO) -> Decimal:
        """
        selected_price x quantity + sum of topping prices.

        Toppings are charged once per line, not once per unit: two large
        pizzas with olives pay for the olives once.
        """
        toppings_total = sum((to_decimal(topping.price) for topping in line.toppings), ZERO)
        return round2(to_decimal(line.selected_price) * line.quantity + toppings_total)

    @staticmethod
    def toppings_key(line: LineItemDTO) -> tuple:
        """Order-independent identity of a line's topping multiset."""
        return tuple(sorted(Counter(
            (topping.name, topping.category.value, str(round2(topping.price)))
            for topping in line.toppings
        ).items()))

    @staticmethod
    def is_same_configuration(first: LineItemDTO, second: LineItemDTO) -> bool:
        """Lines that would merge on add: same product, size and topping multiset."""
        return (
            first.product_id == second.product_id
            and first.size == second.size
            and PricingService.toppings_key(first) == PricingService.toppings_key(second)
        )

    @staticmethod
    def compute_delivery_fee(subtotal: Decimal, settings: RestaurantSettingsDTO) -> Decimal:
        if subtotal >= to_decimal(settings.free_delivery_threshold):
            return ZERO
        return round2(settings.delivery_fee)

    @staticmethod
    def recompute(cart: CartDTO, settings: RestaurantSettingsDTO) -> CartDTO:
        """
        Derive all totals of a cart.

        The cart's discount is taken as given (set by the promotion
        evaluator); everything else is recomputed from the lines. Calling
        recompute on an already recomputed cart returns the same totals.

        Example (tax 8.5%, delivery 40, free delivery from 2490):
            2 x Margherita large @450 + olives 35 + garlic bread 215
            subtotal 1150.00, tax 97.75, delivery 40.00, grand total 1287.75

        Args:
            cart: Cart with lines and (optionally) a discount
            settings: Settings in force right now

        Returns:
            New CartDTO with line_subtotal and all totals filled in

        Raises:
            LineItemValidationException: If any line breaks a line invariant
        """
        for line in cart.items:
            PricingService.validate_line_item(line)

        items = [
            line.model_copy(update={"line_subtotal": PricingService.compute_line_subtotal(line)})
            for line in cart.items
        ]

        subtotal = round2(sum((line.line_subtotal for line in items), ZERO))
        total_items = sum(line.quantity for line in items)
        tax_amount = round2(subtotal * to_decimal(settings.tax_rate) / Decimal(100))
        delivery_fee = PricingService.compute_delivery_fee(subtotal, settings)
        discount = round2(cart.discount)
        grand_total = max(ZERO, round2(subtotal + tax_amount + delivery_fee - discount))

        return cart.model_copy(update={
            "items": items,
            "total_items": total_items,
            "subtotal": subtotal,
            "tax_amount": tax_amount,
            "delivery_fee": delivery_fee,
            "discount": discount,
            "grand_total": grand_total,
        })
