"""
PricingService Unit Tests

Tests the cart aggregation rules without any database:
- line validation (size/category coupling, quantity, prices, instructions)
- line subtotal (toppings charged once per line)
- tax, delivery fee and grand total derivation
- rounding and idempotence

Run with:
    pytest tests/pricing/unit/test_pricing_service.py -v
"""

from decimal import Decimal

import pytest

from enums.line_item_error_code import LineItemErrorCode
from enums.pizza_size import PizzaSize
from exceptions.cart import LineItemValidationException
from models.cart import CartDTO
from models.restaurant_settings import RestaurantSettingsDTO
from services.pricing import PricingService
from factories import make_pizza_line, make_beverage_line, make_topping


@pytest.fixture
def settings():
    """Default restaurant settings: 8.5% tax, 40 delivery, free from 2490."""
    return RestaurantSettingsDTO()


class TestRecompute:
    """Test PricingService.recompute()"""

    def test_reference_scenario(self, settings):
        """2 large pizzas @500 with a 50 topping plus 2 beverages @50 -> 1287.75."""
        cart = CartDTO(items=[
            make_pizza_line(quantity=2, toppings=[make_topping(price="50")]),
            make_beverage_line(quantity=2),
        ])

        result = PricingService.recompute(cart, settings)

        assert result.items[0].line_subtotal == Decimal("1050.00")
        assert result.items[1].line_subtotal == Decimal("100.00")
        assert result.subtotal == Decimal("1150.00")
        assert result.total_items == 4
        assert result.tax_amount == Decimal("97.75")
        assert result.delivery_fee == Decimal("40.00")
        assert result.discount == Decimal("0.00")
        assert result.grand_total == Decimal("1287.75")

    def test_toppings_not_multiplied_by_quantity(self, settings):
        line = make_pizza_line(
            price="400",
            quantity=3,
            toppings=[make_topping("Olives", price="35"), make_topping("Jalapenos", price="25")]
        )

        assert PricingService.compute_line_subtotal(line) == Decimal("1260.00")

    def test_recompute_is_idempotent(self, settings):
        cart = CartDTO(items=[
            make_pizza_line(price="333.33", quantity=3, toppings=[make_topping(price="12.345")]),
            make_beverage_line(price="19.99", quantity=7),
        ], discount=Decimal("10.005"))

        first = PricingService.recompute(cart, settings)
        second = PricingService.recompute(first, settings)

        assert second.model_dump() == first.model_dump()

    def test_recompute_does_not_mutate_input(self, settings):
        cart = CartDTO(items=[make_beverage_line(quantity=2)])

        PricingService.recompute(cart, settings)

        assert cart.subtotal == Decimal("0.00")
        assert cart.items[0].line_subtotal == Decimal("0.00")

    def test_free_delivery_at_exact_threshold(self, settings):
        cart = CartDTO(items=[make_beverage_line(price="2490")])

        result = PricingService.recompute(cart, settings)

        assert result.delivery_fee == Decimal("0.00")

    def test_full_delivery_fee_one_cent_below_threshold(self, settings):
        cart = CartDTO(items=[make_beverage_line(price="2489.99")])

        result = PricingService.recompute(cart, settings)

        assert result.delivery_fee == Decimal("40.00")

    def test_grand_total_never_negative(self, settings):
        cart = CartDTO(items=[make_beverage_line(price="100")], discount=Decimal("5000"))

        result = PricingService.recompute(cart, settings)

        assert result.grand_total == Decimal("0.00")

    def test_grand_total_formula_with_discount(self, settings):
        cart = CartDTO(items=[make_pizza_line(price="600", quantity=2)], discount=Decimal("120"))

        result = PricingService.recompute(cart, settings)

        assert result.grand_total == result.subtotal + result.tax_amount + result.delivery_fee - result.discount
        assert result.grand_total == Decimal("1222.00")

    def test_tax_rounds_half_up(self):
        settings = RestaurantSettingsDTO(tax_rate=Decimal("5"))
        cart = CartDTO(items=[make_beverage_line(price="0.50")])

        result = PricingService.recompute(cart, settings)

        # 0.50 x 5% = 0.025 -> 0.03
        assert result.tax_amount == Decimal("0.03")

    def test_settings_change_affects_next_recompute(self, settings):
        cart = CartDTO(items=[make_beverage_line(price="1000")])
        before = PricingService.recompute(cart, settings)

        after = PricingService.recompute(before, RestaurantSettingsDTO(tax_rate=Decimal("0"), delivery_fee=Decimal("0")))

        assert before.grand_total == Decimal("1125.00")
        assert after.grand_total == Decimal("1000.00")

    def test_empty_cart(self, settings):
        result = PricingService.recompute(CartDTO(), settings)

        assert result.subtotal == Decimal("0.00")
        assert result.total_items == 0
        assert result.tax_amount == Decimal("0.00")


class TestValidateLineItem:
    """Test PricingService.validate_line_item()"""

    def test_pizza_without_size_rejected(self):
        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(make_pizza_line(size=None))

        assert exc_info.value.code == LineItemErrorCode.SIZE_REQUIRED_FOR_PIZZA

    def test_pizza_category_is_case_insensitive(self):
        line = make_pizza_line(size=None)
        line.snapshot.category = "Pizza"

        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(line)

        assert exc_info.value.code == LineItemErrorCode.SIZE_REQUIRED_FOR_PIZZA

    def test_non_pizza_with_size_rejected(self):
        line = make_beverage_line()
        line.size = PizzaSize.SMALL

        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(line)

        assert exc_info.value.code == LineItemErrorCode.SIZE_NOT_ALLOWED

    def test_non_pizza_with_toppings_rejected(self):
        line = make_beverage_line()
        line.toppings = [make_topping()]

        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(line)

        assert exc_info.value.code == LineItemErrorCode.TOPPINGS_NOT_ALLOWED

    @pytest.mark.parametrize("quantity", [0, -1, 51])
    def test_quantity_out_of_range_rejected(self, quantity):
        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(make_beverage_line(quantity=quantity))

        assert exc_info.value.code == LineItemErrorCode.INVALID_QUANTITY

    def test_negative_topping_price_rejected(self):
        line = make_pizza_line(toppings=[make_topping(price="-5")])

        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(line)

        assert exc_info.value.code == LineItemErrorCode.NEGATIVE_PRICE

    def test_instructions_too_long_rejected(self):
        line = make_pizza_line(special_instructions="x" * 201)

        with pytest.raises(LineItemValidationException) as exc_info:
            PricingService.validate_line_item(line)

        assert exc_info.value.code == LineItemErrorCode.INSTRUCTIONS_TOO_LONG

    def test_invalid_line_aborts_whole_recompute(self):
        cart = CartDTO(items=[make_beverage_line(), make_pizza_line(size=None)])

        with pytest.raises(LineItemValidationException):
            PricingService.recompute(cart, RestaurantSettingsDTO())


class TestSameConfiguration:
    """Test the merge identity used when adding lines."""

    def test_topping_order_does_not_matter(self):
        olives, onion = make_topping("Olives"), make_topping("Onion", price="20")

        first = make_pizza_line(toppings=[olives, onion])
        second = make_pizza_line(toppings=[onion, olives])

        assert PricingService.is_same_configuration(first, second)

    def test_topping_multiplicity_matters(self):
        olives = make_topping("Olives")

        first = make_pizza_line(toppings=[olives, olives])
        second = make_pizza_line(toppings=[olives])

        assert not PricingService.is_same_configuration(first, second)

    def test_different_size_is_different_line(self):
        assert not PricingService.is_same_configuration(
            make_pizza_line(size=PizzaSize.SMALL),
            make_pizza_line(size=PizzaSize.LARGE),
        )
