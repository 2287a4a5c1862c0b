"""
Unit Tests: PromotionService

Tests for services/promotion.py covering:
- calculate_discount() - evaluation order, percentage cap, flat clamp
- evaluate() - lookup by code, read-only behavior
- create() / toggle_active() / get_active() - minimal administration
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from enums.discount_kind import DiscountKind
from enums.promotion_error_code import PromotionErrorCode
from exceptions.promotion import (
    PromotionException,
    PromotionNotFoundException,
    PromotionInactiveException,
    PromotionNotStartedException,
    PromotionExpiredException,
    PromotionLimitReachedException,
    BelowMinimumOrderValueException,
    InvalidPromotionDataException,
)
from repositories.promotion import PromotionRepository
from services.promotion import PromotionService
from utils.clock import utc_now
from factories import make_promotion, seed_promotion


class TestCalculateDiscount:
    """Test PromotionService.calculate_discount() (pure)"""

    def test_below_minimum_reports_shortfall(self):
        promotion = make_promotion(min_order_value=Decimal("500"))

        with pytest.raises(BelowMinimumOrderValueException) as exc_info:
            PromotionService.calculate_discount(promotion, Decimal("400"), utc_now())

        assert exc_info.value.code == PromotionErrorCode.BELOW_MINIMUM
        assert exc_info.value.shortfall == Decimal("100.00")
        assert exc_info.value.message == "Add ₹100.00 more to use this offer (Min order: ₹500.00)"

    def test_exact_minimum_is_accepted(self):
        promotion = make_promotion(min_order_value=Decimal("500"))

        result = PromotionService.calculate_discount(promotion, Decimal("500"), utc_now())

        assert result.discount == Decimal("100.00")

    def test_percentage_is_capped(self):
        promotion = make_promotion(discount_value=Decimal("20"), max_discount_cap=Decimal("100"))

        result = PromotionService.calculate_discount(promotion, Decimal("1000"), utc_now())

        assert result.discount == Decimal("100.00")
        assert result.final_amount == Decimal("900.00")

    def test_percentage_below_cap(self):
        promotion = make_promotion(discount_value=Decimal("10"), max_discount_cap=Decimal("100"))

        result = PromotionService.calculate_discount(promotion, Decimal("555.55"), utc_now())

        # 55.555 -> 55.56
        assert result.discount == Decimal("55.56")
        assert result.final_amount == Decimal("499.99")

    def test_flat_discount_clamped_to_subtotal(self):
        promotion = make_promotion(discount_kind=DiscountKind.FLAT, discount_value=Decimal("5000"))

        result = PromotionService.calculate_discount(promotion, Decimal("300"), utc_now())

        assert result.discount == Decimal("300.00")
        assert result.final_amount == Decimal("0.00")

    def test_inactive(self):
        promotion = make_promotion(is_active=False)

        with pytest.raises(PromotionInactiveException) as exc_info:
            PromotionService.calculate_discount(promotion, Decimal("1000"), utc_now())

        assert exc_info.value.code == PromotionErrorCode.INACTIVE

    def test_not_started(self):
        now = utc_now()
        promotion = make_promotion(valid_from=now + timedelta(hours=1), valid_until=now + timedelta(days=2))

        with pytest.raises(PromotionNotStartedException):
            PromotionService.calculate_discount(promotion, Decimal("1000"), now)

    def test_expired(self):
        now = utc_now()
        promotion = make_promotion(valid_from=now - timedelta(days=10), valid_until=now - timedelta(seconds=1))

        with pytest.raises(PromotionExpiredException):
            PromotionService.calculate_discount(promotion, Decimal("1000"), now)

    def test_window_bounds_are_inclusive(self):
        now = utc_now()
        promotion = make_promotion(valid_from=now - timedelta(days=1), valid_until=now)

        result = PromotionService.calculate_discount(promotion, Decimal("100"), now)

        assert result.discount == Decimal("20.00")

    def test_limit_reached(self):
        promotion = make_promotion(usage_limit=3, usage_count=3)

        with pytest.raises(PromotionLimitReachedException) as exc_info:
            PromotionService.calculate_discount(promotion, Decimal("1000"), utc_now())

        assert exc_info.value.code == PromotionErrorCode.LIMIT_REACHED

    def test_inactive_checked_before_expiry(self):
        now = utc_now()
        promotion = make_promotion(
            is_active=False,
            valid_from=now - timedelta(days=10),
            valid_until=now - timedelta(days=1),
        )

        with pytest.raises(PromotionException) as exc_info:
            PromotionService.calculate_discount(promotion, Decimal("1000"), now)

        assert exc_info.value.code == PromotionErrorCode.INACTIVE

    def test_limit_checked_before_minimum(self):
        promotion = make_promotion(usage_limit=1, usage_count=1, min_order_value=Decimal("500"))

        with pytest.raises(PromotionException) as exc_info:
            PromotionService.calculate_discount(promotion, Decimal("100"), utc_now())

        assert exc_info.value.code == PromotionErrorCode.LIMIT_REACHED


class TestEvaluate:
    """Test PromotionService.evaluate()"""

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, test_session):
        await seed_promotion(test_session, "WELCOME50")

        result = await PromotionService.evaluate("  welcome50 ", Decimal("1000"), test_session)

        assert result.promotion.code == "WELCOME50"
        assert result.discount == Decimal("200.00")
        assert result.message == "You saved ₹200.00!"

    @pytest.mark.asyncio
    async def test_unknown_code(self, test_session):
        with pytest.raises(PromotionNotFoundException) as exc_info:
            await PromotionService.evaluate("MISSING", Decimal("1000"), test_session)

        assert exc_info.value.code == PromotionErrorCode.NOT_FOUND
        assert exc_info.value.message == "Invalid offer code"

    @pytest.mark.asyncio
    async def test_empty_code(self, test_session):
        with pytest.raises(PromotionNotFoundException):
            await PromotionService.evaluate("   ", Decimal("1000"), test_session)

    @pytest.mark.asyncio
    async def test_preview_never_consumes_usage(self, test_session):
        promotion = await seed_promotion(test_session, "ONCE", usage_limit=1)

        for _ in range(3):
            await PromotionService.evaluate("ONCE", Decimal("1000"), test_session)

        stored = await PromotionRepository.get_by_id(promotion.id, test_session)
        assert stored.usage_count == 0

    @pytest.mark.asyncio
    async def test_explicit_now(self, test_session):
        await seed_promotion(test_session, "LATER", valid_from=utc_now() + timedelta(days=1),
                             valid_until=utc_now() + timedelta(days=5))

        with pytest.raises(PromotionNotStartedException):
            await PromotionService.evaluate("LATER", Decimal("1000"), test_session)

        result = await PromotionService.evaluate("LATER", Decimal("1000"), test_session,
                                                 now=utc_now() + timedelta(days=2))
        assert result.discount == Decimal("200.00")


class TestAdministration:
    """Test PromotionService.create(), toggle_active() and get_active()"""

    @pytest.mark.asyncio
    async def test_create_normalizes_code(self, test_session):
        created = await PromotionService.create(make_promotion(" pizza30 "), test_session)

        assert created.id is not None
        assert created.code == "PIZZA30"
        assert created.usage_count == 0

    @pytest.mark.asyncio
    async def test_create_duplicate_code(self, test_session):
        await PromotionService.create(make_promotion("PIZZA30"), test_session)

        with pytest.raises(InvalidPromotionDataException) as exc_info:
            await PromotionService.create(make_promotion("pizza30"), test_session)

        assert exc_info.value.field == "code"

    @pytest.mark.parametrize("overrides,field", [
        ({"code": "AB"}, "code"),
        ({"code": "SUMMER-SALE"}, "code"),
        ({"code": "X" * 21}, "code"),
        ({"discount_value": Decimal("0")}, "discount_value"),
        ({"discount_value": Decimal("120")}, "discount_value"),
        ({"discount_value": Decimal("12.5")}, "discount_value"),
        ({"discount_kind": DiscountKind.FLAT, "discount_value": Decimal("50"),
          "max_discount_cap": Decimal("10")}, "max_discount_cap"),
        ({"max_discount_cap": Decimal("0")}, "max_discount_cap"),
        ({"min_order_value": Decimal("-1")}, "min_order_value"),
        ({"usage_limit": 0}, "usage_limit"),
    ])
    def test_invalid_definitions(self, overrides, field):
        code = overrides.pop("code", "VALID10")

        with pytest.raises(InvalidPromotionDataException) as exc_info:
            PromotionService.validate_promotion_data(make_promotion(code, **overrides))

        assert exc_info.value.field == field

    def test_window_must_be_ordered(self):
        now = utc_now()
        promotion = make_promotion(valid_from=now, valid_until=now)

        with pytest.raises(InvalidPromotionDataException) as exc_info:
            PromotionService.validate_promotion_data(promotion)

        assert exc_info.value.field == "valid_until"

    def test_flat_amount_may_have_paise(self):
        promotion = make_promotion(discount_kind=DiscountKind.FLAT, discount_value=Decimal("49.50"))

        validated = PromotionService.validate_promotion_data(promotion)

        assert validated.discount_value == Decimal("49.50")

    def test_flat_amount_above_hundred_is_valid(self):
        promotion = make_promotion(discount_kind=DiscountKind.FLAT, discount_value=Decimal("250"))

        validated = PromotionService.validate_promotion_data(promotion)

        assert validated.discount_value == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_toggle_active(self, test_session):
        promotion = await seed_promotion(test_session, "TOGGLE")

        toggled = await PromotionService.toggle_active(promotion.id, test_session)
        stored = await PromotionRepository.get_by_id(promotion.id, test_session)

        assert toggled.is_active is False
        assert stored.is_active is False

    @pytest.mark.asyncio
    async def test_toggle_unknown(self, test_session):
        with pytest.raises(PromotionNotFoundException):
            await PromotionService.toggle_active(999, test_session)

    @pytest.mark.asyncio
    async def test_get_active_filters_unredeemable(self, test_session):
        now = utc_now()
        await seed_promotion(test_session, "LIVE")
        await seed_promotion(test_session, "OFF", is_active=False)
        await seed_promotion(test_session, "OLD", valid_from=now - timedelta(days=9), valid_until=now - timedelta(days=1))
        await seed_promotion(test_session, "SOON", valid_from=now + timedelta(days=1), valid_until=now + timedelta(days=9))
        await seed_promotion(test_session, "USEDUP", usage_limit=2, usage_count=2)

        active = await PromotionService.get_active(test_session)

        assert [promotion.code for promotion in active] == ["LIVE"]
