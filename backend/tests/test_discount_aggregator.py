"""Tests for the discount aggregator's stacking policy."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from promo_engine.models.promotion import DiscountType
from promo_engine.services.discount_aggregator import aggregate
from promo_engine.services.flash_sale_allocator import PriceOverride
from promo_engine.services.promotion_resolver import PromotionApplication
from tests.conftest import make_line


def _application(
    code: str,
    line_ids: tuple[str, ...],
    discount_type: DiscountType = DiscountType.PERCENTAGE,
    value: str = "10",
    starts_at: datetime | None = None,
) -> PromotionApplication:
    return PromotionApplication(
        promotion_id=uuid4(),
        code=code,
        discount_type=discount_type,
        discount_value=Decimal(value),
        starts_at=starts_at or datetime(2026, 1, 1, tzinfo=UTC),
        applicable_line_ids=line_ids,
        applicable_subtotal=Decimal("0"),
        discount_amount=Decimal("0"),
    )


def _override(line, price: str) -> PriceOverride:
    return PriceOverride(
        line_id=line.line_id,
        flash_sale_id=uuid4(),
        flash_sale_product_id=uuid4(),
        product_variant_id=line.product_variant_id,
        quantity=line.quantity,
        original_unit_price=line.unit_price,
        flash_sale_price=Decimal(price),
    )


class TestAggregate:
    """Tests for aggregate."""

    def test_no_discounts(self):
        lines = [make_line("a", "12.50", 2)]

        breakdown = aggregate(lines, [], [])

        assert breakdown.original_subtotal == Decimal("25.00")
        assert breakdown.subtotal == Decimal("25.00")
        assert breakdown.promotion_discount == Decimal("0")
        assert breakdown.total == Decimal("25.00")
        assert breakdown.applied_promotion_code is None
        assert breakdown.applied_promotions == ()
        assert not breakdown.free_shipping
        line = breakdown.line("a")
        assert line.unit_price_at_purchase == Decimal("12.50")
        assert line.line_item_discount_amount == Decimal("0")

    def test_single_percentage_promotion(self):
        lines = [make_line("a", "30.00", 2), make_line("b", "20.00")]

        breakdown = aggregate(lines, [], [_application("SAVE10", ("a", "b"))])

        assert breakdown.promotion_discount == Decimal("8.00")
        assert breakdown.total == Decimal("72.00")
        assert breakdown.applied_promotion_code == "SAVE10"
        assert breakdown.applied_promotions[0].discount_amount == Decimal("8.00")
        assert breakdown.line("a").line_item_discount_amount == Decimal("6.00")
        assert breakdown.line("b").line_item_discount_amount == Decimal("2.00")

    def test_line_discounts_sum_to_order_discount(self):
        lines = [make_line("a", "3.33"), make_line("b", "3.33"), make_line("c", "3.34")]

        breakdown = aggregate(
            lines,
            [],
            [_application("FIXED", ("a", "b", "c"), DiscountType.FIXED_AMOUNT_ORDER, "1.00")],
        )

        shares = [line.line_item_discount_amount for line in breakdown.lines]
        assert sum(shares) == Decimal("1.00")
        assert all(share >= 0 for share in shares)

    def test_many_small_shares_never_go_negative(self):
        lines = [make_line(f"line-{index}", "1.00") for index in range(9)]
        line_ids = tuple(line.line_id for line in lines)

        breakdown = aggregate(lines, [], [_application("TINY", line_ids, value="0.78")])

        shares = [line.line_item_discount_amount for line in breakdown.lines]
        assert breakdown.promotion_discount == Decimal("0.07")
        assert sum(shares) == Decimal("0.07")
        assert shares == [Decimal("0.01")] * 7 + [Decimal("0.00")] * 2

    @pytest.mark.parametrize(
        ("prices", "discount_type", "value"),
        [
            (["1.00"] * 9, DiscountType.PERCENTAGE, "0.78"),
            (["0.01", "0.01", "99.98"], DiscountType.PERCENTAGE, "50"),
            (["0.03", "0.03", "0.03"], DiscountType.FIXED_AMOUNT_ORDER, "0.05"),
            (["3.33", "0.01", "6.66", "0.05"], DiscountType.PERCENTAGE, "99.9"),
            (["19.99", "0.49", "0.49", "0.49"], DiscountType.FIXED_AMOUNT_ORDER, "100"),
        ],
    )
    def test_line_discounts_stay_within_line_totals(self, prices, discount_type, value):
        lines = [make_line(f"line-{index}", price) for index, price in enumerate(prices)]
        line_ids = tuple(line.line_id for line in lines)

        breakdown = aggregate(lines, [], [_application("SPLIT", line_ids, discount_type, value)])

        for line in breakdown.lines:
            assert Decimal("0") <= line.line_item_discount_amount <= line.line_item_total_amount
        assert (
            sum(line.line_item_discount_amount for line in breakdown.lines)
            == breakdown.promotion_discount
        )

    def test_flash_price_applies_first(self):
        flash_line = make_line("a", "50.00", 2)
        lines = [flash_line, make_line("b", "25.00")]

        breakdown = aggregate(lines, [_override(flash_line, "30.00")], [])

        assert breakdown.original_subtotal == Decimal("125.00")
        assert breakdown.flash_sale_savings == Decimal("40.00")
        assert breakdown.subtotal == Decimal("85.00")
        assert breakdown.line("a").unit_price_at_purchase == Decimal("30.00")
        assert breakdown.line("a").list_unit_price == Decimal("50.00")
        assert breakdown.line("a").flash_sale_product_id is not None
        assert breakdown.line("b").flash_sale_product_id is None

    def test_flash_lines_not_discounted_again(self):
        flash_line = make_line("a", "50.00")
        lines = [flash_line, make_line("b", "25.00")]

        breakdown = aggregate(
            lines,
            [_override(flash_line, "30.00")],
            [_application("SAVE20", ("a", "b"), value="20")],
        )

        assert breakdown.line("a").line_item_discount_amount == Decimal("0")
        assert breakdown.line("b").line_item_discount_amount == Decimal("5.00")
        assert breakdown.total == Decimal("50.00")

    def test_flash_lines_discounted_when_stacking_allowed(self):
        flash_line = make_line("a", "50.00")
        lines = [flash_line, make_line("b", "25.00")]

        breakdown = aggregate(
            lines,
            [_override(flash_line, "30.00")],
            [_application("SAVE20", ("a", "b"), value="20")],
            allow_flash_stacking=True,
        )

        assert breakdown.promotion_discount == Decimal("11.00")
        assert breakdown.line("a").line_item_discount_amount == Decimal("6.00")

    def test_largest_discount_wins(self):
        lines = [make_line("a", "100.00")]
        small = _application("SAVE5", ("a",), value="5")
        large = _application("FLAT15", ("a",), DiscountType.FIXED_AMOUNT_ORDER, "15")

        breakdown = aggregate(lines, [], [small, large])

        assert breakdown.applied_promotion_code == "FLAT15"
        assert breakdown.promotion_discount == Decimal("15.00")
        assert breakdown.rejected_promotion_codes == ("SAVE5",)
        assert [app.code for app in breakdown.applied_promotions] == ["FLAT15"]

    def test_tie_breaks_on_earliest_start(self):
        lines = [make_line("a", "100.00")]
        later = _application("LATER", ("a",), starts_at=datetime(2026, 3, 1, tzinfo=UTC))
        earlier = _application("EARLIER", ("a",), starts_at=datetime(2026, 2, 1, tzinfo=UTC))

        breakdown = aggregate(lines, [], [later, earlier])

        assert breakdown.applied_promotion_code == "EARLIER"
        assert breakdown.rejected_promotion_codes == ("LATER",)

    def test_tie_on_start_breaks_on_code(self):
        lines = [make_line("a", "100.00")]

        breakdown = aggregate(
            lines, [], [_application("BETA", ("a",)), _application("ALPHA", ("a",))]
        )

        assert breakdown.applied_promotion_code == "ALPHA"

    def test_free_shipping_always_stacks(self):
        lines = [make_line("a", "100.00")]
        shipping = _application("SHIPFREE", ("a",), DiscountType.FREE_SHIPPING, "1")

        breakdown = aggregate(lines, [], [shipping, _application("SAVE10", ("a",))])

        assert breakdown.free_shipping
        assert breakdown.applied_promotion_code == "SAVE10"
        assert {app.code for app in breakdown.applied_promotions} == {"SAVE10", "SHIPFREE"}
        assert breakdown.promotion_discount == Decimal("10.00")

    def test_free_shipping_alone(self):
        lines = [make_line("a", "100.00")]
        shipping = _application("SHIPFREE", ("a",), DiscountType.FREE_SHIPPING, "1")

        breakdown = aggregate(lines, [], [shipping])

        assert breakdown.free_shipping
        assert breakdown.applied_promotion_code is None
        assert breakdown.total == Decimal("100.00")
        assert breakdown.applied_promotions[0].discount_amount == Decimal("0.00")

    def test_promotion_with_nothing_left_to_discount_is_rejected(self):
        flash_line = make_line("a", "50.00")

        breakdown = aggregate(
            [flash_line], [_override(flash_line, "30.00")], [_application("SAVE10", ("a",))]
        )

        assert breakdown.applied_promotions == ()
        assert breakdown.rejected_promotion_codes == ("SAVE10",)
        assert breakdown.total == Decimal("30.00")

    def test_is_deterministic(self):
        flash_line = make_line("a", "19.99", 3)
        lines = [flash_line, make_line("b", "7.45", 2), make_line("c", "0.99", 7)]
        overrides = [_override(flash_line, "14.99")]
        applications = [
            _application("SAVE15", ("a", "b", "c"), value="15"),
            _application("FLAT3", ("b", "c"), DiscountType.FIXED_AMOUNT_ORDER, "3"),
        ]

        first = aggregate(lines, overrides, applications)
        second = aggregate(lines, overrides, list(reversed(applications)))

        assert first == second

    def test_unknown_line_lookup(self):
        breakdown = aggregate([make_line("a")], [], [])

        with pytest.raises(KeyError):
            breakdown.line("zzz")

    def test_custom_precision(self):
        lines = [make_line("a", "10.00")]

        breakdown = aggregate(lines, [], [_application("THIRD", ("a",), value="33.3333")], places=0)

        assert breakdown.promotion_discount == Decimal("3")
