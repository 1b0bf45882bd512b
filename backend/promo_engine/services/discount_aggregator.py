"""Combine flash prices and promotions into a per-order discount breakdown.

Stacking policy:

* Flash sale prices apply first. A line sold at a flash price is not discounted
  again by a percentage or fixed-amount promotion unless ``allow_flash_stacking``.
* Free-shipping promotions never conflict with pricing promotions and always stack.
* Of several pricing promotions only one is honored: the largest absolute discount,
  ties going to the earliest ``starts_at`` and then to the lowest code.

``aggregate`` is a pure function of its arguments.
"""

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from promo_engine.core.money import ZERO, floor_money, minor_unit, quantize_money
from promo_engine.schemas.order import OrderLineItem
from promo_engine.services.flash_sale_allocator import PriceOverride
from promo_engine.services.promotion_resolver import PromotionApplication, compute_discount


@dataclass(frozen=True)
class LineItemDiscount:
    line_id: str
    product_variant_id: UUID
    quantity: int
    list_unit_price: Decimal
    unit_price_at_purchase: Decimal
    line_item_total_amount: Decimal
    line_item_discount_amount: Decimal
    flash_sale_product_id: UUID | None = None
    product_name: str | None = None
    variant_sku: str | None = None

    @property
    def net_amount(self) -> Decimal:
        return self.line_item_total_amount - self.line_item_discount_amount


@dataclass(frozen=True)
class OrderDiscountBreakdown:
    """Final discounts for one order, consumed by order persistence."""

    lines: tuple[LineItemDiscount, ...]
    original_subtotal: Decimal
    flash_sale_savings: Decimal
    subtotal: Decimal
    promotion_discount: Decimal
    total: Decimal
    free_shipping: bool
    applied_promotion_code: str | None
    applied_promotions: tuple[PromotionApplication, ...]
    rejected_promotion_codes: tuple[str, ...]
    flash_overrides: tuple[PriceOverride, ...]

    def line(self, line_id: str) -> LineItemDiscount:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise KeyError(line_id)


def _eligible_lines(
    application: PromotionApplication,
    line_totals: dict[str, Decimal],
    overridden: set[str],
    allow_flash_stacking: bool,
) -> list[str]:
    return [
        line_id
        for line_id in line_totals
        if line_id in application.applicable_line_ids
        and (allow_flash_stacking or line_id not in overridden)
    ]


def _split(amount: Decimal, weights: list[Decimal], places: int | None) -> list[Decimal]:
    """Split ``amount`` proportionally by largest remainder.

    Every share is floored to the minor unit, then the leftover units go one at a
    time to the shares with the largest fractional remainder (earlier lines first
    on ties). No share is negative or larger than its weight, and the shares sum
    to ``amount``.
    """
    total_weight = sum(weights, ZERO)
    if not weights or total_weight <= 0:
        return [ZERO for _ in weights]
    unit = minor_unit(places)
    exact = [amount * weight / total_weight for weight in weights]
    shares = [floor_money(value, places) for value in exact]
    leftover = int((amount - sum(shares, ZERO)) / unit)
    by_remainder = sorted(range(len(weights)), key=lambda i: -(exact[i] - shares[i]))
    for index in by_remainder:
        if leftover <= 0:
            break
        if shares[index] + unit <= weights[index]:
            shares[index] += unit
            leftover -= 1
    return shares


def aggregate(
    line_items: Sequence[OrderLineItem],
    flash_overrides: Sequence[PriceOverride],
    promotion_applications: Sequence[PromotionApplication],
    allow_flash_stacking: bool = False,
    places: int | None = None,
) -> OrderDiscountBreakdown:
    """Produce the order's discount breakdown from its line items and discounts."""
    overrides = {override.line_id: override for override in flash_overrides}

    unit_prices: dict[str, Decimal] = {}
    line_totals: dict[str, Decimal] = {}
    original_subtotal = ZERO
    for item in line_items:
        override = overrides.get(item.line_id)
        unit_price = override.flash_sale_price if override else item.unit_price
        unit_prices[item.line_id] = quantize_money(unit_price, places)
        line_totals[item.line_id] = quantize_money(unit_price * item.quantity, places)
        original_subtotal += item.line_total
    original_subtotal = quantize_money(original_subtotal, places)
    subtotal = sum(line_totals.values(), ZERO)
    overridden = {line_id for line_id in overrides if line_id in line_totals}

    shipping = [app for app in promotion_applications if app.free_shipping]
    candidates: list[tuple[Decimal, PromotionApplication, list[str]]] = []
    for application in promotion_applications:
        if application.free_shipping:
            continue
        eligible = _eligible_lines(application, line_totals, overridden, allow_flash_stacking)
        base = sum((line_totals[line_id] for line_id in eligible), ZERO)
        discount = compute_discount(
            application.discount_type, application.discount_value, base, places
        )
        candidates.append((discount, application, eligible))

    candidates.sort(key=lambda c: (-c[0], c[1].starts_at, c[1].code))

    discounts = {line_id: ZERO for line_id in line_totals}
    applied: list[PromotionApplication] = []
    rejected: list[str] = []
    winner_code: str | None = None
    promotion_discount = ZERO

    if candidates and candidates[0][0] > 0:
        discount, winner, eligible = candidates[0]
        shares = _split(discount, [line_totals[line_id] for line_id in eligible], places)
        for line_id, share in zip(eligible, shares, strict=True):
            discounts[line_id] = share
        promotion_discount = discount
        winner_code = winner.code
        applied.append(dataclasses.replace(winner, discount_amount=discount))
        rejected.extend(candidate[1].code for candidate in candidates[1:])
    else:
        rejected.extend(candidate[1].code for candidate in candidates)

    for application in shipping:
        applied.append(
            dataclasses.replace(application, discount_amount=quantize_money(ZERO, places))
        )

    lines = tuple(
        LineItemDiscount(
            line_id=item.line_id,
            product_variant_id=item.product_variant_id,
            quantity=item.quantity,
            list_unit_price=item.unit_price,
            unit_price_at_purchase=unit_prices[item.line_id],
            line_item_total_amount=line_totals[item.line_id],
            line_item_discount_amount=discounts[item.line_id],
            flash_sale_product_id=(
                overrides[item.line_id].flash_sale_product_id
                if item.line_id in overrides
                else None
            ),
            product_name=item.product_name,
            variant_sku=item.variant_sku,
        )
        for item in line_items
    )

    return OrderDiscountBreakdown(
        lines=lines,
        original_subtotal=original_subtotal,
        flash_sale_savings=original_subtotal - subtotal,
        subtotal=subtotal,
        promotion_discount=promotion_discount,
        total=subtotal - promotion_discount,
        free_shipping=bool(shipping),
        applied_promotion_code=winner_code,
        applied_promotions=tuple(applied),
        rejected_promotion_codes=tuple(rejected),
        flash_overrides=tuple(o for o in flash_overrides if o.line_id in line_totals),
    )
