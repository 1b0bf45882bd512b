"""Promotion resolution: eligibility, usage caps and discount calculation."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.core.config import settings
from promo_engine.core.deadline import Deadline
from promo_engine.core.errors import (
    GlobalCapReached,
    MinimumNotMet,
    OrderValidationError,
    PerUserCapReached,
    PromotionInactive,
    PromotionNotApplicable,
    PromotionNotFound,
)
from promo_engine.core.money import ZERO, quantize_money, to_decimal
from promo_engine.models.promotion import DiscountType, Promotion
from promo_engine.models.shared import ensure_utc, utc_now
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.schemas.order import OrderContext
from promo_engine.services.flash_sale_allocator import PriceOverride
from promo_engine.services.rule_matcher import RuleMatcher
from promo_engine.services.usage_ledger import UsageLedger


@dataclass(frozen=True)
class PromotionApplication:
    """An eligible promotion and the discount it yields for one order."""

    promotion_id: UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    starts_at: datetime
    applicable_line_ids: tuple[str, ...]
    applicable_subtotal: Decimal
    discount_amount: Decimal
    usage_limit_per_user: int | None = None

    @property
    def free_shipping(self) -> bool:
        return self.discount_type == DiscountType.FREE_SHIPPING


def compute_discount(
    discount_type: DiscountType,
    discount_value: Decimal,
    base: Decimal,
    places: int | None = None,
) -> Decimal:
    """Monetary discount of a promotion over ``base``, rounded once at the end.

    Free shipping is a flag for the shipping calculation and is worth nothing here.
    """
    if base <= 0:
        return quantize_money(ZERO, places)
    if discount_type == DiscountType.PERCENTAGE:
        discount = min(base * discount_value / Decimal("100"), base)
    elif discount_type == DiscountType.FIXED_AMOUNT_ORDER:
        discount = min(discount_value, base)
    else:
        discount = ZERO
    return quantize_money(discount, places)


class PromotionResolver:
    """Resolve a promotion code against an order without writing anything."""

    def __init__(
        self,
        db: Session,
        matcher: RuleMatcher | None = None,
        allow_flash_stacking: bool | None = None,
    ):
        self.db = db
        self.promotion_repo = PromotionRepository(db)
        self.ledger = UsageLedger(db)
        self.matcher = matcher or RuleMatcher()
        if allow_flash_stacking is None:
            allow_flash_stacking = settings.ALLOW_FLASH_SALE_PROMOTION_STACKING
        self.allow_flash_stacking = allow_flash_stacking

    def resolve(
        self,
        promotion_code: str,
        context: OrderContext,
        now: datetime | None = None,
        price_overrides: Sequence[PriceOverride] = (),
        deadline: Deadline | None = None,
    ) -> PromotionApplication:
        """Check a promotion code against an order and compute its discount.

        Args:
            promotion_code: Code entered by the customer.
            context: The acting user and the order's line items.
            now: Evaluation time, defaults to the current UTC time.
            price_overrides: Flash prices already granted to lines of this order.
                Overridden lines are left out of the applicable subtotal of pricing
                promotions unless flash stacking is allowed. Where they count, they
                count at flash price.
            deadline: Aborts evaluation with EvaluationTimeout once passed.

        Returns:
            The PromotionApplication.

        Raises:
            PromotionNotFound, PromotionInactive, PromotionNotApplicable,
            MinimumNotMet, GlobalCapReached, PerUserCapReached,
            OrderValidationError, EvaluationTimeout.
        """
        now = ensure_utc(now) if now else utc_now()
        deadline = deadline or Deadline.after(settings.EVALUATION_TIMEOUT_SECONDS)

        deadline.check("promotion lookup")
        promotion = self.promotion_repo.get_by_code(promotion_code)
        if not promotion:
            raise PromotionNotFound(promotion_code)
        code = str(promotion.code)

        self._check_window(promotion, now)

        deadline.check("rule matching")
        rules = self.promotion_repo.get_rules(promotion.id)  # type: ignore[arg-type]
        overrides = {override.line_id: override for override in price_overrides}
        discount_type = DiscountType(promotion.discount_type)
        # Free shipping never competes with flash prices
        stacks_on_flash = (
            self.allow_flash_stacking or discount_type == DiscountType.FREE_SHIPPING
        )

        applicable_ids: list[str] = []
        subtotal = ZERO
        for item in self.matcher.applicable_lines(rules, context.line_items, context.user_id):
            override = overrides.get(item.line_id)
            if override is not None:
                if not stacks_on_flash:
                    continue
                subtotal += override.flash_sale_price * item.quantity
            else:
                subtotal += item.line_total
            applicable_ids.append(item.line_id)

        if not applicable_ids:
            raise PromotionNotApplicable(code)

        minimum = promotion.minimum_order_value
        if minimum is not None and subtotal < to_decimal(minimum):
            raise MinimumNotMet(code, quantize_money(subtotal), quantize_money(to_decimal(minimum)))

        deadline.check("usage caps")
        if (
            promotion.maximum_usage_limit is not None
            and promotion.current_usage_count >= promotion.maximum_usage_limit
        ):
            raise GlobalCapReached(code)

        per_user = promotion.usage_limit_per_user
        if per_user is not None:
            if context.user_id is None:
                raise OrderValidationError(f"Promotion '{code}' requires a signed-in user")
            used = self.ledger.count_user_redemptions(
                promotion.id, context.user_id  # type: ignore[arg-type]
            )
            if used >= per_user:
                raise PerUserCapReached(code, int(per_user))

        discount_value = to_decimal(promotion.discount_value)
        return PromotionApplication(
            promotion_id=promotion.id,  # type: ignore[arg-type]
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            starts_at=ensure_utc(promotion.starts_at),  # type: ignore[arg-type]
            applicable_line_ids=tuple(applicable_ids),
            applicable_subtotal=subtotal,
            discount_amount=compute_discount(discount_type, discount_value, subtotal),
            usage_limit_per_user=per_user,  # type: ignore[arg-type]
        )

    @staticmethod
    def _check_window(promotion: Promotion, now: datetime) -> None:
        code = str(promotion.code)
        if not promotion.is_active:
            raise PromotionInactive(code, "Promotion is disabled")

        starts_at = ensure_utc(promotion.starts_at)  # type: ignore[arg-type]
        ends_at = ensure_utc(promotion.ends_at)  # type: ignore[arg-type]
        if now < starts_at:
            raise PromotionInactive(code, "Promotion has not started yet")
        if now > ends_at:
            raise PromotionInactive(code, "Promotion has expired")
