"""Order-placement use case: evaluate discounts, then commit them."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.core.config import settings
from promo_engine.core.deadline import Deadline
from promo_engine.core.errors import CommitConflict
from promo_engine.models.order_status_history import OrderStatus
from promo_engine.models.shared import utc_now
from promo_engine.schemas.order import OrderContext
from promo_engine.services.discount_aggregator import OrderDiscountBreakdown, aggregate
from promo_engine.services.flash_sale_allocator import AllocationResult, FlashSaleAllocator
from promo_engine.services.promotion_resolver import PromotionApplication, PromotionResolver
from promo_engine.services.rule_matcher import RuleMatcher
from promo_engine.services.usage_ledger import LedgerReceipt, UsageLedger

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    """Result of applying discounts to an order."""

    breakdown: OrderDiscountBreakdown
    allocation: AllocationResult
    receipt: LedgerReceipt
    attempts: int


class CheckoutService:
    """Run allocation, resolution, aggregation and commit for one order."""

    def __init__(
        self,
        db: Session,
        matcher: RuleMatcher | None = None,
        allow_flash_stacking: bool | None = None,
        max_attempts: int | None = None,
    ):
        self.db = db
        if allow_flash_stacking is None:
            allow_flash_stacking = settings.ALLOW_FLASH_SALE_PROMOTION_STACKING
        self.allow_flash_stacking = allow_flash_stacking
        self.max_attempts = max_attempts or settings.CHECKOUT_MAX_ATTEMPTS
        self.allocator = FlashSaleAllocator(db)
        self.resolver = PromotionResolver(db, matcher, allow_flash_stacking=allow_flash_stacking)
        self.ledger = UsageLedger(db)

    def evaluate(
        self,
        context: OrderContext,
        promotion_codes: Sequence[str] = (),
        now: datetime | None = None,
        timeout: float | None = None,
        require_all_flash_stock: bool = True,
    ) -> tuple[OrderDiscountBreakdown, AllocationResult]:
        """Evaluate discounts for an order without writing anything."""
        now = now or utc_now()
        if timeout is None:
            timeout = settings.EVALUATION_TIMEOUT_SECONDS
        deadline = Deadline.after(timeout)

        allocation = self.allocator.allocate(context.line_items, now, deadline=deadline)
        if require_all_flash_stock:
            allocation.raise_for_failures()

        applications: list[PromotionApplication] = []
        seen: set[str] = set()
        for code in promotion_codes:
            normalized = code.strip().upper()
            if normalized in seen:
                continue
            seen.add(normalized)
            applications.append(
                self.resolver.resolve(
                    normalized,
                    context,
                    now,
                    price_overrides=allocation.overrides,
                    deadline=deadline,
                )
            )

        breakdown = aggregate(
            context.line_items,
            allocation.overrides,
            applications,
            allow_flash_stacking=self.allow_flash_stacking,
        )
        return breakdown, allocation

    def apply_discounts(
        self,
        order_id: UUID,
        context: OrderContext,
        promotion_codes: Sequence[str] = (),
        now: datetime | None = None,
        timeout: float | None = None,
        require_all_flash_stock: bool = True,
        order_status: str = OrderStatus.PENDING_CONFIRMATION.value,
    ) -> CheckoutResult:
        """Evaluate and commit discounts, re-evaluating after a commit conflict.

        Terminal errors (unknown or inactive code, minimum not met, caps reached,
        invalid input, timeout) propagate on the first attempt. A CommitConflict
        still unresolved after ``max_attempts`` cycles is raised to the caller.
        """
        attempt = 0
        while True:
            attempt += 1
            breakdown, allocation = self.evaluate(
                context,
                promotion_codes,
                now=now,
                timeout=timeout,
                require_all_flash_stock=require_all_flash_stock,
            )
            try:
                receipt = self.ledger.commit(
                    order_id,
                    breakdown.applied_promotions,
                    breakdown.flash_overrides,
                    user_id=context.user_id,
                    breakdown=breakdown,
                    order_status=order_status,
                    now=now,
                )
            except CommitConflict as exc:
                if attempt >= self.max_attempts:
                    raise
                logger.warning(
                    "Retrying order %s after commit conflict (attempt %d/%d): %s",
                    order_id,
                    attempt,
                    self.max_attempts,
                    exc.message,
                )
                continue

            return CheckoutResult(
                breakdown=breakdown,
                allocation=allocation,
                receipt=receipt,
                attempts=attempt,
            )
