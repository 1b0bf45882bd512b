"""Usage ledger: transactional commit of promotion redemptions and flash allocations."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promo_engine.core.errors import (
    CommitConflict,
    GlobalCapReached,
    InsufficientFlashStock,
    PerUserCapReached,
)
from promo_engine.core.money import quantize_money
from promo_engine.models.order_status_history import OrderStatus
from promo_engine.models.shared import utc_now
from promo_engine.repositories.flash_sale_allocation_repository import (
    FlashSaleAllocationRepository,
)
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.repositories.order_item_repository import OrderItemRepository
from promo_engine.repositories.order_promotion_repository import OrderPromotionRepository
from promo_engine.repositories.order_status_history_repository import (
    OrderStatusHistoryRepository,
)
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.repositories.promotion_user_usage_repository import (
    PromotionUserUsageRepository,
)

if TYPE_CHECKING:
    from promo_engine.services.discount_aggregator import OrderDiscountBreakdown
    from promo_engine.services.flash_sale_allocator import PriceOverride
    from promo_engine.services.promotion_resolver import PromotionApplication

logger = logging.getLogger(__name__)


@dataclass
class LedgerReceipt:
    """What a commit actually wrote; empty lists mean an idempotent replay."""

    order_id: UUID
    recorded_promotion_ids: list[UUID] = field(default_factory=list)
    recorded_allocation_ids: list[UUID] = field(default_factory=list)
    skipped_promotion_ids: list[UUID] = field(default_factory=list)
    skipped_allocation_line_ids: list[str] = field(default_factory=list)

    @property
    def replayed(self) -> bool:
        return not self.recorded_promotion_ids and not self.recorded_allocation_ids


@dataclass
class ReleaseReceipt:
    order_id: UUID
    released_promotion_ids: list[UUID] = field(default_factory=list)
    released_units: int = 0


class UsageLedger:
    """Record redemptions and allocations, all or nothing, once per order.

    Counters only move through the repositories' conditional increments. A
    rejected increment rolls the whole commit back and surfaces as CommitConflict;
    the caller then re-runs evaluation, since stock or caps have moved.
    """

    def __init__(self, db: Session):
        self.db = db
        self.promotion_repo = PromotionRepository(db)
        self.flash_sale_repo = FlashSaleRepository(db)
        self.order_promotion_repo = OrderPromotionRepository(db)
        self.user_usage_repo = PromotionUserUsageRepository(db)
        self.allocation_repo = FlashSaleAllocationRepository(db)
        self.order_item_repo = OrderItemRepository(db)
        self.history_repo = OrderStatusHistoryRepository(db)

    def count_user_redemptions(self, promotion_id: UUID, user_id: UUID) -> int:
        """Committed redemptions of a promotion by one user."""
        return self.user_usage_repo.get_usage_count(promotion_id, user_id)

    def has_redemption(self, order_id: UUID, promotion_id: UUID) -> bool:
        existing = self.order_promotion_repo.get_by_order_and_promotion(order_id, promotion_id)
        return existing is not None

    def commit(
        self,
        order_id: UUID,
        promotion_applications: PromotionApplication | Sequence[PromotionApplication] | None,
        flash_allocations: Sequence[PriceOverride],
        user_id: UUID | None = None,
        breakdown: OrderDiscountBreakdown | None = None,
        order_status: str = OrderStatus.PENDING_CONFIRMATION.value,
        now: datetime | None = None,
    ) -> LedgerReceipt:
        """Commit an evaluated order in one transaction.

        Args:
            order_id: The order being placed.
            promotion_applications: Promotions honored for the order.
            flash_allocations: Flash price overrides whose stock is reserved.
            user_id: The acting user, counted against per-user caps.
            breakdown: When given, order item snapshots are written and a status
                history entry records the promotion's effect on the total.
            order_status: Current status code of the order, for the history entry.
            now: Commit time.

        Returns:
            A LedgerReceipt describing what was written.

        Raises:
            CommitConflict: If a counter ceiling or a unique key rejected the write.
        """
        now = now or utc_now()
        if promotion_applications is None:
            applications: Sequence[PromotionApplication] = ()
        elif isinstance(promotion_applications, Sequence):
            applications = promotion_applications
        else:
            applications = (promotion_applications,)

        receipt = LedgerReceipt(order_id=order_id)
        try:
            for allocation in flash_allocations:
                self._commit_allocation(order_id, allocation, now, receipt)
            for application in applications:
                self._commit_redemption(order_id, application, user_id, now, receipt)
            if breakdown is not None:
                self._record_order_items(order_id, breakdown)
                if receipt.recorded_promotion_ids and breakdown.promotion_discount > 0:
                    self._record_total_change(order_id, breakdown, user_id, order_status, now)
            self.db.commit()
        except CommitConflict:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Concurrent commit detected for order %s: %s", order_id, exc.orig)
            raise CommitConflict(order_id, "a concurrent commit wrote the same records") from exc

        if not receipt.replayed:
            logger.info(
                "Committed order %s: %d redemption(s), %d allocation(s)",
                order_id,
                len(receipt.recorded_promotion_ids),
                len(receipt.recorded_allocation_ids),
            )
        return receipt

    def release(self, order_id: UUID) -> ReleaseReceipt:
        """Give back an order's redemptions and flash stock, e.g. on cancellation.

        Safe to call repeatedly; a second call finds nothing left to release.
        """
        receipt = ReleaseReceipt(order_id=order_id)
        try:
            for allocation in self.allocation_repo.get_by_order_id(order_id):
                self.flash_sale_repo.increment_sold(
                    allocation.flash_sale_product_id,  # type: ignore[arg-type]
                    -int(allocation.quantity),
                )
                receipt.released_units += int(allocation.quantity)
                self.allocation_repo.delete(allocation)

            for order_promotion in self.order_promotion_repo.get_by_order_id(order_id):
                promotion_id: UUID = order_promotion.promotion_id  # type: ignore[assignment]
                self.promotion_repo.increment_usage(promotion_id, amount=-1)
                if order_promotion.user_id is not None:
                    self.user_usage_repo.decrement(
                        promotion_id, order_promotion.user_id  # type: ignore[arg-type]
                    )
                receipt.released_promotion_ids.append(promotion_id)
                self.order_promotion_repo.delete(order_promotion)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if receipt.released_promotion_ids or receipt.released_units:
            logger.info(
                "Released order %s: %d redemption(s), %d flash unit(s)",
                order_id,
                len(receipt.released_promotion_ids),
                receipt.released_units,
            )
        return receipt

    def _commit_allocation(
        self,
        order_id: UUID,
        allocation: PriceOverride,
        now: datetime,
        receipt: LedgerReceipt,
    ) -> None:
        existing = self.allocation_repo.get_for_line(
            order_id, allocation.flash_sale_product_id, allocation.line_id
        )
        if existing is not None:
            receipt.skipped_allocation_line_ids.append(allocation.line_id)
            return

        if not self.flash_sale_repo.increment_sold(
            allocation.flash_sale_product_id, allocation.quantity
        ):
            product = self.flash_sale_repo.get_product_by_id(allocation.flash_sale_product_id)
            remaining = 0
            if product is not None:
                self.db.refresh(product)
                remaining = max(int(product.quantity_limit) - int(product.quantity_sold), 0)
            logger.warning(
                "Flash stock ceiling rejected order %s line %s (%d requested, %d remaining)",
                order_id,
                allocation.line_id,
                allocation.quantity,
                remaining,
            )
            raise CommitConflict(
                order_id,
                "flash sale stock changed since evaluation",
                cause=InsufficientFlashStock(
                    line_id=allocation.line_id,
                    flash_sale_product_id=allocation.flash_sale_product_id,
                    requested=allocation.quantity,
                    remaining=remaining,
                ),
            )

        record = self.allocation_repo.create(
            order_id=order_id,
            flash_sale_product_id=allocation.flash_sale_product_id,
            line_id=allocation.line_id,
            quantity=allocation.quantity,
            allocated_at=now,
        )
        receipt.recorded_allocation_ids.append(record.id)  # type: ignore[arg-type]

    def _commit_redemption(
        self,
        order_id: UUID,
        application: PromotionApplication,
        user_id: UUID | None,
        now: datetime,
        receipt: LedgerReceipt,
    ) -> None:
        if self.has_redemption(order_id, application.promotion_id):
            receipt.skipped_promotion_ids.append(application.promotion_id)
            return

        if not self.promotion_repo.increment_usage(application.promotion_id):
            logger.warning(
                "Usage limit rejected redemption of %s by order %s", application.code, order_id
            )
            raise CommitConflict(
                order_id,
                f"promotion '{application.code}' reached its usage limit",
                cause=GlobalCapReached(application.code),
            )

        limit = application.usage_limit_per_user
        if user_id is not None and not self.user_usage_repo.increment(
            application.promotion_id, user_id, limit
        ):
            logger.warning(
                "Per-user limit rejected redemption of %s by user %s", application.code, user_id
            )
            raise CommitConflict(
                order_id,
                f"promotion '{application.code}' reached its per-user limit",
                cause=PerUserCapReached(application.code, int(limit or 0)),
            )

        self.order_promotion_repo.create(
            order_id=order_id,
            promotion_id=application.promotion_id,
            user_id=user_id,
            amount_discounted=quantize_money(application.discount_amount),
            applied_at=now,
        )
        receipt.recorded_promotion_ids.append(application.promotion_id)

    def _record_order_items(self, order_id: UUID, breakdown: OrderDiscountBreakdown) -> None:
        if self.order_item_repo.get_by_order_id(order_id):
            return
        for line in breakdown.lines:
            self.order_item_repo.create(
                order_id=order_id,
                line_id=line.line_id,
                product_variant_id=line.product_variant_id,
                quantity=line.quantity,
                unit_price_at_purchase=line.unit_price_at_purchase,
                line_item_total_amount=line.line_item_total_amount,
                line_item_discount_amount=line.line_item_discount_amount,
                product_name_snapshot=line.product_name,
                variant_sku_snapshot=line.variant_sku,
            )

    def _record_total_change(
        self,
        order_id: UUID,
        breakdown: OrderDiscountBreakdown,
        user_id: UUID | None,
        order_status: str,
        now: datetime,
    ) -> None:
        self.history_repo.append(
            order_id=order_id,
            previous_status_code=order_status,
            new_status_code=order_status,
            notes=(
                f"Promotion {breakdown.applied_promotion_code} applied: "
                f"total {breakdown.subtotal} -> {breakdown.total}"
            ),
            changed_at=now,
            changed_by_user_id=user_id,
        )
