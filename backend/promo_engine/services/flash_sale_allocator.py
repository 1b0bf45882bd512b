"""Flash sale allocation: find active flash prices and check limited stock."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.core.config import settings
from promo_engine.core.deadline import Deadline
from promo_engine.core.errors import InsufficientFlashStock
from promo_engine.core.money import to_decimal
from promo_engine.models.shared import ensure_utc, utc_now
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.schemas.order import OrderLineItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceOverride:
    """A line item's unit price replaced by a flash sale price.

    Also the allocation the usage ledger commits against flash stock.
    """

    line_id: str
    flash_sale_id: UUID
    flash_sale_product_id: UUID
    product_variant_id: UUID
    quantity: int
    original_unit_price: Decimal
    flash_sale_price: Decimal

    @property
    def savings(self) -> Decimal:
        return (self.original_unit_price - self.flash_sale_price) * self.quantity


@dataclass(frozen=True)
class AllocationResult:
    """Per-line outcome of an allocation attempt.

    Success is partial: lines in ``overrides`` got the flash price, lines in
    ``failures`` did not. Whether a failure aborts the order is the caller's call.
    """

    overrides: tuple[PriceOverride, ...] = ()
    failures: tuple[InsufficientFlashStock, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    def override_for(self, line_id: str) -> PriceOverride | None:
        for override in self.overrides:
            if override.line_id == line_id:
                return override
        return None

    def raise_for_failures(self) -> None:
        if self.failures:
            raise self.failures[0]


class FlashSaleAllocator:
    """Evaluate flash sale price overrides for an order's line items.

    Evaluation only reads stock. The reservation itself is the conditional
    increment the usage ledger performs at commit, so the stock seen here can be
    stale by the time the order commits; the ledger's rejection is authoritative.
    """

    def __init__(self, db: Session):
        self.db = db
        self.flash_sale_repo = FlashSaleRepository(db)

    def allocate(
        self,
        line_items: Sequence[OrderLineItem],
        now: datetime | None = None,
        deadline: Deadline | None = None,
    ) -> AllocationResult:
        """Find active flash prices and check remaining stock for each line.

        Lines for the same variant draw on the same stock in line order.
        """
        now = ensure_utc(now) if now else utc_now()
        deadline = deadline or Deadline.after(settings.EVALUATION_TIMEOUT_SECONDS)
        deadline.check("flash sale lookup")

        variant_ids = list({item.product_variant_id for item in line_items})
        active = self.flash_sale_repo.get_active_products_for_variants(variant_ids, now)

        overrides: list[PriceOverride] = []
        failures: list[InsufficientFlashStock] = []
        requested: dict[UUID, int] = {}

        for item in line_items:
            deadline.check("flash sale allocation")
            product = active.get(item.product_variant_id)
            if product is None:
                continue

            flash_price = to_decimal(product.flash_sale_price)
            if flash_price >= item.unit_price:
                continue

            already = requested.get(product.id, 0)
            remaining = int(product.quantity_limit) - int(product.quantity_sold) - already
            if remaining < item.quantity:
                logger.info(
                    "Flash stock short for variant %s: %d requested, %d remaining",
                    item.product_variant_id,
                    item.quantity,
                    max(remaining, 0),
                )
                failures.append(
                    InsufficientFlashStock(
                        line_id=item.line_id,
                        flash_sale_product_id=product.id,  # type: ignore[arg-type]
                        requested=item.quantity,
                        remaining=max(remaining, 0),
                    )
                )
                continue

            requested[product.id] = already + item.quantity  # type: ignore[index]
            overrides.append(
                PriceOverride(
                    line_id=item.line_id,
                    flash_sale_id=product.flash_sale_id,  # type: ignore[arg-type]
                    flash_sale_product_id=product.id,  # type: ignore[arg-type]
                    product_variant_id=item.product_variant_id,
                    quantity=item.quantity,
                    original_unit_price=item.unit_price,
                    flash_sale_price=flash_price,
                )
            )

        return AllocationResult(overrides=tuple(overrides), failures=tuple(failures))
