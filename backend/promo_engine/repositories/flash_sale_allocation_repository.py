"""FlashSaleAllocation repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from promo_engine.models.flash_sale_allocation import FlashSaleAllocation


class FlashSaleAllocationRepository:
    """Repository for FlashSaleAllocation model."""

    def __init__(self, db: Session):
        self.db = db

    def get_for_line(
        self, order_id: UUID, flash_sale_product_id: UUID, line_id: str
    ) -> FlashSaleAllocation | None:
        return (
            self.db.query(FlashSaleAllocation)
            .filter(
                FlashSaleAllocation.order_id == order_id,
                FlashSaleAllocation.flash_sale_product_id == flash_sale_product_id,
                FlashSaleAllocation.line_id == line_id,
            )
            .first()
        )

    def get_by_order_id(self, order_id: UUID) -> list[FlashSaleAllocation]:
        return (
            self.db.query(FlashSaleAllocation)
            .filter(FlashSaleAllocation.order_id == order_id)
            .all()
        )

    def total_allocated(self, flash_sale_product_id: UUID) -> int:
        """Sum of committed allocations against one flash sale product."""
        return (
            self.db.query(func.coalesce(func.sum(FlashSaleAllocation.quantity), 0))
            .filter(FlashSaleAllocation.flash_sale_product_id == flash_sale_product_id)
            .scalar()
        )

    def create(
        self,
        order_id: UUID,
        flash_sale_product_id: UUID,
        line_id: str,
        quantity: int,
        allocated_at: datetime,
    ) -> FlashSaleAllocation:
        allocation = FlashSaleAllocation(
            order_id=order_id,
            flash_sale_product_id=flash_sale_product_id,
            line_id=line_id,
            quantity=quantity,
            allocated_at=allocated_at,
        )
        self.db.add(allocation)
        self.db.flush()
        return allocation

    def delete(self, allocation: FlashSaleAllocation) -> None:
        self.db.delete(allocation)
        self.db.flush()
