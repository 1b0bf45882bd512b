"""OrderItem repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.models.order_item import OrderItem


class OrderItemRepository:
    """Repository for OrderItem model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_order_id(self, order_id: UUID) -> list[OrderItem]:
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at.asc())
            .all()
        )

    def create(
        self,
        order_id: UUID,
        line_id: str,
        product_variant_id: UUID,
        quantity: int,
        unit_price_at_purchase: Decimal,
        line_item_total_amount: Decimal,
        line_item_discount_amount: Decimal,
        product_name_snapshot: str | None = None,
        variant_sku_snapshot: str | None = None,
    ) -> OrderItem:
        item = OrderItem(
            order_id=order_id,
            line_id=line_id,
            product_variant_id=product_variant_id,
            quantity=quantity,
            unit_price_at_purchase=unit_price_at_purchase,
            line_item_total_amount=line_item_total_amount,
            line_item_discount_amount=line_item_discount_amount,
            product_name_snapshot=product_name_snapshot,
            variant_sku_snapshot=variant_sku_snapshot,
        )
        self.db.add(item)
        self.db.flush()
        return item
