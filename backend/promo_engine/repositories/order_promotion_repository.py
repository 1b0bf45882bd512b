"""OrderPromotion repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from promo_engine.models.order_promotion import OrderPromotion


class OrderPromotionRepository:
    """Repository for OrderPromotion model.

    Writes only flush; the usage ledger owns the surrounding transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_order_and_promotion(
        self, order_id: UUID, promotion_id: UUID
    ) -> OrderPromotion | None:
        return (
            self.db.query(OrderPromotion)
            .filter(
                OrderPromotion.order_id == order_id,
                OrderPromotion.promotion_id == promotion_id,
            )
            .first()
        )

    def get_by_order_id(self, order_id: UUID) -> list[OrderPromotion]:
        return (
            self.db.query(OrderPromotion)
            .filter(OrderPromotion.order_id == order_id)
            .order_by(OrderPromotion.applied_at.asc())
            .all()
        )

    def count_by_promotion_and_user(self, promotion_id: UUID, user_id: UUID) -> int:
        return (
            self.db.query(func.count(OrderPromotion.id))
            .filter(
                OrderPromotion.promotion_id == promotion_id,
                OrderPromotion.user_id == user_id,
            )
            .scalar()
            or 0
        )

    def create(
        self,
        order_id: UUID,
        promotion_id: UUID,
        user_id: UUID | None,
        amount_discounted: Decimal,
        applied_at: datetime,
    ) -> OrderPromotion:
        order_promotion = OrderPromotion(
            order_id=order_id,
            promotion_id=promotion_id,
            user_id=user_id,
            amount_discounted=amount_discounted,
            applied_at=applied_at,
        )
        self.db.add(order_promotion)
        self.db.flush()
        return order_promotion

    def delete(self, order_promotion: OrderPromotion) -> None:
        self.db.delete(order_promotion)
        self.db.flush()
