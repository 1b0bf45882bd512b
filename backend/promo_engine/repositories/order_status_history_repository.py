"""Repository for the append-only OrderStatusHistory trail."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.models.order_status_history import OrderStatusHistory


class OrderStatusHistoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        *,
        order_id: UUID,
        new_status_code: str,
        changed_at: datetime,
        previous_status_code: str | None = None,
        notes: str | None = None,
        changed_by_user_id: UUID | None = None,
    ) -> OrderStatusHistory:
        entry = OrderStatusHistory(
            order_id=order_id,
            previous_status_code=previous_status_code,
            new_status_code=new_status_code,
            notes=notes,
            changed_at=changed_at,
            changed_by_user_id=changed_by_user_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_by_order_id(self, order_id: UUID) -> list[OrderStatusHistory]:
        return (
            self.db.query(OrderStatusHistory)
            .filter(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.changed_at.asc())
            .all()
        )
