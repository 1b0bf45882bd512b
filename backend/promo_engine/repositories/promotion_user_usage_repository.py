"""PromotionUserUsage repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.models.promotion_user_usage import PromotionUserUsage
from promo_engine.models.shared import generate_uuid
from promo_engine.repositories.counters import increment_with_ceiling, insert_ignoring_conflict


class PromotionUserUsageRepository:
    """Repository for PromotionUserUsage model."""

    def __init__(self, db: Session):
        self.db = db

    def get_usage_count(self, promotion_id: UUID, user_id: UUID) -> int:
        usage = (
            self.db.query(PromotionUserUsage.usage_count)
            .filter(
                PromotionUserUsage.promotion_id == promotion_id,
                PromotionUserUsage.user_id == user_id,
            )
            .scalar()
        )
        return usage or 0

    def increment(
        self, promotion_id: UUID, user_id: UUID, limit: int | None, amount: int = 1
    ) -> bool:
        """Atomically count a redemption for the user unless ``limit`` would be exceeded."""
        insert_ignoring_conflict(
            self.db,
            PromotionUserUsage,
            {
                "id": generate_uuid(),
                "promotion_id": promotion_id,
                "user_id": user_id,
                "usage_count": 0,
            },
            index_elements=["promotion_id", "user_id"],
        )
        return increment_with_ceiling(
            self.db,
            PromotionUserUsage,
            PromotionUserUsage.usage_count,
            PromotionUserUsage.promotion_id == promotion_id,
            PromotionUserUsage.user_id == user_id,
            amount=amount,
            ceiling=limit,
        )

    def decrement(self, promotion_id: UUID, user_id: UUID, amount: int = 1) -> bool:
        return increment_with_ceiling(
            self.db,
            PromotionUserUsage,
            PromotionUserUsage.usage_count,
            PromotionUserUsage.promotion_id == promotion_id,
            PromotionUserUsage.user_id == user_id,
            amount=-amount,
        )
