"""Promotion management service."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.core.errors import DuplicatePromotionCode, PromotionNotFound
from promo_engine.models.promotion import Promotion
from promo_engine.models.promotion_applicability_rule import PromotionApplicabilityRule
from promo_engine.models.shared import ensure_utc
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.schemas.promotion import PromotionCreate, PromotionUpdate

logger = logging.getLogger(__name__)


class PromotionService:
    """Service for promotion business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.promotion_repo = PromotionRepository(db)

    def create_promotion(self, data: PromotionCreate) -> Promotion:
        """Create a promotion and its applicability rules.

        Raises:
            DuplicatePromotionCode: If the code is already taken.
        """
        if self.promotion_repo.code_exists(data.code):
            raise DuplicatePromotionCode(data.code)

        promotion = self.promotion_repo.create(data)
        logger.info(
            "Created promotion %s with %d rule(s)", promotion.code, len(data.applicability_rules)
        )
        return promotion

    def get_promotion(self, promotion_id: UUID) -> Promotion:
        promotion = self.promotion_repo.get_by_id(promotion_id)
        if not promotion:
            raise PromotionNotFound(str(promotion_id))
        return promotion

    def get_rules(self, promotion_id: UUID) -> list[PromotionApplicabilityRule]:
        self.get_promotion(promotion_id)
        return self.promotion_repo.get_rules(promotion_id)

    def list_promotions(
        self,
        skip: int = 0,
        limit: int = 10,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[Promotion]:
        return self.promotion_repo.get_all(
            skip=skip, limit=limit, search=search, is_active=is_active
        )

    def update_promotion(self, promotion_id: UUID, data: PromotionUpdate) -> Promotion:
        """Update a promotion; a given rule list replaces the current rule set.

        Raises:
            PromotionNotFound: If the promotion does not exist.
            DuplicatePromotionCode: If the new code belongs to another promotion.
            ValueError: If the resulting active window is empty.
        """
        promotion = self.get_promotion(promotion_id)

        if data.code and data.code != promotion.code:
            if self.promotion_repo.code_exists(data.code, exclude_id=promotion_id):
                raise DuplicatePromotionCode(data.code)

        starts_at = ensure_utc(data.starts_at or promotion.starts_at)  # type: ignore[arg-type]
        ends_at = ensure_utc(data.ends_at or promotion.ends_at)  # type: ignore[arg-type]
        if (data.starts_at or data.ends_at) and starts_at >= ends_at:
            msg = "starts_at must be before ends_at"
            raise ValueError(msg)

        try:
            promotion, saved, deleted = self.promotion_repo.update(promotion, data)
        except Exception:
            self.db.rollback()
            raise

        if data.applicability_rules is not None:
            logger.info(
                "Promotion %s rules replaced: %d saved, %d deleted", promotion.code, saved, deleted
            )
        logger.info("Updated promotion %s", promotion.code)
        return promotion

    def set_active(self, promotion_id: UUID, is_active: bool) -> Promotion:
        promotion = self.promotion_repo.set_active(self.get_promotion(promotion_id), is_active)
        logger.info(
            "Promotion %s is now %s", promotion.code, "active" if is_active else "inactive"
        )
        return promotion

    def delete_promotion(self, promotion_id: UUID) -> None:
        promotion = self.get_promotion(promotion_id)
        if promotion.current_usage_count:
            msg = f"Cannot delete promotion {promotion.code} after it has been redeemed"
            raise ValueError(msg)
        code = promotion.code
        self.promotion_repo.delete(promotion)
        logger.info("Deleted promotion %s", code)
