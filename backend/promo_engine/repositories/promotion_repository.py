"""Promotion repository for data access."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from promo_engine.models.promotion import Promotion
from promo_engine.models.promotion_applicability_rule import PromotionApplicabilityRule
from promo_engine.repositories.counters import increment_with_ceiling
from promo_engine.schemas.promotion import (
    ApplicabilityRuleCreate,
    ApplicabilityRuleUpdate,
    PromotionCreate,
    PromotionUpdate,
)


class PromotionRepository:
    """Repository for Promotion and PromotionApplicabilityRule models."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[Promotion]:
        """Get all promotions with optional filters."""
        query = self.db.query(Promotion)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Promotion.code.ilike(pattern), Promotion.description.ilike(pattern))
            )
        if is_active is not None:
            query = query.filter(Promotion.is_active == is_active)

        return query.order_by(Promotion.created_at.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, promotion_id: UUID) -> Promotion | None:
        """Get a promotion by ID."""
        return self.db.query(Promotion).filter(Promotion.id == promotion_id).first()

    def get_by_code(self, code: str) -> Promotion | None:
        """Get a promotion by code (codes are stored upper-case)."""
        return self.db.query(Promotion).filter(Promotion.code == code.strip().upper()).first()

    def code_exists(self, code: str, exclude_id: UUID | None = None) -> bool:
        query = self.db.query(Promotion.id).filter(Promotion.code == code)
        if exclude_id is not None:
            query = query.filter(Promotion.id != exclude_id)
        return query.first() is not None

    def get_rules(self, promotion_id: UUID) -> list[PromotionApplicabilityRule]:
        """Get the applicability rules of a promotion."""
        return (
            self.db.query(PromotionApplicabilityRule)
            .filter(PromotionApplicabilityRule.promotion_id == promotion_id)
            .order_by(PromotionApplicabilityRule.created_at.asc())
            .all()
        )

    def create(self, data: PromotionCreate) -> Promotion:
        """Create a promotion together with its applicability rules."""
        promotion = Promotion(
            code=data.code,
            description=data.description,
            discount_type=data.discount_type.value,
            discount_value=data.discount_value,
            minimum_order_value=data.minimum_order_value,
            maximum_usage_limit=data.maximum_usage_limit,
            usage_limit_per_user=data.usage_limit_per_user,
            starts_at=data.starts_at,
            ends_at=data.ends_at,
            is_active=data.is_active,
            current_usage_count=0,
        )
        self.db.add(promotion)
        self.db.flush()
        for rule in data.applicability_rules:
            self.db.add(self._build_rule(promotion.id, rule))
        self.db.commit()
        self.db.refresh(promotion)
        return promotion

    def update(self, promotion: Promotion, data: PromotionUpdate) -> tuple[Promotion, int, int]:
        """Update promotion fields and, when given, replace its rule set.

        Returns:
            The promotion and the number of rules saved and deleted.
        """
        update_data = data.model_dump(exclude_unset=True, exclude={"applicability_rules"})
        if "discount_type" in update_data and update_data["discount_type"]:
            update_data["discount_type"] = update_data["discount_type"].value

        for key, value in update_data.items():
            setattr(promotion, key, value)

        saved = deleted = 0
        if data.applicability_rules is not None:
            saved, deleted = self._replace_rules(promotion.id, data.applicability_rules)

        self.db.commit()
        self.db.refresh(promotion)
        return promotion, saved, deleted

    def set_active(self, promotion: Promotion, is_active: bool) -> Promotion:
        promotion.is_active = is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(promotion)
        return promotion

    def delete(self, promotion: Promotion) -> None:
        """Delete a promotion and its rules."""
        self.db.query(PromotionApplicabilityRule).filter(
            PromotionApplicabilityRule.promotion_id == promotion.id
        ).delete(synchronize_session=False)
        self.db.delete(promotion)
        self.db.commit()

    def increment_usage(self, promotion_id: UUID, amount: int = 1) -> bool:
        """Atomically bump current_usage_count unless maximum_usage_limit would be exceeded."""
        return increment_with_ceiling(
            self.db,
            Promotion,
            Promotion.current_usage_count,
            Promotion.id == promotion_id,
            amount=amount,
            ceiling=Promotion.maximum_usage_limit,
        )

    def _replace_rules(
        self,
        promotion_id: UUID,
        rules: list[ApplicabilityRuleUpdate | ApplicabilityRuleCreate],
    ) -> tuple[int, int]:
        existing = {rule.id: rule for rule in self.get_rules(promotion_id)}
        updates: list[ApplicabilityRuleUpdate] = []
        creates: list[ApplicabilityRuleCreate] = []

        for rule_data in rules:
            if isinstance(rule_data, ApplicabilityRuleCreate):
                creates.append(rule_data)
            elif rule_data.id in existing:
                updates.append(rule_data)
            elif rule_data.rule_type and rule_data.entity_id and rule_data.applicability_type:
                # Unknown id carrying a full rule is stored as a new rule
                creates.append(
                    ApplicabilityRuleCreate(
                        rule_type=rule_data.rule_type,
                        entity_id=rule_data.entity_id,
                        applicability_type=rule_data.applicability_type,
                    )
                )

        kept = {rule_data.id for rule_data in updates}
        stale = [rule for rule_id, rule in existing.items() if rule_id not in kept]
        # Deletes must reach the database before inserts that may reuse the same key
        for rule in stale:
            self.db.delete(rule)
        self.db.flush()

        for rule_data in updates:
            rule = existing[rule_data.id]
            changes = rule_data.model_dump(exclude_unset=True, exclude={"id"})
            for key, value in changes.items():
                if value is not None:
                    setattr(rule, key, getattr(value, "value", value))
        for rule_data in creates:
            self.db.add(self._build_rule(promotion_id, rule_data))
        self.db.flush()
        return len(updates) + len(creates), len(stale)

    @staticmethod
    def _build_rule(
        promotion_id: UUID, data: ApplicabilityRuleCreate
    ) -> PromotionApplicabilityRule:
        return PromotionApplicabilityRule(
            promotion_id=promotion_id,
            rule_type=data.rule_type.value,
            entity_id=data.entity_id,
            applicability_type=data.applicability_type.value,
        )
