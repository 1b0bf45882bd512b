"""Applicability rules scoping a promotion to products, categories, variants or users."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class RuleType(str, Enum):
    PRODUCT = "product"
    CATEGORY = "category"
    USER = "user"
    PRODUCT_VARIANT = "product_variant"


class ApplicabilityType(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


class PromotionApplicabilityRule(Base):
    """A single include/exclude rule belonging to one promotion."""

    __tablename__ = "promotion_applicability_rules"
    __table_args__ = (
        UniqueConstraint(
            "promotion_id",
            "rule_type",
            "entity_id",
            "applicability_type",
            name="uq_promotion_rules_promotion_type_entity_applicability",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    promotion_id = Column(
        UUIDType, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rule_type = Column(String(50), nullable=False)
    entity_id = Column(UUIDType, nullable=False)
    applicability_type = Column(String(20), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
