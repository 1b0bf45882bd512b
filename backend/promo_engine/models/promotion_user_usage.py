"""Per-user redemption counter for promotions with a per-user cap."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func

from promo_engine.core.database import Base
from promo_engine.models.shared import UUIDType, generate_uuid


class PromotionUserUsage(Base):
    """How many times one user has redeemed one promotion."""

    __tablename__ = "promotion_user_usages"
    __table_args__ = (
        UniqueConstraint("promotion_id", "user_id", name="uq_promotion_user_usages_promotion_user"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    promotion_id = Column(
        UUIDType, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUIDType, nullable=False, index=True)
    usage_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
