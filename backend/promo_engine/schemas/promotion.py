"""Promotion and applicability rule schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from promo_engine.models.promotion import DiscountType
from promo_engine.models.promotion_applicability_rule import ApplicabilityType, RuleType


class ApplicabilityRuleCreate(BaseModel):
    rule_type: RuleType
    entity_id: UUID
    applicability_type: ApplicabilityType


class ApplicabilityRuleUpdate(BaseModel):
    id: UUID
    rule_type: RuleType | None = None
    entity_id: UUID | None = None
    applicability_type: ApplicabilityType | None = None


def _normalize_code(code: str) -> str:
    return code.strip().upper()


class PromotionCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=1000)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    minimum_order_value: Decimal | None = Field(default=None, gt=0)
    maximum_usage_limit: int | None = Field(default=None, gt=0)
    usage_limit_per_user: int | None = Field(default=None, gt=0)
    starts_at: datetime
    ends_at: datetime
    is_active: bool = True
    applicability_rules: list[ApplicabilityRuleCreate] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return _normalize_code(v)

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.starts_at >= self.ends_at:
            msg = "starts_at must be before ends_at"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def validate_percentage(self) -> Self:
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            msg = "percentage discount_value cannot exceed 100"
            raise ValueError(msg)
        return self


class PromotionUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=1000)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, gt=0)
    minimum_order_value: Decimal | None = Field(default=None, gt=0)
    maximum_usage_limit: int | None = Field(default=None, gt=0)
    usage_limit_per_user: int | None = Field(default=None, gt=0)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    is_active: bool | None = None
    applicability_rules: list[ApplicabilityRuleUpdate | ApplicabilityRuleCreate] | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return _normalize_code(v) if v is not None else None

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.starts_at and self.ends_at and self.starts_at >= self.ends_at:
            msg = "starts_at must be before ends_at when updating"
            raise ValueError(msg)
        return self

