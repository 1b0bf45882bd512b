"""FlashSale and FlashSaleProduct schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class FlashSaleProductCreate(BaseModel):
    product_variant_id: UUID
    flash_sale_price: Decimal = Field(..., gt=0)
    quantity_limit: int = Field(..., gt=0)


class FlashSaleProductUpdate(BaseModel):
    id: UUID
    product_variant_id: UUID
    flash_sale_price: Decimal | None = Field(default=None, gt=0)
    quantity_limit: int | None = Field(default=None, gt=0)


class FlashSaleCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    starts_at: datetime
    ends_at: datetime
    is_active: bool = True
    banner_media_id: UUID | None = None
    products: list[FlashSaleProductCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.ends_at <= self.starts_at:
            msg = "ends_at must be after starts_at"
            raise ValueError(msg)
        return self


class FlashSaleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=255)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    is_active: bool | None = None
    banner_media_id: UUID | None = None
    products: list[FlashSaleProductUpdate | FlashSaleProductCreate] | None = None

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            msg = "ends_at must be after starts_at"
            raise ValueError(msg)
        return self

