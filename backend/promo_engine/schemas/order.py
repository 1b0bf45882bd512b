"""Order input schemas consumed by the engine."""

from decimal import Decimal
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from promo_engine.core.errors import OrderValidationError


class OrderLineItem(BaseModel):
    """A validated order line candidate supplied by the order-creation flow."""

    model_config = ConfigDict(frozen=True)

    line_id: str = Field(..., min_length=1, max_length=64)
    product_id: UUID
    product_variant_id: UUID
    category_id: UUID | None = None
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    product_name: str | None = Field(default=None, max_length=255)
    variant_sku: str | None = Field(default=None, max_length=100)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderContext(BaseModel):
    """The acting user and the order's line items."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID | None = None
    role_codes: tuple[str, ...] = ()
    line_items: tuple[OrderLineItem, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique_line_ids(self) -> Self:
        """Line ids key per-line results, so they must be unique."""
        seen: set[str] = set()
        for item in self.line_items:
            if item.line_id in seen:
                msg = f"duplicate line_id '{item.line_id}'"
                raise ValueError(msg)
            seen.add(item.line_id)
        return self

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.line_items), Decimal("0"))

    @classmethod
    def build(cls, data: dict[str, Any]) -> "OrderContext":
        """Validate raw input, wrapping failures in OrderValidationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise OrderValidationError("Invalid order input", errors=exc.errors()) from exc
