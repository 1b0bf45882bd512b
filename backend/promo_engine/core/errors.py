"""Typed errors surfaced by the promotion engine.

Every error carries a stable ``code`` so the order-placement flow can map it to a
specific user-facing reason, and a ``retryable`` flag telling the caller whether
re-running the full evaluation and commit cycle may succeed.
"""

from typing import Any
from uuid import UUID


class PromotionEngineError(Exception):
    """Base class for all engine errors."""

    code = "engine_error"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class PromotionNotFound(PromotionEngineError):
    code = "not_found"

    def __init__(self, code: str):
        super().__init__(f"Promotion '{code}' not found", promotion_code=code)


class PromotionInactive(PromotionEngineError):
    code = "inactive"

    def __init__(self, code: str, reason: str = "Promotion is not active"):
        super().__init__(reason, promotion_code=code)


class MinimumNotMet(PromotionEngineError):
    code = "minimum_not_met"

    def __init__(self, code: str, subtotal: Any, minimum: Any):
        super().__init__(
            f"Order subtotal {subtotal} is below the minimum of {minimum} for '{code}'",
            promotion_code=code,
            subtotal=str(subtotal),
            minimum=str(minimum),
        )


class GlobalCapReached(PromotionEngineError):
    code = "global_cap_reached"

    def __init__(self, code: str):
        super().__init__(f"Promotion '{code}' has reached its usage limit", promotion_code=code)


class PerUserCapReached(PromotionEngineError):
    code = "per_user_cap_reached"

    def __init__(self, code: str, limit: int):
        super().__init__(
            f"You have already used promotion '{code}' the maximum of {limit} time(s)",
            promotion_code=code,
            limit=limit,
        )


class InsufficientFlashStock(PromotionEngineError):
    code = "insufficient_flash_stock"
    retryable = True

    def __init__(self, line_id: str, flash_sale_product_id: UUID, requested: int, remaining: int):
        super().__init__(
            f"Only {remaining} unit(s) left in the flash sale, {requested} requested",
            line_id=line_id,
            flash_sale_product_id=str(flash_sale_product_id),
            requested=requested,
            remaining=remaining,
        )
        self.line_id = line_id
        self.flash_sale_product_id = flash_sale_product_id
        self.requested = requested
        self.remaining = remaining


class CommitConflict(PromotionEngineError):
    """Raised when the store rejects a commit; the caller must re-evaluate."""

    code = "commit_conflict"
    retryable = True

    def __init__(self, order_id: UUID, reason: str, cause: PromotionEngineError | None = None):
        super().__init__(
            f"Could not commit discounts for order {order_id}: {reason}",
            order_id=str(order_id),
        )
        self.order_id = order_id
        self.cause = cause


class EvaluationTimeout(PromotionEngineError):
    code = "timeout"

    def __init__(self, stage: str):
        super().__init__(f"Evaluation deadline exceeded during {stage}", stage=stage)


class OrderValidationError(PromotionEngineError):
    code = "validation_error"

    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(message, errors=errors or [])


class DuplicatePromotionCode(PromotionEngineError):
    code = "duplicate_code"

    def __init__(self, code: str):
        super().__init__(f"Promotion code '{code}' already exists", promotion_code=code)


class DuplicateFlashSaleVariant(PromotionEngineError):
    code = "duplicate_variant"

    def __init__(self, product_variant_id: UUID):
        super().__init__(
            f"Product variant {product_variant_id} appears more than once in the flash sale",
            product_variant_id=str(product_variant_id),
        )


class FlashSaleNotFound(PromotionEngineError):
    code = "not_found"

    def __init__(self, flash_sale_id: UUID):
        super().__init__(f"Flash sale {flash_sale_id} not found", flash_sale_id=str(flash_sale_id))


class PromotionNotApplicable(PromotionEngineError):
    code = "not_applicable"

    def __init__(self, code: str):
        super().__init__(
            f"Promotion '{code}' does not apply to any item in this order", promotion_code=code
        )
