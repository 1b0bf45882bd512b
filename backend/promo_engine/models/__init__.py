from promo_engine.models.flash_sale import FlashSale
from promo_engine.models.flash_sale_allocation import FlashSaleAllocation
from promo_engine.models.flash_sale_product import FlashSaleProduct
from promo_engine.models.order_item import OrderItem
from promo_engine.models.order_promotion import OrderPromotion
from promo_engine.models.order_status_history import OrderStatus, OrderStatusHistory
from promo_engine.models.promotion import DiscountType, Promotion
from promo_engine.models.promotion_applicability_rule import (
    ApplicabilityType,
    PromotionApplicabilityRule,
    RuleType,
)
from promo_engine.models.promotion_user_usage import PromotionUserUsage

__all__ = [
    "ApplicabilityType",
    "DiscountType",
    "FlashSale",
    "FlashSaleAllocation",
    "FlashSaleProduct",
    "OrderItem",
    "OrderPromotion",
    "OrderStatus",
    "OrderStatusHistory",
    "Promotion",
    "PromotionApplicabilityRule",
    "PromotionUserUsage",
    "RuleType",
]
