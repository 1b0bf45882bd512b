from promo_engine.repositories.flash_sale_allocation_repository import (
    FlashSaleAllocationRepository,
)
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.repositories.order_item_repository import OrderItemRepository
from promo_engine.repositories.order_promotion_repository import OrderPromotionRepository
from promo_engine.repositories.order_status_history_repository import (
    OrderStatusHistoryRepository,
)
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.repositories.promotion_user_usage_repository import (
    PromotionUserUsageRepository,
)

__all__ = [
    "FlashSaleAllocationRepository",
    "FlashSaleRepository",
    "OrderItemRepository",
    "OrderPromotionRepository",
    "OrderStatusHistoryRepository",
    "PromotionRepository",
    "PromotionUserUsageRepository",
]
