"""Flash sale management service."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.core.errors import DuplicateFlashSaleVariant, FlashSaleNotFound
from promo_engine.models.flash_sale import FlashSale
from promo_engine.models.flash_sale_product import FlashSaleProduct
from promo_engine.models.shared import ensure_utc
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.schemas.flash_sale import (
    FlashSaleCreate,
    FlashSaleProductCreate,
    FlashSaleProductUpdate,
    FlashSaleUpdate,
)

logger = logging.getLogger(__name__)


def _check_unique_variants(
    products: list[FlashSaleProductCreate] | list[FlashSaleProductUpdate | FlashSaleProductCreate],
) -> None:
    seen: set[UUID] = set()
    for product in products:
        if product.product_variant_id in seen:
            raise DuplicateFlashSaleVariant(product.product_variant_id)
        seen.add(product.product_variant_id)


class FlashSaleService:
    """Service for flash sale business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.flash_sale_repo = FlashSaleRepository(db)

    def create_flash_sale(self, data: FlashSaleCreate) -> FlashSale:
        """Create a flash sale with its products.

        Raises:
            DuplicateFlashSaleVariant: If a variant is listed more than once.
        """
        _check_unique_variants(data.products)
        flash_sale = self.flash_sale_repo.create(data)
        logger.info(
            "Created flash sale %s (%s) with %d product(s)",
            flash_sale.name,
            flash_sale.id,
            len(data.products),
        )
        return flash_sale

    def get_flash_sale(self, flash_sale_id: UUID) -> FlashSale:
        flash_sale = self.flash_sale_repo.get_by_id(flash_sale_id)
        if not flash_sale:
            raise FlashSaleNotFound(flash_sale_id)
        return flash_sale

    def get_products(self, flash_sale_id: UUID) -> list[FlashSaleProduct]:
        self.get_flash_sale(flash_sale_id)
        return self.flash_sale_repo.get_products(flash_sale_id)

    def list_flash_sales(
        self,
        skip: int = 0,
        limit: int = 10,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[FlashSale]:
        return self.flash_sale_repo.get_all(
            skip=skip, limit=limit, search=search, is_active=is_active
        )

    def update_flash_sale(self, flash_sale_id: UUID, data: FlashSaleUpdate) -> FlashSale:
        """Update a flash sale; a given product list replaces the current products.

        Raises:
            FlashSaleNotFound: If the flash sale does not exist.
            DuplicateFlashSaleVariant: If a variant is listed more than once.
            ValueError: If the window is empty, a sold product would be removed, or
                a quantity_limit would drop below the units already sold.
        """
        flash_sale = self.get_flash_sale(flash_sale_id)
        if data.products is not None:
            _check_unique_variants(data.products)

        starts_at = ensure_utc(data.starts_at or flash_sale.starts_at)  # type: ignore[arg-type]
        ends_at = ensure_utc(data.ends_at or flash_sale.ends_at)  # type: ignore[arg-type]
        if (data.starts_at or data.ends_at) and ends_at <= starts_at:
            msg = "ends_at must be after starts_at"
            raise ValueError(msg)

        try:
            flash_sale, saved, deleted = self.flash_sale_repo.update(flash_sale, data)
        except Exception:
            self.db.rollback()
            raise

        if data.products is not None:
            logger.info(
                "Flash sale %s products replaced: %d saved, %d deleted",
                flash_sale_id,
                saved,
                deleted,
            )
        logger.info("Updated flash sale %s", flash_sale_id)
        return flash_sale

    def set_active(self, flash_sale_id: UUID, is_active: bool) -> FlashSale:
        flash_sale = self.flash_sale_repo.set_active(self.get_flash_sale(flash_sale_id), is_active)
        logger.info(
            "Flash sale %s is now %s", flash_sale_id, "active" if is_active else "inactive"
        )
        return flash_sale

    def delete_flash_sale(self, flash_sale_id: UUID) -> None:
        """Delete a flash sale.

        Raises:
            ValueError: If any of its products already has committed sales.
        """
        flash_sale = self.get_flash_sale(flash_sale_id)
        products = self.flash_sale_repo.get_products(flash_sale_id)
        if any(product.quantity_sold for product in products):
            msg = "Cannot delete a flash sale with committed sales"
            raise ValueError(msg)
        self.flash_sale_repo.delete(flash_sale)
        logger.info("Deleted flash sale %s", flash_sale_id)
