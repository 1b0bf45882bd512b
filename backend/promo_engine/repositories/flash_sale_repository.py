"""FlashSale repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from promo_engine.models.flash_sale import FlashSale
from promo_engine.models.flash_sale_product import FlashSaleProduct
from promo_engine.models.shared import ensure_utc
from promo_engine.repositories.counters import increment_with_ceiling
from promo_engine.schemas.flash_sale import (
    FlashSaleCreate,
    FlashSaleProductCreate,
    FlashSaleProductUpdate,
    FlashSaleUpdate,
)


class FlashSaleRepository:
    """Repository for FlashSale and FlashSaleProduct models."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[FlashSale]:
        """Get all flash sales with optional filters."""
        query = self.db.query(FlashSale)

        if search:
            query = query.filter(FlashSale.name.ilike(f"%{search}%"))
        if is_active is not None:
            query = query.filter(FlashSale.is_active == is_active)

        return query.order_by(FlashSale.created_at.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, flash_sale_id: UUID) -> FlashSale | None:
        """Get a flash sale by ID."""
        return self.db.query(FlashSale).filter(FlashSale.id == flash_sale_id).first()

    def get_products(self, flash_sale_id: UUID) -> list[FlashSaleProduct]:
        """Get the products of a flash sale."""
        return (
            self.db.query(FlashSaleProduct)
            .filter(FlashSaleProduct.flash_sale_id == flash_sale_id)
            .order_by(FlashSaleProduct.created_at.asc())
            .all()
        )

    def get_product_by_id(self, flash_sale_product_id: UUID) -> FlashSaleProduct | None:
        return (
            self.db.query(FlashSaleProduct)
            .filter(FlashSaleProduct.id == flash_sale_product_id)
            .first()
        )

    def get_active_products_for_variants(
        self, variant_ids: list[UUID], now: datetime
    ) -> dict[UUID, FlashSaleProduct]:
        """Map each variant to the flash sale product offering it right now.

        When several active flash sales list the same variant, the lowest
        flash_sale_price wins, then the earliest-starting sale.
        """
        if not variant_ids:
            return {}

        rows = (
            self.db.query(FlashSaleProduct, FlashSale)
            .join(FlashSale, FlashSale.id == FlashSaleProduct.flash_sale_id)
            .filter(
                FlashSaleProduct.product_variant_id.in_(variant_ids),
                FlashSale.is_active.is_(True),
            )
            .all()
        )

        best: dict[UUID, tuple[FlashSaleProduct, FlashSale]] = {}
        for product, sale in rows:
            if not ensure_utc(sale.starts_at) <= now <= ensure_utc(sale.ends_at):
                continue
            current = best.get(product.product_variant_id)
            if current is None or (product.flash_sale_price, ensure_utc(sale.starts_at)) < (
                current[0].flash_sale_price,
                ensure_utc(current[1].starts_at),
            ):
                best[product.product_variant_id] = (product, sale)

        return {variant_id: pair[0] for variant_id, pair in best.items()}

    def create(self, data: FlashSaleCreate) -> FlashSale:
        """Create a flash sale together with its products."""
        flash_sale = FlashSale(
            name=data.name,
            starts_at=data.starts_at,
            ends_at=data.ends_at,
            is_active=data.is_active,
            banner_media_id=data.banner_media_id,
        )
        self.db.add(flash_sale)
        self.db.flush()
        for product in data.products:
            self.db.add(self._build_product(flash_sale.id, product))
        self.db.commit()
        self.db.refresh(flash_sale)
        return flash_sale

    def update(self, flash_sale: FlashSale, data: FlashSaleUpdate) -> tuple[FlashSale, int, int]:
        """Update flash sale fields and, when given, replace its product set.

        Returns:
            The flash sale and the number of products saved and deleted.
        """
        update_data = data.model_dump(exclude_unset=True, exclude={"products"})
        for key, value in update_data.items():
            setattr(flash_sale, key, value)

        saved = deleted = 0
        if data.products is not None:
            saved, deleted = self._replace_products(flash_sale.id, data.products)

        self.db.commit()
        self.db.refresh(flash_sale)
        return flash_sale, saved, deleted

    def set_active(self, flash_sale: FlashSale, is_active: bool) -> FlashSale:
        flash_sale.is_active = is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(flash_sale)
        return flash_sale

    def delete(self, flash_sale: FlashSale) -> None:
        """Delete a flash sale and its products."""
        self.db.query(FlashSaleProduct).filter(
            FlashSaleProduct.flash_sale_id == flash_sale.id
        ).delete(synchronize_session=False)
        self.db.delete(flash_sale)
        self.db.commit()

    def increment_sold(self, flash_sale_product_id: UUID, quantity: int) -> bool:
        """Atomically add to quantity_sold unless quantity_limit would be exceeded."""
        return increment_with_ceiling(
            self.db,
            FlashSaleProduct,
            FlashSaleProduct.quantity_sold,
            FlashSaleProduct.id == flash_sale_product_id,
            amount=quantity,
            ceiling=FlashSaleProduct.quantity_limit,
        )

    def _replace_products(
        self,
        flash_sale_id: UUID,
        products: list[FlashSaleProductUpdate | FlashSaleProductCreate],
    ) -> tuple[int, int]:
        existing = {product.id: product for product in self.get_products(flash_sale_id)}
        updates = [
            p for p in products if isinstance(p, FlashSaleProductUpdate) and p.id in existing
        ]
        kept = {p.id for p in updates}
        stale = [product for product_id, product in existing.items() if product_id not in kept]

        for product in stale:
            if product.quantity_sold:
                msg = (
                    f"Cannot remove variant {product.product_variant_id} "
                    f"with {product.quantity_sold} unit(s) already sold"
                )
                raise ValueError(msg)
            self.db.delete(product)
        self.db.flush()

        for product_data in updates:
            product = existing[product_data.id]
            if (
                product_data.quantity_limit is not None
                and product_data.quantity_limit < product.quantity_sold
            ):
                msg = (
                    f"quantity_limit {product_data.quantity_limit} is below the "
                    f"{product.quantity_sold} unit(s) already sold"
                )
                raise ValueError(msg)
            changes = product_data.model_dump(exclude_unset=True, exclude={"id"})
            for key, value in changes.items():
                if value is not None:
                    setattr(product, key, value)

        created = 0
        update_ids = {id(p) for p in updates}
        for product_data in products:
            if id(product_data) in update_ids:
                continue
            if product_data.flash_sale_price is None or product_data.quantity_limit is None:
                variant_id = product_data.product_variant_id
                msg = f"Variant {variant_id} needs a price and a quantity_limit"
                raise ValueError(msg)
            self.db.add(
                self._build_product(
                    flash_sale_id,
                    FlashSaleProductCreate(
                        product_variant_id=product_data.product_variant_id,
                        flash_sale_price=product_data.flash_sale_price,
                        quantity_limit=product_data.quantity_limit,
                    ),
                )
            )
            created += 1
        self.db.flush()
        return len(updates) + created, len(stale)

    @staticmethod
    def _build_product(flash_sale_id: UUID, data: FlashSaleProductCreate) -> FlashSaleProduct:
        return FlashSaleProduct(
            flash_sale_id=flash_sale_id,
            product_variant_id=data.product_variant_id,
            flash_sale_price=data.flash_sale_price,
            quantity_limit=data.quantity_limit,
            quantity_sold=0,
        )
