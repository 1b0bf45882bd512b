"""Tests for FlashSaleService and FlashSaleRepository."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from promo_engine.core.errors import DuplicateFlashSaleVariant, FlashSaleNotFound
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.schemas.flash_sale import (
    FlashSaleCreate,
    FlashSaleProductCreate,
    FlashSaleProductUpdate,
    FlashSaleUpdate,
)
from promo_engine.services.flash_sale_service import FlashSaleService


@pytest.fixture
def service(db_session):
    return FlashSaleService(db_session)


@pytest.fixture
def create_data(now):
    def _data(*variant_ids, name="Weekend Flash", **overrides):
        values = {
            "name": name,
            "starts_at": now - timedelta(hours=1),
            "ends_at": now + timedelta(hours=5),
            "products": [
                FlashSaleProductCreate(
                    product_variant_id=variant_id,
                    flash_sale_price=Decimal("9.99"),
                    quantity_limit=10,
                )
                for variant_id in variant_ids
            ],
        }
        values.update(overrides)
        return FlashSaleCreate(**values)

    return _data


class TestFlashSaleSchemas:
    """Tests for flash sale input validation."""

    def test_window_must_not_be_empty(self, create_data, now):
        with pytest.raises(ValidationError, match="ends_at must be after starts_at"):
            create_data(starts_at=now, ends_at=now - timedelta(minutes=1))

    def test_zero_limit_rejected(self):
        with pytest.raises(ValidationError):
            FlashSaleProductCreate(
                product_variant_id=uuid4(), flash_sale_price=Decimal("1"), quantity_limit=0
            )

    def test_zero_price_rejected(self):
        with pytest.raises(ValidationError):
            FlashSaleProductCreate(
                product_variant_id=uuid4(), flash_sale_price=Decimal("0"), quantity_limit=1
            )


class TestCreateFlashSale:
    """Tests for FlashSaleService.create_flash_sale."""

    def test_create_with_products(self, service, create_data):
        first, second = uuid4(), uuid4()

        flash_sale = service.create_flash_sale(create_data(first, second))

        products = service.get_products(flash_sale.id)
        assert {p.product_variant_id for p in products} == {first, second}
        assert all(p.quantity_sold == 0 for p in products)
        assert products[0].flash_sale_price == Decimal("9.99")

    def test_duplicate_variant_rejected(self, service, create_data):
        variant_id = uuid4()

        with pytest.raises(DuplicateFlashSaleVariant):
            service.create_flash_sale(create_data(variant_id, variant_id))

    def test_get_missing(self, service):
        with pytest.raises(FlashSaleNotFound):
            service.get_flash_sale(uuid4())

    def test_list_filters(self, service, create_data):
        service.create_flash_sale(create_data(uuid4(), name="Black Friday"))
        service.create_flash_sale(create_data(uuid4(), name="Cyber Monday", is_active=False))

        assert len(service.list_flash_sales()) == 2
        assert [s.name for s in service.list_flash_sales(is_active=False)] == ["Cyber Monday"]
        assert [s.name for s in service.list_flash_sales(search="friday")] == ["Black Friday"]


class TestUpdateFlashSale:
    """Tests for FlashSaleService.update_flash_sale."""

    def test_update_fields(self, service, create_data):
        flash_sale = service.create_flash_sale(create_data(uuid4()))

        updated = service.update_flash_sale(flash_sale.id, FlashSaleUpdate(name="Renamed Sale"))

        assert updated.name == "Renamed Sale"
        assert len(service.get_products(flash_sale.id)) == 1

    def test_update_window_checked_against_stored_value(self, service, create_data, now):
        flash_sale = service.create_flash_sale(create_data(uuid4()))

        with pytest.raises(ValueError, match="ends_at must be after starts_at"):
            service.update_flash_sale(
                flash_sale.id, FlashSaleUpdate(ends_at=now - timedelta(hours=2))
            )

    def test_replace_products(self, service, create_data):
        kept_variant, dropped_variant, new_variant = uuid4(), uuid4(), uuid4()
        flash_sale = service.create_flash_sale(create_data(kept_variant, dropped_variant))
        kept = next(
            p for p in service.get_products(flash_sale.id) if p.product_variant_id == kept_variant
        )

        service.update_flash_sale(
            flash_sale.id,
            FlashSaleUpdate(
                products=[
                    FlashSaleProductUpdate(
                        id=kept.id,
                        product_variant_id=kept_variant,
                        flash_sale_price=Decimal("7.50"),
                    ),
                    FlashSaleProductCreate(
                        product_variant_id=new_variant,
                        flash_sale_price=Decimal("3.00"),
                        quantity_limit=2,
                    ),
                ]
            ),
        )

        products = {p.product_variant_id: p for p in service.get_products(flash_sale.id)}
        assert set(products) == {kept_variant, new_variant}
        assert products[kept_variant].id == kept.id
        assert products[kept_variant].flash_sale_price == Decimal("7.50")
        assert products[kept_variant].quantity_limit == 10
        assert products[new_variant].quantity_limit == 2

    def test_duplicate_variant_in_update(self, service, create_data):
        variant_id = uuid4()
        flash_sale = service.create_flash_sale(create_data(variant_id))
        product = FlashSaleProductCreate(
            product_variant_id=variant_id, flash_sale_price=Decimal("1"), quantity_limit=1
        )

        with pytest.raises(DuplicateFlashSaleVariant):
            service.update_flash_sale(flash_sale.id, FlashSaleUpdate(products=[product, product]))

    def test_cannot_remove_sold_product(self, db_session, service, create_data):
        variant_id = uuid4()
        flash_sale = service.create_flash_sale(create_data(variant_id))
        product = service.get_products(flash_sale.id)[0]
        assert FlashSaleRepository(db_session).increment_sold(product.id, 1)
        db_session.commit()

        with pytest.raises(ValueError, match="already sold"):
            service.update_flash_sale(flash_sale.id, FlashSaleUpdate(products=[]))

        assert len(service.get_products(flash_sale.id)) == 1

    def test_cannot_lower_limit_below_sold(self, db_session, service, create_data):
        variant_id = uuid4()
        flash_sale = service.create_flash_sale(create_data(variant_id))
        product = service.get_products(flash_sale.id)[0]
        assert FlashSaleRepository(db_session).increment_sold(product.id, 4)
        db_session.commit()

        with pytest.raises(ValueError, match="below"):
            service.update_flash_sale(
                flash_sale.id,
                FlashSaleUpdate(
                    products=[
                        FlashSaleProductUpdate(
                            id=product.id, product_variant_id=variant_id, quantity_limit=3
                        )
                    ]
                ),
            )

        db_session.refresh(product)
        assert product.quantity_limit == 10

    def test_unknown_update_without_price_rejected(self, service, create_data):
        flash_sale = service.create_flash_sale(create_data(uuid4()))

        with pytest.raises(ValueError, match="needs a price"):
            service.update_flash_sale(
                flash_sale.id,
                FlashSaleUpdate(
                    products=[FlashSaleProductUpdate(id=uuid4(), product_variant_id=uuid4())]
                ),
            )


class TestActivationAndDeletion:
    """Tests for set_active and delete_flash_sale."""

    def test_deactivate_hides_prices(self, db_session, service, create_data, now):
        variant_id = uuid4()
        flash_sale = service.create_flash_sale(create_data(variant_id))
        repo = FlashSaleRepository(db_session)
        assert variant_id in repo.get_active_products_for_variants([variant_id], now)

        service.set_active(flash_sale.id, False)

        assert repo.get_active_products_for_variants([variant_id], now) == {}

    def test_delete(self, service, create_data):
        flash_sale = service.create_flash_sale(create_data(uuid4()))

        service.delete_flash_sale(flash_sale.id)

        with pytest.raises(FlashSaleNotFound):
            service.get_flash_sale(flash_sale.id)

    def test_delete_with_sales_refused(self, db_session, service, create_data):
        flash_sale = service.create_flash_sale(create_data(uuid4()))
        product = service.get_products(flash_sale.id)[0]
        assert FlashSaleRepository(db_session).increment_sold(product.id, 1)
        db_session.commit()

        with pytest.raises(ValueError, match="committed sales"):
            service.delete_flash_sale(flash_sale.id)


class TestIncrementSold:
    """Tests for the conditional stock counter."""

    def test_stops_at_limit(self, db_session, service, create_data):
        flash_sale = service.create_flash_sale(create_data(uuid4()))
        product = service.get_products(flash_sale.id)[0]
        repo = FlashSaleRepository(db_session)

        assert repo.increment_sold(product.id, 9)
        assert not repo.increment_sold(product.id, 2)
        assert repo.increment_sold(product.id, 1)
        assert not repo.increment_sold(product.id, 1)
        db_session.commit()
        db_session.refresh(product)

        assert product.quantity_sold == 10
