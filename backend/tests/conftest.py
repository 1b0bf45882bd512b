"""Shared test fixtures for all test modules."""

import contextlib
from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import promo_engine.models  # noqa: F401
from promo_engine.core import database as db_module
from promo_engine.core.database import Base, get_db
from promo_engine.models.promotion import DiscountType
from promo_engine.models.shared import utc_now
from promo_engine.repositories.flash_sale_repository import FlashSaleRepository
from promo_engine.repositories.promotion_repository import PromotionRepository
from promo_engine.schemas.flash_sale import FlashSaleCreate, FlashSaleProductCreate
from promo_engine.schemas.order import OrderContext, OrderLineItem
from promo_engine.schemas.promotion import PromotionCreate

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository and service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def now():
    return utc_now()


@pytest.fixture
def make_promotion(db_session, now):
    """Factory creating a promotion that is active around ``now``."""

    def _make(code: str = "SAVE10", **overrides):
        values = {
            "code": code,
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
            "starts_at": now - timedelta(days=1),
            "ends_at": now + timedelta(days=1),
        }
        values.update(overrides)
        return PromotionRepository(db_session).create(PromotionCreate(**values))

    return _make


@pytest.fixture
def make_flash_sale(db_session, now):
    """Factory creating an active flash sale for one variant."""

    def _make(
        variant_id: UUID,
        price: str = "5.00",
        quantity_limit: int = 5,
        name: str = "Midnight Sale",
        **overrides,
    ):
        values = {
            "name": name,
            "starts_at": now - timedelta(hours=1),
            "ends_at": now + timedelta(hours=1),
            "products": [
                FlashSaleProductCreate(
                    product_variant_id=variant_id,
                    flash_sale_price=Decimal(price),
                    quantity_limit=quantity_limit,
                )
            ],
        }
        values.update(overrides)
        repo = FlashSaleRepository(db_session)
        flash_sale = repo.create(FlashSaleCreate(**values))
        return flash_sale, repo.get_products(flash_sale.id)[0]

    return _make


def make_line(
    line_id: str = "line-1",
    unit_price: str = "10.00",
    quantity: int = 1,
    product_id: UUID | None = None,
    variant_id: UUID | None = None,
    category_id: UUID | None = None,
) -> OrderLineItem:
    return OrderLineItem(
        line_id=line_id,
        product_id=product_id or uuid4(),
        product_variant_id=variant_id or uuid4(),
        category_id=category_id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
    )


def make_context(*line_items: OrderLineItem, user_id: UUID | None = None) -> OrderContext:
    return OrderContext(user_id=user_id, line_items=line_items)
