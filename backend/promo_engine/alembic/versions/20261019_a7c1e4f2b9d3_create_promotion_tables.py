"""create promotion and flash sale tables

Revision ID: a7c1e4f2b9d3
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e4f2b9d3"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("(CURRENT_TIMESTAMP)"),
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "promotions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("discount_type", sa.String(length=30), nullable=False),
        sa.Column("discount_value", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("minimum_order_value", sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column("maximum_usage_limit", sa.Integer(), nullable=True),
        sa.Column("current_usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("usage_limit_per_user", sa.Integer(), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_promotions_window"),
        sa.CheckConstraint(
            "maximum_usage_limit IS NULL OR current_usage_count <= maximum_usage_limit",
            name="ck_promotions_usage_within_limit",
        ),
    )
    op.create_index("ix_promotions_code", "promotions", ["code"])

    op.create_table(
        "promotion_applicability_rules",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("promotion_id", sa.String(length=36), nullable=False),
        sa.Column("rule_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("applicability_type", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["promotion_id"], ["promotions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "promotion_id",
            "rule_type",
            "entity_id",
            "applicability_type",
            name="uq_promotion_rules_promotion_type_entity_applicability",
        ),
    )
    op.create_index(
        "ix_promotion_applicability_rules_promotion_id",
        "promotion_applicability_rules",
        ["promotion_id"],
    )

    op.create_table(
        "promotion_user_usages",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("promotion_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["promotion_id"], ["promotions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "promotion_id", "user_id", name="uq_promotion_user_usages_promotion_user"
        ),
    )
    op.create_index(
        "ix_promotion_user_usages_promotion_id", "promotion_user_usages", ["promotion_id"]
    )
    op.create_index("ix_promotion_user_usages_user_id", "promotion_user_usages", ["user_id"])

    op.create_table(
        "order_promotions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_id", sa.String(length=36), nullable=False),
        sa.Column("promotion_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("amount_discounted", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["promotion_id"], ["promotions.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint(
            "order_id", "promotion_id", name="uq_order_promotions_order_promotion"
        ),
    )
    op.create_index("ix_order_promotions_order_id", "order_promotions", ["order_id"])
    op.create_index("ix_order_promotions_promotion_id", "order_promotions", ["promotion_id"])
    op.create_index("ix_order_promotions_user_id", "order_promotions", ["user_id"])

    op.create_table(
        "flash_sales",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("banner_media_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_flash_sales_window"),
    )

    op.create_table(
        "flash_sale_products",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("flash_sale_id", sa.String(length=36), nullable=False),
        sa.Column("product_variant_id", sa.String(length=36), nullable=False),
        sa.Column("flash_sale_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("quantity_limit", sa.Integer(), nullable=False),
        sa.Column("quantity_sold", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["flash_sale_id"], ["flash_sales.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "flash_sale_id", "product_variant_id", name="uq_flash_sale_products_sale_variant"
        ),
        sa.CheckConstraint(
            "quantity_sold >= 0 AND quantity_sold <= quantity_limit",
            name="ck_flash_sale_products_sold_within_limit",
        ),
    )
    op.create_index(
        "ix_flash_sale_products_flash_sale_id", "flash_sale_products", ["flash_sale_id"]
    )
    op.create_index(
        "ix_flash_sale_products_product_variant_id",
        "flash_sale_products",
        ["product_variant_id"],
    )

    op.create_table(
        "flash_sale_allocations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_id", sa.String(length=36), nullable=False),
        sa.Column("flash_sale_product_id", sa.String(length=36), nullable=False),
        sa.Column("line_id", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("allocated_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["flash_sale_product_id"], ["flash_sale_products.id"], ondelete="RESTRICT"
        ),
        sa.UniqueConstraint(
            "order_id",
            "flash_sale_product_id",
            "line_id",
            name="uq_flash_sale_allocations_order_product_line",
        ),
    )
    op.create_index(
        "ix_flash_sale_allocations_order_id", "flash_sale_allocations", ["order_id"]
    )
    op.create_index(
        "ix_flash_sale_allocations_flash_sale_product_id",
        "flash_sale_allocations",
        ["flash_sale_product_id"],
    )

    op.create_table(
        "order_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_id", sa.String(length=36), nullable=False),
        sa.Column("line_id", sa.String(length=64), nullable=False),
        sa.Column("product_variant_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("product_name_snapshot", sa.String(length=255), nullable=True),
        sa.Column("variant_sku_snapshot", sa.String(length=100), nullable=True),
        sa.Column("unit_price_at_purchase", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("line_item_total_amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column(
            "line_item_discount_amount",
            sa.Numeric(precision=15, scale=2),
            nullable=False,
            server_default="0",
        ),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "line_id", name="uq_order_items_order_line"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_product_variant_id", "order_items", ["product_variant_id"])

    op.create_table(
        "order_status_histories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_id", sa.String(length=36), nullable=False),
        sa.Column("previous_status_code", sa.String(length=50), nullable=True),
        sa.Column("new_status_code", sa.String(length=50), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("changed_by_user_id", sa.String(length=36), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_order_status_histories_order_id", "order_status_histories", ["order_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_order_status_histories_order_id", table_name="order_status_histories")
    op.drop_table("order_status_histories")
    op.drop_index("ix_order_items_product_variant_id", table_name="order_items")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index(
        "ix_flash_sale_allocations_flash_sale_product_id", table_name="flash_sale_allocations"
    )
    op.drop_index("ix_flash_sale_allocations_order_id", table_name="flash_sale_allocations")
    op.drop_table("flash_sale_allocations")
    op.drop_index("ix_flash_sale_products_product_variant_id", table_name="flash_sale_products")
    op.drop_index("ix_flash_sale_products_flash_sale_id", table_name="flash_sale_products")
    op.drop_table("flash_sale_products")
    op.drop_table("flash_sales")
    op.drop_index("ix_order_promotions_user_id", table_name="order_promotions")
    op.drop_index("ix_order_promotions_promotion_id", table_name="order_promotions")
    op.drop_index("ix_order_promotions_order_id", table_name="order_promotions")
    op.drop_table("order_promotions")
    op.drop_index("ix_promotion_user_usages_user_id", table_name="promotion_user_usages")
    op.drop_index("ix_promotion_user_usages_promotion_id", table_name="promotion_user_usages")
    op.drop_table("promotion_user_usages")
    op.drop_index(
        "ix_promotion_applicability_rules_promotion_id",
        table_name="promotion_applicability_rules",
    )
    op.drop_table("promotion_applicability_rules")
    op.drop_index("ix_promotions_code", table_name="promotions")
    op.drop_table("promotions")
