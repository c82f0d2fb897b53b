"""initial stocktake schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint(
            "role IN ('admin', 'manager', 'supervisor', 'counter', 'viewer')",
            name="ck_users_role",
        ),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("has_serial_control", sa.Boolean(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_products_unit_cost_non_negative"),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "stock_balances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("on_hand_qty", sa.Numeric(12, 2), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "location_id", name="uq_stock_balance_product_location"),
        sa.CheckConstraint("on_hand_qty >= 0", name="ck_stock_balances_on_hand_non_negative"),
    )

    op.create_table(
        "serial_assets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("is_present", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("serial_number"),
    )
    op.create_index("ix_serial_assets_product_location", "serial_assets", ["product_id", "location_id"], unique=False)

    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("erp_migrated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("erp_migration_in_progress", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("erp_migrated_at", sa.DateTime(), nullable=True),
        sa.Column("erp_migrated_by", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("frozen_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["erp_migrated_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint(
            "status IN ('open', 'count1_open', 'count1_closed', 'count2_open', 'count2_closed', "
            "'count3_required', 'count3_open', 'count3_closed', 'closed', 'cancelled')",
            name="ck_inventories_status",
        ),
        sa.CheckConstraint(
            "status != 'cancelled' OR cancellation_reason IS NOT NULL",
            name="ck_inventories_cancel_reason",
        ),
        sa.CheckConstraint(
            "erp_migrated = false OR status = 'closed'",
            name="ck_inventories_migrated_only_when_closed",
        ),
    )
    op.create_index("ix_inventories_status_created", "inventories", ["status", "created_at"], unique=False)

    op.create_table(
        "frozen_stock_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("expected_quantity", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "inventory_id", "product_id", "location_id",
            name="uq_frozen_stock_line_inventory_product_location",
        ),
        sa.CheckConstraint("expected_quantity >= 0", name="ck_frozen_stock_lines_expected_non_negative"),
    )
    op.create_index("ix_frozen_stock_lines_inventory_id", "frozen_stock_lines", ["inventory_id"], unique=False)

    op.create_table(
        "frozen_serial_units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("expected_location_id", sa.Integer(), nullable=True),
        sa.Column("expected_present", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["expected_location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("inventory_id", "serial_number", name="uq_frozen_serial_unit_inventory_serial"),
    )
    op.create_index(
        "ix_frozen_serial_units_inventory_location",
        "frozen_serial_units",
        ["inventory_id", "expected_location_id"],
        unique=False,
    )

    op.create_table(
        "quantity_counts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("stock_line_id", sa.Integer(), nullable=False),
        sa.Column("stage", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=True),
        sa.Column("skipped", sa.Boolean(), nullable=False),
        sa.Column("counted_by", sa.Integer(), nullable=True),
        sa.Column("counted_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["stock_line_id"], ["frozen_stock_lines.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["counted_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stock_line_id", "stage", name="uq_quantity_count_line_stage"),
        sa.CheckConstraint("stage IN (1, 2, 3, 4)", name="ck_quantity_counts_stage"),
        sa.CheckConstraint("quantity IS NULL OR quantity >= 0", name="ck_quantity_counts_non_negative"),
        sa.CheckConstraint("skipped = true OR quantity IS NOT NULL", name="ck_quantity_counts_value_or_skipped"),
    )
    op.create_index("ix_quantity_counts_inventory_id", "quantity_counts", ["inventory_id"], unique=False)

    op.create_table(
        "serial_counts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("serial_unit_id", sa.Integer(), nullable=False),
        sa.Column("stage", sa.Integer(), nullable=False),
        sa.Column("found", sa.Boolean(), nullable=False),
        sa.Column("found_location_id", sa.Integer(), nullable=True),
        sa.Column("skipped", sa.Boolean(), nullable=False),
        sa.Column("counted_by", sa.Integer(), nullable=True),
        sa.Column("counted_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["serial_unit_id"], ["frozen_serial_units.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["found_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["counted_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("serial_unit_id", "stage", name="uq_serial_count_unit_stage"),
        sa.CheckConstraint("stage IN (1, 2, 3, 4)", name="ck_serial_counts_stage"),
    )
    op.create_index("ix_serial_counts_inventory_id", "serial_counts", ["inventory_id"], unique=False)

    op.create_table(
        "line_reconciliations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("stock_line_id", sa.Integer(), nullable=False),
        sa.Column("final_quantity", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_divergent", sa.Boolean(), nullable=False),
        sa.Column("is_incomplete", sa.Boolean(), nullable=False),
        sa.Column("stage_used", sa.String(length=10), nullable=True),
        sa.Column("divergence_quantity", sa.Numeric(12, 2), nullable=True),
        sa.Column("divergence_percent", sa.Numeric(10, 2), nullable=True),
        sa.Column("computed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["stock_line_id"], ["frozen_stock_lines.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stock_line_id"),
        sa.CheckConstraint(
            "stage_used IS NULL OR stage_used IN ('stock', 'count2', 'count3', 'count4')",
            name="ck_line_reconciliations_stage_used",
        ),
        sa.CheckConstraint(
            "is_incomplete = false OR final_quantity IS NULL",
            name="ck_line_reconciliations_incomplete_has_no_final",
        ),
    )
    op.create_index("ix_line_reconciliations_inventory_id", "line_reconciliations", ["inventory_id"], unique=False)
    op.create_index(
        "ix_line_reconciliations_inventory_divergent",
        "line_reconciliations",
        ["inventory_id", "is_divergent"],
        unique=False,
    )

    op.create_table(
        "serial_discrepancies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("discrepancy_type", sa.String(length=20), nullable=False),
        sa.Column("expected_location_id", sa.Integer(), nullable=True),
        sa.Column("found_location_id", sa.Integer(), nullable=True),
        sa.Column("found_by", sa.Integer(), nullable=True),
        sa.Column("found_at", sa.DateTime(), nullable=True),
        sa.Column("count_stage", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("migrated_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["expected_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["found_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["found_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["resolved_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "inventory_id", "serial_number", "discrepancy_type",
            name="uq_serial_discrepancy_inventory_serial_type",
        ),
        sa.CheckConstraint(
            "discrepancy_type IN ('LOCATION_MISMATCH', 'NOT_FOUND', 'UNEXPECTED_FOUND')",
            name="ck_serial_discrepancies_type",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'RESOLVED', 'MIGRATED')",
            name="ck_serial_discrepancies_status",
        ),
        sa.CheckConstraint(
            "count_stage IS NULL OR count_stage IN ('count1', 'count2', 'count3', 'count4')",
            name="ck_serial_discrepancies_count_stage",
        ),
    )
    op.create_index(
        "ix_serial_discrepancies_inventory_type",
        "serial_discrepancies",
        ["inventory_id", "discrepancy_type"],
        unique=False,
    )
    op.create_index(
        "ix_serial_discrepancies_inventory_status",
        "serial_discrepancies",
        ["inventory_id", "status"],
        unique=False,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=50), nullable=False),
        sa.Column("old_values", sa.Text(), nullable=True),
        sa.Column("new_values", sa.Text(), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_serial_discrepancies_inventory_status", table_name="serial_discrepancies")
    op.drop_index("ix_serial_discrepancies_inventory_type", table_name="serial_discrepancies")
    op.drop_table("serial_discrepancies")
    op.drop_index("ix_line_reconciliations_inventory_divergent", table_name="line_reconciliations")
    op.drop_index("ix_line_reconciliations_inventory_id", table_name="line_reconciliations")
    op.drop_table("line_reconciliations")
    op.drop_index("ix_serial_counts_inventory_id", table_name="serial_counts")
    op.drop_table("serial_counts")
    op.drop_index("ix_quantity_counts_inventory_id", table_name="quantity_counts")
    op.drop_table("quantity_counts")
    op.drop_index("ix_frozen_serial_units_inventory_location", table_name="frozen_serial_units")
    op.drop_table("frozen_serial_units")
    op.drop_index("ix_frozen_stock_lines_inventory_id", table_name="frozen_stock_lines")
    op.drop_table("frozen_stock_lines")
    op.drop_index("ix_inventories_status_created", table_name="inventories")
    op.drop_table("inventories")
    op.drop_index("ix_serial_assets_product_location", table_name="serial_assets")
    op.drop_table("serial_assets")
    op.drop_table("stock_balances")
    op.drop_table("locations")
    op.drop_table("products")
    op.drop_table("users")
