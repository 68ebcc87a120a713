"""Initial commerce core: owners, catalog, stock ledger, sales, quota, finance

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, updated=False, deleted=True):
    cols = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    if deleted:
        cols.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=False)
        batch_op.create_index("ix_users_role", ["role"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(64), nullable=False, server_default=""),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["manager_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("employees", schema=None) as batch_op:
        batch_op.create_index("ix_employees_manager_id", ["manager_id"], unique=False)
        batch_op.create_index("ix_employees_email", ["email"], unique=False)
        batch_op.create_index("ix_employees_manager_email", ["manager_id", "email"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120), nullable=False, server_default=""),
        sa.Column("price", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("track_stock", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_products_owner_name", ["owner_id", "name"], unique=False)

    op.create_table(
        "stocks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120), nullable=False, server_default=""),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("adjustments", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(updated=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", name="uq_stocks_product"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stocks", schema=None) as batch_op:
        batch_op.create_index("ix_stocks_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_stocks_owner_name", ["owner_id", "name"], unique=False)

    op.create_table(
        "stock_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("stock_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("change", sa.Integer(), nullable=False),
        sa.Column("remaining", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(255), nullable=False, server_default=""),
        sa.Column("type", sa.String(32), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["stock_id"], ["stocks.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_history", schema=None) as batch_op:
        batch_op.create_index("ix_stock_history_stock_id", ["stock_id"], unique=False)
        batch_op.create_index("ix_stock_history_type", ["type"], unique=False)
        batch_op.create_index("ix_stock_history_stock_created", ["stock_id", "created_at"], unique=False)
        batch_op.create_index("ix_stock_history_owner_created", ["owner_id", "created_at"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="paid"),
        sa.Column("transacted_date", sa.Date(), nullable=False),
        sa.Column("transacted_time", sa.String(5), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default=""),
        sa.Column("stylist", sa.String(255), nullable=False, server_default=""),
        sa.Column("stylist_id", sa.Integer(), nullable=True),
        sa.Column("shift_id", sa.String(64), nullable=True),
        sa.Column("operator_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("customer_phone", sa.String(64), nullable=False, server_default=""),
        sa.Column("customer_email", sa.String(255), nullable=False, server_default=""),
        sa.Column("customer_address", sa.String(512), nullable=False, server_default=""),
        sa.Column("customer_visits", sa.Integer(), nullable=True),
        sa.Column("customer_last_visit", sa.String(32), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_by", sa.Integer(), nullable=True),
        sa.Column("refund_note", sa.String(255), nullable=False, server_default=""),
        sa.Column("quota_free_units", sa.Integer(), nullable=True),
        sa.Column("quota_topup_units", sa.Integer(), nullable=True),
        sa.Column("quota_window_start", sa.Date(), nullable=True),
        *_timestamps(updated=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "code", name="uq_sales_owner_code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_sales_code", ["code"], unique=False)
        batch_op.create_index("ix_sales_status", ["status"], unique=False)
        batch_op.create_index("ix_sales_owner_date", ["owner_id", "transacted_date"], unique=False)

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(120), nullable=False, server_default=""),
        sa.Column("price", sa.BigInteger(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        batch_op.create_index("ix_sale_items_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_items_owner_id", ["owner_id"], unique=False)

    op.create_table(
        "sale_code_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("last_value", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", name="uq_sale_code_sequences_owner"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "membership_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("used_quota", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("free_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("free_window_start", sa.Date(), nullable=False),
        sa.Column("topup_balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", name="uq_membership_state_owner"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "membership_topups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("manager", sa.String(255), nullable=False),
        sa.Column("note", sa.String(255), nullable=False, server_default=""),
        sa.Column("topup_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("membership_topups", schema=None) as batch_op:
        batch_op.create_index("ix_membership_topups_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_membership_topups_owner_date", ["owner_id", "topup_date"], unique=False)

    op.create_table(
        "finance_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("category", sa.String(120), nullable=False, server_default=""),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("note", sa.String(255), nullable=False, server_default=""),
        sa.Column("sale_id", sa.Integer(), nullable=True),
        sa.Column("sale_code", sa.String(64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("finance_entries", schema=None) as batch_op:
        batch_op.create_index("ix_finance_entries_owner_id", ["owner_id"], unique=False)
        batch_op.create_index("ix_finance_entries_type", ["type"], unique=False)
        batch_op.create_index("ix_finance_entries_owner_date", ["owner_id", "entry_date"], unique=False)
        batch_op.create_index("ix_finance_entries_sale_category", ["sale_id", "category", "type"], unique=False)


def downgrade():
    op.drop_table("finance_entries")
    op.drop_table("membership_topups")
    op.drop_table("membership_state")
    op.drop_table("sale_code_sequences")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("stock_history")
    op.drop_table("stocks")
    op.drop_table("products")
    op.drop_table("employees")
    op.drop_table("users")
