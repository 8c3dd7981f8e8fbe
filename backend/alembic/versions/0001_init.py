from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _master_table(name: str, *extra):
    op.create_table(
        name,
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="expense"),
        *extra,
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.UniqueConstraint("organization_id", "type", "name", name=f"uq_{name}_org_type_name"),
    )
    op.create_index(f"ix_{name}_organization_id", name, ["organization_id"], unique=False)


def upgrade():
    _master_table("categories")
    _master_table("related_parties")
    _master_table("master_items", sa.Column("default_price", sa.Numeric(14, 2), nullable=False, server_default="0"))

    op.create_table(
        "year_histories",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_income", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("total_expense", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.UniqueConstraint("organization_id", "year", name="uq_year_histories_org_year"),
    )
    op.create_index("ix_year_histories_organization_id", "year_histories", ["organization_id"], unique=False)

    op.create_table(
        "month_histories",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("total_income", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("total_expense", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column(
            "year_history_id",
            sa.String(length=32),
            sa.ForeignKey("year_histories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("organization_id", "year", "month", name="uq_month_histories_org_year_month"),
    )
    op.create_index("ix_month_histories_organization_id", "month_histories", ["organization_id"], unique=False)
    op.create_index("ix_month_histories_year_history_id", "month_histories", ["year_history_id"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="expense"),
        sa.Column("description", sa.String(length=512), nullable=False),
        sa.Column("amount_total", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_img", sa.String(length=1024), nullable=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("category_id", sa.String(length=32), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "related_party_id",
            sa.String(length=32),
            sa.ForeignKey("related_parties.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "month_history_id",
            sa.String(length=32),
            sa.ForeignKey("month_histories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_transactions_date", "transactions", ["date"], unique=False)
    op.create_index("ix_transactions_organization_id", "transactions", ["organization_id"], unique=False)
    op.create_index("ix_transactions_category_id", "transactions", ["category_id"], unique=False)
    op.create_index("ix_transactions_related_party_id", "transactions", ["related_party_id"], unique=False)
    op.create_index("ix_transactions_month_history_id", "transactions", ["month_history_id"], unique=False)
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"], unique=False)
    op.create_index("ix_transactions_org_date", "transactions", ["organization_id", "date"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("item_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "transaction_id",
            sa.String(length=32),
            sa.ForeignKey("transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "master_item_id",
            sa.String(length=32),
            sa.ForeignKey("master_items.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
    )
    op.create_index("ix_items_transaction_id", "items", ["transaction_id"], unique=False)
    op.create_index("ix_items_master_item_id", "items", ["master_item_id"], unique=False)
    op.create_index("ix_items_organization_id", "items", ["organization_id"], unique=False)


def downgrade():
    op.drop_index("ix_items_organization_id", table_name="items")
    op.drop_index("ix_items_master_item_id", table_name="items")
    op.drop_index("ix_items_transaction_id", table_name="items")
    op.drop_table("items")

    for ix in (
        "ix_transactions_org_date",
        "ix_transactions_created_at",
        "ix_transactions_month_history_id",
        "ix_transactions_related_party_id",
        "ix_transactions_category_id",
        "ix_transactions_organization_id",
        "ix_transactions_date",
    ):
        op.drop_index(ix, table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_month_histories_year_history_id", table_name="month_histories")
    op.drop_index("ix_month_histories_organization_id", table_name="month_histories")
    op.drop_table("month_histories")

    op.drop_index("ix_year_histories_organization_id", table_name="year_histories")
    op.drop_table("year_histories")

    for name in ("master_items", "related_parties", "categories"):
        op.drop_index(f"ix_{name}_organization_id", table_name=name)
        op.drop_table(name)
