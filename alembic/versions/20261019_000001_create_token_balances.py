"""Create token balance ledger tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Adds the append-only token_balances ledger and the per-token
ledger_sync_state recovery bookkeeping table.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create token_balances and ledger_sync_state tables."""
    op.create_table(
        "token_balances",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        # Ledger identity
        sa.Column("token_name", sa.String(length=100), nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("log_index", sa.Integer(), nullable=False),
        # Event origin
        sa.Column("contract_address", sa.String(length=42), nullable=False),
        sa.Column("block_hash", sa.String(length=66), nullable=False),
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("transaction_index", sa.Integer(), nullable=False),
        # Base-10 balance in raw token units
        sa.Column("balance", sa.String(length=100), nullable=False),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "token_name",
            "address",
            "block_number",
            "log_index",
            name="uq_token_balances_position",
        ),
    )

    op.create_index(
        "ix_token_balances_latest",
        "token_balances",
        ["token_name", "address", "block_number", "log_index"],
    )
    op.create_index(
        "ix_token_balances_token_block",
        "token_balances",
        ["token_name", "block_number"],
    )

    op.create_table(
        "ledger_sync_state",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("token_name", sa.String(length=100), nullable=False),
        sa.Column("resume_block", sa.BigInteger(), nullable=False),
        sa.Column("recovery_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_ledger_sync_state_token_name",
        "ledger_sync_state",
        ["token_name"],
        unique=True,
    )


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_index("ix_ledger_sync_state_token_name", table_name="ledger_sync_state")
    op.drop_table("ledger_sync_state")
    op.drop_index("ix_token_balances_token_block", table_name="token_balances")
    op.drop_index("ix_token_balances_latest", table_name="token_balances")
    op.drop_table("token_balances")
