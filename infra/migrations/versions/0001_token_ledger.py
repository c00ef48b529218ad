"""Create the token ledger and audit log tables.

Revision ID: 0001_token_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_token_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "token_ledger",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("balance", sa.BigInteger, nullable=False, server_default=sa.text("0")),
        sa.Column("league", sa.String(32), nullable=False, server_default="Bronze"),
        sa.Column(
            "is_registered",
            sa.Boolean,
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_token_ledger_user_id", "token_ledger", ["user_id"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("service", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("subject_id", sa.String(64), nullable=False),
        sa.Column("details", sa.JSON, nullable=False),
        sa.Column("correlation_id", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_audit_logs_service", "audit_logs", ["service"])
    op.create_index("ix_audit_logs_subject_id", "audit_logs", ["subject_id"])


def downgrade():
    op.drop_index("ix_audit_logs_subject_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_service", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_token_ledger_user_id", table_name="token_ledger")
    op.drop_table("token_ledger")
