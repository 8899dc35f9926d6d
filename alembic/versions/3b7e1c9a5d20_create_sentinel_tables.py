"""Create reason catalog, ban and identity tables

Revision ID: 3b7e1c9a5d20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7e1c9a5d20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


reason_category = sa.Enum("BAN", "MUTE", "REPORT", name="reason_category")
revocation_category = sa.Enum("TEMPORARY", "PERMANENT", "ADDRESS_SCOPED", name="revocation_category")


def upgrade() -> None:
    op.create_table(
        "sentinel_reasons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("category", reason_category, nullable=False),
        sa.Column("duration", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "category", name="uq_sentinel_reasons_name_category"),
    )
    op.create_index(op.f("ix_sentinel_reasons_id"), "sentinel_reasons", ["id"], unique=False)

    op.create_table(
        "sentinel_bans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("identity", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.String(length=64), nullable=False),
        sa.Column("operator", sa.String(length=64), nullable=True),
        sa.Column("category", revocation_category, nullable=False),
        sa.Column("reason_names", sa.JSON(), nullable=False),
        sa.Column("remaining_seconds", sa.BigInteger(), nullable=False),
        sa.Column("notice", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sentinel_bans_id"), "sentinel_bans", ["id"], unique=False)
    op.create_index(op.f("ix_sentinel_bans_identity"), "sentinel_bans", ["identity"], unique=False)
    op.create_index(op.f("ix_sentinel_bans_expires_at"), "sentinel_bans", ["expires_at"], unique=False)
    op.create_index("ix_sentinel_bans_active_expires_at", "sentinel_bans", ["active", "expires_at"], unique=False)
    op.create_index(
        "uq_sentinel_bans_identity_active",
        "sentinel_bans",
        ["identity"],
        unique=True,
        postgresql_where=sa.text("active = true"),
        sqlite_where=sa.text("active = 1"),
    )

    op.create_table(
        "sentinel_identities",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sentinel_identities_display_name"), "sentinel_identities", ["display_name"], unique=False)

    op.create_table(
        "sentinel_identity_addresses",
        sa.Column("identity_id", sa.String(length=36), nullable=False),
        sa.Column("address", sa.String(length=45), nullable=False),
        sa.Column("first_seen", sa.DateTime(), nullable=False),
        sa.Column("last_seen", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["identity_id"], ["sentinel_identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("identity_id", "address"),
    )
    op.create_index(
        op.f("ix_sentinel_identity_addresses_address"),
        "sentinel_identity_addresses",
        ["address"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_sentinel_identity_addresses_address"), table_name="sentinel_identity_addresses")
    op.drop_table("sentinel_identity_addresses")

    op.drop_index(op.f("ix_sentinel_identities_display_name"), table_name="sentinel_identities")
    op.drop_table("sentinel_identities")

    op.drop_index("uq_sentinel_bans_identity_active", table_name="sentinel_bans")
    op.drop_index("ix_sentinel_bans_active_expires_at", table_name="sentinel_bans")
    op.drop_index(op.f("ix_sentinel_bans_expires_at"), table_name="sentinel_bans")
    op.drop_index(op.f("ix_sentinel_bans_identity"), table_name="sentinel_bans")
    op.drop_index(op.f("ix_sentinel_bans_id"), table_name="sentinel_bans")
    op.drop_table("sentinel_bans")

    op.drop_index(op.f("ix_sentinel_reasons_id"), table_name="sentinel_reasons")
    op.drop_table("sentinel_reasons")

    revocation_category.drop(op.get_bind(), checkfirst=True)
    reason_category.drop(op.get_bind(), checkfirst=True)
