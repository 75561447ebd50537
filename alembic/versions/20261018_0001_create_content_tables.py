# mypy: ignore-errors
"""
Migration Alembic créant les tables des contenus soumis au vote.

Tables: content_items (drapeaux de cycle de vie et compteurs), content_tags
(filtre par tag) et content_votes (votes révélés).
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Crée les trois tables et leurs index."""
    op.create_table(
        "content_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("content_id", sa.BigInteger(), nullable=False),
        sa.Column("ipfs_hash", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content_type", sa.String(length=32), nullable=False),
        sa.Column("creator", sa.String(length=42), nullable=False),
        sa.Column("submission_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("voting_start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("voting_end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_finalized", sa.Boolean(), nullable=False),
        sa.Column("upvotes", sa.Integer(), nullable=False),
        sa.Column("downvotes", sa.Integer(), nullable=False),
        sa.Column("total_usd_value", sa.Numeric(20, 2), nullable=False),
        sa.Column("transaction_hash", sa.String(length=80), nullable=True),
        sa.Column("content_url", sa.String(length=255), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_content_items_content_id", "content_items", ["content_id"], unique=True)
    op.create_index("ix_content_items_creator", "content_items", ["creator"])

    op.create_table(
        "content_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "content_pk",
            sa.Integer(),
            sa.ForeignKey("content_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tag", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("content_pk", "tag", name="uq_content_tag"),
    )
    op.create_index("ix_content_tags_content_pk", "content_tags", ["content_pk"])
    op.create_index("ix_content_tags_tag", "content_tags", ["tag"])

    op.create_table(
        "content_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "content_pk",
            sa.Integer(),
            sa.ForeignKey("content_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("voter", sa.String(length=42), nullable=False),
        sa.Column("vote", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("transaction_hash", sa.String(length=80), nullable=True),
        sa.Column("revealed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("content_pk", "voter", name="uq_content_voter"),
    )
    op.create_index("ix_content_votes_content_pk", "content_votes", ["content_pk"])


def downgrade() -> None:
    """Supprime les tables dans l'ordre inverse des dépendances."""
    op.drop_table("content_votes")
    op.drop_table("content_tags")
    op.drop_table("content_items")
