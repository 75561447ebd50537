"""SQLAlchemy models for persistence layer (content items, tags, revealed votes)."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    column_property,
    mapped_column,
    relationship,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class ContentItemORM(Base):
    """Modèle ORM d'un contenu soumis au vote.

    `content_id` est l'identité attribuée par le ledger; `id` reste une clé
    technique locale. Le statut n'est pas une colonne: il est dérivé.
    """

    __tablename__ = "content_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    ipfs_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String(32), nullable=False, default="text")
    creator: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    submission_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    voting_start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    voting_end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_usd_value: Mapped[Decimal] = mapped_column(
        Numeric(20, 2), nullable=False, default=Decimal("0")
    )
    transaction_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)
    content_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(255), nullable=True)

    tags: Mapped[list[ContentTagORM]] = relationship(
        back_populates="content", cascade="all, delete-orphan", lazy="selectin"
    )
    votes: Mapped[list[ContentVoteORM]] = relationship(
        back_populates="content", cascade="all, delete-orphan", lazy="raise", passive_deletes=True
    )


class ContentTagORM(Base):
    """Association contenu ↔ tag (permet le filtre "au moins un tag")."""

    __tablename__ = "content_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_pk: Mapped[int] = mapped_column(
        ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    content: Mapped[ContentItemORM] = relationship(back_populates="tags")

    __table_args__ = (UniqueConstraint("content_pk", "tag", name="uq_content_tag"),)


class ContentVoteORM(Base):
    """Vote révélé et accepté par le ledger (un par votant et contenu)."""

    __tablename__ = "content_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_pk: Mapped[int] = mapped_column(
        ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter: Mapped[str] = mapped_column(String(42), nullable=False)
    vote: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)
    revealed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    content: Mapped[ContentItemORM] = relationship(back_populates="votes")

    __table_args__ = (UniqueConstraint("content_pk", "voter", name="uq_content_voter"),)


# Longueur de la liste de votes, calculée en base (pas de colonne dénormalisée)
ContentItemORM.vote_count = column_property(
    select(func.count(ContentVoteORM.id))
    .where(ContentVoteORM.content_pk == ContentItemORM.id)
    .correlate_except(ContentVoteORM)
    .scalar_subquery()
)
