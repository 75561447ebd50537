# ============================================================
# Module : crowdvote/infra/repo/content_repo.py
# Objet  : Accès SQL (CRUD) pour les contenus soumis au vote.
# Notes  : chaque méthode ouvre sa propre transaction; au retour,
#          l'écriture est commitée (durable).
# ============================================================

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crowdvote.core.clock import as_utc
from crowdvote.domain.cache_keys import ContentQuery
from crowdvote.domain.entities import ContentSnapshot, VoteChoice
from crowdvote.domain.errors import UpstreamUnavailable
from crowdvote.domain.lifecycle import StatusPredicate

from .db import get_session_factory, session_scope
from .models import ContentItemORM, ContentTagORM, ContentVoteORM


def _to_snapshot(row: ContentItemORM) -> ContentSnapshot:
    return ContentSnapshot(
        content_id=int(row.content_id),
        ipfs_hash=row.ipfs_hash,
        title=row.title,
        description=row.description or "",
        content_type=row.content_type,
        creator=row.creator,
        tags=tuple(sorted(t.tag for t in row.tags)),
        submission_time=as_utc(row.submission_time),
        voting_start_time=as_utc(row.voting_start_time),
        voting_end_time=as_utc(row.voting_end_time),
        is_active=bool(row.is_active),
        is_finalized=bool(row.is_finalized),
        upvotes=int(row.upvotes or 0),
        downvotes=int(row.downvotes or 0),
        vote_count=int(row.vote_count or 0),
        total_usd_value=Decimal(row.total_usd_value or 0),
        transaction_hash=row.transaction_hash,
        content_url=row.content_url,
        thumbnail_url=row.thumbnail_url,
    )


def _apply_predicate(stmt: Select, predicate: StatusPredicate) -> Select:
    if predicate.is_active is not None:
        stmt = stmt.where(ContentItemORM.is_active.is_(predicate.is_active))
    if predicate.is_finalized is not None:
        stmt = stmt.where(ContentItemORM.is_finalized.is_(predicate.is_finalized))
    if predicate.start_after is not None:
        stmt = stmt.where(ContentItemORM.voting_start_time > predicate.start_after)
    if predicate.start_not_after is not None:
        stmt = stmt.where(ContentItemORM.voting_start_time <= predicate.start_not_after)
    if predicate.end_after is not None:
        stmt = stmt.where(ContentItemORM.voting_end_time > predicate.end_after)
    if predicate.end_not_after is not None:
        stmt = stmt.where(ContentItemORM.voting_end_time <= predicate.end_not_after)
    return stmt


def _apply_filters(stmt: Select, query: ContentQuery, predicate: StatusPredicate | None) -> Select:
    if predicate is not None:
        stmt = _apply_predicate(stmt, predicate)
    if query.creator:
        stmt = stmt.where(ContentItemORM.creator == query.creator)
    if query.content_type:
        stmt = stmt.where(ContentItemORM.content_type == query.content_type)
    if query.tags:
        tagged = select(ContentTagORM.content_pk).where(ContentTagORM.tag.in_(query.tags))
        stmt = stmt.where(ContentItemORM.id.in_(tagged))
    return stmt


class SqlContentRepository:
    """CRUD et requêtes par prédicat sur les contenus."""

    def __init__(self, engine: Engine) -> None:
        """Construit le repo à partir d'un moteur SQLAlchemy."""
        self._factory = get_session_factory(engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with session_scope(self._factory) as session:
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as err:
            raise UpstreamUnavailable("database") from err

    @staticmethod
    def _load(session: Session, content_id: int) -> ContentItemORM | None:
        stmt = select(ContentItemORM).where(ContentItemORM.content_id == int(content_id))
        return session.execute(stmt).scalars().first()

    def create(self, item: ContentSnapshot) -> ContentSnapshot:
        """Crée une ligne en base. Lève IntegrityError si `content_id` existe déjà."""
        with self._session() as session:
            row = ContentItemORM(
                content_id=item.content_id,
                ipfs_hash=item.ipfs_hash,
                title=item.title,
                description=item.description,
                content_type=item.content_type,
                creator=item.creator,
                submission_time=item.submission_time,
                voting_start_time=item.voting_start_time,
                voting_end_time=item.voting_end_time,
                is_active=item.is_active,
                is_finalized=item.is_finalized,
                upvotes=item.upvotes,
                downvotes=item.downvotes,
                total_usd_value=item.total_usd_value,
                transaction_hash=item.transaction_hash,
                content_url=item.content_url,
                thumbnail_url=item.thumbnail_url,
            )
            row.tags = [ContentTagORM(tag=t) for t in sorted(set(item.tags))]
            session.add(row)
            try:
                session.flush()
            except IntegrityError:
                session.rollback()
                raise
            session.refresh(row)
            return _to_snapshot(row)

    def get(self, content_id: int) -> ContentSnapshot | None:
        """Retourne un contenu par identifiant ledger, ou None s'il est absent."""
        with self._session() as session:
            row = self._load(session, content_id)
            return _to_snapshot(row) if row else None

    def find(self, query: ContentQuery, predicate: StatusPredicate | None) -> list[ContentSnapshot]:
        """Page de contenus filtrés, triés puis paginés (`skip`/`limit`)."""
        column = getattr(ContentItemORM, query.sort_by)
        order = column.asc() if query.sort_order == "asc" else column.desc()
        stmt = _apply_filters(select(ContentItemORM), query, predicate)
        stmt = stmt.order_by(order, ContentItemORM.id.asc()).offset(query.skip).limit(query.limit)
        with self._session() as session:
            return [_to_snapshot(r) for r in session.execute(stmt).scalars().all()]

    def count(self, query: ContentQuery, predicate: StatusPredicate | None) -> int:
        stmt = _apply_filters(select(func.count(ContentItemORM.id)), query, predicate)
        with self._session() as session:
            return int(session.execute(stmt).scalar_one())

    def deactivate(self, content_id: int) -> ContentSnapshot | None:
        """Pose `is_active=False` et renvoie l'état à jour."""
        with self._session() as session:
            row = self._load(session, content_id)
            if row is None:
                return None
            row.is_active = False
            session.flush()
            session.refresh(row)
            return _to_snapshot(row)

    def deactivate_ended(self, now: datetime) -> list[int]:
        """Désactive en masse les contenus actifs terminés ou finalisés.

        Retourne les identifiants ledger effectivement modifiés.
        """
        ended = or_(
            ContentItemORM.is_finalized.is_(True),
            ContentItemORM.voting_end_time <= as_utc(now),
        )
        with self._session() as session:
            ids = list(
                session.execute(
                    select(ContentItemORM.content_id).where(
                        ContentItemORM.is_active.is_(True), ended
                    )
                ).scalars()
            )
            if ids:
                session.execute(
                    update(ContentItemORM)
                    .where(ContentItemORM.content_id.in_(ids))
                    .values(is_active=False)
                )
            return [int(i) for i in ids]

    def mark_finalized(
        self, content_id: int, total_usd_value: Decimal | None = None
    ) -> ContentSnapshot | None:
        with self._session() as session:
            row = self._load(session, content_id)
            if row is None:
                return None
            row.is_finalized = True
            row.is_active = False
            if total_usd_value is not None:
                row.total_usd_value = total_usd_value
            session.flush()
            session.refresh(row)
            return _to_snapshot(row)

    def record_vote(
        self,
        content_id: int,
        voter: str,
        vote: VoteChoice,
        confidence: int,
        transaction_hash: str | None = None,
    ) -> ContentSnapshot | None:
        """Ajoute un vote révélé et met à jour les compteurs.

        Un second vote du même votant est ignoré (compteurs inchangés).
        """
        with self._session() as session:
            row = self._load(session, content_id)
            if row is None:
                return None
            existing = session.execute(
                select(ContentVoteORM.id).where(
                    ContentVoteORM.content_pk == row.id, ContentVoteORM.voter == voter
                )
            ).first()
            if existing is None:
                session.add(
                    ContentVoteORM(
                        content_pk=row.id,
                        voter=voter,
                        vote=int(vote),
                        confidence=confidence,
                        transaction_hash=transaction_hash,
                    )
                )
                if vote == VoteChoice.UPVOTE:
                    row.upvotes = (row.upvotes or 0) + 1
                else:
                    row.downvotes = (row.downvotes or 0) + 1
            session.flush()
            session.refresh(row)
            return _to_snapshot(row)
