"""Moteur et sessions SQLAlchemy du dépôt des contenus.

Sans URL fournie, la base est une SQLite en mémoire partagée (tests, dev).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

MEMORY_URL = "sqlite+pysqlite:///:memory:"


def get_engine(url: str | None = None) -> Engine:
    """Crée le moteur; `pool_pre_ping` hors SQLite pour survivre aux coupures réseau."""
    url = url or MEMORY_URL
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    options: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url:
        # une seule connexion, sinon chaque session verrait une base vide
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Une transaction par bloc: commit en sortie normale, rollback sinon.

    Tout effet déclenché après le `with` (invalidation de cache) observe donc
    une écriture durable.
    """
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
