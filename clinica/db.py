from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base ORM per tutti i modelli."""
    pass


def crea_engine(database_url: str, echo: bool = False) -> Engine:
    """Engine con pool di connessioni; uno per Archivio, niente globali."""
    return create_engine(
        database_url,
        echo=echo,              # metti True se vuoi vedere le query
        future=True,
    )


def crea_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    """Crea le tabelle se non esistono."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Context manager per gestire correttamente la sessione:
    - commit se tutto ok
    - rollback su eccezioni
    - close sempre
    """
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
