"""Database engine, session factory, and base model."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from ..config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def make_engine(url: str | None = None):
    url = url or settings.effective_database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True)


engine = make_engine()

SessionLocal = sessionmaker(bind=engine)


def init_db(bind=None) -> None:
    """Create missing tables. Production deployments run the Alembic migrations instead."""
    from ..records import models  # noqa: F401  # registers the records table

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Tables verified: %s", ", ".join(Base.metadata.tables.keys()))


def run_migrations(url: str | None = None) -> None:
    """Run Alembic migrations (upgrade head)."""
    from pathlib import Path

    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(Path(__file__).parent.parent.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", url or settings.effective_database_url)
    command.upgrade(alembic_cfg, "head")
