# courseseed/db/session.py
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from courseseed.core.config import settings
from courseseed.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.SQL_ECHO,
        future=True,
        connect_args=connect_args,
    )
    logger.info("database engine created", database=engine.url.render_as_string(hide_password=True))
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
