"""Table creation helpers; schema migrations are managed outside this package."""

from sqlalchemy.engine import Engine

from courseseed.db.base import Base
from courseseed.core.logging import get_logger

# Register every model on Base.metadata
import courseseed.modules  # noqa: F401

logger = get_logger(__name__)


def create_database(engine: Engine) -> None:
    """Create all database tables."""
    logger.info("creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info("database tables created", tables=sorted(Base.metadata.tables))


def drop_database(engine: Engine) -> None:
    """Drop all database tables."""
    logger.info("dropping database tables")
    Base.metadata.drop_all(bind=engine)
    logger.info("database tables dropped")
