"""CLI entry point for creating the local development schema."""
import logging
import sys

from finance_hub.db.sessions import DATABASE_URL, init_db, make_engine

logger = logging.getLogger(__name__)


def create_schema() -> None:
    """Create all tables. Pass a database URL as first arg to override DATABASE_URL."""
    logging.basicConfig(level=logging.INFO)
    url = sys.argv[1] if len(sys.argv) > 1 else DATABASE_URL
    init_db(make_engine(url))
    logger.info("Schema created at %s", url)
