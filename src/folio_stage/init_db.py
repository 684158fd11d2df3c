"""Create the schema straight from the models, bypassing migrations."""

import asyncio
import logging

from folio_stage.core.settings import settings
from folio_stage.db.session import create_tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    asyncio.run(create_tables())
    logger.info("Database initialized at %s", settings.database_url)


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    init_db()
