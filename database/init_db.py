import logging

from sqlalchemy.orm import sessionmaker
from tenacity import retry, stop_after_attempt, wait_fixed

from database.database import create_tables
from database.uow import admission_uow

logger = logging.getLogger(__name__)


@retry(stop=stop_after_attempt(5), wait=wait_fixed(2), reraise=True)
def init_db(session_factory: sessionmaker, seed_weights: bool = True) -> int:
    """Create tables and seed default scoring weights. Returns rows seeded."""
    logger.info("Initializing database...")
    try:
        create_tables(session_factory)
        logger.info("Tables created or verified.")

        seeded = 0
        if seed_weights:
            with admission_uow(session_factory) as repo:
                seeded = repo.weights.seed_defaults()
            logger.info(f"Seeded {seeded} scoring weights")
        return seeded

    except Exception as e:
        logger.error(f"Error initializing DB: {e}")
        raise
