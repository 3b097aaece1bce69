"""Create all tables on the configured database (development only)."""

import logging

from .database import Base, engine
from . import models  # noqa: F401

logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created", extra={"url": engine.url.render_as_string()})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
