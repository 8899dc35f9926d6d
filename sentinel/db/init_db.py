from sqlalchemy.engine import Engine
import logging

import sentinel.db.base  # noqa: F401
from sentinel.core.config import Settings, settings as default_settings
from sentinel.db.base_class import Base
from sentinel.models.reason import ReasonCategory
from sentinel.services.reason_service import ReasonCatalog

logger = logging.getLogger(__name__)


def init_db(db_engine: Engine, catalog: ReasonCatalog, config: Settings = None) -> None:
    """Create missing tables and seed the configured ban reasons."""
    config = config or default_settings

    Base.metadata.create_all(bind=db_engine)

    for name, seconds in config.seed_ban_reasons.items():
        if catalog.exists(name, ReasonCategory.BAN):
            continue
        catalog.save(name, ReasonCategory.BAN, seconds)
        logger.info("reason_seeded name=%s duration=%s", name, seconds)

    logger.info("database_initialized")


if __name__ == "__main__":
    from sentinel.container import build_container
    from sentinel.core.logging_config import configure_logging

    configure_logging()
    container = build_container()
    init_db(container.db_engine, container.reasons)
    container.close()
