import logging

from entitlements.db.session import engine
from entitlements.db.base import Base
import entitlements.db.models  # noqa: F401  (registers all tables)

logger = logging.getLogger(__name__)


def init_db():
    """Create missing tables directly from model metadata (no Alembic)."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
