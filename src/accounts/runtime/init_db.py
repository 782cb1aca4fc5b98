"""Database initialization script."""

from src.accounts.core.services.database.db_manage import DbManageService
from src.accounts.core.services.database.db_session import build_engine
from src.accounts.runtime.context import get_config


def init_db() -> None:
    """Create all database tables."""
    DbManageService(build_engine(get_config())).create_all()


if __name__ == "__main__":
    init_db()
