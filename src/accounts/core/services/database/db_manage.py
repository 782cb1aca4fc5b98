"""Schema management."""

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import SQLModel


def _register_tables() -> None:
    from src.accounts.entities.core.user import UserTable  # noqa: F401
    from src.accounts.entities.core.user_email import UserEmailTable  # noqa: F401


class DbManageService:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_all(self) -> None:
        """Create all database tables."""
        _register_tables()
        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")

    def drop_all(self) -> None:
        _register_tables()
        SQLModel.metadata.drop_all(self._engine)
        logger.warning("Dropped all tables.")
