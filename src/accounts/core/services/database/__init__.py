from .db_manage import DbManageService
from .db_session import DbSessionService, build_engine, enable_sqlite_foreign_keys

__all__ = [
    "DbManageService",
    "DbSessionService",
    "build_engine",
    "enable_sqlite_foreign_keys",
]
