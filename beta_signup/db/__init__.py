from beta_signup.db.database import (
    get_db,
    get_db_session,
    build_session_factory,
    async_engine,
    AsyncSessionLocal,
    Base,
)

__all__ = [
    "get_db",
    "get_db_session",
    "build_session_factory",
    "async_engine",
    "AsyncSessionLocal",
    "Base",
]
