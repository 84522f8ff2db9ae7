# Taskboard Core Module
from .config import get_settings, settings
from .database import (
    Base,
    async_session_maker,
    check_db_connection,
    dispose_engine,
    engine,
    get_db,
    session_scope,
)
from .logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "session_scope",
    "check_db_connection",
    "dispose_engine",
]
