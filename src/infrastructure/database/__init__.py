# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the activity store.

This package provides:
- The ActivityStore interface and its error types
- Concurrent loaders for learner activity and catalogs
- SQLAlchemyActivityStore, the PostgreSQL implementation
- Async engine/session management

Example:
    from src.infrastructure.database import (
        SQLAlchemyActivityStore,
        get_session,
        init_database,
    )

    await init_database(settings)
    async with get_session() as session:
        store = SQLAlchemyActivityStore(session)
"""

from src.domains.analytics.store import (
    ActivityStore,
    StoreError,
    StoreUnavailableError,
    StoreWriteError,
    load_activity,
    load_catalog,
)
from src.infrastructure.database.connection import (
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)
from src.infrastructure.database.sql_store import SQLAlchemyActivityStore

__all__ = [
    # Store interface
    "ActivityStore",
    "StoreError",
    "StoreUnavailableError",
    "StoreWriteError",
    "load_activity",
    "load_catalog",
    # PostgreSQL implementation
    "SQLAlchemyActivityStore",
    # Connection management
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
