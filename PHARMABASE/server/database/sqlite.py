from __future__ import annotations

import os
import sqlite3
from typing import Any
from urllib.request import pathname2url

import sqlalchemy
from sqlalchemy import event, inspect
from sqlalchemy.engine import Engine

from PHARMABASE.server.database.schema import Base, SCHEMA_STATEMENTS
from PHARMABASE.server.utils.configurations import DatabaseSettings
from PHARMABASE.server.utils.logger import logger


# -----------------------------------------------------------------------------
def build_read_only_uri(db_path: str) -> str:
    return f"file:{pathname2url(os.path.abspath(db_path))}?mode=ro"


# [SQLITE DATABASE]
###############################################################################
class SQLiteRepository:
    def __init__(
        self, db_path: str, settings: DatabaseSettings, read_only: bool = True
    ) -> None:
        self.db_path = db_path
        self.settings = settings
        self.read_only = read_only
        if read_only:
            uri = build_read_only_uri(db_path)
            self.engine: Engine = sqlalchemy.create_engine(
                f"sqlite:///{db_path}",
                creator=lambda: sqlite3.connect(uri, uri=True, check_same_thread=False),
                echo=False,
                future=True,
            )
        else:
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
            self.engine = sqlalchemy.create_engine(
                f"sqlite:///{db_path}", echo=False, future=True
            )
        event.listen(self.engine, "connect", self._configure_connection)

    # -------------------------------------------------------------------------
    def _configure_connection(self, dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(self.settings.busy_timeout_ms)}")
            if self.read_only:
                cursor.execute("PRAGMA query_only=ON")
            else:
                cursor.execute(f"PRAGMA synchronous={self.settings.build_synchronous.upper()}")
                cursor.execute(f"PRAGMA cache_size={int(self.settings.cache_size)}")
        finally:
            cursor.close()

    # -------------------------------------------------------------------------
    def initialize_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.exec_driver_sql(statement)

    # -------------------------------------------------------------------------
    def set_journal_mode(self, mode: str) -> str:
        # journal mode switches need the pooled connections closed first
        self.engine.dispose()
        with self.engine.connect() as conn:
            result = conn.exec_driver_sql(f"PRAGMA journal_mode={mode.upper()}")
            current = result.scalar()
        return str(current or "").lower()

    # -------------------------------------------------------------------------
    def prepare_bulk_load(self) -> None:
        mode = self.set_journal_mode(self.settings.build_journal_mode)
        logger.info("SQLite journal mode set to %s for ingestion", mode)

    # -------------------------------------------------------------------------
    def finalize(self) -> None:
        self.engine.dispose()
        with self.engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA optimize")
            conn.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")
        mode = self.set_journal_mode("delete")
        self.engine.dispose()
        logger.info("Database finalized with journal mode %s", mode)

    # -------------------------------------------------------------------------
    def has_table(self, table_name: str) -> bool:
        with self.engine.connect() as conn:
            return inspect(conn).has_table(table_name)

    # -------------------------------------------------------------------------
    def table_names(self) -> set[str]:
        with self.engine.connect() as conn:
            return set(inspect(conn).get_table_names())

    # -------------------------------------------------------------------------
    def has_column(self, table_name: str, column_name: str) -> bool:
        with self.engine.connect() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table_name):
                return False
            columns = inspector.get_columns(table_name)
        return any(column["name"] == column_name for column in columns)

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                sqlalchemy.text(f'SELECT COUNT(*) FROM "{table_name}"')
            )
            value = result.scalar() or 0
        return int(value)

    # -------------------------------------------------------------------------
    def dispose(self) -> None:
        self.engine.dispose()
