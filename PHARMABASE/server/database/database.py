from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

import pandas as pd
from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from PHARMABASE.server.database.sqlite import SQLiteRepository
from PHARMABASE.server.utils.configurations import DatabaseSettings, server_settings
from PHARMABASE.server.utils.constants import DATA_PATH
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.services.drugbank.errors import DatabaseUnavailableError


# -----------------------------------------------------------------------------
def default_database_path(settings: DatabaseSettings | None = None) -> str:
    configured = settings or server_settings.database
    return os.path.join(DATA_PATH, configured.filename)


# [DATABASE]
###############################################################################
class DrugBankDatabase:
    """Handle on one DrugBank SQLite store.

    Built once by the caller (script or application startup) and passed to
    the query and similarity engines. Read-only handles open the file through
    a `mode=ro` URI with `query_only` enabled, so concurrent readers never
    contend with each other.
    """

    def __init__(
        self,
        db_path: str | None = None,
        settings: DatabaseSettings | None = None,
        read_only: bool = True,
    ) -> None:
        self.settings = settings or server_settings.database
        self.db_path = db_path or default_database_path(self.settings)
        self.read_only = read_only
        if read_only and not os.path.isfile(self.db_path):
            raise DatabaseUnavailableError(
                f"DrugBank database not found at {self.db_path}"
            )
        self.repository = SQLiteRepository(self.db_path, self.settings, read_only)
        if read_only:
            self._check_connection()

    # -------------------------------------------------------------------------
    def _check_connection(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except SQLAlchemyError as exc:
            self.repository.dispose()
            raise DatabaseUnavailableError(
                f"Unable to open DrugBank database at {self.db_path}"
            ) from exc
        logger.info("Opened DrugBank database at %s", self.db_path)

    # -------------------------------------------------------------------------
    @property
    def engine(self) -> Engine:
        return self.repository.engine

    # -------------------------------------------------------------------------
    def fetch_all(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        expanding: tuple[str, ...] = (),
    ) -> list[dict[str, Any]]:
        statement = text(query)
        if expanding:
            statement = statement.bindparams(
                *(bindparam(name, expanding=True) for name in expanding)
            )
        with self.engine.connect() as conn:
            result = conn.execute(statement, dict(params or {}))
            return [dict(row) for row in result.mappings()]

    # -------------------------------------------------------------------------
    def fetch_one(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        with self.engine.connect() as conn:
            row = conn.execute(text(query), dict(params or {})).mappings().first()
        return dict(row) if row is not None else None

    # -------------------------------------------------------------------------
    def load_paginated(
        self, query: str, offset: int, limit: int, params: Mapping[str, Any] | None = None
    ) -> pd.DataFrame:
        payload = {**dict(params or {}), "limit": limit, "offset": offset}
        with self.engine.connect() as conn:
            data = pd.read_sql_query(
                text(f"{query} LIMIT :limit OFFSET :offset"), conn, params=payload
            )
        return data

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str) -> int:
        return self.repository.count_rows(table_name)

    # -------------------------------------------------------------------------
    def has_table(self, table_name: str) -> bool:
        return self.repository.has_table(table_name)

    # -------------------------------------------------------------------------
    def table_names(self) -> set[str]:
        return self.repository.table_names()

    # -------------------------------------------------------------------------
    def has_column(self, table_name: str, column_name: str) -> bool:
        return self.repository.has_column(table_name, column_name)

    # -------------------------------------------------------------------------
    def resolve_column(self, table_name: str, candidates: tuple[str, ...]) -> str:
        """Return the first of `candidates` present in `table_name`.

        Stores from different builds name some child-table columns
        differently; an unknown layout raises `DatabaseUnavailableError`.
        """
        for column_name in candidates:
            if self.has_column(table_name, column_name):
                return column_name
        raise DatabaseUnavailableError(
            f"Table {table_name} has none of the columns {', '.join(candidates)}; "
            "rebuild the DrugBank database"
        )

    # -------------------------------------------------------------------------
    def close(self) -> None:
        self.repository.dispose()
