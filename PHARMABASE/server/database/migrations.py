from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import text

from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.database.schema import HALF_LIFE_INDEX_STATEMENT
from PHARMABASE.server.utils.constants import DRUGS_TABLE
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.services.drugbank.errors import DatabaseUnavailableError
from PHARMABASE.server.utils.services.drugbank.halflife import parse_half_life_hours

HALF_LIFE_SELECT = (
    f"SELECT rowid AS row_id, drugbank_id, half_life FROM {DRUGS_TABLE} "
    "WHERE half_life IS NOT NULL ORDER BY rowid"
)
HALF_LIFE_UPDATE = (
    f"UPDATE {DRUGS_TABLE} SET half_life_hours = :hours "
    "WHERE rowid = :row_id AND half_life_hours IS NOT :hours"
)


###############################################################################
@dataclass
class HalfLifeMigrationReport:
    column_added: bool = False
    total: int = 0
    parsed: int = 0
    unparsed: int = 0
    updated: int = 0

    # -------------------------------------------------------------------------
    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


# -----------------------------------------------------------------------------
def ensure_half_life_column(database: DrugBankDatabase) -> bool:
    added = False
    if not database.has_column(DRUGS_TABLE, "half_life_hours"):
        with database.engine.begin() as conn:
            conn.exec_driver_sql(
                f"ALTER TABLE {DRUGS_TABLE} ADD COLUMN half_life_hours REAL"
            )
        logger.info("Added half_life_hours column to %s", DRUGS_TABLE)
        added = True
    with database.engine.begin() as conn:
        conn.exec_driver_sql(HALF_LIFE_INDEX_STATEMENT)
    return added


# -----------------------------------------------------------------------------
def migrate_half_life(
    database: DrugBankDatabase, page_size: int = 1_000
) -> HalfLifeMigrationReport:
    """Backfill the numeric half-life column of an existing store.

    Adds the column and its index when missing, then re-parses every stored
    half-life text. Rows whose value is already current are left untouched,
    so running the migration twice changes nothing the second time.
    """
    if database.read_only:
        raise DatabaseUnavailableError("Half-life migration requires a writable database")
    if not database.has_table(DRUGS_TABLE):
        raise DatabaseUnavailableError(
            f"Table {DRUGS_TABLE} not found in {database.db_path}"
        )
    report = HalfLifeMigrationReport(column_added=ensure_half_life_column(database))
    offset = 0
    while True:
        frame = database.load_paginated(HALF_LIFE_SELECT, offset, page_size)
        if frame.empty:
            break
        updates: list[dict[str, Any]] = []
        for row in frame.itertuples(index=False):
            hours = parse_half_life_hours(row.half_life)
            if hours is None:
                report.unparsed += 1
                logger.debug("Unparsed half-life for %s: %s", row.drugbank_id, row.half_life)
            else:
                report.parsed += 1
            updates.append({"row_id": int(row.row_id), "hours": hours})
        with database.engine.begin() as conn:
            for update in updates:
                result = conn.execute(text(HALF_LIFE_UPDATE), update)
                report.updated += result.rowcount or 0
        report.total += len(frame)
        offset += len(frame)
        logger.info("Processed %d half-life values", report.total)
    logger.info(
        "Half-life migration completed: %d parsed, %d unparsed, %d rows updated",
        report.parsed,
        report.unparsed,
        report.updated,
    )
    return report
