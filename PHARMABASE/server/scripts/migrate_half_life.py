from __future__ import annotations

import time

from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.database.migrations import migrate_half_life
from PHARMABASE.server.utils.logger import logger


###############################################################################
if __name__ == "__main__":
    start = time.perf_counter()
    database = DrugBankDatabase(read_only=False)
    logger.info("Backfilling numeric half-life values in %s", database.db_path)
    try:
        report = migrate_half_life(database)
    finally:
        database.close()
    logger.info(
        "Half-life migration completed in %.2f seconds: %d/%d parsed, %d updated",
        time.perf_counter() - start,
        report.parsed,
        report.total,
        report.updated,
    )
