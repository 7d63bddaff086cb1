from __future__ import annotations

import json

from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.updater.drugbank import DrugBankDatabaseBuilder

# leave as None to read the export from resources/sources
SOURCE_PATH: str | None = None
REBUILD = True

###############################################################################
if __name__ == "__main__":
    builder = DrugBankDatabaseBuilder()
    logger.info("Building DrugBank database from %s", SOURCE_PATH or builder.default_source_path())
    report = builder.build_database(SOURCE_PATH, rebuild=REBUILD)
    logger.info("DrugBank build summary: %s", json.dumps(report.as_dict()))
