from __future__ import annotations

from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.updater.release import DrugBankReleaseDownloader

# release tag such as "db-2025-01-15"; None resolves the latest release
VERSION: str | None = None

###############################################################################
if __name__ == "__main__":
    downloader = DrugBankReleaseDownloader()
    try:
        result = downloader.download(VERSION)
    finally:
        downloader.close()
    logger.info("DrugBank release download summary: %s", result)
