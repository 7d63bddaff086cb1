from __future__ import annotations

import os
import time
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from typing import Any
from xml.etree import ElementTree

from sqlalchemy import insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from PHARMABASE.server.database.database import DrugBankDatabase, default_database_path
from PHARMABASE.server.database.schema import Base, Drug
from PHARMABASE.server.utils.configurations import (
    DatabaseSettings,
    IngestionSettings,
    server_settings,
)
from PHARMABASE.server.utils.constants import (
    DRUG_TAG,
    DRUGS_FTS_DOCSIZE_TABLE,
    DRUGS_TABLE,
    SOURCES_PATH,
    TOP_LEVEL_MARKER_ATTRIBUTE,
)
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.repository.serializer import DrugRecordSerializer
from PHARMABASE.server.utils.services.drugbank.errors import DrugBankSourceError
from PHARMABASE.server.utils.services.drugbank.extractor import (
    ExtractedDrug,
    decode_element,
    extract_drug,
    field_of,
    local_name,
    primary_identifier,
    text_of,
)

__all__ = ["DrugBankDatabaseBuilder", "IngestionReport"]


###############################################################################
@dataclass
class IngestionReport:
    committed: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    elapsed_seconds: float = 0.0

    # -------------------------------------------------------------------------
    @property
    def processed(self) -> int:
        return self.committed + self.duplicates + self.skipped + self.failed

    # -------------------------------------------------------------------------
    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["processed"] = self.processed
        return payload


###############################################################################
class DrugBankDatabaseBuilder:
    """Stream a DrugBank XML export into a fresh SQLite store.

    Only one top-level <drug> element is held in memory at a time: each record
    is decoded on its end event, committed in its own transaction together
    with its child rows, and then cleared from the parse tree.
    """

    def __init__(
        self,
        db_path: str | None = None,
        database_settings: DatabaseSettings | None = None,
        ingestion_settings: IngestionSettings | None = None,
    ) -> None:
        self.database_settings = database_settings or server_settings.database
        self.ingestion_settings = ingestion_settings or server_settings.ingestion
        self.db_path = db_path or default_database_path(self.database_settings)
        self.serializer = DrugRecordSerializer()
        self.tables = Base.metadata.tables

    # -------------------------------------------------------------------------
    def default_source_path(self) -> str:
        return os.path.join(SOURCES_PATH, self.ingestion_settings.source_filename)

    # -------------------------------------------------------------------------
    def stream_records(self, source: str) -> Iterator[ElementTree.Element]:
        root: ElementTree.Element | None = None
        try:
            for event, element in ElementTree.iterparse(source, events=("start", "end")):
                if event == "start":
                    if root is None:
                        root = element
                    continue
                if local_name(element.tag) != DRUG_TAG:
                    continue
                # nested cross-references reuse the tag without the marker
                if TOP_LEVEL_MARKER_ATTRIBUTE not in element.attrib:
                    continue
                yield element
                element.clear()
                if root is not None:
                    root.clear()
        except ElementTree.ParseError as exc:
            raise DrugBankSourceError(
                f"Unable to decode DrugBank export {source}: {exc}"
            ) from exc
        except OSError as exc:
            raise DrugBankSourceError(f"Unable to read DrugBank export {source}") from exc

    # -------------------------------------------------------------------------
    def persist_record(self, engine: Engine, drug: ExtractedDrug) -> bool:
        drug_row = self.serializer.build_drug_row(drug)
        child_rows = self.serializer.build_child_rows(drug)
        with engine.begin() as conn:
            existing = conn.execute(
                select(Drug.drugbank_id).where(Drug.drugbank_id == drug.drugbank_id)
            ).first()
            if existing is not None:
                return False
            conn.execute(insert(self.tables[DRUGS_TABLE]), [drug_row])
            for table_name, rows in child_rows.items():
                if rows:
                    conn.execute(insert(self.tables[table_name]), rows)
        return True

    # -------------------------------------------------------------------------
    def process_element(
        self, engine: Engine, element: ElementTree.Element, report: IngestionReport
    ) -> None:
        record = decode_element(element)
        drugbank_id = primary_identifier(record)
        if drugbank_id is None:
            report.skipped += 1
            logger.warning(
                "Skipping DrugBank record without identifier (name: %s)",
                text_of(field_of(record, "name")) or "unknown",
            )
            return
        try:
            drug = extract_drug(record, self.ingestion_settings)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            report.failed += 1
            logger.warning("Failed to extract DrugBank record %s: %s", drugbank_id, exc)
            return
        try:
            committed = self.persist_record(engine, drug)
        except SQLAlchemyError as exc:
            report.failed += 1
            logger.warning("Failed to persist DrugBank record %s: %s", drugbank_id, exc)
            return
        if committed:
            report.committed += 1
        else:
            report.duplicates += 1
            logger.info("Skipping duplicate DrugBank record %s", drugbank_id)

    # -------------------------------------------------------------------------
    def ingest(self, source: str, engine: Engine) -> IngestionReport:
        report = IngestionReport()
        interval = self.ingestion_settings.progress_interval
        started = time.perf_counter()
        last_logged = 0
        with tqdm(
            desc="Ingesting DrugBank records",
            unit="drug",
            ncols=80,
            disable=not self.ingestion_settings.show_progress_bar,
        ) as progress:
            for element in self.stream_records(source):
                self.process_element(engine, element, report)
                progress.update(1)
                if report.committed - last_logged >= interval:
                    last_logged = report.committed
                    logger.info("Committed %d DrugBank records", report.committed)
        report.elapsed_seconds = time.perf_counter() - started
        logger.info(
            "DrugBank ingestion completed: %d committed, %d duplicates, %d skipped, %d failed",
            report.committed,
            report.duplicates,
            report.skipped,
            report.failed,
        )
        return report

    # -------------------------------------------------------------------------
    def remove_existing_database(self) -> None:
        for suffix in ("", "-wal", "-shm", "-journal"):
            path = f"{self.db_path}{suffix}"
            if os.path.exists(path):
                logger.info("Removing existing database file %s", path)
                os.remove(path)

    # -------------------------------------------------------------------------
    def build_database(
        self, source: str | None = None, rebuild: bool = True
    ) -> IngestionReport:
        source_path = source or self.default_source_path()
        if not os.path.isfile(source_path):
            raise DrugBankSourceError(f"DrugBank export not found at {source_path}")
        if rebuild:
            self.remove_existing_database()
        logger.info("Building DrugBank database at %s from %s", self.db_path, source_path)
        database = DrugBankDatabase(self.db_path, self.database_settings, read_only=False)
        repository = database.repository
        try:
            repository.initialize_schema()
            repository.prepare_bulk_load()
            report = self.ingest(source_path, database.engine)
            fts_rows = database.count_rows(DRUGS_FTS_DOCSIZE_TABLE)
            logger.info("Full-text index holds %d rows", fts_rows)
        finally:
            repository.finalize()
            database.close()
        size_mb = os.path.getsize(self.db_path) / (1024 * 1024)
        logger.info(
            "DrugBank database built in %.1fs (%.1f MB)", report.elapsed_seconds, size_mb
        )
        return report
