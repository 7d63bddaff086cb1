from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import SAMPLE_EXPORT, write_export
from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.utils.configurations.server import build_ingestion_settings
from PHARMABASE.server.utils.constants import (
    DRUG_CATEGORIES_TABLE,
    DRUG_SALTS_TABLE,
    DRUG_TARGETS_TABLE,
    DRUGS_FTS_DOCSIZE_TABLE,
    DRUGS_FTS_TABLE,
    DRUGS_TABLE,
)
from PHARMABASE.server.utils.logger import LOGGER_NAME
from PHARMABASE.server.utils.repository.serializer import DrugRecordSerializer
from PHARMABASE.server.utils.services.drugbank.errors import (
    DatabaseUnavailableError,
    DrugBankSourceError,
)
from PHARMABASE.server.utils.updater.drugbank import DrugBankDatabaseBuilder


# -----------------------------------------------------------------------------
def quiet_builder(db_path: str) -> DrugBankDatabaseBuilder:
    return DrugBankDatabaseBuilder(
        db_path,
        ingestion_settings=build_ingestion_settings({"show_progress_bar": False}),
    )


# -----------------------------------------------------------------------------
def dump_tables(db_path: str) -> dict[str, list[dict]]:
    database = DrugBankDatabase(db_path)
    try:
        return {
            table: database.fetch_all(f"SELECT * FROM {table} ORDER BY rowid")
            for table in (DRUGS_TABLE, DRUG_TARGETS_TABLE, DRUG_CATEGORIES_TABLE)
        }
    finally:
        database.close()


###############################################################################
def test_build_reports_committed_duplicate_and_skipped_records(
    sample_export: str, tmp_path: Path
) -> None:
    builder = quiet_builder(str(tmp_path / "drugbank.db"))
    report = builder.build_database(sample_export)

    assert report.committed == 6
    assert report.duplicates == 1
    assert report.skipped == 1
    assert report.failed == 0
    assert report.processed == 8
    assert report.as_dict()["processed"] == 8


###############################################################################
def test_nested_pathway_drugs_are_not_ingested(database: DrugBankDatabase) -> None:
    ids = [row["drugbank_id"] for row in database.fetch_all(
        f"SELECT drugbank_id FROM {DRUGS_TABLE} ORDER BY rowid"
    )]
    assert ids == ["DB00001", "DB00002", "DB00003", "DB00004", "DB00005", "DB00006"]


###############################################################################
def test_first_record_wins_for_duplicate_identifiers(database: DrugBankDatabase) -> None:
    row = database.fetch_one(
        f"SELECT name, all_ids FROM {DRUGS_TABLE} WHERE drugbank_id = 'DB00001'"
    )
    assert row["name"] == "Aspirin"
    assert json.loads(row["all_ids"]) == ["DB00001", "APRD00264"]


###############################################################################
def test_child_tables_and_half_life_hours_are_populated(
    database: DrugBankDatabase,
) -> None:
    targets = database.fetch_all(
        f"SELECT drug_id, name FROM {DRUG_TARGETS_TABLE} ORDER BY rowid"
    )
    assert [row["drug_id"] for row in targets] == [
        "DB00001",
        "DB00001",
        "DB00002",
        "DB00003",
        "DB00003",
        "DB00004",
        "DB00005",
    ]
    categories = database.fetch_all(
        f"SELECT category, mesh_id FROM {DRUG_CATEGORIES_TABLE} "
        "WHERE drug_id = 'DB00001' ORDER BY rowid"
    )
    assert categories[0] == {
        "category": "Anti-Inflammatory Agents, Non-Steroidal",
        "mesh_id": "D000894",
    }
    assert categories[2]["mesh_id"] is None
    salts = database.fetch_all(f"SELECT salt_id, name FROM {DRUG_SALTS_TABLE}")
    assert salts == [{"salt_id": "DBSALT000001", "name": "Aspirin lysine"}]

    hours = {
        row["drugbank_id"]: row["half_life_hours"]
        for row in database.fetch_all(
            f"SELECT drugbank_id, half_life_hours FROM {DRUGS_TABLE}"
        )
    }
    assert hours["DB00001"] == pytest.approx(4.5)
    assert hours["DB00002"] == pytest.approx(25.0)
    assert hours["DB00003"] == pytest.approx(6.0)
    assert hours["DB00004"] == pytest.approx(168.0)
    assert hours["DB00005"] == pytest.approx(120.0)
    assert hours["DB00006"] is None


###############################################################################
def test_full_text_index_mirrors_drugs_table(database: DrugBankDatabase) -> None:
    assert database.count_rows(DRUGS_FTS_DOCSIZE_TABLE) == database.count_rows(DRUGS_TABLE)


###############################################################################
def test_built_store_is_left_in_rollback_journal_mode(drugbank_store: str) -> None:
    assert not os.path.exists(f"{drugbank_store}-wal")
    database = DrugBankDatabase(drugbank_store)
    try:
        mode = database.fetch_one("PRAGMA journal_mode")
    finally:
        database.close()
    assert mode["journal_mode"] == "delete"


###############################################################################
def test_rebuilding_the_same_export_is_deterministic(
    sample_export: str, tmp_path: Path
) -> None:
    first = str(tmp_path / "first.db")
    second = str(tmp_path / "second.db")
    quiet_builder(first).build_database(sample_export)
    quiet_builder(second).build_database(sample_export)
    assert dump_tables(first) == dump_tables(second)


###############################################################################
def test_rebuild_replaces_existing_store(sample_export: str, tmp_path: Path) -> None:
    db_path = str(tmp_path / "drugbank.db")
    builder = quiet_builder(db_path)
    builder.build_database(sample_export)
    report = builder.build_database(sample_export)
    assert report.committed == 6
    assert report.duplicates == 1


###############################################################################
def test_missing_export_raises_source_error(tmp_path: Path) -> None:
    builder = quiet_builder(str(tmp_path / "drugbank.db"))
    with pytest.raises(DrugBankSourceError):
        builder.build_database(str(tmp_path / "missing.xml"))


###############################################################################
def test_malformed_export_aborts_ingestion(tmp_path: Path) -> None:
    truncated = SAMPLE_EXPORT[: SAMPLE_EXPORT.index("<drug type=\"biotech\"")]
    source = write_export(tmp_path / "broken.xml", truncated + "<drug type=")
    builder = quiet_builder(str(tmp_path / "drugbank.db"))
    with pytest.raises(DrugBankSourceError):
        builder.build_database(source)


###############################################################################
def test_read_only_handle_rejects_writes(database: DrugBankDatabase) -> None:
    with pytest.raises(SQLAlchemyError):
        with database.engine.begin() as conn:
            conn.exec_driver_sql(f"DELETE FROM {DRUGS_TABLE}")


###############################################################################
def test_read_only_handle_requires_existing_store(tmp_path: Path) -> None:
    with pytest.raises(DatabaseUnavailableError):
        DrugBankDatabase(str(tmp_path / "absent.db"))


###############################################################################
def test_failed_child_insert_leaves_no_partial_record(
    sample_export: str, tmp_path: Path
) -> None:
    build_child_rows = DrugRecordSerializer.build_child_rows

    def rows_with_invalid_target(serializer, drug):
        rows = build_child_rows(serializer, drug)
        if drug.drugbank_id == "DB00002":
            # target name is NOT NULL
            rows[DRUG_TARGETS_TABLE].append({**rows[DRUG_TARGETS_TABLE][0], "name": None})
        return rows

    db_path = str(tmp_path / "drugbank.db")
    with patch.object(DrugRecordSerializer, "build_child_rows", rows_with_invalid_target):
        report = quiet_builder(db_path).build_database(sample_export)

    assert report.failed == 1
    assert report.committed == 5
    assert report.duplicates == 1
    assert report.skipped == 1

    database = DrugBankDatabase(db_path)
    try:
        stored_ids = [
            row["drugbank_id"]
            for row in database.fetch_all(f"SELECT drugbank_id FROM {DRUGS_TABLE} ORDER BY rowid")
        ]
        assert stored_ids == ["DB00001", "DB00003", "DB00004", "DB00005", "DB00006"]
        orphans = database.fetch_all(
            f"SELECT drug_id FROM {DRUG_TARGETS_TABLE} WHERE drug_id = 'DB00002' "
            f"UNION ALL SELECT drug_id FROM {DRUG_CATEGORIES_TABLE} WHERE drug_id = 'DB00002'"
        )
        assert orphans == []
        indexed = database.fetch_all(
            f"SELECT rowid FROM {DRUGS_FTS_TABLE} WHERE {DRUGS_FTS_TABLE} MATCH :expression",
            {"expression": 'name : "warfarin"'},
        )
        assert indexed == []
        assert database.count_rows(DRUGS_FTS_DOCSIZE_TABLE) == 5
    finally:
        database.close()


###############################################################################
def test_duplicate_records_are_logged_at_info_level(
    sample_export: str, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        quiet_builder(str(tmp_path / "drugbank.db")).build_database(sample_export)

    duplicates = [
        record
        for record in caplog.records
        if record.getMessage() == "Skipping duplicate DrugBank record DB00001"
    ]
    assert len(duplicates) == 1
    assert duplicates[0].levelno == logging.INFO
