from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from PHARMABASE.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)
from PHARMABASE.server.utils.constants import (
    DATABASE_FILENAME,
    RELEASE_ASSET_NAME,
    RELEASE_REPOSITORY,
    SERVER_CONFIGURATION_FILE,
    SOURCE_FILENAME,
)
from PHARMABASE.server.utils.types import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_positive_int,
    coerce_str,
)

JOURNAL_MODES = {"wal", "delete", "truncate", "persist", "memory"}
SYNCHRONOUS_MODES = {"off", "normal", "full", "extra"}


# [SERVER SETTINGS]
###############################################################################
@dataclass(frozen=True)
class FastAPISettings:
    title: str
    description: str
    version: str

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class DatabaseSettings:
    filename: str
    build_journal_mode: str
    build_synchronous: str
    cache_size: int
    busy_timeout_ms: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class IngestionSettings:
    source_filename: str
    progress_interval: int
    show_progress_bar: bool
    max_protein_entities: int
    max_drug_interactions: int
    max_food_interactions: int
    max_products: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class QuerySettings:
    default_limit: int
    max_limit: int
    similarity_candidate_limit: int
    target_weight: float
    category_weight: float
    atc_weight: float
    score_precision: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ExternalDataSettings:
    release_repository: str
    release_asset_name: str
    download_timeout: float
    download_chunk_size: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerSettings:
    fastapi: FastAPISettings
    database: DatabaseSettings
    ingestion: IngestionSettings
    query: QuerySettings
    external_data: ExternalDataSettings


# [BUILDER FUNCTIONS]
###############################################################################
def build_fastapi_settings(data: dict[str, Any]) -> FastAPISettings:
    payload = ensure_mapping(data)
    return FastAPISettings(
        title=coerce_str(payload.get("title"), "PHARMABASE DrugBank Backend"),
        version=coerce_str(payload.get("version"), "0.1.0"),
        description=coerce_str(
            payload.get("description"),
            "Lookup, search and similarity queries over a DrugBank SQLite store",
        ),
    )

# -----------------------------------------------------------------------------
def build_database_settings(data: dict[str, Any]) -> DatabaseSettings:
    journal_mode = coerce_str(data.get("build_journal_mode"), "wal").lower()
    if journal_mode not in JOURNAL_MODES:
        journal_mode = "wal"
    synchronous = coerce_str(data.get("build_synchronous"), "normal").lower()
    if synchronous not in SYNCHRONOUS_MODES:
        synchronous = "normal"
    return DatabaseSettings(
        filename=coerce_str(data.get("filename"), DATABASE_FILENAME),
        build_journal_mode=journal_mode,
        build_synchronous=synchronous,
        cache_size=coerce_int(data.get("cache_size"), 10_000, minimum=100),
        busy_timeout_ms=coerce_int(data.get("busy_timeout_ms"), 5_000, minimum=0),
    )

# -----------------------------------------------------------------------------
def build_ingestion_settings(data: dict[str, Any]) -> IngestionSettings:
    return IngestionSettings(
        source_filename=coerce_str(data.get("source_filename"), SOURCE_FILENAME),
        progress_interval=coerce_positive_int(data.get("progress_interval"), 1_000),
        show_progress_bar=coerce_bool(data.get("show_progress_bar"), True),
        max_protein_entities=coerce_int(
            data.get("max_protein_entities"), 50, minimum=20, maximum=50
        ),
        max_drug_interactions=coerce_int(
            data.get("max_drug_interactions"), 100, minimum=50, maximum=100
        ),
        max_food_interactions=coerce_int(
            data.get("max_food_interactions"), 100, minimum=50, maximum=100
        ),
        max_products=coerce_positive_int(data.get("max_products"), 100),
    )

# -----------------------------------------------------------------------------
def build_query_settings(data: dict[str, Any]) -> QuerySettings:
    default_limit = coerce_positive_int(data.get("default_limit"), 20)
    max_limit = coerce_positive_int(data.get("max_limit"), 100)
    if max_limit < default_limit:
        max_limit = default_limit
    return QuerySettings(
        default_limit=default_limit,
        max_limit=max_limit,
        similarity_candidate_limit=coerce_positive_int(
            data.get("similarity_candidate_limit"), 500
        ),
        target_weight=coerce_float(data.get("target_weight"), 0.5, minimum=0.0),
        category_weight=coerce_float(data.get("category_weight"), 0.3, minimum=0.0),
        atc_weight=coerce_float(data.get("atc_weight"), 0.2, minimum=0.0),
        score_precision=coerce_int(data.get("score_precision"), 3, minimum=0, maximum=10),
    )

# -----------------------------------------------------------------------------
def build_external_data_settings(data: dict[str, Any]) -> ExternalDataSettings:
    return ExternalDataSettings(
        release_repository=coerce_str(data.get("release_repository"), RELEASE_REPOSITORY),
        release_asset_name=coerce_str(data.get("release_asset_name"), RELEASE_ASSET_NAME),
        download_timeout=coerce_float(data.get("download_timeout"), 60.0, minimum=1.0),
        download_chunk_size=coerce_positive_int(data.get("download_chunk_size"), 131_072),
    )

# -----------------------------------------------------------------------------
def build_server_settings(data: dict[str, Any] | Any) -> ServerSettings:
    payload = ensure_mapping(data)
    return ServerSettings(
        fastapi=build_fastapi_settings(ensure_mapping(payload.get("fastapi"))),
        database=build_database_settings(ensure_mapping(payload.get("database"))),
        ingestion=build_ingestion_settings(ensure_mapping(payload.get("ingestion"))),
        query=build_query_settings(ensure_mapping(payload.get("query"))),
        external_data=build_external_data_settings(
            ensure_mapping(payload.get("external_data"))
        ),
    )


# [SERVER CONFIGURATION LOADER]
###############################################################################
def get_server_settings(config_path: str | None = None) -> ServerSettings:
    path = config_path or SERVER_CONFIGURATION_FILE
    payload = load_configuration_data(path)
    return build_server_settings(payload)


server_settings = get_server_settings()
