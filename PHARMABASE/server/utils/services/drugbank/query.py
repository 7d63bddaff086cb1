from __future__ import annotations

import json
import math
from dataclasses import asdict
from typing import Any

from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.database.schema import ENTITY_TABLES, entity_column_candidates
from PHARMABASE.server.utils.configurations import QuerySettings, server_settings
from PHARMABASE.server.utils.constants import (
    DRUG_SALTS_TABLE,
    DRUGS_FTS_TABLE,
    DRUGS_TABLE,
    ENTITY_KINDS,
    SIMILARITY_NOTE,
    STRUCTURE_IDENTIFIER_PROPERTIES,
)
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.patterns import FTS_TOKEN_RE
from PHARMABASE.server.utils.repository.serializer import DrugRecordSerializer
from PHARMABASE.server.utils.services.drugbank.errors import (
    DatabaseUnavailableError,
    DrugNotFoundError,
    DrugQueryValidationError,
)
from PHARMABASE.server.utils.services.drugbank.similarity import DrugSimilarityEngine
from PHARMABASE.server.utils.services.text.normalization import (
    LIKE_ESCAPE_CHAR,
    build_substring_pattern,
    normalize_entity_name,
    normalize_whitespace,
)

SUMMARY_COLUMNS = "d.drugbank_id, d.name, d.description, d.groups, d.cas_number, d.state"


# -----------------------------------------------------------------------------
def build_fts_query(column: str, query: str) -> str:
    """Turn free text into a safe FTS5 expression restricted to one column.

    Every word token is quoted and used as a prefix, so punctuation in the
    input (hyphens, quotes, operators) never reaches the FTS5 parser.
    """
    tokens = FTS_TOKEN_RE.findall(query)
    if not tokens:
        raise DrugQueryValidationError("Search query must contain at least one word")
    return " AND ".join(f'{column} : "{token}"*' for token in tokens)


# -----------------------------------------------------------------------------
def coerce_bound(value: Any, label: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise DrugQueryValidationError(f"{label} must be a valid number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        bound = float(value)
    except (TypeError, ValueError) as exc:
        raise DrugQueryValidationError(f"{label} must be a valid number") from exc
    if math.isnan(bound):
        raise DrugQueryValidationError(f"{label} must be a valid number")
    return bound


###############################################################################
class DrugQueryEngine:
    """Read-only lookups and searches over a DrugBank store.

    Every operation opens its own pooled connection, so a single engine can
    serve concurrent callers. Search operations return drug summaries; the
    per-drug operations return a payload keyed by the requested identifier.
    """

    def __init__(
        self,
        database: DrugBankDatabase,
        settings: QuerySettings | None = None,
        similarity: DrugSimilarityEngine | None = None,
    ) -> None:
        self.database = database
        self.settings = settings or server_settings.query
        self.serializer = DrugRecordSerializer()
        self.similarity = similarity or DrugSimilarityEngine(database, self.settings)
        self.tables = database.table_names()

    # -------------------------------------------------------------------------
    def resolve_limit(self, limit: Any = None) -> int:
        if limit is None:
            return self.settings.default_limit
        if isinstance(limit, bool):
            raise DrugQueryValidationError("limit must be a positive integer")
        try:
            value = int(limit)
        except (TypeError, ValueError) as exc:
            raise DrugQueryValidationError("limit must be a positive integer") from exc
        if value <= 0:
            raise DrugQueryValidationError("limit must be a positive integer")
        return min(value, self.settings.max_limit)

    # -------------------------------------------------------------------------
    def require_text(self, value: Any, label: str) -> str:
        if not isinstance(value, str):
            raise DrugQueryValidationError(f"Missing required parameter: {label}")
        normalized = normalize_whitespace(value)
        if not normalized:
            raise DrugQueryValidationError(f"Missing required parameter: {label}")
        return normalized

    # -------------------------------------------------------------------------
    def require_table(self, table_name: str) -> None:
        if table_name not in self.tables:
            raise DatabaseUnavailableError(
                f"Table {table_name} is missing; rebuild the DrugBank database"
            )

    # -------------------------------------------------------------------------
    def summarize(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [self.serializer.build_summary(row) for row in rows]

    # -------------------------------------------------------------------------
    def get_drug(self, drugbank_id: str) -> dict[str, Any] | None:
        identifier = self.require_text(drugbank_id, "drugbank_id")
        row = self.database.fetch_one(
            f"SELECT * FROM {DRUGS_TABLE} WHERE drugbank_id = :drugbank_id",
            {"drugbank_id": identifier},
        )
        if row is None:
            return None
        return self.serializer.deserialize_drug_row(row)

    # -------------------------------------------------------------------------
    def require_drug(self, drugbank_id: str) -> dict[str, Any]:
        record = self.get_drug(drugbank_id)
        if record is None:
            raise DrugNotFoundError(drugbank_id.strip())
        return record

    # -------------------------------------------------------------------------
    def get_drug_details(self, drugbank_id: str) -> dict[str, Any]:
        return self.serializer.build_details(self.require_drug(drugbank_id))

    # -------------------------------------------------------------------------
    def search_full_text(
        self, column: str, query: str, limit: Any = None
    ) -> list[dict[str, Any]]:
        expression = build_fts_query(column, self.require_text(query, "query"))
        rows = self.database.fetch_all(
            f"SELECT {SUMMARY_COLUMNS} FROM {DRUGS_FTS_TABLE} "
            f"JOIN {DRUGS_TABLE} AS d ON d.rowid = {DRUGS_FTS_TABLE}.rowid "
            f"WHERE {DRUGS_FTS_TABLE} MATCH :expression "
            f"ORDER BY {DRUGS_FTS_TABLE}.rank, d.rowid LIMIT :limit",
            {"expression": expression, "limit": self.resolve_limit(limit)},
        )
        return self.summarize(rows)

    # -------------------------------------------------------------------------
    def search_by_name(self, query: str, limit: Any = None) -> list[dict[str, Any]]:
        return self.search_full_text("name", query, limit)

    # -------------------------------------------------------------------------
    def search_by_indication(self, query: str, limit: Any = None) -> list[dict[str, Any]]:
        return self.search_full_text("indication", query, limit)

    # -------------------------------------------------------------------------
    def search_by_entity(
        self, kind: str, name: str, limit: Any = None
    ) -> list[dict[str, Any]]:
        normalized_kind = kind.strip().lower() if isinstance(kind, str) else ""
        if normalized_kind not in ENTITY_KINDS:
            raise DrugQueryValidationError(
                f"Unknown entity kind '{kind}'; expected one of {', '.join(ENTITY_KINDS)}"
            )
        table, column = ENTITY_TABLES[normalized_kind]
        self.require_table(table)
        column = self.database.resolve_column(
            table, entity_column_candidates(table, column)
        )
        needle = normalize_entity_name(self.require_text(name, normalized_kind))
        rows = self.database.fetch_all(
            f"SELECT {SUMMARY_COLUMNS} FROM ("
            f"SELECT drug_id, MIN(rowid) AS first_seen FROM {table} "
            f"WHERE REPLACE(LOWER({column}), '-', ' ') LIKE :pattern "
            f"ESCAPE '{LIKE_ESCAPE_CHAR}' GROUP BY drug_id"
            f") AS matches JOIN {DRUGS_TABLE} AS d ON d.drugbank_id = matches.drug_id "
            "ORDER BY matches.first_seen LIMIT :limit",
            {"pattern": build_substring_pattern(needle), "limit": self.resolve_limit(limit)},
        )
        return self.summarize(rows)

    # -------------------------------------------------------------------------
    def search_by_target(self, target: str, limit: Any = None) -> list[dict[str, Any]]:
        return self.search_by_entity("target", target, limit)

    # -------------------------------------------------------------------------
    def search_by_category(self, category: str, limit: Any = None) -> list[dict[str, Any]]:
        return self.search_by_entity("category", category, limit)

    # -------------------------------------------------------------------------
    def search_by_carrier(self, carrier: str, limit: Any = None) -> list[dict[str, Any]]:
        return self.search_by_entity("carrier", carrier, limit)

    # -------------------------------------------------------------------------
    def search_by_transporter(
        self, transporter: str, limit: Any = None
    ) -> list[dict[str, Any]]:
        return self.search_by_entity("transporter", transporter, limit)

    # -------------------------------------------------------------------------
    def search_by_half_life(
        self, min_hours: Any = None, max_hours: Any = None, limit: Any = None
    ) -> list[dict[str, Any]]:
        lower = coerce_bound(min_hours, "min_hours")
        upper = coerce_bound(max_hours, "max_hours")
        if lower is None and upper is None:
            raise DrugQueryValidationError(
                "At least one of min_hours or max_hours is required"
            )
        if lower is not None and upper is not None and lower > upper:
            raise DrugQueryValidationError("min_hours cannot be greater than max_hours")
        if not self.database.has_column(DRUGS_TABLE, "half_life_hours"):
            raise DatabaseUnavailableError(
                "Column half_life_hours is missing; run the half-life migration"
            )
        conditions = ["d.half_life_hours IS NOT NULL"]
        params: dict[str, Any] = {"limit": self.resolve_limit(limit)}
        if lower is not None:
            conditions.append("d.half_life_hours >= :min_hours")
            params["min_hours"] = lower
        if upper is not None:
            conditions.append("d.half_life_hours <= :max_hours")
            params["max_hours"] = upper
        rows = self.database.fetch_all(
            f"SELECT {SUMMARY_COLUMNS}, d.half_life, d.half_life_hours "
            f"FROM {DRUGS_TABLE} AS d WHERE {' AND '.join(conditions)} "
            "ORDER BY d.half_life_hours ASC, d.drugbank_id LIMIT :limit",
            params,
        )
        results: list[dict[str, Any]] = []
        for row in rows:
            summary = self.serializer.build_summary(row)
            summary["half_life"] = row["half_life"]
            summary["half_life_hours"] = row["half_life_hours"]
            results.append(summary)
        return results

    # -------------------------------------------------------------------------
    def search_by_structure(
        self, smiles: str | None = None, inchi: str | None = None, limit: Any = None
    ) -> list[dict[str, Any]]:
        query = (smiles or "").strip() or (inchi or "").strip()
        if not query:
            raise DrugQueryValidationError("Missing required parameter: smiles or inchi")
        # match the JSON-escaped form stored in calculated_properties
        needle = json.dumps(query, ensure_ascii=False)[1:-1]
        rows = self.database.fetch_all(
            f"SELECT {SUMMARY_COLUMNS} FROM {DRUGS_TABLE} AS d "
            "WHERE instr(d.calculated_properties, :needle) > 0 "
            "ORDER BY d.rowid LIMIT :limit",
            {"needle": needle, "limit": self.resolve_limit(limit)},
        )
        return self.summarize(rows)

    # -------------------------------------------------------------------------
    def search_by_atc_code(self, code: str, limit: Any = None) -> list[dict[str, Any]]:
        needle = self.require_text(code, "code")
        rows = self.database.fetch_all(
            f"SELECT {SUMMARY_COLUMNS} FROM {DRUGS_TABLE} AS d "
            f"WHERE d.atc_codes LIKE :pattern ESCAPE '{LIKE_ESCAPE_CHAR}' "
            "ORDER BY d.rowid LIMIT :limit",
            {"pattern": build_substring_pattern(needle), "limit": self.resolve_limit(limit)},
        )
        return self.summarize(rows)

    # -------------------------------------------------------------------------
    def get_drug_interactions(self, drugbank_id: str) -> dict[str, Any]:
        record = self.require_drug(drugbank_id)
        interactions = record["drug_interactions"]
        return {
            "drugbank_id": record["drugbank_id"],
            "drug_name": record["name"] or "Unknown",
            "interaction_count": len(interactions),
            "interactions": interactions,
        }

    # -------------------------------------------------------------------------
    def get_pathways(self, drugbank_id: str) -> dict[str, Any]:
        record = self.require_drug(drugbank_id)
        pathways = record["pathways"]
        return {
            "drugbank_id": record["drugbank_id"],
            "drug_name": record["name"] or "Unknown",
            "pathway_count": len(pathways),
            "pathways": pathways,
        }

    # -------------------------------------------------------------------------
    def get_products(
        self, drugbank_id: str, country: str | None = None
    ) -> dict[str, Any]:
        record = self.require_drug(drugbank_id)
        products = record["products"]
        country_filter = (country or "").strip()
        if country_filter:
            wanted = country_filter.casefold()
            products = [
                product
                for product in products
                if (product.get("country") or "").casefold() == wanted
            ]
        return {
            "drugbank_id": record["drugbank_id"],
            "drug_name": record["name"] or "Unknown",
            "country_filter": country_filter or "all",
            "product_count": len(products),
            "products": products,
        }

    # -------------------------------------------------------------------------
    def get_external_identifiers(self, drugbank_id: str) -> dict[str, Any]:
        record = self.require_drug(drugbank_id)
        properties = record["calculated_properties"]
        structure_identifiers = {
            target: properties[source]
            for source, target in STRUCTURE_IDENTIFIER_PROPERTIES.items()
            if properties.get(source)
        }
        return {
            "drugbank_id": record["drugbank_id"],
            "drug_name": record["name"] or "Unknown",
            "external_identifiers": record["external_identifiers"],
            "structure_identifiers": structure_identifiers,
            "all_drugbank_ids": record["all_ids"],
        }

    # -------------------------------------------------------------------------
    def get_salts(self, drugbank_id: str) -> dict[str, Any]:
        record = self.require_drug(drugbank_id)
        if DRUG_SALTS_TABLE in self.tables:
            salts = self.database.fetch_all(
                "SELECT salt_id AS drugbank_id, name, unii, cas_number, inchikey, "
                f"average_mass FROM {DRUG_SALTS_TABLE} WHERE drug_id = :drug_id "
                "ORDER BY rowid",
                {"drug_id": record["drugbank_id"]},
            )
        else:
            logger.debug("Table %s missing, reading salts from record", DRUG_SALTS_TABLE)
            salts = record.get("salts") or []
        return {
            "drugbank_id": record["drugbank_id"],
            "drug_name": record["name"] or "Unknown",
            "salt_count": len(salts),
            "salts": salts,
        }

    # -------------------------------------------------------------------------
    def find_similar(self, drugbank_id: str, limit: Any = None) -> dict[str, Any]:
        identifier = self.require_text(drugbank_id, "drugbank_id")
        resolved_limit = self.resolve_limit(limit)
        reference = self.database.fetch_one(
            f"SELECT name FROM {DRUGS_TABLE} WHERE drugbank_id = :drugbank_id",
            {"drugbank_id": identifier},
        )
        if reference is None:
            raise DrugNotFoundError(identifier)
        results = self.similarity.find_similar(identifier, resolved_limit)
        return {
            "drugbank_id": identifier,
            "reference_drug": reference["name"] or "Unknown",
            "count": len(results),
            "note": SIMILARITY_NOTE,
            "results": [asdict(result) for result in results],
        }
