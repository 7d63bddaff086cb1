from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from PHARMABASE.server.utils.constants import (
    DRUG_CARRIERS_TABLE,
    DRUG_CATEGORIES_TABLE,
    DRUG_DETAIL_FIELDS,
    DRUG_JSON_COLUMNS,
    DRUG_JSON_MAPPING_COLUMNS,
    DRUG_SALTS_TABLE,
    DRUG_SUMMARY_FIELDS,
    DRUG_TARGETS_TABLE,
    DRUG_TRANSPORTERS_TABLE,
)
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.services.drugbank.extractor import ExtractedDrug
from PHARMABASE.server.utils.services.drugbank.halflife import parse_half_life_hours
from PHARMABASE.server.utils.services.text.normalization import coerce_text

UNKNOWN_DRUG_NAME = "Unknown"


###############################################################################
class DrugRecordSerializer:
    """Translate extracted DrugBank records into table rows and back."""

    # -------------------------------------------------------------------------
    def serialize_json(self, value: Any) -> str:
        return json.dumps(value, ensure_ascii=False)

    # -------------------------------------------------------------------------
    def deserialize_json(self, value: Any, mapping: bool = False) -> Any:
        empty: Any = {} if mapping else []
        if value is None:
            return empty
        if isinstance(value, (list, dict)):
            return value
        if not isinstance(value, str):
            return empty
        stripped = value.strip()
        if not stripped:
            return empty
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            logger.debug("Discarding malformed JSON payload: %s", stripped[:80])
            return empty
        if mapping and not isinstance(parsed, dict):
            return empty
        if not mapping and not isinstance(parsed, list):
            return empty
        return parsed

    # -------------------------------------------------------------------------
    def build_drug_row(self, drug: ExtractedDrug) -> dict[str, Any]:
        row: dict[str, Any] = {
            "drugbank_id": drug.drugbank_id,
            "drug_type": drug.drug_type,
        }
        row.update(drug.attributes)
        row["name"] = drug.attributes.get("name") or ""
        row["half_life_hours"] = parse_half_life_hours(drug.attributes.get("half_life"))
        collections = {
            "all_ids": drug.all_ids,
            "groups": drug.groups,
            "categories": drug.category_labels,
            "synonyms": drug.synonyms,
            "calculated_properties": drug.calculated_properties,
            "external_identifiers": drug.external_identifiers,
            "drug_interactions": drug.drug_interactions,
            "food_interactions": drug.food_interactions,
            "targets": drug.targets,
            "enzymes": drug.enzymes,
            "carriers": drug.carriers,
            "transporters": drug.transporters,
            "salts": drug.salts,
            "pathways": drug.pathways,
            "products": drug.products,
            "atc_codes": drug.atc_codes,
        }
        for column in DRUG_JSON_COLUMNS:
            row[column] = self.serialize_json(collections[column])
        return row

    # -------------------------------------------------------------------------
    def build_entity_rows(
        self, drug_id: str, entities: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return [
            {
                "drug_id": drug_id,
                "entity_id": entity.get("id"),
                "name": entity["name"],
                "organism": entity.get("organism"),
                "known_action": entity.get("known_action"),
                "actions": self.serialize_json(entity.get("actions") or []),
            }
            for entity in entities
            if entity.get("name")
        ]

    # -------------------------------------------------------------------------
    def build_child_rows(self, drug: ExtractedDrug) -> dict[str, list[dict[str, Any]]]:
        drug_id = drug.drugbank_id
        return {
            DRUG_TARGETS_TABLE: self.build_entity_rows(drug_id, drug.targets),
            DRUG_CATEGORIES_TABLE: [
                {
                    "drug_id": drug_id,
                    "category": entry["category"],
                    "mesh_id": entry.get("mesh_id"),
                }
                for entry in drug.categories
            ],
            DRUG_CARRIERS_TABLE: self.build_entity_rows(drug_id, drug.carriers),
            DRUG_TRANSPORTERS_TABLE: self.build_entity_rows(drug_id, drug.transporters),
            DRUG_SALTS_TABLE: [
                {
                    "drug_id": drug_id,
                    "salt_id": salt.get("drugbank_id"),
                    "name": salt.get("name"),
                    "unii": salt.get("unii"),
                    "cas_number": salt.get("cas_number"),
                    "inchikey": salt.get("inchikey"),
                    "average_mass": salt.get("average_mass"),
                }
                for salt in drug.salts
            ],
        }

    # -------------------------------------------------------------------------
    def deserialize_drug_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        record = dict(row)
        for column in DRUG_JSON_COLUMNS:
            if column in record:
                record[column] = self.deserialize_json(
                    record[column], mapping=column in DRUG_JSON_MAPPING_COLUMNS
                )
        return record

    # -------------------------------------------------------------------------
    def build_summary(self, record: Mapping[str, Any]) -> dict[str, Any]:
        summary = {field: record.get(field) for field in DRUG_SUMMARY_FIELDS}
        summary["name"] = coerce_text(summary["name"]) or UNKNOWN_DRUG_NAME
        summary["groups"] = self.deserialize_json(summary["groups"])
        return summary

    # -------------------------------------------------------------------------
    def build_details(self, record: Mapping[str, Any]) -> dict[str, Any]:
        details = {field: record.get(field) for field in DRUG_DETAIL_FIELDS}
        details["name"] = coerce_text(details["name"]) or UNKNOWN_DRUG_NAME
        for column in DRUG_JSON_COLUMNS:
            if column in details:
                details[column] = self.deserialize_json(
                    details[column], mapping=column in DRUG_JSON_MAPPING_COLUMNS
                )
        return details
