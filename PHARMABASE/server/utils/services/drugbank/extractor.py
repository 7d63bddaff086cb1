from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from xml.etree import ElementTree

from PHARMABASE.server.utils.configurations import IngestionSettings, server_settings
from PHARMABASE.server.utils.constants import (
    ATTRIBUTE_PREFIX,
    DRUG_MASS_FIELDS,
    DRUG_SCALAR_FIELDS,
    PRODUCT_FIELDS,
    TEXT_KEY,
    TOP_LEVEL_MARKER_ATTRIBUTE,
)
from PHARMABASE.server.utils.types import coerce_optional_float


# [RECORD DECODING]
###############################################################################
def local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.rsplit("}", 1)[-1]
    return tag


# -----------------------------------------------------------------------------
def decode_element(element: ElementTree.Element) -> Any:
    """Decode an XML element into nested dictionaries.

    Attributes are stored under "@name", text under "#text" and children under
    their local tag name. A child tag seen more than once becomes a list, and
    an element with neither attributes nor children decodes to its bare text.
    """
    text = element.text.strip() if element.text else ""
    children = list(element)
    if not element.attrib and not children:
        return text or None
    decoded: dict[str, Any] = {
        f"{ATTRIBUTE_PREFIX}{local_name(key)}": value
        for key, value in element.attrib.items()
    }
    for child in children:
        key = local_name(child.tag)
        value = decode_element(child)
        if key not in decoded:
            decoded[key] = value
            continue
        existing = decoded[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            decoded[key] = [existing, value]
    if text:
        decoded[TEXT_KEY] = text
    return decoded


# [SHAPE NORMALIZATION]
###############################################################################
def as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# -----------------------------------------------------------------------------
def text_of(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get(TEXT_KEY)
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    stripped = value.strip()
    return stripped or None


# -----------------------------------------------------------------------------
def attribute_of(value: Any, name: str) -> str | None:
    if not isinstance(value, Mapping):
        return None
    return text_of(value.get(f"{ATTRIBUTE_PREFIX}{name}"))


# -----------------------------------------------------------------------------
def field_of(record: Any, *path: str) -> Any:
    current = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


# -----------------------------------------------------------------------------
def collection_of(record: Any, container: str, item: str) -> list[Any]:
    return as_list(field_of(record, container, item))


# -----------------------------------------------------------------------------
def is_flagged(value: Any) -> bool:
    return (text_of(value) or "").lower() in {"true", "1", "yes"}


# [IDENTIFIERS]
###############################################################################
def identifier_values(record: Any) -> list[str]:
    values: list[str] = []
    for entry in as_list(field_of(record, "drugbank-id")):
        identifier = text_of(entry)
        if identifier:
            values.append(identifier)
    return values


# -----------------------------------------------------------------------------
def primary_identifier(record: Any) -> str | None:
    """Pick the canonical DrugBank identifier of a record.

    The first entry flagged primary="true" wins. Without a flagged entry the
    first identifier in document order is used; a record with no identifier
    at all yields None.
    """
    fallback: str | None = None
    for entry in as_list(field_of(record, "drugbank-id")):
        identifier = text_of(entry)
        if not identifier:
            continue
        if is_flagged(attribute_of(entry, "primary")):
            return identifier
        if fallback is None:
            fallback = identifier
    return fallback


# [EXTRACTED RECORD]
###############################################################################
@dataclass
class ExtractedDrug:
    drugbank_id: str
    drug_type: str | None
    all_ids: list[str]
    attributes: dict[str, Any]
    groups: list[str] = field(default_factory=list)
    categories: list[dict[str, Any]] = field(default_factory=list)
    synonyms: list[str] = field(default_factory=list)
    calculated_properties: dict[str, str] = field(default_factory=dict)
    external_identifiers: dict[str, str] = field(default_factory=dict)
    drug_interactions: list[dict[str, Any]] = field(default_factory=list)
    food_interactions: list[str] = field(default_factory=list)
    targets: list[dict[str, Any]] = field(default_factory=list)
    enzymes: list[dict[str, Any]] = field(default_factory=list)
    carriers: list[dict[str, Any]] = field(default_factory=list)
    transporters: list[dict[str, Any]] = field(default_factory=list)
    salts: list[dict[str, Any]] = field(default_factory=list)
    pathways: list[dict[str, Any]] = field(default_factory=list)
    products: list[dict[str, Any]] = field(default_factory=list)
    atc_codes: list[str] = field(default_factory=list)

    # -------------------------------------------------------------------------
    @property
    def category_labels(self) -> list[str]:
        return [entry["category"] for entry in self.categories if entry.get("category")]


# [COLLECTION EXTRACTORS]
###############################################################################
def extract_texts(record: Any, container: str, item: str) -> list[str]:
    values: list[str] = []
    for entry in collection_of(record, container, item):
        text = text_of(entry)
        if text:
            values.append(text)
    return values


# -----------------------------------------------------------------------------
def extract_keyed_values(
    record: Any, container: str, item: str, key_field: str, value_field: str
) -> dict[str, str]:
    # later entries overwrite earlier ones sharing the same key
    values: dict[str, str] = {}
    for entry in collection_of(record, container, item):
        key = text_of(field_of(entry, key_field))
        value = text_of(field_of(entry, value_field))
        if key and value:
            values[key] = value
    return values


# -----------------------------------------------------------------------------
def extract_protein_entities(
    record: Any, container: str, item: str, limit: int
) -> list[dict[str, Any]]:
    entities: list[dict[str, Any]] = []
    for entry in collection_of(record, container, item)[:limit]:
        entities.append(
            {
                "id": text_of(field_of(entry, "id")),
                "name": text_of(field_of(entry, "name")),
                "organism": text_of(field_of(entry, "organism")),
                "known_action": text_of(field_of(entry, "known-action")),
                "actions": extract_texts(entry, "actions", "action"),
            }
        )
    return entities


# -----------------------------------------------------------------------------
def extract_categories(record: Any) -> list[dict[str, Any]]:
    categories: list[dict[str, Any]] = []
    for entry in collection_of(record, "categories", "category"):
        if isinstance(entry, Mapping):
            label = text_of(entry.get("category")) or text_of(entry)
            mesh_id = text_of(entry.get("mesh-id"))
        else:
            label = text_of(entry)
            mesh_id = None
        if label:
            categories.append({"category": label, "mesh_id": mesh_id})
    return categories


# -----------------------------------------------------------------------------
def extract_drug_interactions(record: Any, limit: int) -> list[dict[str, Any]]:
    return [
        {
            "drugbank_id": text_of(field_of(entry, "drugbank-id")),
            "name": text_of(field_of(entry, "name")),
            "description": text_of(field_of(entry, "description")),
        }
        for entry in collection_of(record, "drug-interactions", "drug-interaction")[:limit]
    ]


# -----------------------------------------------------------------------------
def extract_salts(record: Any) -> list[dict[str, Any]]:
    return [
        {
            "drugbank_id": primary_identifier(entry),
            "name": text_of(field_of(entry, "name")),
            "unii": text_of(field_of(entry, "unii")),
            "cas_number": text_of(field_of(entry, "cas-number")),
            "inchikey": text_of(field_of(entry, "inchikey")),
            "average_mass": coerce_optional_float(text_of(field_of(entry, "average-mass"))),
        }
        for entry in collection_of(record, "salts", "salt")
    ]


# -----------------------------------------------------------------------------
def extract_pathways(record: Any) -> list[dict[str, Any]]:
    pathways: list[dict[str, Any]] = []
    for entry in collection_of(record, "pathways", "pathway"):
        pathways.append(
            {
                "smpdb_id": text_of(field_of(entry, "smpdb-id")),
                "name": text_of(field_of(entry, "name")),
                "category": text_of(field_of(entry, "category")),
                "drugs": [
                    {
                        "drugbank_id": text_of(field_of(drug, "drugbank-id")),
                        "name": text_of(field_of(drug, "name")),
                    }
                    for drug in collection_of(entry, "drugs", "drug")
                ],
                "enzymes": extract_texts(entry, "enzymes", "uniprot-id"),
            }
        )
    return pathways


# -----------------------------------------------------------------------------
def extract_products(record: Any, limit: int) -> list[dict[str, Any]]:
    return [
        {
            target: text_of(field_of(entry, source))
            for target, source in PRODUCT_FIELDS.items()
        }
        for entry in collection_of(record, "products", "product")[:limit]
    ]


# -----------------------------------------------------------------------------
def extract_atc_codes(record: Any) -> list[str]:
    codes: list[str] = []
    for entry in collection_of(record, "atc-codes", "atc-code"):
        code = attribute_of(entry, "code") or text_of(entry)
        if code:
            codes.append(code)
    return codes


# -----------------------------------------------------------------------------
def extract_attributes(record: Any) -> dict[str, Any]:
    attributes: dict[str, Any] = {
        target: text_of(field_of(record, source))
        for target, source in DRUG_SCALAR_FIELDS.items()
    }
    for target, source in DRUG_MASS_FIELDS.items():
        attributes[target] = coerce_optional_float(text_of(field_of(record, source)))
    return attributes


# [RECORD EXTRACTOR]
###############################################################################
def extract_drug(
    record: Any, settings: IngestionSettings | None = None
) -> ExtractedDrug | None:
    """Flatten one decoded DrugBank record.

    Returns None when the record carries no DrugBank identifier. Fields that
    are missing in the source come back as None or as empty collections.
    """
    drugbank_id = primary_identifier(record)
    if drugbank_id is None:
        return None
    limits = settings or server_settings.ingestion
    max_entities = limits.max_protein_entities
    return ExtractedDrug(
        drugbank_id=drugbank_id,
        drug_type=attribute_of(record, TOP_LEVEL_MARKER_ATTRIBUTE),
        all_ids=identifier_values(record),
        attributes=extract_attributes(record),
        groups=extract_texts(record, "groups", "group"),
        categories=extract_categories(record),
        synonyms=extract_texts(record, "synonyms", "synonym"),
        calculated_properties=extract_keyed_values(
            record, "calculated-properties", "property", "kind", "value"
        ),
        external_identifiers=extract_keyed_values(
            record, "external-identifiers", "external-identifier", "resource", "identifier"
        ),
        drug_interactions=extract_drug_interactions(record, limits.max_drug_interactions),
        food_interactions=extract_texts(record, "food-interactions", "food-interaction")[
            : limits.max_food_interactions
        ],
        targets=extract_protein_entities(record, "targets", "target", max_entities),
        enzymes=extract_protein_entities(record, "enzymes", "enzyme", max_entities),
        carriers=extract_protein_entities(record, "carriers", "carrier", max_entities),
        transporters=extract_protein_entities(
            record, "transporters", "transporter", max_entities
        ),
        salts=extract_salts(record),
        pathways=extract_pathways(record),
        products=extract_products(record, limits.max_products),
        atc_codes=extract_atc_codes(record),
    )


__all__ = [
    "ExtractedDrug",
    "as_list",
    "decode_element",
    "extract_drug",
    "primary_identifier",
    "text_of",
]
