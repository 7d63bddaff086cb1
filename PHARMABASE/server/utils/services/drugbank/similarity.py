from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.database.schema import entity_column_candidates
from PHARMABASE.server.utils.configurations import QuerySettings, server_settings
from PHARMABASE.server.utils.constants import (
    ATC_PREFIX_LENGTH,
    DRUG_CATEGORIES_TABLE,
    DRUG_TARGETS_TABLE,
    DRUGS_TABLE,
)
from PHARMABASE.server.utils.repository.serializer import DrugRecordSerializer
from PHARMABASE.server.utils.services.drugbank.errors import DrugNotFoundError


###############################################################################
@dataclass
class SimilarDrug:
    drugbank_id: str
    name: str
    groups: list[str]
    similarity_score: float
    target_similarity: float
    category_similarity: float
    atc_similarity: float
    shared_targets: list[str] = field(default_factory=list)
    shared_categories: list[str] = field(default_factory=list)
    shared_atc_prefixes: list[str] = field(default_factory=list)


###############################################################################
class LabelSet:
    """Case-insensitive set of labels that remembers the first spelling seen."""

    def __init__(self, values: list[str] | None = None) -> None:
        self.labels: dict[str, str] = {}
        for value in values or []:
            self.add(value)

    # -------------------------------------------------------------------------
    def add(self, value: Any) -> None:
        if not isinstance(value, str) or not value.strip():
            return
        label = value.strip()
        self.labels.setdefault(label.casefold(), label)

    # -------------------------------------------------------------------------
    def __bool__(self) -> bool:
        return bool(self.labels)

    # -------------------------------------------------------------------------
    def keys(self) -> set[str]:
        return set(self.labels)

    # -------------------------------------------------------------------------
    def values(self) -> list[str]:
        return list(self.labels.values())

    # -------------------------------------------------------------------------
    def shared_with(self, other: LabelSet) -> list[str]:
        return [label for key, label in self.labels.items() if key in other.labels]


# -----------------------------------------------------------------------------
def jaccard(left: LabelSet, right: LabelSet) -> float:
    union = left.keys() | right.keys()
    if not union:
        return 0.0
    return len(left.keys() & right.keys()) / len(union)


# -----------------------------------------------------------------------------
def atc_prefixes(codes: list[Any]) -> LabelSet:
    prefixes = LabelSet()
    for code in codes:
        if isinstance(code, str) and code.strip():
            prefixes.add(code.strip()[:ATC_PREFIX_LENGTH])
    return prefixes


###############################################################################
class DrugSimilarityEngine:
    """Rank drugs by weighted Jaccard similarity to a reference drug.

    Three dimensions are compared: target names, category labels and ATC
    prefixes (first five characters). Candidates are drugs sharing at least one
    target or category with the reference, discovered through the child tables
    in first-seen order and capped by `similarity_candidate_limit`.
    """

    def __init__(
        self, database: DrugBankDatabase, settings: QuerySettings | None = None
    ) -> None:
        self.database = database
        self.settings = settings or server_settings.query
        self.serializer = DrugRecordSerializer()

    # -------------------------------------------------------------------------
    def load_label_sets(
        self, table: str, column: str, drug_ids: list[str]
    ) -> dict[str, LabelSet]:
        label_sets: dict[str, LabelSet] = {drug_id: LabelSet() for drug_id in drug_ids}
        if not drug_ids:
            return label_sets
        rows = self.database.fetch_all(
            f"SELECT drug_id, {column} AS label FROM {table} "
            "WHERE drug_id IN :drug_ids ORDER BY rowid",
            {"drug_ids": drug_ids},
            expanding=("drug_ids",),
        )
        for row in rows:
            label_sets[row["drug_id"]].add(row["label"])
        return label_sets

    # -------------------------------------------------------------------------
    def find_matching_drugs(
        self, table: str, column: str, labels: list[str], exclude: str, limit: int
    ) -> list[str]:
        if not labels or limit <= 0:
            return []
        rows = self.database.fetch_all(
            f"SELECT drug_id, MIN(rowid) AS first_seen FROM {table} "
            f"WHERE {column} COLLATE NOCASE IN :labels AND drug_id != :exclude "
            "GROUP BY drug_id ORDER BY first_seen LIMIT :limit",
            {"labels": labels, "exclude": exclude, "limit": limit},
            expanding=("labels",),
        )
        return [row["drug_id"] for row in rows]

    # -------------------------------------------------------------------------
    def resolve_label_columns(self) -> tuple[str, str]:
        target_column = self.database.resolve_column(
            DRUG_TARGETS_TABLE, entity_column_candidates(DRUG_TARGETS_TABLE, "name")
        )
        category_column = self.database.resolve_column(
            DRUG_CATEGORIES_TABLE,
            entity_column_candidates(DRUG_CATEGORIES_TABLE, "category"),
        )
        return target_column, category_column

    # -------------------------------------------------------------------------
    def discover_candidates(
        self,
        drugbank_id: str,
        targets: LabelSet,
        categories: LabelSet,
        columns: tuple[str, str],
    ) -> list[str]:
        target_column, category_column = columns
        cap = self.settings.similarity_candidate_limit
        candidates: dict[str, None] = {}
        for drug_id in self.find_matching_drugs(
            DRUG_TARGETS_TABLE, target_column, targets.values(), drugbank_id, cap
        ):
            candidates.setdefault(drug_id, None)
        remaining = cap - len(candidates)
        for drug_id in self.find_matching_drugs(
            DRUG_CATEGORIES_TABLE, category_column, categories.values(), drugbank_id, cap
        ):
            if remaining <= 0:
                break
            if drug_id in candidates:
                continue
            candidates[drug_id] = None
            remaining -= 1
        return list(candidates)

    # -------------------------------------------------------------------------
    def load_drug_rows(self, drug_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not drug_ids:
            return {}
        rows = self.database.fetch_all(
            f"SELECT drugbank_id, name, groups, atc_codes FROM {DRUGS_TABLE} "
            "WHERE drugbank_id IN :drug_ids",
            {"drug_ids": drug_ids},
            expanding=("drug_ids",),
        )
        return {row["drugbank_id"]: row for row in rows}

    # -------------------------------------------------------------------------
    def find_similar(
        self, drugbank_id: str, limit: int | None = None
    ) -> list[SimilarDrug]:
        limit = limit if limit is not None else self.settings.default_limit
        reference = self.load_drug_rows([drugbank_id]).get(drugbank_id)
        if reference is None:
            raise DrugNotFoundError(drugbank_id)
        columns = self.resolve_label_columns()
        target_column, category_column = columns
        ref_targets = self.load_label_sets(
            DRUG_TARGETS_TABLE, target_column, [drugbank_id]
        )[drugbank_id]
        ref_categories = self.load_label_sets(
            DRUG_CATEGORIES_TABLE, category_column, [drugbank_id]
        )[drugbank_id]
        ref_atc = atc_prefixes(self.serializer.deserialize_json(reference["atc_codes"]))
        if not ref_targets and not ref_categories and not ref_atc:
            return []

        candidate_ids = self.discover_candidates(
            drugbank_id, ref_targets, ref_categories, columns
        )
        if not candidate_ids:
            return []
        drug_rows = self.load_drug_rows(candidate_ids)
        target_sets = self.load_label_sets(
            DRUG_TARGETS_TABLE, target_column, candidate_ids
        )
        category_sets = self.load_label_sets(
            DRUG_CATEGORIES_TABLE, category_column, candidate_ids
        )

        weights = self.settings
        precision = self.settings.score_precision
        scored: list[tuple[float, SimilarDrug]] = []
        for candidate_id in candidate_ids:
            row = drug_rows.get(candidate_id)
            if row is None:
                continue
            candidate_atc = atc_prefixes(self.serializer.deserialize_json(row["atc_codes"]))
            target_score = jaccard(ref_targets, target_sets[candidate_id])
            category_score = jaccard(ref_categories, category_sets[candidate_id])
            atc_score = jaccard(ref_atc, candidate_atc)
            composite = (
                weights.target_weight * target_score
                + weights.category_weight * category_score
                + weights.atc_weight * atc_score
            )
            if composite <= 0:
                continue
            scored.append(
                (
                    composite,
                    SimilarDrug(
                        drugbank_id=candidate_id,
                        name=row["name"] or "",
                        groups=self.serializer.deserialize_json(row["groups"]),
                        similarity_score=round(min(composite, 1.0), precision),
                        target_similarity=round(target_score, precision),
                        category_similarity=round(category_score, precision),
                        atc_similarity=round(atc_score, precision),
                        shared_targets=ref_targets.shared_with(target_sets[candidate_id]),
                        shared_categories=ref_categories.shared_with(
                            category_sets[candidate_id]
                        ),
                        shared_atc_prefixes=ref_atc.shared_with(candidate_atc),
                    ),
                )
            )

        # stable sort: equal scores keep discovery order
        scored.sort(key=lambda item: item[0], reverse=True)
        return [result for _, result in scored[:limit]]
