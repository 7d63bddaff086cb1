from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


###############################################################################
class DrugSummary(BaseModel):
    drugbank_id: str = Field(..., examples=["DB00945"])
    name: str = Field(..., examples=["Acetylsalicylic acid"])
    description: str | None = None
    groups: list[str] = Field(default_factory=list)
    cas_number: str | None = None
    state: str | None = None


class HalfLifeDrugSummary(DrugSummary):
    half_life: str | None = None
    half_life_hours: float | None = None


###############################################################################
class DrugSearchResponse(BaseModel):
    method: str
    query: str
    count: int
    results: list[DrugSummary]


class StructureSearchResponse(DrugSearchResponse):
    note: str


class HalfLifeSearchResponse(BaseModel):
    method: str = "search_by_half_life"
    min_hours: float | None = None
    max_hours: float | None = None
    count: int
    results: list[HalfLifeDrugSummary]


###############################################################################
class DrugDetails(BaseModel):
    """Full record of one drug as stored in the DrugBank database."""

    drugbank_id: str
    all_ids: list[str] = Field(default_factory=list)
    name: str
    description: str | None = None
    drug_type: str | None = None
    cas_number: str | None = None
    unii: str | None = None
    state: str | None = None
    groups: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    indication: str | None = None
    pharmacodynamics: str | None = None
    mechanism_of_action: str | None = None
    toxicity: str | None = None
    absorption: str | None = None
    metabolism: str | None = None
    half_life: str | None = None
    half_life_hours: float | None = None
    protein_binding: str | None = None
    route_of_elimination: str | None = None
    volume_of_distribution: str | None = None
    clearance: str | None = None
    average_mass: float | None = None
    monoisotopic_mass: float | None = None
    calculated_properties: dict[str, str] = Field(default_factory=dict)
    external_identifiers: dict[str, str] = Field(default_factory=dict)
    atc_codes: list[str] = Field(default_factory=list)
    drug_interactions: list[dict[str, Any]] = Field(default_factory=list)
    food_interactions: list[str] = Field(default_factory=list)
    targets: list[dict[str, Any]] = Field(default_factory=list)
    enzymes: list[dict[str, Any]] = Field(default_factory=list)
    carriers: list[dict[str, Any]] = Field(default_factory=list)
    transporters: list[dict[str, Any]] = Field(default_factory=list)


###############################################################################
class DrugInteraction(BaseModel):
    drugbank_id: str | None = None
    name: str | None = None
    description: str | None = None


class DrugInteractionsResponse(BaseModel):
    drugbank_id: str
    drug_name: str
    interaction_count: int
    interactions: list[DrugInteraction]


###############################################################################
class PathwayDrug(BaseModel):
    drugbank_id: str | None = None
    name: str | None = None


class Pathway(BaseModel):
    smpdb_id: str | None = None
    name: str | None = None
    category: str | None = None
    drugs: list[PathwayDrug] = Field(default_factory=list)
    enzymes: list[str] = Field(default_factory=list)


class PathwaysResponse(BaseModel):
    drugbank_id: str
    drug_name: str
    pathway_count: int
    pathways: list[Pathway]


###############################################################################
class Product(BaseModel):
    name: str | None = None
    labeller: str | None = None
    ndc_id: str | None = None
    ndc_product_code: str | None = None
    dpd_id: str | None = None
    started_marketing_on: str | None = None
    ended_marketing_on: str | None = None
    dosage_form: str | None = None
    strength: str | None = None
    route: str | None = None
    fda_application_number: str | None = None
    generic: str | None = None
    over_the_counter: str | None = None
    approved: str | None = None
    country: str | None = None
    source: str | None = None


class ProductsResponse(BaseModel):
    drugbank_id: str
    drug_name: str
    country_filter: str
    product_count: int
    products: list[Product]


###############################################################################
class ExternalIdentifiersResponse(BaseModel):
    drugbank_id: str
    drug_name: str
    external_identifiers: dict[str, str] = Field(default_factory=dict)
    structure_identifiers: dict[str, str] = Field(default_factory=dict)
    all_drugbank_ids: list[str] = Field(default_factory=list)


###############################################################################
class Salt(BaseModel):
    drugbank_id: str | None = None
    name: str | None = None
    unii: str | None = None
    cas_number: str | None = None
    inchikey: str | None = None
    average_mass: float | None = None


class SaltsResponse(BaseModel):
    drugbank_id: str
    drug_name: str
    salt_count: int
    salts: list[Salt]


###############################################################################
class SimilarDrugResult(BaseModel):
    drugbank_id: str
    name: str
    groups: list[str] = Field(default_factory=list)
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    target_similarity: float
    category_similarity: float
    atc_similarity: float
    shared_targets: list[str] = Field(default_factory=list)
    shared_categories: list[str] = Field(default_factory=list)
    shared_atc_prefixes: list[str] = Field(default_factory=list)


class SimilarDrugsResponse(BaseModel):
    drugbank_id: str
    reference_drug: str
    count: int
    note: str
    results: list[SimilarDrugResult]
