from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError

from PHARMABASE.server.schemas.drugs import (
    DrugDetails,
    DrugInteractionsResponse,
    DrugSearchResponse,
    ExternalIdentifiersResponse,
    HalfLifeSearchResponse,
    PathwaysResponse,
    ProductsResponse,
    SaltsResponse,
    SimilarDrugsResponse,
    StructureSearchResponse,
)
from PHARMABASE.server.utils.constants import DRUGS_API_URL, STRUCTURE_SEARCH_NOTE
from PHARMABASE.server.utils.logger import logger
from PHARMABASE.server.utils.services.drugbank.errors import (
    DatabaseUnavailableError,
    DrugNotFoundError,
    DrugQueryValidationError,
)
from PHARMABASE.server.utils.services.drugbank.query import DrugQueryEngine, coerce_bound

T = TypeVar("T")

router = APIRouter(prefix=DRUGS_API_URL, tags=["drugs"])

LIMIT_DESCRIPTION = "Maximum number of results to return"


# -----------------------------------------------------------------------------
def get_query_engine(request: Request) -> DrugQueryEngine:
    engine = getattr(request.app.state, "query_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="DrugBank database is not loaded",
        )
    return engine


# -----------------------------------------------------------------------------
def run_query(operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return operation(*args, **kwargs)
    except DrugQueryValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except DrugNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    except DatabaseUnavailableError as exc:
        logger.error("DrugBank query failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except SQLAlchemyError as exc:
        logger.exception("Unexpected database error during %s", operation.__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to query the DrugBank database",
        ) from exc


# [SEARCH ENDPOINTS]
###############################################################################
@router.get("/search/name", response_model=DrugSearchResponse)
def search_by_name(
    query: str = Query(..., description="Drug name or name prefix"),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> DrugSearchResponse:
    results = run_query(engine.search_by_name, query, limit)
    return DrugSearchResponse(
        method="search_by_name", query=query, count=len(results), results=results
    )


@router.get("/search/indication", response_model=DrugSearchResponse)
def search_by_indication(
    query: str = Query(..., description="Words to look up in indications"),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> DrugSearchResponse:
    results = run_query(engine.search_by_indication, query, limit)
    return DrugSearchResponse(
        method="search_by_indication", query=query, count=len(results), results=results
    )


@router.get("/search/atc", response_model=DrugSearchResponse)
def search_by_atc_code(
    code: str = Query(..., description="ATC code or code prefix", examples=["B01AC"]),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> DrugSearchResponse:
    results = run_query(engine.search_by_atc_code, code, limit)
    return DrugSearchResponse(
        method="search_by_atc_code", query=code, count=len(results), results=results
    )


@router.get("/search/structure", response_model=StructureSearchResponse)
def search_by_structure(
    smiles: str | None = Query(None, description="SMILES substring"),
    inchi: str | None = Query(None, description="InChI substring"),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> StructureSearchResponse:
    results = run_query(engine.search_by_structure, smiles, inchi, limit)
    return StructureSearchResponse(
        method="search_by_structure",
        query=(smiles or inchi or "").strip(),
        count=len(results),
        results=results,
        note=STRUCTURE_SEARCH_NOTE,
    )


@router.get("/search/half-life", response_model=HalfLifeSearchResponse)
def search_by_half_life(
    min_hours: str | None = Query(None, description="Lower bound in hours"),
    max_hours: str | None = Query(None, description="Upper bound in hours"),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> HalfLifeSearchResponse:
    results = run_query(engine.search_by_half_life, min_hours, max_hours, limit)
    return HalfLifeSearchResponse(
        min_hours=coerce_bound(min_hours, "min_hours"),
        max_hours=coerce_bound(max_hours, "max_hours"),
        count=len(results),
        results=results,
    )


@router.get("/search/{kind}", response_model=DrugSearchResponse)
def search_by_entity(
    kind: str,
    name: str = Query(..., description="Target, category, carrier or transporter name"),
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> DrugSearchResponse:
    results = run_query(engine.search_by_entity, kind, name, limit)
    return DrugSearchResponse(
        method=f"search_by_{kind.strip().lower()}",
        query=name,
        count=len(results),
        results=results,
    )


# [DRUG ENDPOINTS]
###############################################################################
@router.get("/{drugbank_id}", response_model=DrugDetails)
def get_drug_details(
    drugbank_id: str, engine: DrugQueryEngine = Depends(get_query_engine)
) -> DrugDetails:
    return DrugDetails(**run_query(engine.get_drug_details, drugbank_id))


@router.get("/{drugbank_id}/interactions", response_model=DrugInteractionsResponse)
def get_drug_interactions(
    drugbank_id: str, engine: DrugQueryEngine = Depends(get_query_engine)
) -> DrugInteractionsResponse:
    return DrugInteractionsResponse(**run_query(engine.get_drug_interactions, drugbank_id))


@router.get("/{drugbank_id}/pathways", response_model=PathwaysResponse)
def get_pathways(
    drugbank_id: str, engine: DrugQueryEngine = Depends(get_query_engine)
) -> PathwaysResponse:
    return PathwaysResponse(**run_query(engine.get_pathways, drugbank_id))


@router.get("/{drugbank_id}/products", response_model=ProductsResponse)
def get_products(
    drugbank_id: str,
    country: str | None = Query(None, description="Restrict products to one country"),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> ProductsResponse:
    return ProductsResponse(**run_query(engine.get_products, drugbank_id, country))


@router.get("/{drugbank_id}/identifiers", response_model=ExternalIdentifiersResponse)
def get_external_identifiers(
    drugbank_id: str, engine: DrugQueryEngine = Depends(get_query_engine)
) -> ExternalIdentifiersResponse:
    return ExternalIdentifiersResponse(
        **run_query(engine.get_external_identifiers, drugbank_id)
    )


@router.get("/{drugbank_id}/salts", response_model=SaltsResponse)
def get_salts(
    drugbank_id: str, engine: DrugQueryEngine = Depends(get_query_engine)
) -> SaltsResponse:
    return SaltsResponse(**run_query(engine.get_salts, drugbank_id))


@router.get("/{drugbank_id}/similar", response_model=SimilarDrugsResponse)
def get_similar_drugs(
    drugbank_id: str,
    limit: int | None = Query(None, description=LIMIT_DESCRIPTION),
    engine: DrugQueryEngine = Depends(get_query_engine),
) -> SimilarDrugsResponse:
    return SimilarDrugsResponse(**run_query(engine.find_similar, drugbank_id, limit))
