"""
API tests for the DrugBank endpoints served by the FastAPI application.
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from PHARMABASE.server.app import create_app
from PHARMABASE.server.database.database import DrugBankDatabase
from PHARMABASE.server.utils.constants import DRUGS_API_URL, SIMILARITY_NOTE


###############################################################################
@pytest.fixture()
def client(drugbank_store: str) -> Iterator[TestClient]:
    app = create_app(DrugBankDatabase(drugbank_store))
    with TestClient(app) as test_client:
        yield test_client


###############################################################################
def test_root_redirects_to_docs(client: TestClient) -> None:
    response = client.get("/", follow_redirects=False)
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/docs"


def test_get_drug_details(client: TestClient) -> None:
    response = client.get(f"{DRUGS_API_URL}/DB00001")
    assert response.status_code == 200
    payload = response.json()
    assert payload["name"] == "Aspirin"
    assert payload["half_life_hours"] == pytest.approx(4.5)
    assert payload["all_ids"] == ["DB00001", "APRD00264"]


def test_unknown_drug_returns_404(client: TestClient) -> None:
    response = client.get(f"{DRUGS_API_URL}/DB99999")
    assert response.status_code == 404
    assert "DB99999" in response.json()["detail"]
    assert client.get(f"{DRUGS_API_URL}/DB99999/similar").status_code == 404


###############################################################################
def test_search_by_name(client: TestClient) -> None:
    response = client.get(f"{DRUGS_API_URL}/search/name", params={"query": "asp"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["method"] == "search_by_name"
    assert payload["count"] == 1
    assert payload["results"][0]["drugbank_id"] == "DB00001"


def test_search_by_entity_kind(client: TestClient) -> None:
    response = client.get(
        f"{DRUGS_API_URL}/search/target",
        params={"name": "glucagon-like peptide 1 receptor"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["method"] == "search_by_target"
    assert [item["drugbank_id"] for item in payload["results"]] == ["DB00004", "DB00005"]


def test_search_by_half_life(client: TestClient) -> None:
    response = client.get(
        f"{DRUGS_API_URL}/search/half-life", params={"min_hours": "4", "max_hours": "8"}
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["min_hours"] == 4.0
    assert payload["max_hours"] == 8.0
    assert [item["drugbank_id"] for item in payload["results"]] == ["DB00001", "DB00003"]


def test_search_by_structure_includes_note(client: TestClient) -> None:
    response = client.get(
        f"{DRUGS_API_URL}/search/structure", params={"smiles": "OC1=CC=CC=C1"}
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["count"] == 1
    assert payload["note"]


###############################################################################
@pytest.mark.parametrize(
    "path, params",
    [
        ("/search/name", {}),
        ("/search/name", {"query": "--"}),
        ("/search/name", {"query": "aspirin", "limit": 0}),
        ("/search/half-life", {}),
        ("/search/half-life", {"min_hours": "abc"}),
        ("/search/half-life", {"min_hours": "9", "max_hours": "1"}),
        ("/search/enzyme", {"name": "cyp3a4"}),
        ("/search/structure", {}),
    ],
)
def test_invalid_requests_return_400(client: TestClient, path: str, params: dict) -> None:
    response = client.get(f"{DRUGS_API_URL}{path}", params=params)
    assert response.status_code == 400


###############################################################################
def test_per_drug_endpoints(client: TestClient) -> None:
    interactions = client.get(f"{DRUGS_API_URL}/DB00001/interactions").json()
    assert interactions["interaction_count"] == 1

    pathways = client.get(f"{DRUGS_API_URL}/DB00001/pathways").json()
    assert pathways["pathways"][0]["name"] == "Aspirin Action Pathway"

    products = client.get(
        f"{DRUGS_API_URL}/DB00001/products", params={"country": "US"}
    ).json()
    assert products["product_count"] == 1
    assert products["products"][0]["labeller"] == "Bayer HealthCare"

    identifiers = client.get(f"{DRUGS_API_URL}/DB00001/identifiers").json()
    assert identifiers["external_identifiers"]["ChEBI"] == "15365"

    salts = client.get(f"{DRUGS_API_URL}/DB00001/salts").json()
    assert salts["salts"][0]["name"] == "Aspirin lysine"


def test_similar_drugs_endpoint(client: TestClient) -> None:
    response = client.get(f"{DRUGS_API_URL}/DB00004/similar", params={"limit": 5})
    assert response.status_code == 200
    payload = response.json()
    assert payload["reference_drug"] == "Semaglutide"
    assert payload["note"] == SIMILARITY_NOTE
    assert payload["results"][0]["drugbank_id"] == "DB00005"
    assert payload["results"][0]["similarity_score"] == pytest.approx(1.0)
