import base64

import pytest

from app.models.models import Company
from app.services.company_service import CompanyService

PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def companies(db):
    rows = [
        Company(name="Constructora Andes SPA", rut="76.111.111-1"),
        Company(name="ACME SPA", rut="76.000.000-0", logo_data=PNG_1X1, logo_mime_type="image/png"),
    ]
    db.add_all(rows)
    db.commit()
    return rows


# =========================================================
# BÚSQUEDA APROXIMADA
# =========================================================

def test_exact_match_ignores_case(db, companies):
    company, exact = CompanyService.find_fuzzy(db, "acme spa")
    assert company.name == "ACME SPA"
    assert exact


def test_keyword_match(db, companies):
    company, exact = CompanyService.find_fuzzy(db, "Andes Limitada")
    assert company.name == "Constructora Andes SPA"
    assert not exact


def test_short_words_are_ignored(db, companies):
    assert CompanyService.find_fuzzy(db, "SPA") == (None, False)
    assert CompanyService.find_fuzzy(db, "") == (None, False)


def test_rut_only_from_exact_match(db, companies):
    exact = CompanyService.resolve_for_document(db, "ACME SPA")
    fuzzy = CompanyService.resolve_for_document(db, "Grupo ACME")
    missing = CompanyService.resolve_for_document(db, "Desconocida")

    assert exact.rut == "76.000.000-0"
    assert exact.logo.data == PNG_1X1
    assert fuzzy.rut == ""
    assert fuzzy.logo is not None
    assert missing.rut == ""
    assert missing.logo is None


# =========================================================
# API
# =========================================================

def test_register_company_with_logo(client, internal_headers):
    response = client.post(
        "/auth/empresas/register",
        data={"name": "ACME SPA", "rut": "76.000.000-0", "manager": "Pedro"},
        files={"logo": ("logo.png", PNG_1X1, "image/png")},
        headers=internal_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["has_logo"] is True
    assert body["logo_file_name"] == "logo.png"
    assert body["logo_size"] == len(PNG_1X1)


def test_register_company_requires_identity(client):
    response = client.post("/auth/empresas/register", data={"name": "ACME SPA", "rut": "76.000.000-0"})
    assert response.status_code == 401


def test_register_company_rejects_non_image_logo(client, db, internal_headers):
    response = client.post(
        "/auth/empresas/register",
        data={"name": "ACME SPA", "rut": "76.000.000-0"},
        files={"logo": ("logo.pdf", b"%PDF", "application/pdf")},
        headers=internal_headers,
    )

    assert response.status_code == 400
    assert db.query(Company).count() == 0


def test_duplicate_company(client, internal_headers):
    client.post("/auth/empresas/register", data={"name": "ACME SPA", "rut": "76.000.000-0"}, headers=internal_headers)

    response = client.post(
        "/auth/empresas/register",
        data={"name": "Otra", "rut": "76.000.000-0"},
        headers=internal_headers,
    )

    assert response.status_code == 409


def test_update_and_delete_company(client, internal_headers):
    company_id = client.post(
        "/auth/empresas/register",
        data={"name": "ACME SPA", "rut": "76.000.000-0"},
        headers=internal_headers,
    ).json()["id"]

    updated = client.put(f"/auth/empresas/{company_id}", data={"address": "Av. Providencia 123"}, headers=internal_headers)
    assert updated.json()["address"] == "Av. Providencia 123"
    assert updated.json()["name"] == "ACME SPA"

    assert client.put(f"/auth/empresas/{company_id}", headers=internal_headers).status_code == 400

    assert client.delete(f"/auth/empresas/{company_id}", headers=internal_headers).status_code == 200
    assert client.get(f"/auth/empresas/{company_id}").status_code == 404
    assert client.get("/auth/empresas").json() == []
