from app.models.models import Workflow
from app.services.crypto_service import looks_encrypted

WORKFLOW = {
    "name": "Ingreso de personal",
    "status": "activo",
    "management-category": "Personas",
    "company": "ACME SPA",
    "department": "RRHH",
    "nodes": [
        {"id": "n1", "title": "Firmar contrato", "priority": "alta", "assignedTo": "ana@empresa.cl", "dueDate": "2024-06-01"},
        {"id": "n2", "title": "Entregar equipo"},
    ],
}


def test_workflows_require_identity(client):
    assert client.get("/workflows").status_code == 401
    assert client.post("/workflows", json=WORKFLOW).status_code == 401


def test_create_and_read_back(client, db, internal_headers):
    created = client.post("/workflows", json=WORKFLOW, headers=internal_headers)

    assert created.status_code == 201
    body = created.json()
    assert body["name"] == "Ingreso de personal"
    assert body["management-category"] == "Personas"
    assert body["field_state"] == "encrypted"
    assert body["nodes"][0]["title"] == "Firmar contrato"
    assert body["nodes"][0]["dueDate"] == "2024-06-01"

    row = db.get(Workflow, body["id"])
    assert looks_encrypted(row.name)
    assert looks_encrypted(row.management_category)
    assert looks_encrypted(row.nodes[0]["assignedTo"])
    assert row.department == "RRHH"

    fetched = client.get(f"/workflows/{body['id']}", headers=internal_headers).json()
    assert fetched["company"] == "ACME SPA"
    assert [w["id"] for w in client.get("/workflows", headers=internal_headers).json()] == [body["id"]]


def test_partial_update(client, auth_headers):
    workflow_id = client.post("/workflows", json=WORKFLOW, headers=auth_headers).json()["id"]

    response = client.put(
        f"/workflows/{workflow_id}",
        json={"management-category": "Operaciones"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["management-category"] == "Operaciones"
    assert body["name"] == "Ingreso de personal"
    assert len(body["nodes"]) == 2


def test_delete_workflow(client, internal_headers):
    workflow_id = client.post("/workflows", json=WORKFLOW, headers=internal_headers).json()["id"]

    assert client.delete(f"/workflows/{workflow_id}", headers=internal_headers).status_code == 200
    assert client.get(f"/workflows/{workflow_id}", headers=internal_headers).status_code == 404


def test_migrate_encryption_endpoint(client, db, internal_headers):
    db.add(Workflow(name="Proceso antiguo", status="activo", nodes=[{"id": "a", "title": "Paso 1"}]))
    db.commit()

    first = client.post("/workflows/migrate-encryption", headers=internal_headers).json()
    second = client.post("/workflows/migrate-encryption", headers=internal_headers).json()

    assert first == {"total": 1, "migrated": 1, "skipped": 0}
    assert second == {"total": 1, "migrated": 0, "skipped": 1}

    listed = client.get("/workflows", headers=internal_headers).json()
    assert listed[0]["name"] == "Proceso antiguo"
    assert listed[0]["nodes"] == [{"id": "a", "title": "Paso 1"}]
