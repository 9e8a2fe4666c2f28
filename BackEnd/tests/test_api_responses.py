import base64
from io import BytesIO
from urllib.parse import quote

import pytest
from docx import Document

from app.models.models import Company, FormResponse, GeneratedDocument
from app.services.document_service import DOCX_MEDIA_TYPE, DocumentStore
from tests.conftest import HR_EMAIL, USER_EMAIL


def submission(form_id, token=None, company="ACME SPA", answers=None, attachments=None):
    return {
        "formId": form_id,
        "user": {
            "uid": "u-1",
            "name": "Ana Pérez",
            "email": USER_EMAIL,
            "company": company,
            "token": token,
        },
        "answers": answers if answers is not None else {"Motivo": "Descanso", "Días": 5},
        "attachments": attachments or [],
    }


@pytest.fixture
def vacation_form(make_form):
    return make_form()


# =========================================================
# ENVÍO
# =========================================================

def test_submit_with_session_token(client, db, auth_token, vacation_form, email_service):
    response = client.post("/respuestas", json=submission(vacation_form.id, token=auth_token))

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Formulario guardado"
    assert body["status"] == "pendiente"
    assert body["generated_id"].startswith(f"FORMULARIO_{body['response_id']}_")

    stored = db.get(FormResponse, body["response_id"])
    assert stored.form_title == "Solicitud de vacaciones"
    assert stored.submitted_by == "Ana Pérez"
    assert stored.answers == {"Motivo": "Descanso", "Días": 5}

    recipients = [mail["to"] for mail in email_service.sent]
    assert recipients == [HR_EMAIL, USER_EMAIL]


def test_submit_with_invalid_token(client, db, vacation_form):
    response = client.post("/respuestas", json=submission(vacation_form.id, token="f" * 64))

    assert response.status_code == 401
    assert response.json() == {"error": "Token inválido: not_found"}
    assert db.query(FormResponse).count() == 0


def test_submit_without_token(client, vacation_form):
    response = client.post("/respuestas", json=submission(vacation_form.id))
    assert response.status_code == 401


def test_internal_submission_skips_token(client, vacation_form, internal_headers):
    response = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers)
    assert response.status_code == 201


def test_submit_unknown_form(client, internal_headers):
    response = client.post("/respuestas", json=submission(999), headers=internal_headers)
    assert response.status_code == 404


def test_submit_company_not_authorized(client, db, make_form, internal_headers):
    form = make_form(companies=("OTRA SA",))

    response = client.post("/respuestas", json=submission(form.id), headers=internal_headers)

    assert response.status_code == 403
    assert "ACME SPA" in response.json()["error"]
    assert db.query(FormResponse).count() == 0


def test_company_authorization_ignores_case(client, make_form, internal_headers):
    form = make_form(companies=("acme spa",))

    response = client.post("/respuestas", json=submission(form.id), headers=internal_headers)

    assert response.status_code == 201


def test_invalid_attachment_is_rejected_before_saving(client, db, vacation_form, internal_headers):
    attachments = [{"fileName": "malo.pdf", "mimeType": "application/pdf", "fileData": "%%%no-base64%%%"}]

    response = client.post(
        "/respuestas", json=submission(vacation_form.id, attachments=attachments), headers=internal_headers
    )

    assert response.status_code == 400
    assert db.query(FormResponse).count() == 0


def test_generation_failure_keeps_submission(client, db, vacation_form, internal_headers, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("disco lleno")

    monkeypatch.setattr(DocumentStore, "generate_for_response", staticmethod(broken))

    response = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers)

    assert response.status_code == 201
    assert response.json()["generated_id"] is None
    assert db.query(FormResponse).count() == 1
    assert db.query(GeneratedDocument).count() == 0


# =========================================================
# DOCUMENTOS GENERADOS
# =========================================================

def test_transcript_download_marks_review(client, db, vacation_form, internal_headers):
    body = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers).json()
    generated_id = body["generated_id"]

    response = client.get(f"/generador/download/{generated_id}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["content-disposition"] == f'attachment; filename="{generated_id}.txt"'
    assert response.headers["content-length"] == str(len(response.content))
    assert "1. Motivo\n   Descanso" in response.content.decode("utf-8")

    stored = client.get(f"/respuestas/{body['response_id']}").json()
    assert stored["status"] == "en_revision"
    assert stored["reviewed_at"] is not None


def test_annex_submission_generates_docx(client, db, make_form, internal_headers):
    db.add(Company(name="ACME SPA", rut="76.000.000-0"))
    db.commit()
    form = make_form(title="Anexo de contrato", section="Anexos")

    answers = {
        "Nombre del trabajador": "Juan Soto",
        "Rut del trabajador": "11.111.111-1",
        "MONTO DEL NUEVO SUELDO:": "900000",
    }
    body = client.post("/respuestas", json=submission(form.id, answers=answers), headers=internal_headers).json()

    assert body["generated_id"].startswith("ANEXO_JUAN_SOTO_")

    response = client.get(f"/generador/download/{body['generated_id']}")
    assert response.headers["content-type"] == DOCX_MEDIA_TYPE
    assert response.headers["content-disposition"].endswith('.docx"')

    document = Document(BytesIO(response.content))
    assert document.tables[0].cell(2, 0).text == "RUT: 76.000.000-0"
    assert any("$900000" in p.text for p in document.paragraphs)


def test_annex_download_with_non_latin1_worker_name(client, db, make_form, internal_headers):
    form = make_form(title="Anexo de contrato", section="Anexos")
    answers = {"Nombre del trabajador": "Zoë O’Brien Łukasz", "Rut del trabajador": "11.111.111-1"}
    body = client.post("/respuestas", json=submission(form.id, answers=answers), headers=internal_headers).json()

    generated_id = body["generated_id"]
    assert generated_id.startswith("ANEXO_ZOË_O’BRIEN_ŁUKASZ_")

    response = client.get(f"/generador/download/{generated_id}")

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="ANEXO_ZO__O_BRIEN__UKASZ_')
    assert f"filename*=UTF-8''{quote(generated_id)}.docx" in disposition


def test_document_info_endpoints(client, vacation_form, internal_headers):
    body = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers).json()

    info = client.get(f"/generador/info/{body['generated_id']}").json()
    by_response = client.get(f"/generador/info-by-response/{body['response_id']}").json()
    listing = client.get("/generador/docxs").json()

    assert info["kind"] == "txt"
    assert info["response_id"] == body["response_id"]
    assert by_response["generated_id"] == body["generated_id"]
    assert [d["generated_id"] for d in listing] == [body["generated_id"]]


def test_unknown_document(client):
    assert client.get("/generador/download/FORMULARIO_1_0").status_code == 404
    assert client.get("/generador/info-by-response/999").status_code == 404


# =========================================================
# CONSULTAS Y ADJUNTOS
# =========================================================

def test_list_by_section(client, vacation_form, internal_headers):
    client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers)

    assert len(client.get("/respuestas").json()) == 1
    assert len(client.get("/respuestas/section/Vacaciones").json()) == 1
    assert client.get("/respuestas/section/Anexos").status_code == 404


def test_attachments_listing_and_download(client, vacation_form, internal_headers):
    content = "Certificado médico".encode("utf-8")
    attachments = [{
        "fileName": "licencia médica.txt",
        "mimeType": "text/plain",
        "fileData": "data:text/plain;base64," + base64.b64encode(content).decode(),
        "question": "Respaldo",
    }]
    body = client.post(
        "/respuestas", json=submission(vacation_form.id, attachments=attachments), headers=internal_headers
    ).json()

    listing = client.get(f"/respuestas/{body['response_id']}/adjuntos").json()
    assert listing == [{
        "index": 0,
        "file_name": "licencia médica.txt",
        "mime_type": "text/plain",
        "size": len(content),
        "question": "Respaldo",
    }]

    response = client.get(f"/respuestas/{body['response_id']}/adjuntos/0")
    assert response.status_code == 200
    assert response.content == content
    assert "filename*=UTF-8''licencia%20m%C3%A9dica.txt" in response.headers["content-disposition"]

    assert client.get(f"/respuestas/{body['response_id']}/adjuntos/1").status_code == 404


def test_publish_and_delete_require_identity(client, vacation_form, internal_headers):
    body = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers).json()
    response_id = body["response_id"]

    assert client.put(f"/respuestas/public/{response_id}").status_code == 401
    published = client.put(f"/respuestas/public/{response_id}", headers=internal_headers)
    assert published.json()["status"] == "publicado"

    assert client.delete(f"/respuestas/{response_id}").status_code == 401
    assert client.delete(f"/respuestas/{response_id}", headers=internal_headers).status_code == 200
    assert client.get(f"/respuestas/{response_id}").status_code == 404


# =========================================================
# CHAT
# =========================================================

def test_chat_flow(client, vacation_form, internal_headers, email_service):
    body = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers).json()
    response_id = body["response_id"]
    email_service.sent.clear()

    created = client.post("/respuestas/chat", json={"responseId": response_id, "author": "RRHH", "text": "Falta firma"})
    client.post("/respuestas/chat", json={"responseId": response_id, "author": "Ana Pérez", "text": "Listo"})

    assert created.status_code == 201
    assert created.json()["read"] is False
    assert [mail["to"] for mail in email_service.sent] == [USER_EMAIL, HR_EMAIL]

    messages = client.get(f"/respuestas/{response_id}/chat").json()
    assert [m["text"] for m in messages] == ["Falta firma", "Listo"]

    marked = client.put("/respuestas/chat/marcar-leidos", params={"response_id": response_id})
    assert marked.json() == {"updated": 2}
    assert client.put("/respuestas/chat/marcar-leidos").json() == {"updated": 0}


def test_chat_requires_text(client, vacation_form, internal_headers):
    body = client.post("/respuestas", json=submission(vacation_form.id), headers=internal_headers).json()

    response = client.post("/respuestas/chat", json={"responseId": body["response_id"], "author": "RRHH", "text": "  "})

    assert response.status_code == 400


def test_chat_unknown_response(client):
    response = client.post("/respuestas/chat", json={"responseId": 999, "author": "RRHH", "text": "Hola"})
    assert response.status_code == 404
