import pytest

from app.core.exceptions import NotFoundError, PreconditionFailedError, ValidationError
from app.enums.enums import ResponseStatus
from app.models.models import ApprovedDocument, ClientSignature, FormResponse, ResponseMessage
from app.services.approval_service import ApprovalStateMachine
from app.services.document_service import DocumentStore

PDF = ("correccion.pdf", b"%PDF-1.4 corregido", "application/pdf")
SIGNED = ("firmado.pdf", b"%PDF-1.4 firmado", "application/pdf")


@pytest.fixture
def response(db, make_form):
    form = make_form()
    row = FormResponse(
        form_id=form.id,
        form_title=form.title,
        section=form.section,
        submitted_by="Juan Soto",
        company="ACME SPA",
        user_email="juan@acme.cl",
        answers={"Motivo": "Descanso"},
        attachments=[],
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def test_new_response_is_pending(response):
    assert response.status == ResponseStatus.pendiente
    assert not response.has_correction


def test_mark_reviewed_only_from_pending(db, response):
    DocumentStore.mark_reviewed(db, response.id)
    assert response.status == ResponseStatus.en_revision
    first_review = response.reviewed_at

    DocumentStore.mark_reviewed(db, response.id)
    assert response.reviewed_at == first_review


def test_mark_reviewed_does_not_touch_approved(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    DocumentStore.mark_reviewed(db, response.id)
    assert response.status == ResponseStatus.aprobado


def test_approve_without_correction_fails(db, response):
    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.approve(db, response.id, "rrhh")
    assert db.query(ApprovedDocument).count() == 0
    assert response.status == ResponseStatus.pendiente


def test_approve_with_attached_correction(db, response):
    ApprovalStateMachine.attach_correction(db, response.id, PDF)

    updated, approved = ApprovalStateMachine.approve(db, response.id, "rrhh@empresa.test")

    assert updated.status == ResponseStatus.aprobado
    assert updated.approved_at is not None
    assert approved.file_data == PDF[1]
    assert approved.file_name == "correccion.pdf"
    assert approved.form_title == response.form_title
    assert approved.submitted_by == "Juan Soto"
    assert approved.approved_by == "rrhh@empresa.test"


def test_approve_with_upload_in_same_call(db, response):
    _, approved = ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    assert approved.file_size == len(PDF[1])
    assert response.has_correction


def test_second_approve_is_rejected(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)

    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    assert db.query(ApprovedDocument).count() == 1


def test_correction_not_allowed_after_approval(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.attach_correction(db, response.id, PDF)


def test_remove_correction_reverts_and_is_idempotent(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)

    ApprovalStateMachine.remove_correction(db, response.id)
    ApprovalStateMachine.remove_correction(db, response.id)

    assert response.status == ResponseStatus.en_revision
    assert not response.has_correction
    assert response.approved_at is None
    assert db.query(ApprovedDocument).count() == 0

    # puede volver a aprobarse
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    assert db.query(ApprovedDocument).count() == 1


def test_remove_correction_unknown_response(db):
    with pytest.raises(NotFoundError):
        ApprovalStateMachine.remove_correction(db, 999)


def test_get_approved_missing(db, response):
    with pytest.raises(NotFoundError):
        ApprovalStateMachine.get_approved(db, response.id)


def test_publish_from_any_state(db, response):
    ApprovalStateMachine.publish(db, response.id)
    assert response.status == ResponseStatus.publicado


# =========================================================
# FIRMA
# =========================================================

def test_signature_requires_approved(db, response):
    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.upload_client_signature(db, response.id, SIGNED)
    assert db.query(ClientSignature).count() == 0


def test_signature_not_allowed_when_published(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    ApprovalStateMachine.publish(db, response.id)

    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.upload_client_signature(db, response.id, SIGNED)


def test_only_one_signature_per_response(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)

    signature = ApprovalStateMachine.upload_client_signature(db, response.id, SIGNED)
    with pytest.raises(PreconditionFailedError):
        ApprovalStateMachine.upload_client_signature(db, response.id, SIGNED)

    assert db.query(ClientSignature).count() == 1
    assert signature.client_name == "Juan Soto"
    assert signature.client_email == "juan@acme.cl"
    assert signature.signed_by == "client"
    assert signature.status == "uploaded"


def test_delete_signature(db, response):
    ApprovalStateMachine.approve(db, response.id, "rrhh", PDF)
    ApprovalStateMachine.upload_client_signature(db, response.id, SIGNED)

    ApprovalStateMachine.delete_client_signature(db, response.id)

    assert ApprovalStateMachine.find_client_signature(db, response.id) is None
    with pytest.raises(NotFoundError):
        ApprovalStateMachine.delete_client_signature(db, response.id)


# =========================================================
# CHAT
# =========================================================

def test_post_message_requires_author_and_text(db, response):
    with pytest.raises(ValidationError):
        ApprovalStateMachine.post_message(db, response.id, " ", "hola")
    with pytest.raises(ValidationError):
        ApprovalStateMachine.post_message(db, response.id, "RRHH", "")


def test_mark_all_read_global_and_scoped(db, response, make_form):
    other = FormResponse(form_id=make_form().id, answers={}, attachments=[])
    db.add(other)
    db.commit()

    ApprovalStateMachine.post_message(db, response.id, "RRHH", "uno")
    ApprovalStateMachine.post_message(db, other.id, "RRHH", "dos")
    ApprovalStateMachine.post_message(db, other.id, "Juan Soto", "tres")

    assert ApprovalStateMachine.mark_all_read(db, response_id=other.id) == 2
    assert db.query(ResponseMessage).filter_by(read=False).count() == 1

    assert ApprovalStateMachine.mark_all_read(db) == 1
    assert db.query(ResponseMessage).filter_by(read=False).count() == 0


def test_messages_are_ordered(db, response):
    for text in ("primero", "segundo", "tercero"):
        ApprovalStateMachine.post_message(db, response.id, "RRHH", text)

    assert [m.text for m in ApprovalStateMachine.list_messages(db, response.id)] == ["primero", "segundo", "tercero"]
