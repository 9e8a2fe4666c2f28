"""
Router de corrección, aprobación y firma de respuestas.

Flujo:
    pendiente/en_revision --upload-correction--> (corrección adjunta)
    pendiente/en_revision --approve--> aprobado (+ documento aprobado)
    aprobado --remove-correction--> en_revision
    aprobado --upload-client-signature--> (firma del cliente, una sola)

Los PDFs se validan (application/pdf, máximo 10 MiB) antes de escribir.
"""

import io
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.database import get_db
from app.schemas.auth_schemas import Identity
from app.schemas.response_schemas import (
    ApprovalResult,
    ClientSignatureOut,
    ClientSignatureStatus,
    ResponseOut,
)
from app.services.approval_service import ApprovalStateMachine
from app.services.auth_service import get_current_identity
from app.services.notification_service import NotificationService, get_notifier
from app.services.upload_service import read_pdf_upload

router = APIRouter(prefix="/respuestas", tags=["aprobaciones"])

logger = logging.getLogger(__name__)


def _pdf_stream(filename: str, content: bytes, mime_type: str) -> StreamingResponse:
    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
        "Content-Length": str(len(content)),
    }
    return StreamingResponse(io.BytesIO(content), media_type=mime_type or "application/pdf", headers=headers)


@router.post("/{response_id}/upload-correction", response_model=ResponseOut)
async def upload_correction(
    response_id: int,
    correctedFile: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity = Depends(get_current_identity),
):
    """
    Adjuntar o reemplazar el PDF de corrección.

    Raises:
        400: Sin archivo, no es PDF o excede 10 MiB
        404: La respuesta no existe
        409: La respuesta ya está aprobada o publicada
    """
    upload = await read_pdf_upload(correctedFile, settings.CORRECTION_MAX_BYTES)
    return ApprovalStateMachine.attach_correction(db, response_id, upload)


@router.post("/{response_id}/approve", response_model=ApprovalResult)
async def approve_response(
    response_id: int,
    correctedFile: Optional[UploadFile] = File(None),
    approved_by: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationService = Depends(get_notifier),
    identity: Identity = Depends(get_current_identity),
):
    """
    Aprobar una respuesta.

    El PDF puede venir en este mismo request o haberse subido antes con
    upload-correction. Crea exactamente un documento aprobado.

    Raises:
        400: Archivo inválido
        404: La respuesta no existe
        409: Sin corrección o ya aprobada
    """
    upload = None
    if correctedFile is not None and correctedFile.filename:
        upload = await read_pdf_upload(correctedFile, settings.CORRECTION_MAX_BYTES)

    response, approved = ApprovalStateMachine.approve(
        db, response_id, approved_by or identity.email or "rrhh", upload
    )
    notifier.response_approved(response)
    return ApprovalResult(
        message="Formulario aprobado",
        response_id=response.id,
        status=response.status,
        approved_id=approved.id,
        approved_at=approved.approved_at,
    )


@router.delete("/{response_id}/remove-correction", response_model=ResponseOut)
def remove_correction(
    response_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Revertir aprobación: vuelve a en_revision sin corrección. Idempotente."""
    return ApprovalStateMachine.remove_correction(db, response_id)


@router.get("/download-approved-pdf/{response_id}")
def download_approved_pdf(response_id: int, db: Session = Depends(get_db)):
    approved = ApprovalStateMachine.get_approved(db, response_id)
    return _pdf_stream(approved.file_name, approved.file_data, approved.mime_type)


# =========================================================
# FIRMA DEL CLIENTE
# =========================================================

@router.post("/{response_id}/upload-client-signature", response_model=ClientSignatureOut)
async def upload_client_signature(
    response_id: int,
    signedFile: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Subir el PDF firmado por el cliente.

    Raises:
        400: Archivo inválido
        404: La respuesta no existe
        409: La respuesta no está aprobada o ya tiene firma
    """
    upload = await read_pdf_upload(signedFile, settings.CORRECTION_MAX_BYTES)
    return ApprovalStateMachine.upload_client_signature(db, response_id, upload)


@router.get("/{response_id}/client-signature")
def download_client_signature(response_id: int, db: Session = Depends(get_db)):
    signature = ApprovalStateMachine.get_client_signature(db, response_id)
    return _pdf_stream(signature.file_name, signature.file_data, signature.mime_type)


@router.delete("/{response_id}/client-signature")
def delete_client_signature(
    response_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    ApprovalStateMachine.delete_client_signature(db, response_id)
    return {"message": "Documento firmado eliminado"}


@router.get("/{response_id}/has-client-signature", response_model=ClientSignatureStatus)
def has_client_signature(response_id: int, db: Session = Depends(get_db)):
    ApprovalStateMachine.get_response(db, response_id)
    signature = ApprovalStateMachine.find_client_signature(db, response_id)
    if signature is None:
        return ClientSignatureStatus(exists=False)
    return ClientSignatureStatus(exists=True, signature=ClientSignatureOut.model_validate(signature))
