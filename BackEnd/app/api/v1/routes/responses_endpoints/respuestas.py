"""
Router de respuestas de formularios.

El envío se procesa con una cadena de handlers (Chain of Responsibility):
    1. ValidateSubmissionHandler: token, formulario, empresa y adjuntos
    2. SaveResponseHandler: guarda la respuesta en estado pendiente
    3. NotifySubmissionHandler: avisa a RRHH y al emisor (mejor esfuerzo)
    4. GenerateDocumentHandler: anexo DOCX o transcripción TXT (mejor esfuerzo)

Un fallo en los pasos 3 o 4 no deshace el envío.
"""

import io
import logging
from datetime import datetime
from typing import List
from urllib.parse import quote

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.database import get_db
from app.schemas.auth_schemas import Identity
from app.schemas.response_schemas import (
    AttachmentInfo,
    ResponseOut,
    SubmissionRequest,
    SubmissionResult,
)
from app.services.approval_service import ApprovalStateMachine
from app.services.auth_service import get_current_identity, is_internal_request
from app.services.handlers.base import SubmissionContext, verify_chain_integrity
from app.services.handlers.generate_document import GenerateDocumentHandler
from app.services.handlers.notify_submission import NotifySubmissionHandler
from app.services.handlers.save_response import SaveResponseHandler
from app.services.handlers.validate_submission import ValidateSubmissionHandler
from app.services.notification_service import NotificationService, get_notifier
from app.services.response_service import ResponseService
from app.services.session_service import TokenAuth, get_token_auth

router = APIRouter(prefix="/respuestas", tags=["respuestas"])

logger = logging.getLogger(__name__)


def build_submission_chain():
    """
    Construir cadena de handlers del envío.

    Verifica que no hay ciclos en la cadena.
    """
    validate_handler = ValidateSubmissionHandler()
    save_handler = SaveResponseHandler()
    notify_handler = NotifySubmissionHandler()
    generate_handler = GenerateDocumentHandler()

    validate_handler.set_next(save_handler)
    save_handler.set_next(notify_handler)
    notify_handler.set_next(generate_handler)

    if not verify_chain_integrity(validate_handler):
        raise RuntimeError("Cadena de handlers de envío inválida")
    return validate_handler


@router.post("", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_response(
    payload: SubmissionRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token_auth: TokenAuth = Depends(get_token_auth),
    notifier: NotificationService = Depends(get_notifier),
    internal: bool = Depends(is_internal_request),
):
    """
    Enviar la respuesta a un formulario.

    Args:
        payload (SubmissionRequest):
            - formId: Formulario respondido
            - user: name, company, uid, email y token de sesión
            - answers: Mapa pregunta -> respuesta
            - attachments: fileName, mimeType y fileData (base64 o data URL)

    Returns:
        SubmissionResult: id de la respuesta y generated_id del documento
        (None si la generación falló)

    Raises:
        400: Adjunto inválido o mayor a 20 MiB
        401: Token inválido
        403: Empresa no autorizada para el formulario
        404: Formulario inexistente

    Example:
        POST /respuestas
        {
            "formId": 3,
            "user": {"name": "Ana Pérez", "company": "ACME SPA", "token": "9f2c..."},
            "answers": {"Nombre del trabajador": "Juan Soto"},
            "attachments": []
        }

        Response (201):
        {
            "message": "Formulario guardado",
            "response_id": 12,
            "status": "pendiente",
            "generated_id": "ANEXO_JUAN_SOTO_1715353200000"
        }
    """
    context = SubmissionContext(
        payload=payload,
        db=db,
        token_auth=token_auth,
        notifier=notifier,
        now=datetime.now(settings.timezone),
        city=settings.DOCUMENT_CITY,
        attachment_max_bytes=settings.GENERIC_UPLOAD_MAX_BYTES,
        internal=internal,
    )
    logger.info(f"[Correlation ID: {context.correlation_id}] Envío de respuesta al formulario {payload.form_id}")

    await build_submission_chain().handle(context)

    generated = context.generated_document
    return SubmissionResult(
        message="Formulario guardado",
        response_id=context.response.id,
        status=context.response.status,
        generated_id=generated.generated_id if generated else None,
    )


@router.get("", response_model=List[ResponseOut])
def list_responses(db: Session = Depends(get_db)):
    return ResponseService.list_responses(db)


@router.get("/section/{section}", response_model=List[ResponseOut])
def list_by_section(section: str, db: Session = Depends(get_db)):
    return ResponseService.list_by_section(db, section)


@router.get("/{response_id}", response_model=ResponseOut)
def get_response(response_id: int, db: Session = Depends(get_db)):
    return ResponseService.get_response(db, response_id)


@router.put("/public/{response_id}", response_model=ResponseOut)
def publish_response(
    response_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Marcar como publicado, desde cualquier estado."""
    return ApprovalStateMachine.publish(db, response_id)


@router.delete("/{response_id}")
def delete_response(
    response_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    ResponseService.delete_response(db, response_id)
    return {"message": "Respuesta eliminada"}


# =========================================================
# ADJUNTOS
# =========================================================

@router.get("/{response_id}/adjuntos", response_model=List[AttachmentInfo])
def list_attachments(response_id: int, db: Session = Depends(get_db)):
    return ResponseService.list_attachments(db, response_id)


@router.get("/{response_id}/adjuntos/{index}")
def download_attachment(response_id: int, index: int, db: Session = Depends(get_db)):
    filename, content, mime_type = ResponseService.get_attachment(db, response_id, index)
    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
        "Content-Length": str(len(content)),
    }
    return StreamingResponse(io.BytesIO(content), media_type=mime_type, headers=headers)
