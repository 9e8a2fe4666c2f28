"""
Router de descarga de documentos generados (anexos DOCX y transcripciones TXT).

La primera descarga de un documento marca su respuesta como en revisión
(pendiente -> en_revision); en cualquier otro estado la descarga no cambia
nada.

Headers de descarga:
    - Content-Type: text/plain para txt, DOCX para cualquier otro tipo
    - Content-Disposition: attachment; filename="<generated_id>.<ext>"
      (más filename*=UTF-8'' si el id trae caracteres fuera de ASCII)
    - Content-Length: largo exacto del contenido
"""

import io
import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.database import get_db
from app.schemas.document_schemas import GeneratedDocumentInfo
from app.services.document_service import DocumentStore, media_type_for

router = APIRouter(prefix="/generador", tags=["generador"])

logger = logging.getLogger(__name__)


@router.get("/download/{generated_id}")
def download_document(generated_id: str, db: Session = Depends(get_db)):
    """
    Descargar un documento generado.

    Args:
        generated_id (str): ANEXO_<TRABAJADOR>_<ms> o FORMULARIO_<id>_<ms>

    Returns:
        StreamingResponse: Contenido con headers de descarga

    Raises:
        404: No existe un documento con ese generated_id

    Example:
        GET /generador/download/FORMULARIO_12_1715353200000

        Response (200):
        Content-Type: text/plain
        Content-Disposition: attachment; filename="FORMULARIO_12_1715353200000.txt"
    """
    document = DocumentStore.get_by_generated_id(db, generated_id)
    content = document.content
    headers = DocumentStore.download_headers(document)
    response_id = document.response_id
    media_type = media_type_for(document.kind)

    DocumentStore.mark_reviewed(db, response_id)

    logger.info(f"Documento descargado: {generated_id} ({len(content)} bytes)")
    return StreamingResponse(io.BytesIO(content), media_type=media_type, headers=headers)


@router.get("/info/{generated_id}", response_model=GeneratedDocumentInfo)
def document_info(generated_id: str, db: Session = Depends(get_db)):
    document = DocumentStore.get_by_generated_id(db, generated_id)
    return GeneratedDocumentInfo.from_document(document)


@router.get("/info-by-response/{response_id}", response_model=GeneratedDocumentInfo)
def document_info_by_response(response_id: int, db: Session = Depends(get_db)):
    """Documento más reciente generado para la respuesta."""
    document = DocumentStore.get_by_response_id(db, response_id)
    if document is None:
        raise NotFoundError("No hay documento generado para esta respuesta")
    return GeneratedDocumentInfo.from_document(document)


@router.get("/docxs", response_model=List[GeneratedDocumentInfo])
def list_documents(db: Session = Depends(get_db)):
    return [GeneratedDocumentInfo.from_document(document) for document in DocumentStore.list_documents(db)]
