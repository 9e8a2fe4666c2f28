"""
Consulta y administración de respuestas y sus adjuntos.

Los adjuntos se guardan como descriptores JSON en la propia respuesta
(nombre, tipo MIME, contenido base64 o data URL y pregunta de origen).
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.crud import crud
from app.models.models import FormResponse
from app.services.upload_service import decode_attachment

logger = logging.getLogger(__name__)


class ResponseService:

    @staticmethod
    def list_responses(db: Session) -> List[FormResponse]:
        return crud.list_responses(db)

    @staticmethod
    def get_response(db: Session, response_id: int) -> FormResponse:
        response = crud.get_response_by_id(db, response_id)
        if not response:
            raise NotFoundError("Respuesta no encontrada")
        return response

    @staticmethod
    def list_by_section(db: Session, section: str) -> List[FormResponse]:
        """
        Respuestas de una sección, más recientes primero.

        Raises:
            NotFoundError: Si la sección no tiene respuestas
        """
        responses = crud.list_responses(db, section=section)
        if not responses:
            raise NotFoundError(f"No hay respuestas para la sección {section}")
        return responses

    @staticmethod
    def delete_response(db: Session, response_id: int) -> None:
        response = ResponseService.get_response(db, response_id)
        db.delete(response)
        db.commit()
        logger.info(f"Respuesta {response_id} eliminada")

    # =========================================================
    # ADJUNTOS
    # =========================================================

    @staticmethod
    def list_attachments(db: Session, response_id: int) -> List[dict]:
        """Descriptores de adjuntos sin el contenido."""
        response = ResponseService.get_response(db, response_id)
        return [
            {
                "index": index,
                "file_name": attachment.get("fileName") or f"adjunto_{index}",
                "mime_type": attachment.get("mimeType") or "application/octet-stream",
                "size": attachment.get("size") or 0,
                "question": attachment.get("question"),
            }
            for index, attachment in enumerate(response.attachments or [])
        ]

    @staticmethod
    def get_attachment(db: Session, response_id: int, index: int) -> Tuple[str, bytes, str]:
        """
        Contenido decodificado de un adjunto.

        Returns:
            (nombre, bytes, mime)

        Raises:
            NotFoundError: Respuesta o índice inexistente
        """
        response = ResponseService.get_response(db, response_id)
        attachments = response.attachments or []
        if index < 0 or index >= len(attachments):
            raise NotFoundError("Adjunto no encontrado")

        attachment = attachments[index]
        content = decode_attachment(attachment.get("fileData") or "")
        return (
            attachment.get("fileName") or f"adjunto_{index}",
            content,
            attachment.get("mimeType") or "application/octet-stream",
        )
