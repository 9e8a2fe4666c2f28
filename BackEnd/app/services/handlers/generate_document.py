# app/services/handlers/generate_document.py
import logging

from app.services.document_service import DocumentStore
from .base import SubmissionContext, SubmissionHandler

logger = logging.getLogger(__name__)


class GenerateDocumentHandler(SubmissionHandler):
    """
    Genera el anexo DOCX o la transcripción TXT de la respuesta guardada.

    Un fallo aquí no deshace el envío: la respuesta queda guardada y
    generated_document queda en None.
    """

    async def _handle(self, context: SubmissionContext):
        try:
            context.generated_document = DocumentStore.generate_for_response(
                context.db, context.response, context.now, context.city
            )
        except Exception as e:
            context.db.rollback()
            context.generation_error = str(e)
            logger.exception(
                f"[GenerateDocumentHandler] Error generando documento para respuesta {context.response.id}: {e}"
            )
