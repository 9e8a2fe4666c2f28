# app/services/handlers/validate_submission.py
import logging

from app.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from app.db.crud import crud
from app.services.form_service import FormService
from app.services.upload_service import validate_attachment
from .base import SubmissionContext, SubmissionHandler

logger = logging.getLogger(__name__)


class ValidateSubmissionHandler(SubmissionHandler):
    """
    Valida token, formulario, empresa y adjuntos antes de escribir nada.
    """

    async def _handle(self, context: SubmissionContext):
        user = context.payload.user

        if not context.internal:
            result = context.token_auth.validate(context.db, user.token)
            if not result.valid:
                logger.warning(f"[ValidateSubmissionHandler] Token rechazado: {result.reason.value}")
                raise AuthenticationError(f"Token inválido: {result.reason.value}")

        form = crud.get_form_by_id(context.db, context.payload.form_id)
        if not form:
            raise NotFoundError("Formulario no encontrado")

        if not FormService.is_company_authorized(form, user.company):
            logger.warning(
                f"[ValidateSubmissionHandler] Empresa {user.company} no autorizada para formulario {form.id}"
            )
            raise PermissionDeniedError(
                f"La empresa {user.company} no está autorizada para responder este formulario."
            )
        context.form = form

        descriptors = []
        for attachment in context.payload.attachments:
            size = validate_attachment(attachment.file_data, context.attachment_max_bytes, attachment.file_name)
            descriptors.append({
                "fileName": attachment.file_name,
                "mimeType": attachment.mime_type,
                "fileData": attachment.file_data,
                "question": attachment.question,
                "size": size,
            })
        context.attachments = descriptors
