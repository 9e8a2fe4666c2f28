# app/services/handlers/save_response.py
import logging

from app.enums.enums import ResponseStatus
from app.models.models import FormResponse
from .base import SubmissionContext, SubmissionHandler

logger = logging.getLogger(__name__)


class SaveResponseHandler(SubmissionHandler):
    async def _handle(self, context: SubmissionContext):
        if context.response is not None:
            logger.warning(f"[SaveResponseHandler] Respuesta ya guardada con ID {context.response.id}, se omite")
            return

        user = context.payload.user
        response = FormResponse(
            form_id=context.form.id,
            form_title=context.form.title,
            section=context.form.section,
            user_uid=user.uid,
            submitted_by=user.name,
            company=user.company,
            user_email=user.email,
            answers=context.payload.answers,
            attachments=context.attachments,
            status=ResponseStatus.pendiente,
        )
        context.db.add(response)
        try:
            context.db.commit()
        except Exception:
            context.db.rollback()
            raise
        context.db.refresh(response)
        context.response = response
        logger.info(
            f"[SaveResponseHandler] Respuesta {response.id} guardada "
            f"(formulario {context.form.id}, {len(context.attachments)} adjunto(s))"
        )
