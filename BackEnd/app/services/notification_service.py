"""
Notificaciones por correo de eventos de respuestas.

Todas las notificaciones son de mejor esfuerzo: un fallo se registra en el
log y nunca interrumpe la operación que la originó.
"""

import logging
from typing import Optional

from fastapi import Request

from app.models.models import FormResponse
from app.services.email_service import EmailService, render_notification

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, email_service: EmailService, hr_email: Optional[str]):
        self.email_service = email_service
        self.hr_email = hr_email

    def _send(self, to_email: Optional[str], subject: str, body: str, color: str = "#02ab74") -> None:
        if not to_email:
            return
        try:
            self.email_service.send_email(to_email, subject, render_notification(subject, body, color))
        except Exception as e:
            logger.error(f"Notificación '{subject}' no enviada a {to_email}: {e}")

    def submission_received(self, response: FormResponse) -> None:
        """Aviso a RRHH y confirmación a quien envió."""
        attachments = len(response.attachments or [])
        detail = (
            f"Incluye {attachments} archivo(s) adjunto(s)."
            if attachments
            else "Puedes revisar los detalles en el panel de respuestas."
        )
        self._send(
            self.hr_email,
            "Nueva respuesta de formulario",
            f"El usuario {response.submitted_by} de la empresa {response.company} "
            f"ha respondido el formulario {response.form_title}. {detail}",
            color="#fb8924",
        )
        self._send(
            response.user_email,
            "Formulario completado",
            f"El formulario {response.form_title} fue completado correctamente.",
            color="#3B82F6",
        )

    def message_posted(self, response: FormResponse, author: str) -> None:
        """Un mensaje del emisor avisa a RRHH; uno de RRHH avisa al emisor."""
        body = f"{author} le ha enviado un mensaje respecto a un formulario."
        if author == response.submitted_by:
            self._send(self.hr_email, "Nuevo mensaje en tu formulario", body)
        else:
            self._send(response.user_email, "Nuevo mensaje recibido", body)

    def response_approved(self, response: FormResponse) -> None:
        self._send(
            response.user_email,
            "Formulario aprobado",
            f"Tu formulario {response.form_title} fue aprobado. Ya puedes descargar el documento corregido.",
        )


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier
