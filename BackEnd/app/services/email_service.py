"""
Salida de correo del portal de RRHH vía Resend.

Sin RESEND_API_KEY el servicio queda deshabilitado: cada envío se
registra en el log y se descarta.
"""
import logging
from typing import Optional

import resend

logger = logging.getLogger(__name__)


class EmailService:

    def __init__(self, api_key: Optional[str], from_email: str):
        self.from_email = from_email
        self.enabled = bool(api_key)
        if self.enabled:
            resend.api_key = api_key

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        from_email: Optional[str] = None
    ) -> Optional[dict]:
        """
        Entrega un correo HTML a un destinatario.

        Returns:
            La respuesta de Resend, o None si el servicio está
            deshabilitado o la API rechazó el envío.
        """
        if not self.enabled:
            logger.info(f"Correo '{subject}' para {to_email} descartado (Resend sin API key)")
            return None

        params = {
            "from": from_email or self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        try:
            return resend.Emails.send(params)
        except Exception as e:
            logger.error(f"Resend no entregó '{subject}' a {to_email}: {e}")
            return None


_TEMPLATE = """<!DOCTYPE html>
<html>
<body style="margin:0; font-family: Arial, sans-serif; color: #333;">
  <table width="100%" cellpadding="0" cellspacing="0" style="max-width: 600px; margin: 0 auto;">
    <tr>
      <td style="background: {color}; color: #fff; padding: 20px; text-align: center;">
        <h2 style="margin: 0;">{title}</h2>
      </td>
    </tr>
    <tr>
      <td style="background: #f4f6f8; padding: 20px; line-height: 1.5;">{body}</td>
    </tr>
    <tr>
      <td style="padding: 12px; text-align: center; font-size: 12px; color: #777;">
        Recursos Humanos · mensaje generado automáticamente
      </td>
    </tr>
  </table>
</body>
</html>
"""


def render_notification(title: str, body: str, color: str = "#02ab74") -> str:
    return _TEMPLATE.format(title=title, body=body, color=color)
