"""
Módulo base de handlers para el patrón Chain of Responsibility.

El envío de una respuesta de formulario se procesa como una cadena de
handlers que comparten un SubmissionContext:

    ValidateSubmissionHandler
        ↓
    SaveResponseHandler
        ↓
    NotifySubmissionHandler   (mejor esfuerzo)
        ↓
    GenerateDocumentHandler   (mejor esfuerzo)

Patrón Chain of Responsibility:
    - Cada handler procesa una parte de la lógica
    - Pasa contexto al siguiente handler
    - Un error en un handler obligatorio corta la cadena
    - Los handlers de mejor esfuerzo registran su fallo y dejan seguir

Utilidad:
    - Separar validación, persistencia y efectos secundarios
    - Detectar ciclos infinitos
    - Rastrear ejecuciones por correlación
"""

from abc import ABC, abstractmethod
import logging
import uuid
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


# =========================================================
# UTILIDADES
# =========================================================

def verify_chain_integrity(first_handler) -> bool:
    """
    Recorrer la cadena desde first_handler y confirmar que termina.

    Se llama una sola vez al armar la cadena del envío. Un handler que
    aparece dos veces indica un ciclo.

    Returns:
        bool: False si hay ciclo
    """
    seen = []
    current = first_handler

    while current is not None:
        if any(current is handler for handler in seen):
            names = " -> ".join(handler.__class__.__name__ for handler in seen)
            logger.error(f"Ciclo en cadena de envío: {names} -> {current.__class__.__name__}")
            return False
        seen.append(current)
        current = current._next_handler

    logger.debug(f"Cadena de envío: {' -> '.join(h.__class__.__name__ for h in seen)}")
    return True


# =========================================================
# SUBMISSION HANDLERS
# =========================================================

class SubmissionContext:
    """
    Contexto para el envío de una respuesta de formulario.

    Campos iniciales (entrada):
        - payload: SubmissionRequest validado por pydantic
        - db: Sesión de BD
        - token_auth: TokenAuth para validar el token del emisor
        - notifier: NotificationService
        - now: Instante del envío (zona horaria de la aplicación)
        - city: Ciudad del considerando del anexo
        - attachment_max_bytes: Límite por adjunto decodificado
        - internal: Solicitud interna de confianza (no valida token)

    Campos de salida (llenados por handlers):
        - form: Formulario respondido
        - attachments: Descriptores listos para guardar (con size)
        - response: FormResponse creada
        - generated_document: GeneratedDocument, o None si falló
        - generation_error: Mensaje del fallo de generación

    Campos de rastreo:
        - correlation_id: ID para tracing de requests
        - handler_execution_count: Contador para detectar ciclos
    """

    def __init__(
        self,
        payload,
        db,
        token_auth,
        notifier,
        now: datetime,
        city: str,
        attachment_max_bytes: int,
        internal: bool = False,
    ):
        if payload is None or db is None:
            raise ValueError("SubmissionContext requiere payload y sesión de BD")

        self.payload = payload
        self.db = db
        self.token_auth = token_auth
        self.notifier = notifier
        self.now = now
        self.city = city
        self.attachment_max_bytes = attachment_max_bytes
        self.internal = internal

        self.form = None
        self.attachments = []
        self.response = None
        self.generated_document = None
        self.generation_error: Optional[str] = None

        self.correlation_id = str(uuid.uuid4())
        self.handler_execution_count = {}


class SubmissionHandler(ABC):
    """
    Clase base para handlers del envío de respuestas.

    Uso:
        validate = ValidateSubmissionHandler()
        validate.set_next(SaveResponseHandler()).set_next(NotifySubmissionHandler())

        await validate.handle(context)
    """

    def __init__(self):
        self._next_handler = None

    def set_next(self, handler: "SubmissionHandler") -> "SubmissionHandler":
        """
        Establecer siguiente handler en la cadena.

        Returns:
            SubmissionHandler: El handler recibido, para encadenar

        Raises:
            ValueError: Si handler intenta ser su propio siguiente
        """
        if handler is self:
            raise ValueError(
                f"Un handler no puede ser su propio siguiente: {self.__class__.__name__}"
            )
        self._next_handler = handler
        return handler

    async def handle(self, context: SubmissionContext):
        """
        Ejecutar este eslabón y luego el siguiente.

        Un mismo handler no puede correr más de dos veces con el mismo
        correlation_id; si ocurre se corta con RuntimeError.
        """
        name = self.__class__.__name__
        runs = context.handler_execution_count
        key = f"{context.correlation_id}:{name}"
        runs[key] = runs.get(key, 0) + 1

        if runs[key] > 2:
            logger.error(f"{name} se ejecutó {runs[key]} veces en el envío {context.correlation_id}")
            raise RuntimeError(f"Ciclo infinito detectado en {name}")

        logger.debug(f"[{context.correlation_id}] {name}")
        await self._handle(context)

        if self._next_handler is None:
            logger.debug(f"[{context.correlation_id}] cadena terminada en {name}")
            return
        await self._next_handler.handle(context)

    @abstractmethod
    async def _handle(self, context: SubmissionContext):
        """
        Lógica específica de este handler (implementar en subclass).

        Args:
            context (SubmissionContext): Contexto a modificar
        """
        pass
