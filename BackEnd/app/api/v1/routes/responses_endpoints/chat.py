"""
Chat entre RRHH y quien envió la respuesta.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.response_schemas import ChatMessageIn, ChatMessageOut, MarkReadResult
from app.services.approval_service import ApprovalStateMachine
from app.services.notification_service import NotificationService, get_notifier

router = APIRouter(prefix="/respuestas", tags=["chat"])

logger = logging.getLogger(__name__)


@router.get("/{response_id}/chat", response_model=List[ChatMessageOut])
def list_messages(response_id: int, db: Session = Depends(get_db)):
    return ApprovalStateMachine.list_messages(db, response_id)


@router.post("/chat", response_model=ChatMessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    data: ChatMessageIn,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    """
    Agregar un mensaje al chat de una respuesta.

    Un mensaje del emisor avisa a RRHH por correo; uno de RRHH avisa al
    emisor. El aviso es de mejor esfuerzo.

    Raises:
        400: Falta autor o texto
        404: La respuesta no existe
    """
    response, message = ApprovalStateMachine.post_message(db, data.response_id, data.author, data.text)
    notifier.message_posted(response, message.author)
    return message


@router.put("/chat/marcar-leidos", response_model=MarkReadResult)
def mark_all_read(
    response_id: Optional[int] = Query(None, description="Limitar a los mensajes de una respuesta"),
    db: Session = Depends(get_db),
):
    """
    Marcar mensajes como leídos.

    Sin response_id marca TODOS los mensajes no leídos del sistema.
    """
    return MarkReadResult(updated=ApprovalStateMachine.mark_all_read(db, response_id))
