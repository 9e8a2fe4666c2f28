"""
Máquina de estados de aprobación de respuestas.

Estados:
    pendiente -> en_revision -> aprobado -> publicado

Transiciones:
    - attach_correction: adjunta un PDF de corrección (pendiente/en_revision)
    - approve: requiere corrección previa o subida en el mismo request;
      crea exactamente un ApprovedDocument
    - remove_correction: aprobado -> en_revision, borra el ApprovedDocument
      (idempotente) y limpia la corrección
    - upload_client_signature: solo en aprobado, máximo una firma por respuesta
    - publish: override a publicado desde cualquier estado

El paso pendiente -> en_revision por descarga está en
DocumentStore.mark_reviewed.

Todas las validaciones se hacen antes de la primera escritura.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, PreconditionFailedError, ValidationError
from app.db.crud import crud
from app.enums.enums import ResponseStatus
from app.models.models import ApprovedDocument, ClientSignature, FormResponse, ResponseMessage

logger = logging.getLogger(__name__)

CORRECTABLE_STATES = (ResponseStatus.pendiente, ResponseStatus.en_revision)

UploadedFile = Tuple[str, bytes, str]


class ApprovalStateMachine:

    @staticmethod
    def get_response(db: Session, response_id: int) -> FormResponse:
        response = crud.get_response_by_id(db, response_id)
        if not response:
            raise NotFoundError("Respuesta no encontrada")
        return response

    @staticmethod
    def _set_correction(response: FormResponse, upload: UploadedFile) -> None:
        filename, content, mime_type = upload
        response.corrected_file_name = filename
        response.corrected_file_data = content
        response.corrected_file_size = len(content)
        response.corrected_file_mime_type = mime_type
        response.corrected_file_uploaded_at = datetime.utcnow()

    # =========================================================
    # CORRECCIÓN Y APROBACIÓN
    # =========================================================

    @staticmethod
    def attach_correction(db: Session, response_id: int, upload: UploadedFile) -> FormResponse:
        """
        Adjuntar (o reemplazar) el PDF de corrección.

        Raises:
            NotFoundError: La respuesta no existe
            PreconditionFailedError: La respuesta ya está aprobada o publicada
        """
        response = ApprovalStateMachine.get_response(db, response_id)
        if response.status not in CORRECTABLE_STATES:
            raise PreconditionFailedError(
                f"No se puede adjuntar corrección a una respuesta en estado {response.status.value}"
            )

        ApprovalStateMachine._set_correction(response, upload)
        db.commit()
        db.refresh(response)
        logger.info(f"Corrección adjuntada a respuesta {response_id}: {response.corrected_file_name}")
        return response

    @staticmethod
    def approve(
        db: Session,
        response_id: int,
        approved_by: Optional[str],
        upload: Optional[UploadedFile] = None,
    ) -> Tuple[FormResponse, ApprovedDocument]:
        """
        Aprobar una respuesta.

        Si upload viene, se adjunta primero como corrección y se aprueba con
        ella. Sin upload se usa la corrección ya adjunta.

        Returns:
            (respuesta actualizada, snapshot ApprovedDocument)

        Raises:
            NotFoundError: La respuesta no existe
            PreconditionFailedError: Sin corrección disponible, o la
                respuesta ya fue aprobada
        """
        response = ApprovalStateMachine.get_response(db, response_id)

        if response.status not in CORRECTABLE_STATES:
            raise PreconditionFailedError(
                f"La respuesta ya está en estado {response.status.value}; "
                "elimina la corrección para volver a aprobar"
            )
        if upload is None and not response.has_correction:
            raise PreconditionFailedError("No hay corrección subida para aprobar")
        if crud.get_approved_by_response(db, response_id):
            raise PreconditionFailedError("La respuesta ya tiene un documento aprobado")

        if upload is not None:
            ApprovalStateMachine._set_correction(response, upload)

        now = datetime.utcnow()
        response.status = ResponseStatus.aprobado
        response.approved_at = now

        approved = ApprovedDocument(
            response_id=response.id,
            file_name=response.corrected_file_name,
            file_data=response.corrected_file_data,
            file_size=response.corrected_file_size,
            mime_type=response.corrected_file_mime_type or "application/pdf",
            uploaded_at=response.corrected_file_uploaded_at or now,
            approved_by=approved_by,
            approved_at=now,
            form_title=response.form_title,
            submitted_by=response.submitted_by,
            company=response.company,
        )
        db.add(approved)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise PreconditionFailedError("La respuesta ya tiene un documento aprobado")

        db.refresh(response)
        db.refresh(approved)
        logger.info(f"Respuesta {response_id} aprobada por {approved_by}")
        return response, approved

    @staticmethod
    def remove_correction(db: Session, response_id: int) -> FormResponse:
        """
        Revertir la aprobación: borra el ApprovedDocument (si existe), limpia
        la corrección y deja la respuesta en en_revision.

        Llamarla dos veces seguidas no es error.
        """
        response = ApprovalStateMachine.get_response(db, response_id)

        approved = crud.get_approved_by_response(db, response_id)
        if approved is not None:
            db.delete(approved)
        response.clear_correction()
        response.status = ResponseStatus.en_revision
        response.approved_at = None
        db.commit()
        db.refresh(response)

        logger.info(
            f"Corrección eliminada de respuesta {response_id} "
            f"({'snapshot de aprobación borrado' if approved else 'sin snapshot de aprobación'})"
        )
        return response

    @staticmethod
    def get_approved(db: Session, response_id: int) -> ApprovedDocument:
        approved = crud.get_approved_by_response(db, response_id)
        if not approved or not approved.file_data:
            raise NotFoundError("Documento aprobado no encontrado")
        return approved

    @staticmethod
    def publish(db: Session, response_id: int) -> FormResponse:
        response = ApprovalStateMachine.get_response(db, response_id)
        response.status = ResponseStatus.publicado
        db.commit()
        db.refresh(response)
        logger.info(f"Respuesta {response_id} publicada")
        return response

    # =========================================================
    # FIRMA DEL CLIENTE
    # =========================================================

    @staticmethod
    def upload_client_signature(db: Session, response_id: int, upload: UploadedFile) -> ClientSignature:
        """
        Registrar el PDF firmado por el cliente.

        La restricción única de firmados.response_id cierra la carrera entre
        la verificación previa y la inserción.

        Raises:
            NotFoundError: La respuesta no existe
            PreconditionFailedError: La respuesta no está aprobada o ya
                tiene firma
        """
        response = ApprovalStateMachine.get_response(db, response_id)

        if response.status != ResponseStatus.aprobado:
            raise PreconditionFailedError("El formulario debe estar aprobado para subir la firma")
        if crud.get_signature_by_response(db, response_id):
            raise PreconditionFailedError("Ya existe un documento firmado para este formulario")

        filename, content, mime_type = upload
        signature = ClientSignature(
            response_id=response.id,
            form_id=response.form_id,
            form_title=response.form_title,
            file_name=filename,
            file_data=content,
            file_size=len(content),
            mime_type=mime_type,
            client_name=response.submitted_by,
            client_email=response.user_email,
            company=response.company,
        )
        db.add(signature)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise PreconditionFailedError("Ya existe un documento firmado para este formulario")

        db.refresh(signature)
        logger.info(f"Firma de cliente registrada para respuesta {response_id} (ID: {signature.id})")
        return signature

    @staticmethod
    def find_client_signature(db: Session, response_id: int) -> Optional[ClientSignature]:
        return crud.get_signature_by_response(db, response_id)

    @staticmethod
    def get_client_signature(db: Session, response_id: int) -> ClientSignature:
        signature = crud.get_signature_by_response(db, response_id)
        if not signature or not signature.file_data:
            raise NotFoundError("Documento firmado no encontrado")
        return signature

    @staticmethod
    def delete_client_signature(db: Session, response_id: int) -> None:
        signature = crud.get_signature_by_response(db, response_id)
        if signature is None:
            raise NotFoundError("Documento firmado no encontrado")
        db.delete(signature)
        db.commit()
        logger.info(f"Firma de cliente eliminada para respuesta {response_id}")

    # =========================================================
    # CHAT
    # =========================================================

    @staticmethod
    def list_messages(db: Session, response_id: int) -> List[ResponseMessage]:
        return list(ApprovalStateMachine.get_response(db, response_id).messages)

    @staticmethod
    def post_message(db: Session, response_id: int, author: str, text: str) -> Tuple[FormResponse, ResponseMessage]:
        if not author or not author.strip() or not text or not text.strip():
            raise ValidationError("Faltan campos: autor o mensaje")

        response = ApprovalStateMachine.get_response(db, response_id)
        message = ResponseMessage(response_id=response.id, author=author.strip(), text=text, read=False)
        db.add(message)
        db.commit()
        db.refresh(message)
        return response, message

    @staticmethod
    def mark_all_read(db: Session, response_id: Optional[int] = None) -> int:
        """
        Marcar mensajes no leídos como leídos.

        Sin response_id afecta a TODAS las respuestas. Con response_id solo
        a los mensajes de esa respuesta.

        Returns:
            int: Cantidad de mensajes actualizados
        """
        statement = update(ResponseMessage).where(ResponseMessage.read.is_(False))
        if response_id is not None:
            ApprovalStateMachine.get_response(db, response_id)
            statement = statement.where(ResponseMessage.response_id == response_id)

        result = db.execute(
            statement.values(read=True).execution_options(synchronize_session=False)
        )
        db.commit()
        logger.info(
            f"{result.rowcount} mensaje(s) marcados como leídos"
            + (f" en respuesta {response_id}" if response_id is not None else " (global)")
        )
        return result.rowcount
