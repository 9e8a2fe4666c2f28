"""
Almacén de documentos generados (colección docxs).

Cada generación inserta un registro nuevo; los documentos nunca se
actualizan. La descarga decide Content-Type y extensión con un mapeo
cerrado de dos valores (txt -> text/plain, cualquier otro -> DOCX).

mark_reviewed es la transición explícita pendiente -> en_revision que la
ruta de descarga invoca después de leer el documento.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.crud import crud
from app.enums.enums import DocumentKind, ResponseStatus
from app.models.models import FormResponse, GeneratedDocument
from app.services.annex_renderer import render_annex
from app.services.company_service import CompanyService
from app.services.document_composer import Submitter, compose, is_annex_section

logger = logging.getLogger(__name__)

TXT_MEDIA_TYPE = "text/plain"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def media_type_for(kind) -> str:
    return TXT_MEDIA_TYPE if _kind_value(kind) == DocumentKind.txt.value else DOCX_MEDIA_TYPE


def extension_for(kind) -> str:
    return "txt" if _kind_value(kind) == DocumentKind.txt.value else "docx"


def _kind_value(kind) -> str:
    return kind.value if hasattr(kind, "value") else str(kind)


class DocumentStore:

    @staticmethod
    def store(
        db: Session,
        kind: DocumentKind,
        content: bytes,
        response_id: Optional[int],
        generated_id: str,
    ) -> GeneratedDocument:
        """
        Insertar un documento generado.

        Args:
            kind: docx o txt
            content: Bytes del documento
            response_id: Respuesta dueña
            generated_id: Identificador público (ANEXO_... / FORMULARIO_...)

        Returns:
            GeneratedDocument: Registro creado
        """
        document = GeneratedDocument(
            generated_id=generated_id,
            content=content,
            kind=kind,
            response_id=response_id,
        )
        db.add(document)
        db.commit()
        db.refresh(document)
        logger.info(
            f"Documento guardado: {generated_id} ({kind.value}, {len(content)} bytes, respuesta {response_id})"
        )
        return document

    @staticmethod
    def get_by_generated_id(db: Session, generated_id: str) -> GeneratedDocument:
        document = crud.get_generated_by_id(db, generated_id)
        if not document:
            raise NotFoundError("Documento no encontrado")
        return document

    @staticmethod
    def get_by_response_id(db: Session, response_id: int) -> Optional[GeneratedDocument]:
        return crud.get_generated_by_response(db, response_id)

    @staticmethod
    def list_documents(db: Session) -> List[GeneratedDocument]:
        return db.query(GeneratedDocument).order_by(GeneratedDocument.created_at.desc()).all()

    @staticmethod
    def download_headers(document: GeneratedDocument) -> Dict[str, str]:
        """
        Headers de descarga: attachment con <generated_id>.<ext> y largo exacto.

        Un generated_id con caracteres fuera de ASCII (nombres como
        "ZOË_O’BRIEN") va además en filename* (RFC 5987), con un
        filename ASCII de respaldo.
        """
        filename = f"{document.generated_id}.{extension_for(document.kind)}"
        if filename.isascii():
            disposition = f'attachment; filename="{filename}"'
        else:
            fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
            disposition = f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
        return {
            "Content-Disposition": disposition,
            "Content-Length": str(len(document.content)),
        }

    @staticmethod
    def mark_reviewed(db: Session, response_id: Optional[int]) -> Optional[FormResponse]:
        """
        Marcar la respuesta como en revisión tras la primera descarga.

        Solo mueve pendiente -> en_revision y sella reviewed_at; en cualquier
        otro estado no hace nada. Una respuesta inexistente se ignora: el
        documento puede sobrevivir a su respuesta.
        """
        if response_id is None:
            return None
        response = crud.get_response_by_id(db, response_id)
        if response is None:
            logger.warning(f"Documento descargado sin respuesta asociada (respuesta {response_id})")
            return None

        if response.status == ResponseStatus.pendiente:
            response.status = ResponseStatus.en_revision
            response.reviewed_at = datetime.utcnow()
            db.commit()
            db.refresh(response)
            logger.info(f"Respuesta {response_id} pasa a en_revision")
        return response

    @staticmethod
    def generate_for_response(
        db: Session,
        response: FormResponse,
        now: datetime,
        city: str,
    ) -> GeneratedDocument:
        """
        Componer, renderizar y guardar el documento de una respuesta.

        Args:
            response: Respuesta recién guardada
            now: Instante de generación (zona horaria de la aplicación)
            city: Ciudad del considerando del anexo

        Returns:
            GeneratedDocument: Registro creado
        """
        company = None
        if is_annex_section(response.section):
            company = CompanyService.resolve_for_document(db, response.company)

        composed = compose(
            section=response.section,
            answers=response.answers or {},
            submitter=Submitter(name=response.submitted_by, company=response.company),
            response_id=response.id,
            now=now,
            city=city,
            company=company,
        )

        if composed.kind == DocumentKind.docx:
            content = render_annex(composed.annex)
        else:
            content = composed.transcript.encode("utf-8")

        return DocumentStore.store(db, composed.kind, content, response.id, composed.generated_id)
