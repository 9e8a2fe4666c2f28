from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.enums.enums import DocumentKind

# =========================================================
# Esquemas de Documentos generados
# =========================================================

class GeneratedDocumentInfo(BaseModel):
    """Metadatos de un documento generado (sin el contenido)"""
    id: int
    generated_id: str = Field(..., description="ANEXO_<TRABAJADOR>_<ms> o FORMULARIO_<id>_<ms>")
    kind: DocumentKind
    response_id: Optional[int] = None
    size: int = Field(..., ge=0, description="Tamaño en bytes")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_document(cls, document) -> "GeneratedDocumentInfo":
        return cls(
            id=document.id,
            generated_id=document.generated_id,
            kind=document.kind,
            response_id=document.response_id,
            size=len(document.content or b""),
            created_at=document.created_at,
        )
