from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# =========================================================
# Esquemas de Formularios
# =========================================================

class FormCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Título del formulario")
    section: Optional[str] = Field(None, max_length=100, description="Categoría; 'Anexos' genera un anexo DOCX")
    companies: List[str] = Field(default_factory=list, description="Empresas autorizadas ('Todas' = cualquiera)")


class FormOut(BaseModel):
    id: int
    title: str
    section: Optional[str] = None
    companies: List[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
