from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# =========================================================
# Esquemas de Empresas
# =========================================================

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Nombre de la empresa")
    rut: str = Field(..., min_length=1, max_length=20, description="RUT de la empresa")
    address: str = Field(default="", max_length=255)
    manager: str = Field(default="", max_length=255, description="Encargado")


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    rut: Optional[str] = Field(None, min_length=1, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    manager: Optional[str] = Field(None, max_length=255)


class CompanyOut(BaseModel):
    id: int
    name: str
    rut: str
    address: str
    manager: str
    has_logo: bool
    logo_file_name: Optional[str] = None
    logo_size: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
