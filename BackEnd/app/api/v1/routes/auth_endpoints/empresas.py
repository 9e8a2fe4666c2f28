"""
Registro de empresas cliente.

El nombre y el RUT son únicos. El logo opcional (image/*, máximo 2 MiB)
se usa como membrete de los anexos generados.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.database import get_db
from app.schemas.auth_schemas import Identity
from app.schemas.company_schemas import CompanyCreate, CompanyOut, CompanyUpdate
from app.services.auth_service import get_current_identity
from app.services.company_service import CompanyService
from app.services.upload_service import read_image_upload

router = APIRouter(prefix="/auth/empresas", tags=["empresas"])

logger = logging.getLogger(__name__)


@router.get("", response_model=List[CompanyOut])
def list_companies(db: Session = Depends(get_db)):
    return CompanyService.list_companies(db)


@router.get("/{company_id}", response_model=CompanyOut)
def get_company(company_id: int, db: Session = Depends(get_db)):
    return CompanyService.get_company(db, company_id)


@router.post("/register", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
async def register_company(
    name: str = Form(...),
    rut: str = Form(...),
    address: str = Form(""),
    manager: str = Form(""),
    logo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity = Depends(get_current_identity),
):
    """
    Registrar empresa (multipart/form-data).

    Args:
        name, rut, address, manager: Campos de la empresa
        logo: Imagen opcional para el membrete

    Raises:
        400: Logo no es imagen o excede 2 MiB
        409: Nombre o RUT ya registrados
    """
    data = CompanyCreate(name=name, rut=rut, address=address, manager=manager)
    logo_upload = await read_image_upload(logo, settings.LOGO_MAX_BYTES)
    return CompanyService.create_company(db, data, logo_upload)


@router.put("/{company_id}", response_model=CompanyOut)
async def update_company(
    company_id: int,
    name: Optional[str] = Form(None),
    rut: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    manager: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity = Depends(get_current_identity),
):
    data = CompanyUpdate(name=name, rut=rut, address=address, manager=manager)
    logo_upload = await read_image_upload(logo, settings.LOGO_MAX_BYTES)
    return CompanyService.update_company(db, company_id, data, logo_upload)


@router.delete("/{company_id}")
def delete_company(
    company_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    CompanyService.delete_company(db, company_id)
    return {"message": "Empresa eliminada"}
