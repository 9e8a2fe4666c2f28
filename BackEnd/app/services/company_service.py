"""
Registro de empresas y búsqueda aproximada por nombre.

La búsqueda aproximada alimenta el membrete del anexo: primero coincidencia
exacta (sin distinguir mayúsculas) y luego, palabra por palabra, cualquier
empresa cuyo nombre contenga una palabra de más de 3 caracteres. Es de
mejor esfuerzo: si dos empresas comparten palabra gana la de menor id.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, PreconditionFailedError, ValidationError
from app.db.crud import crud
from app.models.models import Company
from app.schemas.company_schemas import CompanyCreate, CompanyUpdate
from app.services.document_composer import CompanyInfo, Letterhead

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3


class CompanyService:

    @staticmethod
    def find_fuzzy(db: Session, name: Optional[str]) -> Tuple[Optional[Company], bool]:
        """
        Buscar empresa por nombre aproximado.

        Returns:
            (empresa o None, True si fue coincidencia exacta)
        """
        if not name or not name.strip():
            return None, False

        exact = crud.get_company_by_exact_name(db, name)
        if exact:
            return exact, True

        for token in name.upper().split():
            if len(token) > MIN_TOKEN_LENGTH:
                match = crud.find_company_containing(db, token)
                if match:
                    logger.info(f"Empresa '{name}' resuelta por palabra clave '{token}': {match.name}")
                    return match, False

        return None, False

    @staticmethod
    def resolve_for_document(db: Session, name: Optional[str]) -> CompanyInfo:
        """
        Datos de empresa para el anexo.

        El RUT solo se toma de una coincidencia exacta; el logo también
        puede venir de la coincidencia por palabra.
        """
        company, exact = CompanyService.find_fuzzy(db, name)
        if company is None:
            logger.info(f"No se encontró empresa para '{name}'")
            return CompanyInfo()

        logo = None
        if company.has_logo:
            logo = Letterhead(data=company.logo_data, mime_type=company.logo_mime_type or "image/png")
        return CompanyInfo(rut=company.rut if exact else "", logo=logo)

    # =========================================================
    # CRUD
    # =========================================================

    @staticmethod
    def list_companies(db: Session) -> List[Company]:
        return db.query(Company).order_by(Company.name).all()

    @staticmethod
    def get_company(db: Session, company_id: int) -> Company:
        company = crud.get_company_by_id(db, company_id)
        if not company:
            raise NotFoundError("Empresa no encontrada")
        return company

    @staticmethod
    def _check_unique(db: Session, name: str, rut: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Company).filter((Company.name == name) | (Company.rut == rut))
        if exclude_id is not None:
            query = query.filter(Company.id != exclude_id)
        if query.first():
            raise PreconditionFailedError("Ya existe una empresa con ese nombre o RUT")

    @staticmethod
    def create_company(
        db: Session,
        data: CompanyCreate,
        logo: Optional[Tuple[str, bytes, str]] = None,
    ) -> Company:
        """
        Registrar empresa.

        Args:
            data: Nombre, RUT, dirección y encargado
            logo: (nombre, bytes, mime) ya validado por upload_service
        """
        CompanyService._check_unique(db, data.name, data.rut)

        company = Company(
            name=data.name.strip(),
            rut=data.rut.strip(),
            address=data.address,
            manager=data.manager,
        )
        if logo:
            CompanyService._set_logo(company, logo)

        db.add(company)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise PreconditionFailedError("Ya existe una empresa con ese nombre o RUT")
        db.refresh(company)
        logger.info(f"Empresa registrada: {company.name} (ID: {company.id})")
        return company

    @staticmethod
    def update_company(
        db: Session,
        company_id: int,
        data: CompanyUpdate,
        logo: Optional[Tuple[str, bytes, str]] = None,
    ) -> Company:
        company = CompanyService.get_company(db, company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes and not logo:
            raise ValidationError("No hay cambios para actualizar")

        CompanyService._check_unique(
            db,
            changes.get("name", company.name),
            changes.get("rut", company.rut),
            exclude_id=company.id,
        )
        for field, value in changes.items():
            setattr(company, field, value.strip() if isinstance(value, str) else value)
        if logo:
            CompanyService._set_logo(company, logo)

        db.commit()
        db.refresh(company)
        return company

    @staticmethod
    def delete_company(db: Session, company_id: int) -> None:
        company = CompanyService.get_company(db, company_id)
        db.delete(company)
        db.commit()
        logger.info(f"Empresa eliminada: ID {company_id}")

    @staticmethod
    def _set_logo(company: Company, logo: Tuple[str, bytes, str]) -> None:
        filename, content, mime_type = logo
        company.logo_file_name = filename
        company.logo_data = content
        company.logo_size = len(content)
        company.logo_mime_type = mime_type
        company.logo_uploaded_at = datetime.utcnow()
