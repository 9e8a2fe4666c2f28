"""
Módulo CRUD (Create, Read, Update, Delete) de consultas puntuales.

Agrupa las lecturas por clave que usan varios servicios: respuestas,
formularios, documentos generados, aprobaciones, firmas, empresas, flujos
y usuarios. Las reglas de negocio (transiciones de estado, permisos,
cifrado) viven en los servicios; aquí solo hay acceso a datos.

Patrones:
    - Lecturas por clave: devuelven el modelo o None
    - Inserciones simples: add + flush, el commit lo hace el llamador
    - Búsquedas sobre campos cifrados: siempre por índice ciego
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import models

logger = logging.getLogger(__name__)


# =========================================================
# RESPUESTAS Y FORMULARIOS
# =========================================================

def get_response_by_id(db: Session, response_id: int) -> Optional[models.FormResponse]:
    """
    Obtener una respuesta por su ID.

    Args:
        db (Session): Sesión de base de datos SQLAlchemy
        response_id (int): ID de la respuesta

    Returns:
        Optional[models.FormResponse]: La respuesta si existe, None si no

    Security:
        - No valida propiedad de la respuesta
        - Llamador debe verificar permisos
    """
    return db.query(models.FormResponse).filter(models.FormResponse.id == response_id).first()


def get_form_by_id(db: Session, form_id: int) -> Optional[models.Form]:
    return db.query(models.Form).filter(models.Form.id == form_id).first()


def list_responses(db: Session, section: Optional[str] = None) -> List[models.FormResponse]:
    """Respuestas más recientes primero, opcionalmente filtradas por sección."""
    query = db.query(models.FormResponse)
    if section is not None:
        query = query.filter(models.FormResponse.section == section)
    return query.order_by(models.FormResponse.created_at.desc(), models.FormResponse.id.desc()).all()


# =========================================================
# DOCUMENTOS
# =========================================================

def get_generated_by_id(db: Session, generated_id: str) -> Optional[models.GeneratedDocument]:
    return (
        db.query(models.GeneratedDocument)
        .filter(models.GeneratedDocument.generated_id == generated_id)
        .first()
    )


def get_generated_by_response(db: Session, response_id: int) -> Optional[models.GeneratedDocument]:
    """Documento generado más reciente de una respuesta."""
    return (
        db.query(models.GeneratedDocument)
        .filter(models.GeneratedDocument.response_id == response_id)
        .order_by(models.GeneratedDocument.id.desc())
        .first()
    )


def get_approved_by_response(db: Session, response_id: int) -> Optional[models.ApprovedDocument]:
    return (
        db.query(models.ApprovedDocument)
        .filter(models.ApprovedDocument.response_id == response_id)
        .first()
    )


def get_signature_by_response(db: Session, response_id: int) -> Optional[models.ClientSignature]:
    return (
        db.query(models.ClientSignature)
        .filter(models.ClientSignature.response_id == response_id)
        .first()
    )


# =========================================================
# EMPRESAS
# =========================================================

def get_company_by_id(db: Session, company_id: int) -> Optional[models.Company]:
    return db.query(models.Company).filter(models.Company.id == company_id).first()


def get_company_by_exact_name(db: Session, name: str) -> Optional[models.Company]:
    """Coincidencia exacta sin distinguir mayúsculas."""
    return (
        db.query(models.Company)
        .filter(func.lower(models.Company.name) == name.strip().lower())
        .first()
    )


def find_company_containing(db: Session, token: str) -> Optional[models.Company]:
    """Primera empresa cuyo nombre contiene token (sin distinguir mayúsculas)."""
    escaped = token.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return (
        db.query(models.Company)
        .filter(models.Company.name.ilike(f"%{escaped}%", escape="\\"))
        .order_by(models.Company.id)
        .first()
    )


# =========================================================
# USUARIOS Y TOKENS
# =========================================================

def get_user_by_email_index(db: Session, email_index: Optional[str]) -> Optional[models.User]:
    """
    Buscar usuario por índice ciego del correo.

    Nunca se consulta la columna email directamente: está cifrada con un
    nonce aleatorio y no admite igualdad.
    """
    if not email_index:
        return None
    return db.query(models.User).filter(models.User.email_index == email_index).first()


def get_session_token(db: Session, token: str) -> Optional[models.SessionToken]:
    return db.query(models.SessionToken).filter(models.SessionToken.token == token).first()


# =========================================================
# FLUJOS
# =========================================================

def get_workflow_by_id(db: Session, workflow_id: int) -> Optional[models.Workflow]:
    return db.query(models.Workflow).filter(models.Workflow.id == workflow_id).first()
