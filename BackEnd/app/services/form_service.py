import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.crud import crud
from app.models.models import Form
from app.schemas.form_schemas import FormCreate

logger = logging.getLogger(__name__)

ALL_COMPANIES = "Todas"


class FormService:

    @staticmethod
    def create_form(db: Session, data: FormCreate) -> Form:
        form = Form(
            title=data.title.strip(),
            section=data.section,
            companies=[company.strip() for company in data.companies if company.strip()],
        )
        db.add(form)
        db.commit()
        db.refresh(form)
        logger.info(f"Formulario creado: {form.title} (ID: {form.id}, sección: {form.section})")
        return form

    @staticmethod
    def get_form(db: Session, form_id: int) -> Form:
        form = crud.get_form_by_id(db, form_id)
        if not form:
            raise NotFoundError("Formulario no encontrado")
        return form

    @staticmethod
    def list_forms(db: Session) -> List[Form]:
        return db.query(Form).order_by(Form.id).all()

    @staticmethod
    def is_company_authorized(form: Form, company: str) -> bool:
        """La empresa puede responder si figura en la lista o la lista incluye 'Todas'."""
        companies = form.companies or []
        if ALL_COMPANIES in companies:
            return True
        wanted = (company or "").strip().lower()
        return any(wanted == (allowed or "").strip().lower() for allowed in companies)
