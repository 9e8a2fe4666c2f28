from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.auth_schemas import Identity
from app.schemas.form_schemas import FormCreate, FormOut
from app.services.auth_service import get_current_identity
from app.services.form_service import FormService

router = APIRouter(prefix="/forms", tags=["forms"])


@router.post("", response_model=FormOut, status_code=status.HTTP_201_CREATED)
def create_form(
    data: FormCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return FormService.create_form(db, data)


@router.get("", response_model=List[FormOut])
def list_forms(db: Session = Depends(get_db)):
    return FormService.list_forms(db)


@router.get("/{form_id}", response_model=FormOut)
def get_form(form_id: int, db: Session = Depends(get_db)):
    return FormService.get_form(db, form_id)
