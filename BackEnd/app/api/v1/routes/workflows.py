"""
Router de flujos (procesos con tareas).

Los flujos se guardan cifrados campo a campo y se devuelven descifrados.
Todas las rutas exigen identidad (token de sesión o solicitud interna).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.workflow_schemas import MigrationResult, WorkflowIn, WorkflowOut, WorkflowUpdate
from app.services.auth_service import get_current_identity
from app.services.workflow_crypto import WorkflowCrypto
from app.services.workflow_service import WorkflowService, get_workflow_crypto

router = APIRouter(
    prefix="/workflows",
    tags=["workflows"],
    dependencies=[Depends(get_current_identity)],
)

logger = logging.getLogger(__name__)


@router.post("", response_model=WorkflowOut, status_code=status.HTTP_201_CREATED)
def create_workflow(
    data: WorkflowIn,
    db: Session = Depends(get_db),
    crypto: WorkflowCrypto = Depends(get_workflow_crypto),
):
    row = WorkflowService.create_workflow(db, crypto, data.model_dump(by_alias=True))
    return WorkflowService.to_output(row, crypto)


@router.get("", response_model=List[WorkflowOut])
def list_workflows(
    db: Session = Depends(get_db),
    crypto: WorkflowCrypto = Depends(get_workflow_crypto),
):
    return [WorkflowService.to_output(row, crypto) for row in WorkflowService.list_workflows(db)]


@router.get("/{workflow_id}", response_model=WorkflowOut)
def get_workflow(
    workflow_id: int,
    db: Session = Depends(get_db),
    crypto: WorkflowCrypto = Depends(get_workflow_crypto),
):
    return WorkflowService.to_output(WorkflowService.get_workflow(db, workflow_id), crypto)


@router.put("/{workflow_id}", response_model=WorkflowOut)
def update_workflow(
    workflow_id: int,
    data: WorkflowUpdate,
    db: Session = Depends(get_db),
    crypto: WorkflowCrypto = Depends(get_workflow_crypto),
):
    """Actualizar solo los campos enviados (última escritura gana)."""
    changes = data.model_dump(by_alias=True, exclude_unset=True)
    row = WorkflowService.update_workflow(db, crypto, workflow_id, changes)
    return WorkflowService.to_output(row, crypto)


@router.delete("/{workflow_id}")
def delete_workflow(workflow_id: int, db: Session = Depends(get_db)):
    WorkflowService.delete_workflow(db, workflow_id)
    return {"message": "Flujo eliminado"}


@router.post("/migrate-encryption", response_model=MigrationResult)
def migrate_encryption(
    db: Session = Depends(get_db),
    crypto: WorkflowCrypto = Depends(get_workflow_crypto),
):
    """
    Cifrar en el lugar los flujos antiguos en texto plano.

    Los registros ya cifrados se saltan; re-ejecutar no cambia nada.
    """
    return WorkflowService.migrate_encryption(db, crypto)
