"""
Persistencia de flujos cifrados (colección flujos).

Las escrituras nuevas siempre se guardan cifradas y marcadas con
field_state=encrypted. Las lecturas devuelven el flujo descifrado.

migrate_encryption cifra en el lugar los registros antiguos en texto
plano. Un registro se considera ya cifrado si está marcado como tal o,
si no tiene marca, si su nombre contiene el separador ":"; en ambos casos
se salta. Re-ejecutarla no vuelve a cifrar nada. Fuera de la migración
solo cuenta la marca field_state.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from fastapi import Request
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.crud import crud
from app.enums.enums import FieldState
from app.models.models import Workflow
from app.services.workflow_crypto import WorkflowCrypto

logger = logging.getLogger(__name__)

_COLUMNS = {
    "name": "name",
    "status": "status",
    "management-category": "management_category",
    "company": "company",
}


def _stored_document(row: Workflow) -> Dict[str, Any]:
    """Documento tal como está almacenado (posiblemente cifrado)."""
    document = {key: getattr(row, column) for key, column in _COLUMNS.items()}
    document["department"] = row.department
    document["nodes"] = list(row.nodes or [])
    return document


def _write_document(row: Workflow, document: Dict[str, Any]) -> None:
    for key, column in _COLUMNS.items():
        if key in document:
            setattr(row, column, document[key])
    if "department" in document:
        row.department = document["department"]
    if "nodes" in document:
        row.nodes = list(document["nodes"] or [])


def _already_migrated(row: Workflow) -> bool:
    if row.field_state == FieldState.encrypted:
        return True
    return WorkflowCrypto.appears_encrypted(_stored_document(row))


class WorkflowService:

    @staticmethod
    def to_output(row: Workflow, crypto: WorkflowCrypto) -> Dict[str, Any]:
        document = crypto.decrypt_workflow(_stored_document(row))
        document.update({
            "id": row.id,
            "field_state": row.field_state.value if row.field_state else None,
            "migration_note": row.migration_note,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        })
        return document

    @staticmethod
    def get_workflow(db: Session, workflow_id: int) -> Workflow:
        row = crud.get_workflow_by_id(db, workflow_id)
        if not row:
            raise NotFoundError("Flujo no encontrado")
        return row

    @staticmethod
    def list_workflows(db: Session) -> List[Workflow]:
        return db.query(Workflow).order_by(Workflow.id).all()

    @staticmethod
    def create_workflow(db: Session, crypto: WorkflowCrypto, document: Dict[str, Any]) -> Workflow:
        """
        Guardar un flujo nuevo cifrado.

        Args:
            document: Flujo en claro con claves name, status,
                management-category, company, department y nodes
        """
        row = Workflow(nodes=[])
        _write_document(row, crypto.encrypt_workflow(document))
        row.field_state = FieldState.encrypted

        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info(f"Flujo creado (ID: {row.id}, {len(row.nodes)} nodos)")
        return row

    @staticmethod
    def update_workflow(
        db: Session,
        crypto: WorkflowCrypto,
        workflow_id: int,
        changes: Dict[str, Any],
    ) -> Workflow:
        """
        Actualizar los campos enviados (última escritura gana).

        En un registro ya cifrado solo se cifran y reemplazan los campos
        enviados; los demás conservan su ciphertext sin pasar por descifrado.
        Un registro sin la marca encrypted se cifra completo, aunque su
        nombre contenga ":".
        """
        row = WorkflowService.get_workflow(db, workflow_id)

        if row.field_state == FieldState.encrypted:
            _write_document(row, crypto.encrypt_workflow(changes))
        else:
            merged = _stored_document(row)
            merged.update(changes)
            _write_document(row, crypto.encrypt_workflow(merged))
        row.field_state = FieldState.encrypted

        db.commit()
        db.refresh(row)
        logger.info(f"Flujo {workflow_id} actualizado: {', '.join(sorted(changes)) or 'sin cambios'}")
        return row

    @staticmethod
    def delete_workflow(db: Session, workflow_id: int) -> None:
        row = WorkflowService.get_workflow(db, workflow_id)
        db.delete(row)
        db.commit()
        logger.info(f"Flujo {workflow_id} eliminado")

    @staticmethod
    def migrate_encryption(db: Session, crypto: WorkflowCrypto) -> Dict[str, int]:
        """
        Cifrar en el lugar todos los flujos que sigan en texto plano.

        Returns:
            dict: total, migrated y skipped
        """
        rows = db.query(Workflow).order_by(Workflow.id).all()
        stamp = datetime.utcnow().isoformat(timespec="seconds")
        migrated = skipped = 0

        for row in rows:
            if _already_migrated(row):
                if row.field_state != FieldState.encrypted:
                    row.field_state = FieldState.encrypted
                skipped += 1
                continue

            _write_document(row, crypto.encrypt_workflow(_stored_document(row)))
            row.field_state = FieldState.encrypted
            row.migration_note = f"Cifrado por migración {stamp}"
            migrated += 1

        db.commit()
        logger.info(
            f"Migración de cifrado de flujos: {migrated} cifrados, {skipped} ya cifrados, {len(rows)} total"
        )
        return {"total": len(rows), "migrated": migrated, "skipped": skipped}


def get_workflow_crypto(request: Request) -> WorkflowCrypto:
    return WorkflowCrypto(request.app.state.vault)
