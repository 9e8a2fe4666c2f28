from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# =========================================================
# Esquemas de Flujos
# =========================================================

class TaskNode(BaseModel):
    """
    Nodo de tarea de un flujo.

    title, description, type, priority y assignedTo se guardan cifrados;
    id y cualquier campo extra (fechas, coordenadas) quedan en claro.
    """
    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    assignedTo: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class WorkflowIn(BaseModel):
    name: str = Field(..., min_length=1)
    status: Optional[str] = None
    management_category: Optional[str] = Field(None, alias="management-category")
    company: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    nodes: List[TaskNode] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class WorkflowUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = None
    management_category: Optional[str] = Field(None, alias="management-category")
    company: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    nodes: Optional[List[TaskNode]] = None

    model_config = ConfigDict(populate_by_name=True)


class WorkflowOut(BaseModel):
    id: int
    name: Optional[str] = None
    status: Optional[str] = None
    management_category: Optional[str] = Field(None, alias="management-category")
    company: Optional[str] = None
    department: Optional[str] = None
    nodes: List[dict] = Field(default_factory=list)
    field_state: Optional[str] = None
    migration_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class MigrationResult(BaseModel):
    total: int
    migrated: int
    skipped: int
