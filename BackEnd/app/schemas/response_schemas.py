from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.enums.enums import ResponseStatus

# ========================================
#  ENVÍO DE RESPUESTAS
# ========================================

class SubmissionUser(BaseModel):
    """Identidad de quien responde, tal como la envía el portal"""
    uid: Optional[str] = None
    name: str = Field(..., min_length=1, description="Nombre de quien responde")
    email: Optional[str] = None
    company: str = Field(..., min_length=1, description="Empresa de quien responde")
    role: Optional[str] = None
    token: Optional[str] = Field(None, description="Token de sesión")


class AttachmentIn(BaseModel):
    file_name: str = Field(..., min_length=1, alias="fileName")
    mime_type: str = Field("application/octet-stream", alias="mimeType")
    file_data: str = Field(..., min_length=1, alias="fileData", description="base64 o data URL")
    question: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SubmissionRequest(BaseModel):
    form_id: int = Field(..., gt=0, alias="formId")
    user: SubmissionUser
    answers: Dict[str, Any] = Field(default_factory=dict)
    attachments: List[AttachmentIn] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class SubmissionResult(BaseModel):
    message: str
    response_id: int
    status: ResponseStatus
    generated_id: Optional[str] = Field(None, description="Documento generado; None si la generación falló")


# ========================================
#  CONSULTA DE RESPUESTAS
# ========================================

class AttachmentInfo(BaseModel):
    index: int
    file_name: str
    mime_type: str
    size: int
    question: Optional[str] = None


class ResponseOut(BaseModel):
    id: int
    form_id: int
    form_title: Optional[str] = None
    section: Optional[str] = None
    user_uid: Optional[str] = None
    submitted_by: Optional[str] = None
    company: Optional[str] = None
    user_email: Optional[str] = None
    answers: Dict[str, Any]
    status: ResponseStatus
    has_correction: bool
    corrected_file_name: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ========================================
#  CHAT
# ========================================

class ChatMessageIn(BaseModel):
    response_id: int = Field(..., gt=0, alias="responseId")
    author: str = Field(..., description="Nombre de quien escribe")
    text: str = Field(..., description="Contenido del mensaje")

    model_config = ConfigDict(populate_by_name=True)


class ChatMessageOut(BaseModel):
    id: int
    response_id: int
    author: str
    text: str
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkReadResult(BaseModel):
    updated: int


# ========================================
#  APROBACIÓN Y FIRMA
# ========================================

class ApprovalResult(BaseModel):
    message: str
    response_id: int
    status: ResponseStatus
    approved_id: Optional[int] = None
    approved_at: Optional[datetime] = None


class ClientSignatureOut(BaseModel):
    id: int
    response_id: int
    form_title: Optional[str] = None
    file_name: str
    file_size: int
    client_name: Optional[str] = None
    company: Optional[str] = None
    status: str
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientSignatureStatus(BaseModel):
    exists: bool
    signature: Optional[ClientSignatureOut] = None
