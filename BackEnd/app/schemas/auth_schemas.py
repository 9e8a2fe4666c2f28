from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.enums.enums import TokenFailure, UserStatus


MIN_PASSWORD_LENGTH = 8


# ========================================
#  ESQUEMAS DE SESIÓN
# ========================================

class LoginRequest(BaseModel):
    """Credenciales de login"""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator('email')
    def email_must_be_lowercase(cls, v):
        return v.lower().strip()


class SessionUser(BaseModel):
    """Datos del usuario entregados junto al token"""
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    success: bool = True
    token: str = Field(..., description="Token de sesión opaco (64 hex)")
    expires_at: datetime
    usr: SessionUser


class ValidateRequest(BaseModel):
    """Validación de token contra correo y rol esperados"""
    token: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)


class ValidateResponse(BaseModel):
    valid: bool
    reason: Optional[TokenFailure] = None
    email: Optional[str] = None
    role: Optional[str] = None


class LogoutRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Token a revocar")


# ========================================
#  ESQUEMAS DE USUARIO
# ========================================

class RegisterRequest(BaseModel):
    """Alta de usuario; queda pendiente hasta establecer contraseña"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    company: str = Field(..., min_length=1, max_length=255)
    position: str = Field(..., min_length=1, max_length=100)
    role: str = Field(..., min_length=1, max_length=50)
    department: Optional[str] = Field(None, max_length=100)

    @field_validator('email')
    def email_must_be_lowercase(cls, v):
        return v.lower().strip()


class SetPasswordRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class UserOut(BaseModel):
    """Usuario con nombre y correo ya descifrados"""
    id: int
    first_name: str
    last_name: str
    email: str
    company: str
    position: str
    role: str
    department: Optional[str] = None
    status: UserStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Identity(BaseModel):
    """Identidad del solicitante resuelta por get_current_identity"""
    email: Optional[str] = None
    role: Optional[str] = None
    internal: bool = False
