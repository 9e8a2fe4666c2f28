"""
Módulo de autenticación de usuarios del portal.

Endpoints de login/logout con tokens de sesión opacos, validación de
tokens para los demás servicios, registro de usuarios y activación de la
cuenta con la primera contraseña.

Un token vale solo si está activo, no expiró y fue creado el mismo día
calendario (zona horaria de la aplicación) en que se valida.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.auth_schemas import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    RegisterRequest,
    SessionUser,
    SetPasswordRequest,
    UserOut,
    ValidateRequest,
    ValidateResponse,
)
from app.services.auth_service import AuthService
from app.services.crypto_service import CryptoVault, get_vault
from app.services.session_service import TokenAuth, get_token_auth

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse, summary="Iniciar sesión")
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    vault: CryptoVault = Depends(get_vault),
    token_auth: TokenAuth = Depends(get_token_auth),
):
    """
    Autenticar usuario y obtener token de sesión.

    Si el usuario ya tiene un token activo, vigente y del día para su rol,
    se reutiliza; si no, se revocan los anteriores y se emite uno nuevo.

    Args:
        credentials (LoginRequest): email y password

    Returns:
        LoginResponse: token, expiración y datos básicos del usuario

    Raises:
        401: Credenciales inválidas
        403: Cuenta pendiente de contraseña o desactivada

    Example:
        POST /auth/login
        {"email": "ana@empresa.cl", "password": "********"}

        Response (200):
        {
            "success": true,
            "token": "9f2c...e1",
            "expires_at": "2024-05-10T15:00:00",
            "usr": {"name": "Ana Pérez", "email": "ana@empresa.cl", "role": "admin"}
        }
    """
    user, session = AuthService.login_user(db, vault, token_auth, credentials.email, credentials.password)
    return LoginResponse(
        token=session.token,
        expires_at=session.expires_at,
        usr=SessionUser(
            name=AuthService.display_name(user, vault),
            email=credentials.email,
            role=user.role,
        ),
    )


@router.post("/validate", response_model=ValidateResponse, summary="Validar token")
def validate_token(
    data: ValidateRequest,
    db: Session = Depends(get_db),
    token_auth: TokenAuth = Depends(get_token_auth),
):
    """
    Validar un token contra el correo y rol esperados.

    Siempre responde 200; valid=false incluye el motivo (not_found,
    revoked, expired, other_day, identity_mismatch, role_mismatch).
    Un token vencido o de otro día se elimina al validarlo.
    """
    result = token_auth.validate(db, data.token, email=data.email, role=data.role)
    return ValidateResponse(**result.model_dump())


@router.post("/logout", summary="Cerrar sesión")
def logout(
    data: LogoutRequest,
    db: Session = Depends(get_db),
    token_auth: TokenAuth = Depends(get_token_auth),
):
    """Revocar el token. El registro se conserva inactivo."""
    token_auth.revoke(db, data.token)
    return {"success": True, "message": "Sesión cerrada"}


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, summary="Registrar usuario")
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    vault: CryptoVault = Depends(get_vault),
):
    """
    Registrar usuario en estado pendiente.

    Nombre, apellido y correo se guardan cifrados. El usuario no puede
    iniciar sesión hasta establecer su contraseña con /auth/set-password.

    Raises:
        409: El correo ya está registrado
    """
    user = AuthService.register_user(db, vault, data)
    return AuthService.decrypted_user(user, vault)


@router.post("/set-password", response_model=UserOut, summary="Establecer contraseña")
def set_password(
    data: SetPasswordRequest,
    db: Session = Depends(get_db),
    vault: CryptoVault = Depends(get_vault),
):
    user = AuthService.set_password(db, data.user_id, data.password)
    return AuthService.decrypted_user(user, vault)
