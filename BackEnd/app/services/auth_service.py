import logging
import secrets
from typing import Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
    ValidationError,
)
from app.db.crud import crud
from app.db.database import get_db
from app.enums.enums import UserStatus
from app.models.models import SessionToken, User
from app.schemas.auth_schemas import MIN_PASSWORD_LENGTH, Identity, RegisterRequest
from app.services import security_service
from app.services.crypto_service import CryptoVault, blind_index
from app.services.session_service import TokenAuth, get_token_auth

# ========================================
#  CONFIGURACIÓN INICIAL
# ========================================

# Esquema Bearer; auto_error=False para poder aceptar solicitudes internas
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

INTERNAL_REQUEST_HEADER = "X-Internal-Request"

logger = logging.getLogger(__name__)


# ========================================
#  SERVICIO DE AUTENTICACIÓN
# ========================================

class AuthService:
    """
    Registro, activación y login de usuarios del portal.

    Nombre, apellido y correo se guardan cifrados; la búsqueda por correo
    se hace siempre por índice ciego. El login emite un token de sesión
    opaco a través de TokenAuth.
    """

    PASSWORD_MIN_LENGTH = MIN_PASSWORD_LENGTH

    @staticmethod
    def _validate_password_strength(password: str) -> None:
        """
        Valida el largo mínimo de la contraseña

        Raises:
            ValidationError: Si la contraseña es muy corta
        """
        if not password or len(password) < AuthService.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"La contraseña debe tener al menos {AuthService.PASSWORD_MIN_LENGTH} caracteres"
            )

    @staticmethod
    def display_name(user: User, vault: CryptoVault) -> str:
        first = vault.decrypt(user.first_name) or ""
        last = vault.decrypt(user.last_name) or ""
        return f"{first} {last}".strip()

    @staticmethod
    def decrypted_user(user: User, vault: CryptoVault) -> dict:
        """Datos del usuario con los campos cifrados ya en claro."""
        return {
            "id": user.id,
            "first_name": vault.decrypt(user.first_name),
            "last_name": vault.decrypt(user.last_name),
            "email": vault.decrypt(user.email),
            "company": user.company,
            "position": user.position,
            "role": user.role,
            "department": user.department,
            "status": user.status,
            "created_at": user.created_at,
        }

    @staticmethod
    def register_user(db: Session, vault: CryptoVault, data: RegisterRequest) -> User:
        """
        Registrar usuario en estado pendiente (sin contraseña).

        Raises:
            PreconditionFailedError: Si el correo ya está registrado
        """
        email_index = blind_index(data.email)
        if crud.get_user_by_email_index(db, email_index):
            raise PreconditionFailedError("El correo ya está registrado")

        user = User(
            first_name=vault.encrypt(data.first_name.strip()),
            last_name=vault.encrypt(data.last_name.strip()),
            email=vault.encrypt(data.email),
            email_index=email_index,
            company=data.company.strip(),
            position=data.position.strip(),
            role=data.role.strip(),
            department=data.department,
            password_hash="",
            status=UserStatus.pendiente,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise PreconditionFailedError("El correo ya está registrado")
        db.refresh(user)
        logger.info(f"Usuario registrado (ID: {user.id}, rol: {user.role}) pendiente de contraseña")
        return user

    @staticmethod
    def set_password(db: Session, user_id: int, password: str) -> User:
        """
        Establecer la contraseña inicial y activar la cuenta.

        Solo se permite una vez, mientras el usuario está pendiente.
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("Usuario no encontrado")
        if user.status != UserStatus.pendiente:
            raise PreconditionFailedError("La contraseña ya fue establecida")

        AuthService._validate_password_strength(password)

        user.password_hash = security_service.hash_password(password)
        user.status = UserStatus.activo
        db.commit()
        db.refresh(user)
        logger.info(f"Contraseña establecida para usuario {user.id}; cuenta activa")
        return user

    @staticmethod
    def login_user(
        db: Session,
        vault: CryptoVault,
        token_auth: TokenAuth,
        email: str,
        password: str,
    ) -> Tuple[User, SessionToken]:
        """
        Autenticar usuario y emitir token de sesión.

        Returns:
            (usuario, token de sesión)

        Raises:
            AuthenticationError: Credenciales inválidas
            PermissionDeniedError: Cuenta pendiente o inactiva
        """
        # 1. Buscar usuario por índice ciego
        user = crud.get_user_by_email_index(db, blind_index(email))
        if not user:
            raise AuthenticationError("Credenciales inválidas")

        # 2. Verificar estado de la cuenta
        if user.status == UserStatus.pendiente:
            raise PermissionDeniedError("Cuenta pendiente: establece tu contraseña primero")
        if user.status == UserStatus.inactivo:
            raise PermissionDeniedError("Cuenta desactivada")

        # 3. Verificar contraseña
        if not security_service.verify_password(password, user.password_hash):
            logger.warning(f"Login fallido para usuario {user.id}")
            raise AuthenticationError("Credenciales inválidas")

        # 4. Emitir token
        session = token_auth.issue(db, vault.decrypt(user.email), user.role)
        logger.info(f"Login exitoso de usuario {user.id}")
        return user, session


# ========================================
#  DEPENDENCIAS DE IDENTIDAD
# ========================================

def get_current_identity(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token_auth: TokenAuth = Depends(get_token_auth),
) -> Identity:
    """
    Dependencia: identidad del solicitante.

    Una solicitud con el header X-Internal-Request igual al secreto interno
    configurado no pasa por validación de token. En otro caso se exige
    Authorization: Bearer <token> válido.

    Raises:
        AuthenticationError: Sin token o token inválido
    """
    if is_internal_request(request, settings):
        return Identity(internal=True)

    if not token:
        raise AuthenticationError("Token de sesión requerido")

    result = token_auth.validate(db, token)
    if not result.valid:
        raise AuthenticationError(f"Token inválido: {result.reason.value}")
    return Identity(email=result.email, role=result.role)


def is_internal_request(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> bool:
    """True si el header X-Internal-Request coincide con el secreto interno."""
    marker = request.headers.get(INTERNAL_REQUEST_HEADER)
    secret = settings.INTERNAL_REQUEST_SECRET
    return bool(marker and secret and secrets.compare_digest(marker, secret))
