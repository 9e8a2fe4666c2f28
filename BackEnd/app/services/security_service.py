# app/services/security_service.py
"""Hash de contraseñas (Argon2id) y generación de tokens de sesión."""
import logging
import secrets

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

SESSION_TOKEN_BYTES = 32

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__type="id",
    argon2__memory_cost=64 * 1024,
    argon2__time_cost=3,
    argon2__parallelism=1,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Compara una contraseña con su hash PHC.

    Un usuario sin contraseña (hash vacío) o un hash ilegible cuentan
    como credenciales inválidas, nunca como error.
    """
    if not (plain_password and hashed_password):
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Hash de contraseña ilegible: {e}")
        return False


def generate_session_token() -> str:
    """64 caracteres hexadecimales."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)
