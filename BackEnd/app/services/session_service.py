import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from fastapi import Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.crud import crud
from app.enums.enums import TokenFailure
from app.models.models import SessionToken
from app.services import security_service
from app.services.crypto_service import CryptoVault, blind_index

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenValidation(BaseModel):
    """Resultado de validar un token: valid + motivo cuando falla."""
    valid: bool
    reason: Optional[TokenFailure] = None
    email: Optional[str] = None
    role: Optional[str] = None


class TokenAuth:
    """
    Emisión, validación y revocación de tokens de sesión opacos.

    Un token es válido solo si:
        - existe y está activo
        - no pasó expires_at
        - fue creado el mismo día calendario (en la zona horaria de la
          aplicación) en que se valida

    Un token vencido o de otro día se BORRA al validarlo. Un token revocado
    (logout) se conserva inactivo con revoked_at.

    Las fechas se guardan como UTC sin zona horaria, igual que el resto de
    los modelos.
    """

    def __init__(
        self,
        vault: CryptoVault,
        expire_minutes: int,
        tz: ZoneInfo,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.vault = vault
        self.expire_minutes = expire_minutes
        self.tz = tz
        self._clock = clock or _utcnow

    def _now(self) -> datetime:
        """Ahora en UTC, sin zona horaria (formato de almacenamiento)."""
        return self._clock().astimezone(timezone.utc).replace(tzinfo=None)

    def _local_date(self, stored: datetime):
        return stored.replace(tzinfo=timezone.utc).astimezone(self.tz).date()

    def _same_day(self, created_at: datetime, now: datetime) -> bool:
        return self._local_date(created_at) == self._local_date(now)

    def _is_usable(self, session: SessionToken, now: datetime) -> bool:
        return session.active and session.expires_at > now and self._same_day(session.created_at, now)

    def issue(self, db: Session, email: str, role: str) -> SessionToken:
        """
        Obtener un token para (email, rol).

        Reutiliza un token activo, vigente y del día si existe; si no,
        revoca los tokens activos anteriores del correo y crea uno nuevo de
        256 bits con validez de expire_minutes.
        """
        now = self._now()
        email_index = blind_index(email)

        active_tokens = (
            db.query(SessionToken)
            .filter(SessionToken.email_index == email_index, SessionToken.active.is_(True))
            .order_by(SessionToken.created_at.desc())
            .all()
        )
        for session in active_tokens:
            if session.role == role and self._is_usable(session, now):
                logger.info(f"Reutilizando token de sesión vigente (ID: {session.id})")
                return session

        for stale in active_tokens:
            stale.active = False
            stale.revoked_at = now

        session = SessionToken(
            token=security_service.generate_session_token(),
            email=self.vault.encrypt(email.strip()),
            email_index=email_index,
            role=role,
            created_at=now,
            expires_at=now + timedelta(minutes=self.expire_minutes),
            active=True,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        logger.info(
            f"Token de sesión emitido (ID: {session.id}, rol: {role}, "
            f"{len(active_tokens)} token(s) anterior(es) revocado(s))"
        )
        return session

    def validate(
        self,
        db: Session,
        token: Optional[str],
        email: Optional[str] = None,
        role: Optional[str] = None,
    ) -> TokenValidation:
        """
        Validar un token.

        Args:
            token: Valor del token
            email: Si se indica, debe corresponder al dueño del token
            role: Si se indica, debe coincidir con el rol del token

        Returns:
            TokenValidation: valid=False con reason not_found, revoked,
            expired, other_day, identity_mismatch o role_mismatch
        """
        session = crud.get_session_token(db, token) if token else None
        if session is None:
            return TokenValidation(valid=False, reason=TokenFailure.not_found)

        if not session.active:
            return TokenValidation(valid=False, reason=TokenFailure.revoked)

        now = self._now()
        if now > session.expires_at:
            self._delete(db, session, TokenFailure.expired)
            return TokenValidation(valid=False, reason=TokenFailure.expired)

        if not self._same_day(session.created_at, now):
            self._delete(db, session, TokenFailure.other_day)
            return TokenValidation(valid=False, reason=TokenFailure.other_day)

        if email is not None and blind_index(email) != session.email_index:
            return TokenValidation(valid=False, reason=TokenFailure.identity_mismatch)

        if role is not None and role != session.role:
            return TokenValidation(valid=False, reason=TokenFailure.role_mismatch)

        return TokenValidation(
            valid=True,
            email=self.vault.decrypt(session.email),
            role=session.role,
        )

    def revoke(self, db: Session, token: str) -> SessionToken:
        """Marcar el token como inactivo (logout). No se borra."""
        session = crud.get_session_token(db, token)
        if session is None:
            raise NotFoundError("Token no encontrado")
        if session.active:
            session.active = False
            session.revoked_at = self._now()
            db.commit()
            db.refresh(session)
            logger.info(f"Token de sesión revocado (ID: {session.id})")
        return session

    @staticmethod
    def _delete(db: Session, session: SessionToken, reason: TokenFailure) -> None:
        logger.info(f"Token de sesión {session.id} eliminado: {reason.value}")
        db.delete(session)
        db.commit()


def get_token_auth(request: Request) -> TokenAuth:
    return request.app.state.token_auth
