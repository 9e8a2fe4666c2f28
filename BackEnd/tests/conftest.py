"""
Configuración y fixtures de tests.

Cada test obtiene una base SQLite en memoria nueva (StaticPool), una
clave maestra fija y un servicio de correo falso que registra los envíos.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.database import create_session_factory, init_db
from app.models.models import Form
from app.services.crypto_service import CryptoVault
from app.services.session_service import TokenAuth
from main import create_app

TEST_MASTER_KEY = "a1" * 32
INTERNAL_SECRET = "test-internal-secret"
HR_EMAIL = "rrhh@empresa.test"


class FakeEmailService:
    """Registra los correos en vez de enviarlos."""

    def __init__(self):
        self.enabled = True
        self.sent = []

    def send_email(self, to_email, subject, html_content, from_email=None):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return {"id": f"fake-{len(self.sent)}"}


class FrozenClock:
    """Reloj ajustable para TokenAuth."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def settings():
    s = Settings()
    s.DATABASE_URL = "sqlite://"
    s.MASTER_KEY = TEST_MASTER_KEY
    s.INTERNAL_REQUEST_SECRET = INTERNAL_SECRET
    s.NOTIFY_EMAIL = HR_EMAIL
    s.APP_TIMEZONE = "America/Santiago"
    s.TOKEN_EXPIRE_MINUTES = 60
    s.DOCUMENT_CITY = "PROVIDENCIA"
    return s


@pytest.fixture
def session_factory():
    factory = create_session_factory("sqlite://")
    init_db(factory.kw["bind"])
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def vault():
    return CryptoVault(bytes.fromhex(TEST_MASTER_KEY))


@pytest.fixture
def clock():
    # 10 de mayo de 2024, 14:00 en Santiago (UTC-4)
    return FrozenClock(datetime(2024, 5, 10, 18, 0, tzinfo=timezone.utc))


@pytest.fixture
def token_auth(vault, settings, clock):
    return TokenAuth(vault, settings.TOKEN_EXPIRE_MINUTES, settings.timezone, clock=clock)


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def app(settings, session_factory, email_service):
    return create_app(settings=settings, session_factory=session_factory, email_service=email_service)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def internal_headers():
    return {"X-Internal-Request": INTERNAL_SECRET}


@pytest.fixture
def make_form(db):
    def _make(title="Solicitud de vacaciones", section="Vacaciones", companies=("Todas",)):
        form = Form(title=title, section=section, companies=list(companies))
        db.add(form)
        db.commit()
        db.refresh(form)
        return form
    return _make


# =========================================================
# USUARIOS Y SESIÓN VÍA API
# =========================================================

USER_EMAIL = "ana@empresa.cl"
USER_PASSWORD = "clave-segura-1"


def register_payload(**overrides):
    payload = {
        "first_name": "Ana",
        "last_name": "Pérez",
        "email": USER_EMAIL,
        "company": "ACME SPA",
        "position": "Analista",
        "role": "admin",
        "department": "RRHH",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def registered_user(client):
    """Usuario registrado y activado con contraseña."""
    response = client.post("/auth/register", json=register_payload())
    assert response.status_code == 201
    user = response.json()

    response = client.post("/auth/set-password", json={"user_id": user["id"], "password": USER_PASSWORD})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def auth_token(client, registered_user):
    response = client.post("/auth/login", json={"email": USER_EMAIL, "password": USER_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}
