"""
Punto de entrada principal de la aplicación FastAPI.

Backend de RRHH para el ciclo de vida de documentos: envío de formularios,
generación de anexos, revisión, aprobación y firma, más flujos cifrados y
sesiones con tokens opacos.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.exceptions import AppError
from app.db.database import create_session_factory, init_db
from app.api.v1.routes.auth_endpoints import router as auth_router
from app.api.v1.routes.documents_endpoints import router as docs_router
from app.api.v1.routes.responses_endpoints import router as responses_router
from app.api.v1.routes.forms import router as forms_router
from app.api.v1.routes.workflows import router as workflows_router
from app.services.crypto_service import CryptoVault
from app.services.email_service import EmailService
from app.services.notification_service import NotificationService
from app.services.session_service import TokenAuth

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("rrhh_docs")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestiona el ciclo de vida de la aplicación.

    Args:
        app (FastAPI): Instancia de la aplicación.
    """
    logger.info("Iniciando aplicación...")
    yield
    logger.info("Cerrando aplicación...")


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    email_service: Optional[EmailService] = None,
) -> FastAPI:
    """
    Construir la aplicación con sus dependencias explícitas.

    Valida la clave maestra, crea la fábrica de sesiones (si no se entrega
    una), las tablas, y deja en app.state la configuración, el vault de
    cifrado, TokenAuth y el servicio de notificaciones.

    Args:
        settings: Configuración; por defecto se lee del entorno
        session_factory: Fábrica de sesiones ya creada (tests)
        email_service: Servicio de correo alternativo (tests)

    Raises:
        ValueError: Si MASTER_KEY falta o es inválida
    """
    settings = settings or Settings()
    key = settings.validate_crypto()

    if session_factory is None:
        session_factory = create_session_factory(settings.DATABASE_URL)
    init_db(session_factory.kw["bind"])
    logger.info("Tablas de base de datos verificadas/creadas")

    vault = CryptoVault(key)
    email_service = email_service or EmailService(settings.RESEND_API_KEY, settings.FROM_EMAIL)

    app = FastAPI(
        title="RRHH Documentos",
        description="API de formularios, anexos, aprobaciones y flujos de RRHH",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.vault = vault
    app.state.token_auth = TokenAuth(vault, settings.TOKEN_EXPIRE_MINUTES, settings.timezone)
    app.state.notifier = NotificationService(email_service, settings.NOTIFY_EMAIL)

    # Incluir routers de endpoints
    app.include_router(auth_router)
    app.include_router(forms_router)
    app.include_router(responses_router)
    app.include_router(docs_router)
    app.include_router(workflows_router)

    # Configurar middleware CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Error no controlado en {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})

    @app.get("/")
    def root():
        """
        Endpoint raíz para verificar que la API está funcionando.

        Returns:
            dict: Estado de la aplicación.
        """
        return {
            "status": "ok",
            "message": "RRHH Documentos API",
            "version": "1.0.0"
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
