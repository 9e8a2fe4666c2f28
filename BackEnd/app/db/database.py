"""
Módulo de configuración de base de datos.

Este módulo gestiona la conexión a la base de datos: creación del motor
SQLAlchemy, fábrica de sesiones, base declarativa de modelos y la
inyección de dependencias para FastAPI.

A diferencia de una conexión global perezosa, la fábrica de sesiones se
construye explícitamente al crear la aplicación (ver main.create_app) y se
guarda en app.state. Cada request obtiene su propia sesión a partir de ella.

Configuración soportada:
    - SQLite: Desarrollo local y tests (en memoria)
    - PostgreSQL: Producción

Componentes:
    - Base: Declarative base para modelos ORM
    - create_session_factory: Motor + sessionmaker a partir de una URL
    - init_db: Crea las tablas registradas
    - get_db: Dependency injection para FastAPI
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# **Base**: Base declarativa para definir modelos ORM
#   - Todos los modelos heredan de Base
#   - Base.metadata contiene definición de todas las tablas
Base = declarative_base()


def create_session_factory(database_url: str) -> sessionmaker:
    """
    Crear motor y fábrica de sesiones para una URL de base de datos.

    Para SQLite en memoria se usa StaticPool, de modo que todas las
    sesiones comparten la misma conexión (y por lo tanto las mismas tablas).

    Args:
        database_url (str): URL SQLAlchemy (sqlite://, postgresql://, ...)

    Returns:
        sessionmaker: Fábrica de sesiones ligada al motor creado
    """
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        # Argumento específico para SQLite (allows same thread)
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(
        autocommit=False,  # Transacciones explícitas
        autoflush=False,   # Flush explícito
        bind=engine
    )


def init_db(engine: Engine) -> None:
    """
    Crear todas las tablas si no existen.

    Importa los modelos para registrarlos en Base.metadata antes de
    llamar a create_all.
    """
    # IMPORTANTE: Este import activa el registro de modelos
    from app.models import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    """
    Obtener sesión de base de datos para inyectar en endpoints.

    La sesión se crea a partir de la fábrica guardada en
    request.app.state.session_factory y se cierra siempre al terminar
    el request, incluso si hubo una excepción.

    Yields:
        Session: Sesión SQLAlchemy lista para usar
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
