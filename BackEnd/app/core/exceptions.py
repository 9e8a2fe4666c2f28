"""
Excepciones de dominio.

Los servicios lanzan estas excepciones y main.py las traduce a respuestas
HTTP. Cualquier otra excepción se considera error interno: se registra
completa en el log y se responde con un mensaje genérico.
"""

from fastapi import status


class AppError(Exception):
    """Error base de la aplicación con código HTTP asociado."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Entrada mal formada o incompleta (archivo inválido, campos faltantes)."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    """Token o credenciales inválidas."""

    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    """El solicitante no está autorizado para el recurso."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """La respuesta, documento, flujo, usuario o token no existe."""

    status_code = status.HTTP_404_NOT_FOUND


class PreconditionFailedError(AppError):
    """
    El recurso existe pero su estado no permite la operación.

    Ejemplos: aprobar sin corrección, segunda firma de cliente,
    firmar una respuesta que no está aprobada.
    """

    status_code = status.HTTP_409_CONFLICT
