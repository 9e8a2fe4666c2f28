# app/services/upload_service.py
"""
Validación de archivos subidos antes de persistirlos.

Límites:
    - PDF de corrección, aprobación y firma: application/pdf, 10 MiB
    - Logo de empresa: image/*, 2 MiB
    - Adjuntos genéricos (base64 en el envío de respuestas): 20 MiB

Todo rechazo ocurre antes de tocar la base de datos.
"""

import base64
import binascii
import logging
import re
from typing import Optional, Tuple

from fastapi import UploadFile

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

_DATA_URL_PREFIX = re.compile(r"^data:[^;]+;base64,")


def _check_size(size: int, max_bytes: int, label: str) -> None:
    if size == 0:
        raise ValidationError(f"{label} está vacío")
    if size > max_bytes:
        raise ValidationError(
            f"{label} excede el tamaño máximo de {max_bytes // (1024 * 1024)} MB"
        )


async def _read_limited(file: UploadFile, max_bytes: int, label: str) -> bytes:
    # Lee un byte más del límite para detectar archivos demasiado grandes
    content = await file.read(max_bytes + 1)
    _check_size(len(content), max_bytes, label)
    return content


async def read_pdf_upload(file: Optional[UploadFile], max_bytes: int) -> Tuple[str, bytes, str]:
    """
    Leer y validar un PDF subido.

    Args:
        file: Archivo multipart (puede faltar)
        max_bytes: Tamaño máximo permitido

    Returns:
        (nombre, bytes, mime)

    Raises:
        ValidationError: Sin archivo, tipo distinto de PDF, vacío o muy grande
    """
    if file is None or not file.filename:
        raise ValidationError("No se subió ningún archivo")

    if file.content_type != PDF_MIME_TYPE:
        logger.warning(f"Archivo rechazado por tipo: {file.filename} ({file.content_type})")
        raise ValidationError("Solo se permiten archivos PDF")

    content = await _read_limited(file, max_bytes, "El archivo")
    return file.filename, content, PDF_MIME_TYPE


async def read_image_upload(file: Optional[UploadFile], max_bytes: int) -> Optional[Tuple[str, bytes, str]]:
    """Leer un logo opcional; debe ser image/*."""
    if file is None or not file.filename:
        return None

    if not (file.content_type or "").startswith("image/"):
        logger.warning(f"Logo rechazado por tipo: {file.filename} ({file.content_type})")
        raise ValidationError("El logo debe ser una imagen")

    content = await _read_limited(file, max_bytes, "El logo")
    return file.filename, content, file.content_type


def decode_attachment(file_data: str) -> bytes:
    """
    Decodificar el contenido base64 de un adjunto.

    Acepta base64 puro o data URL (data:<mime>;base64,<datos>).

    Raises:
        ValidationError: Si el contenido no es base64 válido
    """
    payload = _DATA_URL_PREFIX.sub("", file_data or "")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Adjunto con contenido base64 inválido")


def validate_attachment(file_data: str, max_bytes: int, file_name: str) -> int:
    """Validar tamaño decodificado de un adjunto; devuelve el tamaño en bytes."""
    content = decode_attachment(file_data)
    _check_size(len(content), max_bytes, f"El adjunto {file_name}")
    return len(content)
