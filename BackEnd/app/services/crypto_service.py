"""
Cifrado de campos sensibles e índices ciegos.

CryptoVault cifra strings con AES-256-GCM y produce el formato de
almacenamiento iv:authTag:ciphertext (los tres en hexadecimal). El índice
ciego permite buscar por igualdad sobre campos cifrados (principalmente
correos) sin revelar el valor original.

Reglas:
    - Cada llamada a encrypt usa un nonce aleatorio de 96 bits
    - decrypt nunca lanza excepción: ante fallo de autenticación o datos
      corruptos devuelve DECRYPTION_ERROR
    - Valores que no tienen el formato de ciphertext se devuelven sin
      cambios (datos escritos antes de introducir el cifrado)
"""

import hashlib
import logging
import os
import re
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Request

logger = logging.getLogger(__name__)

DECRYPTION_ERROR = "[Error de descifrado]"

NONCE_SIZE = 12
TAG_SIZE = 16

# nonce (12 bytes) : tag (16 bytes) : ciphertext
_ENCRYPTED_PATTERN = re.compile(r"^[0-9a-fA-F]{24}:[0-9a-fA-F]{32}:[0-9a-fA-F]*$")


def looks_encrypted(value) -> bool:
    """True si el valor tiene la forma iv:authTag:ciphertext."""
    return isinstance(value, str) and bool(_ENCRYPTED_PATTERN.match(value))


def blind_index(text: Optional[str]) -> Optional[str]:
    """
    Índice ciego determinístico para búsquedas de igualdad.

    Args:
        text: Valor original (ej: correo)

    Returns:
        str: SHA-256 hex de text.lower().strip(), o None si text está vacío
    """
    if not text:
        return None
    normalized = text.lower().strip()
    if not normalized:
        return None
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class CryptoVault:
    """
    Cifrado autenticado de campos string con una clave maestra de 32 bytes.

    La clave se carga una vez al iniciar la aplicación (Settings.validate_crypto)
    y la instancia se comparte en app.state.vault.

    Uso:
        vault = CryptoVault(settings.validate_crypto())
        stored = vault.encrypt("Juan Perez")
        vault.decrypt(stored)  # "Juan Perez"
    """

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ValueError("La clave maestra debe tener 32 bytes (AES-256)")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """
        Cifrar un string.

        Args:
            plaintext: Texto a cifrar

        Returns:
            str: "iv:authTag:ciphertext" en hex, o None si plaintext está vacío
        """
        if plaintext is None or plaintext == "":
            return None

        nonce = os.urandom(NONCE_SIZE)
        # AESGCM devuelve ciphertext || tag
        sealed = self._aesgcm.encrypt(nonce, str(plaintext).encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, value: Optional[str]) -> Optional[str]:
        """
        Descifrar un valor almacenado.

        Args:
            value: Valor en formato iv:authTag:ciphertext, o texto plano legado

        Returns:
            str: Texto original; el mismo value si no tiene formato de
            ciphertext; DECRYPTION_ERROR si la autenticación falla
        """
        if not looks_encrypted(value):
            return value

        iv_hex, tag_hex, ct_hex = value.split(":")
        try:
            nonce = bytes.fromhex(iv_hex)
            sealed = bytes.fromhex(ct_hex) + bytes.fromhex(tag_hex)
            return self._aesgcm.decrypt(nonce, sealed, None).decode("utf-8")
        except (InvalidTag, ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Fallo al descifrar campo: {e.__class__.__name__}")
            return DECRYPTION_ERROR

    @staticmethod
    def is_decryption_error(value) -> bool:
        """Distinguir el centinela de error de contenido real antes de re-persistir."""
        return value == DECRYPTION_ERROR

    @staticmethod
    def blind_index(text: Optional[str]) -> Optional[str]:
        return blind_index(text)


def get_vault(request: Request) -> CryptoVault:
    """Dependency: vault creado al iniciar la aplicación."""
    return request.app.state.vault
