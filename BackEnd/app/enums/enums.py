from enum import Enum


class ResponseStatus(str, Enum):
    pendiente = "pendiente"
    en_revision = "en_revision"
    aprobado = "aprobado"
    publicado = "publicado"


class DocumentKind(str, Enum):
    docx = "docx"
    txt = "txt"


class UserStatus(str, Enum):
    pendiente = "pendiente"
    activo = "activo"
    inactivo = "inactivo"


class FieldState(str, Enum):
    plain = "plain"
    encrypted = "encrypted"


class TokenFailure(str, Enum):
    not_found = "not_found"
    expired = "expired"
    other_day = "other_day"
    identity_mismatch = "identity_mismatch"
    role_mismatch = "role_mismatch"
    revoked = "revoked"
