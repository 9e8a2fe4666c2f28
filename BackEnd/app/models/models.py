"""
Módulo de modelos ORM para base de datos.

Define todas las tablas y relaciones de la base de datos usando SQLAlchemy ORM.
Los nombres de tabla conservan los de las colecciones originales del sistema
(respuestas, aprobados, firmados, docxs, flujos, empresas, usuarios).

Estructura:
    - Mixins: TimestampMixin, StoredFileMixin
    - Identidad: Company, User, SessionToken
    - Formularios: Form, FormResponse, ResponseMessage
    - Documentos: GeneratedDocument, ApprovedDocument, ClientSignature
    - Procesos: Workflow

Campos cifrados:
    Los campos marcados como "cifrado" guardan el formato iv:authTag:ciphertext
    producido por CryptoVault y se declaran Text porque su largo depende del
    texto original. Las búsquedas de igualdad sobre ellos se hacen por su
    índice ciego (columna *_index), nunca por el valor.
"""

from datetime import datetime
from sqlalchemy import (
    Boolean, Column, Integer, String, Text, LargeBinary, DateTime, JSON,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy import Enum as SqlEnum

from app.db.database import Base
from app.enums.enums import DocumentKind, FieldState, ResponseStatus, UserStatus


# =========================================================
# MIXINS - Campos comunes
# =========================================================

class TimestampMixin:
    """
    Mixin para agregar campos de timestamp automáticos.

    Campos:
        - created_at: Cuándo se creó el registro (inmutable)
        - updated_at: Cuándo se actualizó por última vez
    """
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )


class StoredFileMixin:
    """
    Mixin para registros que guardan un único archivo subido (PDF).

    Campos:
        - file_name: Nombre original del archivo
        - file_data: Bytes del archivo
        - file_size: Tamaño en bytes
        - mime_type: Tipo MIME declarado
        - uploaded_at: Cuándo se subió
    """
    file_name = Column(String(255), nullable=False)
    file_data = Column(LargeBinary, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), default="application/pdf", nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# =========================================================
# IDENTIDAD
# =========================================================

class Company(Base, TimestampMixin):
    """
    Empresa cliente.

    Se usa al generar anexos: el RUT va en el bloque de firmas y el logo,
    si existe, como membrete del documento.

    Campos:
        - name: Nombre único de la empresa
        - rut: RUT único
        - address / manager: Datos de contacto
        - logo_*: Imagen del membrete (image/*, máximo 2 MiB)
    """
    __tablename__ = "empresas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    rut = Column(String(20), unique=True, nullable=False)
    address = Column(String(255), default="", nullable=False)
    manager = Column(String(255), default="", nullable=False)

    logo_file_name = Column(String(255), nullable=True)
    logo_data = Column(LargeBinary, nullable=True)
    logo_size = Column(Integer, nullable=True)
    logo_mime_type = Column(String(100), nullable=True)
    logo_uploaded_at = Column(DateTime, nullable=True)

    @property
    def has_logo(self) -> bool:
        return bool(self.logo_data)

    def __repr__(self):
        return f"<Company(id={self.id}, name={self.name})>"


class User(Base, TimestampMixin):
    """
    Usuario del portal.

    Campos cifrados:
        - first_name, last_name, email

    Campos de búsqueda:
        - email_index: Índice ciego del correo (SHA-256 normalizado)

    Campos de estado:
        - status: pendiente (sin contraseña), activo, inactivo
        - password_hash: Hash Argon2id, vacío hasta set-password
    """
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    email_index = Column(String(64), unique=True, nullable=False, index=True)

    company = Column(String(255), nullable=False)
    position = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False)
    department = Column(String(100), nullable=True)

    password_hash = Column(String(255), default="", nullable=False)
    status = Column(
        SqlEnum(UserStatus, name="user_status_enum"),
        default=UserStatus.pendiente,
        nullable=False
    )

    def __repr__(self):
        return f"<User(id={self.id}, role={self.role}, status={self.status})>"


class SessionToken(Base):
    """
    Token de sesión opaco (256 bits aleatorios en hex).

    Un token es válido solo si está activo, no expiró y fue creado el
    mismo día calendario (zona horaria fija) en que se valida.

    Campos:
        - token: Valor entregado al cliente
        - email: Correo del dueño (cifrado)
        - email_index: Índice ciego del correo
        - role: Rol del usuario al emitir el token
        - created_at / expires_at: Ventana de validez
        - active / revoked_at: Cierre de sesión explícito (no se borra)
    """
    __tablename__ = "session_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(Text, nullable=False)
    email_index = Column(String(64), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<SessionToken(id={self.id}, role={self.role}, active={self.active})>"


# =========================================================
# FORMULARIOS Y RESPUESTAS
# =========================================================

class Form(Base, TimestampMixin):
    """
    Definición de formulario.

    Campos:
        - title: Título visible
        - section: Categoría; "Anexos" genera un anexo DOCX
        - companies: Empresas autorizadas a responder ("Todas" = cualquiera)
    """
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    section = Column(String(100), nullable=True, index=True)
    companies = Column(JSON, default=list, nullable=False)

    responses = relationship("FormResponse", back_populates="form")


class FormResponse(Base, TimestampMixin):
    """
    Respuesta enviada a un formulario.

    Es la unidad sobre la que opera la máquina de estados de aprobación:
    pendiente -> en_revision -> aprobado (-> publicado), con reversión
    aprobado -> en_revision al eliminar la corrección.

    Campos principales:
        - form_id / form_title / section: Formulario de origen
        - user_uid / submitted_by / company / user_email: Identidad del emisor
        - answers: Mapa pregunta -> respuesta (escalar, lista o "_contexto")
        - attachments: Descriptores de adjuntos (base64)
        - status: Estado del flujo de aprobación

    Corrección:
        - corrected_file_*: PDF de corrección embebido (opcional)

    Timestamps de estado:
        - reviewed_at: Primera revisión (descarga del documento generado)
        - approved_at: Aprobación
    """
    __tablename__ = "respuestas"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("forms.id"), nullable=False, index=True)
    form_title = Column(String(255), nullable=True)
    section = Column(String(100), nullable=True, index=True)

    user_uid = Column(String(100), nullable=True, index=True)
    submitted_by = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)

    answers = Column(JSON, default=dict, nullable=False)
    attachments = Column(JSON, default=list, nullable=False)

    status = Column(
        SqlEnum(ResponseStatus, name="response_status_enum"),
        default=ResponseStatus.pendiente,
        nullable=False,
        index=True
    )

    corrected_file_name = Column(String(255), nullable=True)
    corrected_file_data = Column(LargeBinary, nullable=True)
    corrected_file_size = Column(Integer, nullable=True)
    corrected_file_mime_type = Column(String(100), nullable=True)
    corrected_file_uploaded_at = Column(DateTime, nullable=True)

    reviewed_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    form = relationship("Form", back_populates="responses")
    messages = relationship(
        "ResponseMessage",
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="ResponseMessage.id"
    )

    @property
    def has_correction(self) -> bool:
        return self.corrected_file_data is not None

    def clear_correction(self) -> None:
        self.corrected_file_name = None
        self.corrected_file_data = None
        self.corrected_file_size = None
        self.corrected_file_mime_type = None
        self.corrected_file_uploaded_at = None

    def __repr__(self):
        return f"<FormResponse(id={self.id}, status={self.status})>"


class ResponseMessage(Base):
    """
    Mensaje de chat asociado a una respuesta.

    Campos:
        - author: Nombre de quien escribe
        - text: Contenido libre
        - read: Leído (por defecto False)
        - created_at: Asignado por el servidor
    """
    __tablename__ = "response_messages"

    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(
        Integer,
        ForeignKey("respuestas.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author = Column(String(255), nullable=False)
    text = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    response = relationship("FormResponse", back_populates="messages")


# =========================================================
# DOCUMENTOS
# =========================================================

class GeneratedDocument(Base, TimestampMixin):
    """
    Documento generado automáticamente al enviar una respuesta.

    Nunca se modifica: regenerar crea un registro nuevo con otro
    generated_id.

    Campos:
        - generated_id: ANEXO_<TRABAJADOR>_<ms> o FORMULARIO_<id>_<ms>
        - content: Bytes del documento
        - kind: docx (anexo) o txt (transcripción)
        - response_id: Respuesta dueña
    """
    __tablename__ = "docxs"

    id = Column(Integer, primary_key=True, index=True)
    generated_id = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(LargeBinary, nullable=False)
    kind = Column(
        SqlEnum(DocumentKind, name="document_kind_enum"),
        nullable=False
    )
    response_id = Column(Integer, ForeignKey("respuestas.id", ondelete="SET NULL"), nullable=True, index=True)

    def __repr__(self):
        return f"<GeneratedDocument(generated_id={self.generated_id}, kind={self.kind})>"


class ApprovedDocument(Base, StoredFileMixin):
    """
    Snapshot de aprobación de una respuesta.

    Como máximo uno por respuesta. Los campos denormalizados se copian al
    aprobar y no se actualizan si la respuesta cambia después.
    """
    __tablename__ = "aprobados"

    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, unique=True, nullable=False, index=True)
    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    form_title = Column(String(255), nullable=True)
    submitted_by = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)


class ClientSignature(Base, StoredFileMixin, TimestampMixin):
    """
    PDF firmado por el cliente.

    Solo se crea si la respuesta está aprobada. La restricción única sobre
    response_id garantiza como máximo una firma por respuesta aun con
    requests concurrentes.
    """
    __tablename__ = "firmados"

    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, nullable=False, index=True)
    form_id = Column(Integer, nullable=True)
    form_title = Column(String(255), nullable=True)
    signed_by = Column(String(50), default="client", nullable=False)
    client_name = Column(String(255), nullable=True)
    client_email = Column(String(255), nullable=True)
    status = Column(String(20), default="uploaded", nullable=False)
    company = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("response_id", name="unique_client_signature_response"),
    )


# =========================================================
# PROCESOS (FLUJOS)
# =========================================================

class Workflow(Base, TimestampMixin):
    """
    Definición de proceso de negocio con tareas ordenadas.

    Campos cifrados:
        - name, status, management_category, company
        - nodes[*].title/description/type/priority/assignedTo

    Campos en claro (indexables):
        - department, ids de nodos, fechas y campos numéricos de nodos

    Marcado de cifrado:
        - field_state: plain/encrypted. Los registros antiguos pueden no
          tenerlo; para ellos la migración usa la heurística del separador.
        - migration_note: Sello de la migración que cifró el registro
    """
    __tablename__ = "flujos"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=True)
    status = Column(Text, nullable=True)
    management_category = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    department = Column(String(100), nullable=True, index=True)
    nodes = Column(JSON, default=list, nullable=False)

    field_state = Column(SqlEnum(FieldState, name="field_state_enum"), nullable=True)
    migration_note = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_workflow_department_state", "department", "field_state"),
    )

    def __repr__(self):
        return f"<Workflow(id={self.id}, state={self.field_state})>"
