"""
Composición de documentos a partir de respuestas de formularios.

Transforma el mapa de respuestas de un formulario + la identidad de quien
lo envió en una de dos salidas:

    - section == "Anexos": anexo de modificación de contrato (DOCX), con
      cláusulas numeradas que se agregan según reglas condicionales
    - cualquier otro valor: transcripción en texto plano (TXT)

Este módulo es puro: no toca base de datos ni archivos. La búsqueda de la
empresa (RUT y logo) la resuelve company_service y el render a DOCX lo
hace annex_renderer.

Las claves del mapa de respuestas son las preguntas literales de los
formularios existentes y deben mantenerse tal cual.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from app.enums.enums import DocumentKind

ANNEX_SECTION = "Anexos"

ANNEX_TITLE = "ANEXO DE MODIFICACIÓN Y ACTUALIZACIÓN DE CONTRATO INDIVIDUAL DE TRABAJO"
MODIFICATION_HEADING = "MODIFICACIÓN"
SIGNATURE_LINE = "_____________________________"

COMPANY_PLACEHOLDER = "[EMPRESA NO ESPECIFICADA]"
REPRESENTATIVE_PLACEHOLDER = "[NOMBRE NO ESPECIFICADO]"
WORKER_PLACEHOLDER = "[TRABAJADOR NO ESPECIFICADO]"
DATE_PLACEHOLDER = "[FECHA NO ESPECIFICADA]"
NO_ANSWER = "Sin respuesta"

CONTEXT_KEY = "_contexto"

SPANISH_MONTHS = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
    "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

ORDINALS = [
    "", "PRIMERO:", "SEGUNDO:", "TERCERO:", "CUARTO:", "QUINTO:",
    "SEXTO:", "SÉPTIMO:", "OCTAVO:", "NOVENO:", "DÉCIMO:",
    "UNDÉCIMO:", "DUODÉCIMO:", "DÉCIMO TERCERO:", "DÉCIMO CUARTO:",
    "DÉCIMO QUINTO:", "DÉCIMO SEXTO:", "DÉCIMO SÉPTIMO:",
    "DÉCIMO OCTAVO:", "DÉCIMO NOVENO:", "VIGÉSIMO:",
]


# =========================================================
# ESTRUCTURA DEL DOCUMENTO
# =========================================================

class Run(BaseModel):
    text: str
    bold: bool = False


class Clause(BaseModel):
    ordinal: str
    runs: List[Run]


class Letterhead(BaseModel):
    data: bytes
    mime_type: str = "image/png"


class SignatureBlock(BaseModel):
    employer_rut: str = ""
    employer_name: str
    worker_rut: str = ""
    worker_name: str


class AnnexDocument(BaseModel):
    """Árbol del anexo: membrete opcional, título, considerando, cláusulas y firmas."""
    letterhead: Optional[Letterhead] = None
    title: str = ANNEX_TITLE
    recital: List[Run]
    heading: str = MODIFICATION_HEADING
    clauses: List[Clause]
    signatures: SignatureBlock


class CompanyInfo(BaseModel):
    """Datos de la empresa resueltos en base de datos para el anexo."""
    rut: str = ""
    logo: Optional[Letterhead] = None


class Submitter(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None


class ComposedDocument(BaseModel):
    kind: DocumentKind
    generated_id: str
    annex: Optional[AnnexDocument] = None
    transcript: Optional[str] = None


# =========================================================
# MAPA DE RESPUESTAS
# =========================================================

class AnswerMap:
    """
    Acceso tipado al mapa de respuestas (pregunta -> valor).

    El mapa no tiene forma fija: un valor puede ser escalar, lista o un
    sub-mapa (_contexto para campos duplicados por turno). Los accesores
    nunca devuelven None; aplican un valor por defecto explícito.
    """

    def __init__(self, answers: Optional[Dict[str, Any]] = None):
        self._answers = dict(answers or {})

    def text(self, key: str, default: str = "") -> str:
        value = self._answers.get(key)
        if value is None or value == "":
            return default
        if isinstance(value, list):
            joined = ", ".join(str(v) for v in value if v not in (None, ""))
            return joined or default
        if isinstance(value, dict):
            return default
        return str(value)

    def items(self, key: str) -> List[str]:
        value = self._answers.get(key)
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return [str(v) for v in value if v not in (None, "")]
        return [str(value)]

    def mapping(self, key: str) -> Dict[str, Any]:
        value = self._answers.get(key)
        return value if isinstance(value, dict) else {}

    def questions(self) -> List[Tuple[str, Any]]:
        """Pares (pregunta, respuesta) en orden de envío, sin _contexto."""
        return [(k, v) for k, v in self._answers.items() if k != CONTEXT_KEY]


# =========================================================
# FORMATO
# =========================================================

def format_spanish_date(value: Optional[str]) -> str:
    """
    Formatear una fecha como "<día> de <mes> de <año>".

    Acepta timestamps ISO (con "T") y fechas YYYY-MM-DD. Si no se puede
    interpretar, devuelve el valor original sin cambios.

    Example:
        format_spanish_date("2024-03-05")            # "5 de marzo de 2024"
        format_spanish_date("2024-03-05T10:00:00Z")  # "5 de marzo de 2024"
        format_spanish_date("pronto")                # "pronto"
    """
    if not value:
        return value or ""

    try:
        if "T" in value:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        else:
            year, month, day = value.strip().split("-")
            parsed = date(int(year), int(month), int(day))
    except ValueError:
        return value

    return f"{parsed.day} de {SPANISH_MONTHS[parsed.month - 1]} de {parsed.year}"


def ordinal_for(number: int) -> str:
    """Ordinal de cláusula: PRIMERO: ... VIGÉSIMO:, luego "21°:"."""
    if 1 <= number < len(ORDINALS):
        return ORDINALS[number]
    return f"{number}°:"


def _bold(text: str) -> Run:
    return Run(text=text, bold=True)


# =========================================================
# CAMPOS DEL ANEXO
# =========================================================

class AnnexFields(BaseModel):
    """Campos normalizados del anexo. Los opcionales vacíos quedan en ""."""
    company: str
    representative: str
    worker: str
    worker_rut: str = ""

    start_date: str = ""
    contract_date: str = ""
    contract_end: str = ""
    contract_types: List[str] = Field(default_factory=list)
    new_position: str = ""

    salary: str = ""
    meal_allowance: str = ""
    transport_allowance: str = ""

    entry_time: str = ""
    exit_time: str = ""
    meal_entry_time: str = ""
    meal_exit_time: str = ""

    bonus_name: str = ""
    bonus_amount: str = ""
    bonus_period: str = ""
    bonus_condition: str = ""

    workplace: str = ""
    new_address: str = ""
    phone: str = ""
    email: str = ""

    double_shift: str = ""
    shift_comments: str = ""
    single_shift_days: str = ""
    single_shift_entry: str = ""
    single_shift_exit: str = ""
    compensation_day: str = ""
    compensation_entry: str = ""
    compensation_exit: str = ""

    meal_from: str = ""
    meal_to: str = ""


def map_annex_fields(answers: AnswerMap, submitter: Submitter) -> AnnexFields:
    """Traducir las preguntas literales del formulario de anexos a AnnexFields."""
    return AnnexFields(
        company=submitter.company or COMPANY_PLACEHOLDER,
        representative=submitter.name or REPRESENTATIVE_PLACEHOLDER,
        worker=answers.text("Nombre del trabajador", WORKER_PLACEHOLDER),
        worker_rut=answers.text("Rut del trabajador"),

        start_date=answers.text("Fecha de inicio de modificación"),
        contract_date=answers.text("Fecha del contrato vigente"),
        contract_end=answers.text("FECHA DE TÉRMINO DEL CONTRATADO FIJO:"),
        contract_types=answers.items("Tipo de Anexo"),
        new_position=answers.text("NUEVO CARGO TRABAJADOR:"),

        salary=answers.text("MONTO DEL NUEVO SUELDO:"),
        meal_allowance=answers.text("MONTO DE NUEVA ASIGNACIÓN DE COLACIÓN:"),
        transport_allowance=answers.text("MONTO DE NUEVA ASIGNACIÓN DE MOVILIZACIÓN:"),

        entry_time=answers.text("HORA DE INGRESO DE JORNADA LABORAL:"),
        exit_time=answers.text("HORA DE SALIDA DE JORNADA LABORAL:"),
        meal_entry_time=answers.text("HORA DE INGRESO COLACIÓN:"),
        meal_exit_time=answers.text("HORA DE SALIDA COLACIÓN:"),

        bonus_name=answers.text("NOMBRE DEL BONO:"),
        bonus_amount=answers.text("MONTO DEL BONO:"),
        bonus_period=answers.text("PLAZO BONO"),
        bonus_condition=answers.text("CONDICIONADO:"),

        workplace=answers.text("CAMBIO DE DOMICILIO LABORAL DEL TRABAJADOR:"),
        new_address=answers.text("NUEVO DOMICILIO TRABAJADOR:"),
        phone=answers.text("NUEVO NÚMERO DE TELÉFONO TRABAJADOR:"),
        email=answers.text("NUEVO CORREO TRABAJADOR:"),

        double_shift=answers.text("DOBLE TURNO:"),
        shift_comments=answers.text("COMENTARIOS"),
        single_shift_days=answers.text("UN SOLO TURNO"),
        single_shift_entry=answers.text("HORARIO DE ENTRADA:"),
        single_shift_exit=answers.text("HORARIO DE SALIDA:"),
        compensation_day=answers.text("DÍA DE COMPENSACIÓN:"),
        compensation_entry=answers.text("HORARIO DE ENTRADA (COMPENSACIÓN):"),
        compensation_exit=answers.text("HORARIO DE SALIDA (COMPENSACIÓN):"),

        meal_from=answers.text("DESDE:"),
        meal_to=answers.text("HASTA:"),
    )


def _date(value: str) -> str:
    return format_spanish_date(value) if value.strip() else DATE_PLACEHOLDER


def _filled(value: str) -> bool:
    return bool(value and value.strip())


def _has_contract_type(fields: AnnexFields, marker: str) -> bool:
    return any(marker in t.upper() for t in fields.contract_types)


# =========================================================
# REGLAS DE CLÁUSULAS
# =========================================================
# Cada regla es (predicado, constructor). Se evalúan en orden y cada una
# que se cumple agrega una cláusula numerada. Un constructor puede
# devolver una lista vacía, en cuyo caso no se agrega cláusula.

def _workplace(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Por mutuo acuerdo de las partes involucradas, desde el "),
        _bold(_date(f.start_date)),
        Run(text=" ejercerá funciones en local de "),
        _bold(f.workplace),
        Run(text="."),
    ]


def _new_address(f: AnnexFields) -> List[Run]:
    return [
        Run(text="A contar del "),
        _bold(_date(f.start_date)),
        Run(text=", su dirección particular es modificada a "),
        _bold(f.new_address),
        Run(text="."),
    ]


def _phone(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Número telefónico de contacto actualizado a: "),
        _bold(f.phone),
        Run(text="."),
    ]


def _email(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Correo electrónico de contacto actualizado a: "),
        _bold(f.email),
        Run(text="."),
    ]


def _salary(f: AnnexFields) -> List[Run]:
    return [
        Run(text="El empleador se compromete a pagar al trabajador una remuneración mensual de $"),
        _bold(f.salary),
        Run(text=", monto que ambas partes reconocen y aceptan como sueldo base."),
    ]


def _indefinite(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Desde el "),
        _bold(_date(f.start_date)),
        Run(text=", la duración del contrato se modifica a INDEFINIDO."),
    ]


def _fixed_term_renewal(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Desde el "),
        _bold(_date(f.start_date)),
        Run(text=", el contrato se renueva hasta el "),
        _bold(_date(f.contract_end)),
        Run(text="."),
    ]


def _new_position(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Desde el "),
        _bold(_date(f.start_date)),
        Run(text=" el nuevo cargo es: "),
        _bold(f.new_position),
        Run(text="."),
    ]


_ALLOWANCE_TAIL = (
    "El pago de esta asignación será efectuado conjuntamente con las remuneraciones "
    "mensuales, sin que su otorgamiento se encuentre condicionado a la realización de "
    "tareas específicas o al cumplimiento de obligaciones distintas a las propias del "
    "contrato de trabajo."
)


def _meal_allowance(f: AnnexFields) -> List[Run]:
    return [
        Run(text="El empleador pagará al trabajador una asignación mensual de colación equivalente a la suma de $"),
        _bold(f.meal_allowance),
        Run(text=", destinada a cubrir gastos de alimentación derivados de la prestación de servicios. " + _ALLOWANCE_TAIL),
    ]


def _transport_allowance(f: AnnexFields) -> List[Run]:
    return [
        Run(text="El empleador pagará al trabajador una asignación mensual de movilización equivalente a la suma de $"),
        _bold(f.transport_allowance),
        Run(text=", destinada a cubrir gastos de transporte derivados de la prestación de servicios. " + _ALLOWANCE_TAIL),
    ]


def _work_hours(f: AnnexFields) -> List[Run]:
    runs = [
        Run(text="A contar del "),
        _bold(_date(f.start_date)),
        Run(text=" Horario de trabajo modificado: Desde "),
    ]
    runs.append(_bold(f"las {f.entry_time} hrs.") if f.entry_time else Run(text="horario actual"))
    runs.append(Run(text=" hasta "))
    runs.append(_bold(f"las {f.exit_time} hrs.") if f.exit_time else Run(text="horario actual."))
    return runs


def _meal_hours(f: AnnexFields) -> List[Run]:
    runs = [
        Run(text="A contar del "),
        _bold(_date(f.start_date)),
        Run(text=" Horario de colación modificado Desde "),
    ]
    runs.append(
        _bold(f"{f.meal_entry_time} hrs.") if f.meal_entry_time
        else Run(text="horario ingreso colacion actual")
    )
    runs.append(Run(text=" hasta "))
    runs.append(
        _bold(f"{f.meal_exit_time} hrs.") if f.meal_exit_time
        else Run(text="horario salida colacion actual.")
    )
    return runs


def _bonus(f: AnnexFields) -> List[Run]:
    runs = [
        Run(text="El empleador pagará al trabajador un bono "),
        _bold(f.bonus_name),
        Run(text=" con temporalidad: "),
        _bold(f.bonus_period),
        Run(text=" con un valor de $"),
        _bold(f.bonus_amount),
        Run(text="."),
    ]
    if f.bonus_condition:
        runs.append(Run(text=f" bajo la siguiente condición: {f.bonus_condition}"))
    return runs


def _meal_range(f: AnnexFields) -> List[Run]:
    return [
        Run(text="A contar del "),
        _bold(_date(f.start_date)),
        Run(text=" el horario de colación se modifica desde "),
        _bold(f.meal_from),
        Run(text=" hasta "),
        _bold(f.meal_to),
        Run(text="."),
    ]


def _double_shift(f: AnnexFields) -> List[Run]:
    return [
        Run(text="Se establece cambio de turno del trabajador según los siguientes detalles: "),
        _bold(f.shift_comments),
    ]


def _single_shift(f: AnnexFields) -> List[Run]:
    runs: List[Run] = []
    if f.single_shift_days:
        runs += [
            Run(text="Se define como día trabajado para el turno único los días: "),
            _bold(f.single_shift_days),
            Run(text=" en horario de "),
            _bold(f.single_shift_entry),
            Run(text=" a "),
            _bold(f.single_shift_exit),
            Run(text=". "),
        ]
    if f.compensation_day:
        runs += [
            Run(text="Se define el día de compensación el día "),
            _bold(f.compensation_day),
        ]
        if f.compensation_entry or f.compensation_exit:
            runs += [
                Run(text=" en el horario de "),
                _bold(f.compensation_entry),
                Run(text=" a "),
                _bold(f.compensation_exit),
            ]
        runs.append(Run(text=". "))
    return runs


ClauseRule = Tuple[Callable[[AnnexFields], bool], Callable[[AnnexFields], List[Run]]]

CLAUSE_RULES: List[ClauseRule] = [
    (lambda f: _filled(f.workplace), _workplace),
    (lambda f: _filled(f.new_address), _new_address),
    (lambda f: _filled(f.phone), _phone),
    (lambda f: _filled(f.email), _email),
    (lambda f: _filled(f.salary), _salary),
    (lambda f: _has_contract_type(f, "ANEXO INDEFINIDO"), _indefinite),
    (lambda f: _has_contract_type(f, "RENOVACIÓN CONTRATO PLAZO FIJO"), _fixed_term_renewal),
    (lambda f: _filled(f.new_position), _new_position),
    (lambda f: _filled(f.meal_allowance), _meal_allowance),
    (lambda f: _filled(f.transport_allowance), _transport_allowance),
    (lambda f: _filled(f.entry_time) or _filled(f.exit_time), _work_hours),
    (lambda f: _filled(f.meal_entry_time) or _filled(f.meal_exit_time), _meal_hours),
    (lambda f: _filled(f.bonus_name), _bonus),
    (lambda f: bool(f.meal_from and f.meal_to), _meal_range),
    (lambda f: f.double_shift.upper() == "SI" and bool(f.shift_comments), _double_shift),
    (lambda f: f.double_shift.upper() == "NO", _single_shift),
]


def _clauses_in_force(f: AnnexFields) -> List[Run]:
    return [
        Run(text=(
            "Queda Expresamente convenido que las cláusulas existentes en el contrato de "
            "trabajo celebrado por las partes el día "
        )),
        _bold(_date(f.contract_date)),
        Run(text=(
            " y anexos posteriores, y que no hayan sido objeto de modificación o actualización "
            "por este documento, se mantienen plenamente vigentes en todo aquello que no sea "
            "contrario o incompatible con lo pactado en este anexo."
        )),
    ]


def _signed_in_duplicate(f: AnnexFields) -> List[Run]:
    return [
        Run(text=(
            "En expresa conformidad con lo precedentemente estipulado las partes firman el "
            "presente anexo en dos ejemplares de idéntico tenor y fecha, declarando el "
            "trabajador haber recibido uno de ellos en este acto. El otro queda en los "
            "archivos de "
        )),
        _bold(f.company),
        Run(text="."),
    ]


CLOSING_CLAUSES = [_clauses_in_force, _signed_in_duplicate]


def build_clauses(fields: AnnexFields) -> List[Clause]:
    """
    Evaluar CLAUSE_RULES en orden y agregar las dos cláusulas de cierre.

    La numeración es correlativa sobre las cláusulas efectivamente
    agregadas.
    """
    bodies = []
    for predicate, builder in CLAUSE_RULES:
        if predicate(fields):
            runs = builder(fields)
            if runs:
                bodies.append(runs)
    bodies.extend(builder(fields) for builder in CLOSING_CLAUSES)

    return [
        Clause(ordinal=ordinal_for(number), runs=runs)
        for number, runs in enumerate(bodies, start=1)
    ]


# =========================================================
# COMPOSICIÓN
# =========================================================

def is_annex_section(section: Optional[str]) -> bool:
    return section == ANNEX_SECTION


def annex_generated_id(worker: str, millis: int) -> str:
    """ANEXO_<TRABAJADOR_EN_MAYÚSCULAS>_<ms>; espacios -> "_"."""
    name = re.sub(r"\s+", "_", worker).upper()
    return f"ANEXO_{name}_{millis}"


def transcript_generated_id(response_id, millis: int) -> str:
    return f"FORMULARIO_{response_id}_{millis}"


def compose_annex(
    fields: AnnexFields,
    company: Optional[CompanyInfo],
    today: date,
    city: str,
) -> AnnexDocument:
    company = company or CompanyInfo()
    worker_upper = fields.worker.upper()

    recital = [
        Run(text=f"En {city} a {format_spanish_date(today.isoformat())}, entre "),
        _bold(f"{fields.company} "),
        Run(text="representada por "),
        _bold(f"{fields.representative} "),
        Run(text="y Don(ña) "),
        _bold(worker_upper),
        Run(text=(
            f", se conviene modificar el Contrato de Trabajo vigente de fecha "
            f"{_date(fields.contract_date)} y sus posteriores ANEXOS."
        )),
    ]

    return AnnexDocument(
        letterhead=company.logo,
        recital=recital,
        clauses=build_clauses(fields),
        signatures=SignatureBlock(
            employer_rut=company.rut,
            employer_name=fields.company,
            worker_rut=fields.worker_rut,
            worker_name=worker_upper,
        ),
    )


def compose_transcript(answers: AnswerMap, generated_at: datetime) -> str:
    """Transcripción numerada de preguntas y respuestas, más los bloques de turno."""
    lines = ["FORMULARIO - RESPUESTAS", "========================", ""]

    for index, (question, answer) in enumerate(answers.questions(), start=1):
        lines.append(f"{index}. {question}")
        if isinstance(answer, list):
            lines.append("   - " + "\n   - ".join(str(a) for a in answer))
        elif isinstance(answer, dict):
            lines.append("   " + json.dumps(answer, indent=2, ensure_ascii=False))
        elif answer is None or answer == "":
            lines.append(f"   {NO_ANSWER}")
        else:
            lines.append(f"   {answer}")
        lines.append("")

    contexts = answers.mapping(CONTEXT_KEY)
    if contexts:
        lines += ["", "--- INFORMACIÓN DE TURNOS DETALLADA ---", ""]
        for context_name, entries in contexts.items():
            lines.append(f"TURNO: {context_name}")
            if isinstance(entries, dict):
                for question, answer in entries.items():
                    lines.append(f"   {question}: {answer}")
            lines.append("")

    lines += ["", f"Generado el: {generated_at.strftime('%d-%m-%Y %H:%M:%S')}"]
    return "\n".join(lines)


def compose(
    section: Optional[str],
    answers: Dict[str, Any],
    submitter: Submitter,
    response_id,
    now: datetime,
    city: str,
    company: Optional[CompanyInfo] = None,
) -> ComposedDocument:
    """
    Componer el documento de una respuesta.

    Args:
        section: Sección del formulario; "Anexos" produce DOCX
        answers: Mapa pregunta -> respuesta
        submitter: Nombre y empresa de quien envió
        response_id: Id de la respuesta dueña
        now: Instante de generación (fecha del considerando e id)
        city: Ciudad del considerando
        company: RUT y logo de la empresa, si se encontró

    Returns:
        ComposedDocument: kind, generated_id y el árbol del anexo o el texto
    """
    answer_map = AnswerMap(answers)
    millis = int(now.timestamp() * 1000)

    if is_annex_section(section):
        fields = map_annex_fields(answer_map, submitter)
        return ComposedDocument(
            kind=DocumentKind.docx,
            generated_id=annex_generated_id(fields.worker, millis),
            annex=compose_annex(fields, company, now.date(), city),
        )

    return ComposedDocument(
        kind=DocumentKind.txt,
        generated_id=transcript_generated_id(response_id, millis),
        transcript=compose_transcript(answer_map, now),
    )
