"""
Render del anexo de contrato a DOCX con python-docx.

Recibe el árbol AnnexDocument ya compuesto y produce los bytes del
archivo .docx: membrete opcional, título centrado, considerando
justificado, cláusulas numeradas y tabla de firmas de dos columnas sin
bordes visibles.
"""

import logging
from io import BytesIO
from typing import List

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import UnrecognizedImageError
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt

from app.services.document_composer import AnnexDocument, Run, SIGNATURE_LINE

logger = logging.getLogger(__name__)

LOGO_WIDTH = Inches(1.04)
TITLE_SIZE = Pt(14)


def _add_runs(paragraph, runs: List[Run]) -> None:
    for run in runs:
        paragraph.add_run(run.text).bold = run.bold


def _blank(document, count: int = 1) -> None:
    for _ in range(count):
        document.add_paragraph("")


def _remove_table_borders(table) -> None:
    """Reemplazar los bordes de la tabla por w:val="nil" en los seis lados."""
    tbl_pr = table._tbl.tblPr
    borders = OxmlElement("w:tblBorders")
    for edge in ("top", "left", "bottom", "right", "insideH", "insideV"):
        element = OxmlElement(f"w:{edge}")
        element.set(qn("w:val"), "nil")
        borders.append(element)

    existing = tbl_pr.find(qn("w:tblBorders"))
    if existing is not None:
        tbl_pr.remove(existing)
    tbl_pr.append(borders)


def _add_letterhead(document, annex: AnnexDocument) -> None:
    try:
        document.add_picture(BytesIO(annex.letterhead.data), width=LOGO_WIDTH)
    except (UnrecognizedImageError, ValueError) as e:
        # Un logo ilegible no impide generar el anexo
        logger.warning(f"Logo de empresa no se pudo insertar: {e}")
        return
    _blank(document)


def render_annex(annex: AnnexDocument) -> bytes:
    """
    Renderizar el anexo a bytes DOCX.

    Args:
        annex: Documento compuesto por document_composer.compose_annex

    Returns:
        bytes: Contenido del archivo .docx
    """
    document = Document()

    if annex.letterhead is not None:
        _add_letterhead(document, annex)

    title = document.add_paragraph()
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    title_run = title.add_run(annex.title)
    title_run.bold = True
    title_run.font.size = TITLE_SIZE

    _blank(document, 4)

    recital = document.add_paragraph()
    recital.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
    _add_runs(recital, annex.recital)

    _blank(document, 2)
    document.add_paragraph().add_run(annex.heading).bold = True
    _blank(document)

    for clause in annex.clauses:
        ordinal = document.add_paragraph()
        ordinal.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        ordinal.add_run(clause.ordinal).bold = True

        body = document.add_paragraph()
        body.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        _add_runs(body, clause.runs)
        _blank(document)

    _blank(document, 3)

    signatures = annex.signatures
    rows = [
        (SIGNATURE_LINE, SIGNATURE_LINE),
        ("Empleador / Representante Legal", "Trabajador"),
        (f"RUT: {signatures.employer_rut}", f"RUT: {signatures.worker_rut}"),
        (signatures.employer_name, signatures.worker_name),
    ]
    table = document.add_table(rows=len(rows), cols=2)
    _remove_table_borders(table)
    for row_cells, (left, right) in zip(table.rows, rows):
        for cell, text in zip(row_cells.cells, (left, right)):
            cell.text = text
            cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER

    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()
