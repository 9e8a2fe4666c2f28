import base64
from datetime import datetime
from io import BytesIO

from docx import Document
from docx.oxml.ns import qn

from app.services.annex_renderer import render_annex
from app.services.document_composer import (
    ANNEX_TITLE,
    CompanyInfo,
    Letterhead,
    Submitter,
    compose,
)

NOW = datetime(2024, 5, 10, 14, 0)

# PNG 1x1
PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def render(answers, company=None):
    composed = compose("Anexos", answers, Submitter(name="María López", company="ACME SPA"), 1, NOW, "PROVIDENCIA", company)
    return Document(BytesIO(render_annex(composed.annex)))


def test_render_produces_title_and_clauses():
    document = render({"Nombre del trabajador": "Juan Soto", "NUEVO CORREO TRABAJADOR:": "juan@acme.cl"})
    texts = [p.text for p in document.paragraphs]

    assert ANNEX_TITLE in texts
    assert "MODIFICACIÓN" in texts
    assert "PRIMERO:" in texts
    assert "TERCERO:" in texts
    assert any("juan@acme.cl" in t for t in texts)


def test_signature_table_without_borders():
    document = render({"Nombre del trabajador": "Juan Soto", "Rut del trabajador": "11.111.111-1"},
                      CompanyInfo(rut="76.000.000-0"))

    table = document.tables[0]
    assert len(table.rows) == 4
    assert table.cell(1, 0).text == "Empleador / Representante Legal"
    assert table.cell(2, 0).text == "RUT: 76.000.000-0"
    assert table.cell(2, 1).text == "RUT: 11.111.111-1"
    assert table.cell(3, 1).text == "JUAN SOTO"

    borders = table._tbl.tblPr.find(qn("w:tblBorders"))
    assert borders is not None
    assert {edge.get(qn("w:val")) for edge in borders} == {"nil"}


def test_letterhead_is_inserted():
    document = render({}, CompanyInfo(logo=Letterhead(data=PNG_1X1)))
    assert len(document.inline_shapes) == 1


def test_unreadable_logo_is_skipped():
    document = render({}, CompanyInfo(logo=Letterhead(data=b"no es una imagen")))

    assert len(document.inline_shapes) == 0
    assert ANNEX_TITLE in [p.text for p in document.paragraphs]
