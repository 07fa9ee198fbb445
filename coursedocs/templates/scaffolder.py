"""
Template scaffolder: default DOCX templates built with python-docx.

Used when no bundled or stored template overrides them:
- register head page (course summary + participant list)
- register session page (one per in-person session)
- participant certificate

Rules:
- Only names produced by the placeholder mapper appear in these templates
- Row loops use docxtpl {%tr %} rows; the marker rows vanish on render
"""

import io

from docx import Document
from docx.document import Document as DocumentObject
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

# =============================================================================
# Helpers
# =============================================================================

def _to_bytes(doc: DocumentObject) -> bytes:
    output = io.BytesIO()
    doc.save(output)
    return output.getvalue()


def _centered_heading(doc: DocumentObject, text: str, level: int = 1) -> None:
    heading = doc.add_heading(text, level=level)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER


def _loop_table(
    doc: DocumentObject,
    headers: list[str],
    loop: str,
    cells: list[str],
) -> None:
    """
    Header row + docxtpl row loop.

    Rows: headers / {%tr for ... %} / cells / {%tr endfor %}
    """
    table = doc.add_table(rows=4, cols=len(headers))
    table.style = "Table Grid"
    for cell, header in zip(table.rows[0].cells, headers, strict=True):
        cell.text = header
        for run in cell.paragraphs[0].runs:
            run.bold = True
    table.rows[1].cells[0].text = f"{{%tr {loop} %}}"
    for cell, text in zip(table.rows[2].cells, cells, strict=True):
        cell.text = text
    table.rows[3].cells[0].text = "{%tr endfor %}"


# =============================================================================
# Default Templates
# =============================================================================

def build_register_head_template() -> bytes:
    """Register head page: course, entity and participant summary."""
    doc = Document()

    _centered_heading(doc, "REGISTRO PRESENZE")
    doc.add_paragraph("Corso: {{ CORSO_TITOLO }}")
    doc.add_paragraph("ID Corso: {{ CORSO_ID }}")
    doc.add_paragraph("Periodo: dal {{ CORSO_DATA_INIZIO }} al {{ CORSO_DATA_FINE }}")
    doc.add_paragraph("Ore Totali: {{ CORSO_ORE_TOTALI }}")
    doc.add_paragraph("Ente: {{ ENTE_NOME }}")
    doc.add_paragraph("Sede: {{ SEDE_NOME }} {{ SEDE_INDIRIZZO }}")
    doc.add_paragraph("Docente: {{ DOCENTE_NOME_COMPLETO }}")
    doc.add_paragraph("Giornate in presenza: {{ NUM_SESSIONI_PRESENZA }}")

    doc.add_heading("ELENCO PARTECIPANTI", level=2)
    _loop_table(
        doc,
        ["N.", "Nome e Cognome", "Codice Fiscale"],
        "for p in PARTECIPANTI",
        ["{{ p.numero }}", "{{ p.nome_completo }}", "{{ p.codice_fiscale }}"],
    )

    vidimazione = doc.add_paragraph(
        "Vidimato il {{ REGISTRO_DATA_VIDIMAZIONE }} a {{ REGISTRO_LUOGO_VIDIMAZIONE }}"
    )
    vidimazione.paragraph_format.space_before = Pt(20)

    return _to_bytes(doc)


def build_register_page_template() -> bytes:
    """Register session page: date header and signature grid."""
    doc = Document()

    _centered_heading(doc, "REGISTRO PRESENZE - Pagina {{ PAGINA }}", level=2)
    doc.add_paragraph(
        "{{ SESSIONE_GIORNO_SETTIMANA }} {{ SESSIONE_GIORNO }} "
        "{{ SESSIONE_MESE }} {{ SESSIONE_ANNO }} ({{ SESSIONE_DATA }})"
    )
    doc.add_paragraph("Orario: {{ SESSIONE_ORA_INIZIO }} - {{ SESSIONE_ORA_FINE }}")
    doc.add_paragraph("Sede: {{ SESSIONE_SEDE }}")
    doc.add_paragraph("Corso: {{ CORSO_TITOLO }} ({{ CORSO_ID }})")

    _loop_table(
        doc,
        ["N.", "Partecipante", "Firma Entrata", "Firma Uscita"],
        "for p in PARTECIPANTI",
        ["{{ p.numero }}", "{{ p.nome_completo }}", "", ""],
    )

    signature = doc.add_paragraph("Firma del Docente: {{ DOCENTE_NOME_COMPLETO }}")
    signature.paragraph_format.space_before = Pt(30)
    doc.add_paragraph("_____________")

    return _to_bytes(doc)


def build_certificate_template() -> bytes:
    """Participant certificate (one page, PARTECIPANTE_* focus)."""
    doc = Document()

    _centered_heading(doc, "ATTESTATO DI PARTECIPAZIONE")
    doc.add_paragraph("{{ ENTE_NOME }}").alignment = WD_ALIGN_PARAGRAPH.CENTER
    doc.add_paragraph("Si attesta che")
    name = doc.add_paragraph("{{ PARTECIPANTE_NOME_COMPLETO }}")
    name.alignment = WD_ALIGN_PARAGRAPH.CENTER
    for run in name.runs:
        run.bold = True
        run.font.size = Pt(16)
    doc.add_paragraph("Codice Fiscale: {{ PARTECIPANTE_CF }}")
    doc.add_paragraph("ha partecipato al corso \"{{ CORSO_TITOLO }}\" (ID {{ CORSO_ID }})")
    doc.add_paragraph(
        "svoltosi dal {{ CORSO_DATA_INIZIO }} al {{ CORSO_DATA_FINE }} "
        "per un totale di {{ CORSO_ORE_TOTALI }} ore."
    )

    signature = doc.add_paragraph("Il Direttore del Corso")
    signature.paragraph_format.space_before = Pt(40)
    signature.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    doc.add_paragraph("_____________").alignment = WD_ALIGN_PARAGRAPH.RIGHT

    return _to_bytes(doc)
