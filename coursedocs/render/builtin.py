"""
Built-in documents: generated in code with python-docx, no template file.

- Registro Didattico e Presenze
- Verbale di Partecipazione
- Verbale di Scrutinio
- Verbale di Ammissione all'Esame
- Modello A FAD (only for courses with distance learning)
- Attestati: one certificate page per participant, from a DOCX template
- Bundle documents, one file each: Registro FAD (per remote session),
  Calendario di condizionalità (per beneficiary), Comunicazione evento
  (per session and beneficiary)

Rules:
- Missing values print "N/A" (or a blank line to fill in by hand)
- A document with nothing to show returns None: that is a skip, not a failure
"""

import io
import logging

from docx import Document
from docx.document import Document as DocumentObject
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from coursedocs.core.dates import (
    format_hours,
    hours_between,
    italian_month_name,
    parse_italian_date,
    parse_minutes,
)
from coursedocs.domain.constants import MODALITY_IN_PERSON, MODALITY_REMOTE
from coursedocs.domain.schemas import CourseData, Participant, Session
from coursedocs.render.placeholders import build_placeholder_map
from coursedocs.render.register import sort_sessions_chronologically, splice_pages
from coursedocs.render.word import DocxRenderer

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
TO_BE_FILLED = "_____________"
TOPIC_UNDEFINED = "Da definire"
FULL_DAY_SHIFTS = ("9:00-13:00", "14:00-18:00")

# =============================================================================
# Layout helpers
# =============================================================================


def _value(value: object, placeholder: str = NOT_AVAILABLE) -> str:
    text = "" if value is None else str(value)
    return text or placeholder


def _title(doc: DocumentObject, text: str) -> None:
    heading = doc.add_heading(text, level=1)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
    heading.paragraph_format.space_after = Pt(20)


def _section(doc: DocumentObject, text: str) -> None:
    heading = doc.add_heading(text, level=2)
    heading.paragraph_format.space_before = Pt(20)
    heading.paragraph_format.space_after = Pt(10)


def _info(doc: DocumentObject, label: str, value: object, placeholder: str = NOT_AVAILABLE) -> None:
    paragraph = doc.add_paragraph(f"{label}: {_value(value, placeholder)}")
    paragraph.paragraph_format.space_after = Pt(10)


def _signature(doc: DocumentObject, label: str) -> None:
    doc.add_paragraph(label).paragraph_format.space_before = Pt(30)
    doc.add_paragraph(TO_BE_FILLED).paragraph_format.space_after = Pt(20)


def _table(
    doc: DocumentObject,
    headers: list[str],
    rows: list[list[str]],
    placeholder: str = NOT_AVAILABLE,
) -> None:
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"
    for cell, header in zip(table.rows[0].cells, headers, strict=True):
        cell.text = header
        cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER
        for run in cell.paragraphs[0].runs:
            run.bold = True
    for values in rows:
        cells = table.add_row().cells
        for cell, value in zip(cells, values, strict=True):
            cell.text = _value(value, placeholder)


def _to_bytes(doc: DocumentObject) -> bytes:
    output = io.BytesIO()
    doc.save(output)
    return output.getvalue()


def _period(course: CourseData) -> str:
    corso = course.corso
    return f"dal {_value(corso.data_inizio)} al {_value(corso.data_fine)}"


def _entity_address(course: CourseData) -> str:
    accred = course.ente.accreditato
    if not any([accred.via, accred.numero_civico, accred.comune, accred.provincia]):
        return NOT_AVAILABLE
    return f"{accred.via} {accred.numero_civico}, {accred.comune} ({accred.provincia})".strip()


def _participants_table(doc: DocumentObject, course: CourseData) -> None:
    _table(
        doc,
        ["N.", "Nome", "Cognome", "Codice Fiscale", "Email"],
        [
            [str(p.numero), p.nome, p.cognome, p.codice_fiscale, p.email]
            for p in course.partecipanti
        ],
    )


def _sessions_table(doc: DocumentObject, course: CourseData) -> None:
    _table(
        doc,
        ["N.", "Data", "Orario", "Sede", "Tipo"],
        [
            [
                str(s.numero),
                s.data_completa,
                f"{s.ora_inizio_giornata} - {s.ora_fine_giornata}",
                s.sede,
                MODALITY_REMOTE if s.is_fad else MODALITY_IN_PERSON,
            ]
            for s in course.sessioni
        ],
    )


# =============================================================================
# Documents
# =============================================================================

def build_registro_didattico(course: CourseData) -> bytes:
    """Registro Didattico e Presenze: course info, participants, session calendar."""
    corso = course.corso
    doc = Document()

    _title(doc, "REGISTRO DIDATTICO E PRESENZE")
    _info(doc, "Corso", corso.titolo)
    _info(doc, "ID Corso", corso.id)
    _info(doc, "Date", _period(course))
    _info(doc, "Ore Totali", corso.ore_totali)
    _info(doc, "Numero Pagine", course.registro.numero_pagine)

    _section(doc, "ELENCO PARTECIPANTI")
    _participants_table(doc, course)

    _section(doc, "CALENDARIO SESSIONI")
    _sessions_table(doc, course)

    _info(doc, "Data vidimazione", course.registro.data_vidimazione, TO_BE_FILLED)
    _info(doc, "Luogo", course.registro.luogo_vidimazione, TO_BE_FILLED)

    return _to_bytes(doc)


def build_verbale_partecipazione(course: CourseData) -> bytes:
    """Verbale di Partecipazione: meeting, course, entity, participants, signatures."""
    corso = course.corso
    verbale = course.verbale
    doc = Document()

    _title(doc, "VERBALE DI PARTECIPAZIONE")
    _info(doc, "Data", verbale.data, TO_BE_FILLED)
    _info(doc, "Luogo", verbale.luogo, TO_BE_FILLED)
    _info(doc, "Ora", verbale.ora, TO_BE_FILLED)

    _section(doc, "DATI DEL CORSO")
    _info(doc, "Titolo", corso.titolo)
    _info(doc, "ID Corso", corso.id)
    _info(doc, "Periodo", _period(course))

    _section(doc, "ENTE EROGATORE")
    _info(doc, "Nome", course.ente.accreditato.nome or course.ente.nome)
    _info(doc, "Indirizzo", _entity_address(course))

    _section(doc, "PARTECIPANTI")
    _info(doc, "Numero totale partecipanti", str(len(course.partecipanti)))
    _participants_table(doc, course)

    doc.add_paragraph("Firme:").paragraph_format.space_before = Pt(30)
    _signature(doc, "Il Direttore del Corso")
    _signature(doc, "Il Supervisore")

    return _to_bytes(doc)


def build_verbale_scrutinio(course: CourseData) -> bytes:
    """Verbale di Scrutinio: exam details, criteria, outcomes, commission."""
    corso = course.corso
    verbale = course.verbale
    doc = Document()

    _title(doc, "VERBALE DI SCRUTINIO")
    _info(doc, "Corso", corso.titolo)
    _info(doc, "ID Corso", corso.id)

    _section(doc, "DETTAGLI PROVA")
    _info(doc, "Descrizione", verbale.prova_descrizione)
    _info(doc, "Tipo", verbale.prova_tipo)
    _info(doc, "Durata", verbale.prova_durata)
    _info(doc, "Modalità", verbale.prova_modalita)

    _section(doc, "CRITERI DI VALUTAZIONE")
    _info(doc, "Descrizione", verbale.criteri_descrizione)

    _section(doc, "ESITI")
    promoted = verbale.esiti_positivi_testo or ", ".join(verbale.esiti_positivi)
    failed = verbale.esiti_negativi_testo or ", ".join(verbale.esiti_negativi)
    doc.add_paragraph("Partecipanti promossi:")
    doc.add_paragraph(_value(promoted, "Da compilare"))
    doc.add_paragraph("Partecipanti non promossi:")
    doc.add_paragraph(_value(failed, "Nessuno"))

    _info(doc, "Protocollo SIUF", verbale.protocollo_siuf, TO_BE_FILLED)
    doc.add_paragraph("Firme della Commissione:").paragraph_format.space_before = Pt(20)
    for member in ("Presidente", "Membro 1", "Membro 2"):
        doc.add_paragraph(f"{member}: {TO_BE_FILLED}")

    return _to_bytes(doc)


def build_verbale_ammissione(course: CourseData) -> bytes:
    """Verbale di Ammissione all'Esame: course, entity, exam session, admitted participants."""
    corso = course.corso
    verbale = course.verbale
    doc = Document()

    _title(doc, "VERBALE DI AMMISSIONE ALL'ESAME")
    _info(doc, "Corso", corso.titolo)
    _info(doc, "ID Corso", corso.id)
    _info(doc, "Periodo", _period(course))
    _info(doc, "Ore Totali", corso.ore_totali)
    _info(doc, "Ente", course.ente.accreditato.nome or course.ente.nome)

    _section(doc, "SESSIONE D'ESAME")
    _info(doc, "Data", verbale.data_completa or verbale.data, TO_BE_FILLED)
    _info(doc, "Luogo", verbale.luogo, TO_BE_FILLED)

    _section(doc, "PARTECIPANTI AMMESSI")
    participants = sorted(course.partecipanti, key=lambda p: p.numero)
    _table(
        doc,
        ["N.", "Nome Completo", "Codice Fiscale", "Ammesso"],
        [[str(p.numero), p.display_name, p.codice_fiscale, "SI"] for p in participants],
    )
    _info(doc, "Totale ammessi", str(len(participants)))

    doc.add_paragraph("Firme:").paragraph_format.space_before = Pt(30)
    _signature(doc, "Il Direttore del Corso")
    _signature(doc, "Il Docente")

    return _to_bytes(doc)


def is_distance_learning_course(course: CourseData) -> bool:
    """Remote sessions present, or a course type mentioning FAD."""
    return course.has_remote_sessions or "fad" in course.corso.tipo.lower()


def build_modello_fad(course: CourseData) -> bytes | None:
    """
    Modello A FAD: distance-learning calendar.

    Returns:
        DOCX bytes, or None for a fully in-person course
    """
    if not is_distance_learning_course(course):
        logger.info(
            f"Modello A FAD skipped for course '{course.corso.id}': no remote sessions"
        )
        return None

    corso = course.corso
    fad = course.calendario_fad
    doc = Document()

    _title(doc, "MODELLO A - CALENDARIO FAD")
    _info(doc, "Corso", corso.titolo)
    _info(doc, "ID Corso", corso.id)

    _section(doc, "DETTAGLI FORMAZIONE A DISTANZA")
    _info(doc, "Modalità", fad.modalita or "Piattaforma e-learning")
    _info(doc, "Strumenti", fad.strumenti)
    _info(doc, "Obiettivi", fad.obiettivi)

    _section(doc, "CALENDARIO SESSIONI FAD")
    _table(
        doc,
        ["Data", "Orario", "Argomento", "Docente"],
        [
            [
                s.data_completa,
                f"{s.ora_inizio_giornata} - {s.ora_fine_giornata}",
                "Formazione online",
                course.trainer.display_name,
            ]
            for s in course.remote_sessions
        ],
    )

    doc.add_paragraph("Modalità di valutazione:").paragraph_format.space_before = Pt(30)
    doc.add_paragraph(_value(fad.valutazione, "Test finale online"))

    return _to_bytes(doc)


def build_certificates(
    course: CourseData,
    template: bytes,
    template_id: str = "attestati",
) -> bytes | None:
    """
    One certificate page per participant, bundled in a single DOCX.

    Each page is rendered with PARTECIPANTE_* set for its participant.

    Returns:
        DOCX bytes, or None without participants

    Raises:
        TemplateLoadError, RenderError, AssemblyError
    """
    if not course.partecipanti:
        logger.info(f"Certificates skipped for course '{course.corso.id}': no participants")
        return None

    renderer = DocxRenderer(template, template_id)
    pages = [
        renderer.render(build_placeholder_map(course, participant_index=index))
        for index in range(len(course.partecipanti))
    ]
    return splice_pages(pages[0], pages[1:])


# =============================================================================
# Per-session / per-beneficiary documents (bundles)
# =============================================================================

def session_topic(course: CourseData, session: Session) -> str:
    """Topics of the session's module, else of the first module, else "Da definire"."""
    modules = [m for m in course.moduli if m.id and m.id == session.modulo_id]
    modules = modules or list(course.moduli[:1])
    if modules and modules[0].argomenti:
        return ", ".join(modules[0].argomenti)
    return TOPIC_UNDEFINED


def shift_ranges(start: str, end: str) -> tuple[str, str]:
    """
    (morning, afternoon) time ranges of one session.

    A session of 8 hours or more fills both standard shifts; a shorter one
    goes to the morning when it starts before 14:00.
    """
    if hours_between(start, end) >= 8:
        return FULL_DAY_SHIFTS
    if not start or not end:
        return "-", "-"
    first = parse_minutes(start)
    if first is not None and first < 14 * 60:
        return f"{start}-{end}", "-"
    return "-", f"{start}-{end}"


def _session_day(session: Session) -> tuple[str, str, str]:
    """(day, Italian month name, year) of a session, from its date when valid."""
    day = parse_italian_date(session.data_completa)
    if day is None:
        return session.giorno, session.mese, session.anno
    return f"{day.day:02d}", italian_month_name(day.month), str(day.year)


def _beneficiary_header(doc: DocumentObject, course: CourseData, participant: Participant) -> None:
    _info(doc, "Partecipante", participant.display_name)
    _info(doc, "Codice Fiscale", participant.codice_fiscale)
    _info(doc, "Corso", course.corso.titolo)
    _info(doc, "ID Corso", course.corso.id)
    _info(doc, "Ente", course.ente.accreditato.nome or course.ente.nome)
    _info(doc, "Sede", _entity_address(course))


def build_fad_registry(course: CourseData, session: Session) -> bytes:
    """Registro FAD for one remote session: day, times, topic, attendance sheet."""
    giorno, mese, anno = _session_day(session)
    doc = Document()

    _title(doc, "REGISTRO PRESENZE FAD")
    _info(doc, "Corso", course.corso.titolo)
    _info(doc, "ID Sezione", course.corso.id)
    _info(doc, "Data", f"{_value(giorno)} {_value(mese)} {_value(anno)}")
    _info(doc, "Orario", f"{_value(session.ora_inizio_giornata)} - {_value(session.ora_fine_giornata)}")
    _info(doc, "Argomento", session_topic(course, session))
    _info(doc, "Piattaforma", course.calendario_fad.piattaforma or course.calendario_fad.strumenti)

    _section(doc, "PARTECIPANTI COLLEGATI")
    _table(
        doc,
        ["N.", "Nome Completo", "Ora Collegamento", "Ora Scollegamento", "Firma"],
        [
            [str(p.numero), p.display_name, "", "", ""]
            for p in sorted(course.partecipanti, key=lambda p: p.numero)
        ],
        placeholder="",
    )
    _signature(doc, "Il Docente")

    return _to_bytes(doc)


def build_conditionality_calendar(course: CourseData, participant: Participant) -> bytes:
    """Calendario di condizionalità for one beneficiary: every session, by shift."""
    corso = course.corso
    sessions = sort_sessions_chronologically(list(course.sessioni))
    start = corso.data_inizio or (sessions[0].data_completa if sessions else "")
    end = corso.data_fine or (sessions[-1].data_completa if sessions else "")
    doc = Document()

    _title(doc, "CALENDARIO DI CONDIZIONALITÀ")
    _beneficiary_header(doc, course, participant)
    _info(doc, "Periodo", f"dal {_value(start)} al {_value(end)}")
    _info(doc, "Ore Totali", corso.ore_totali or corso.durata_totale)

    _section(doc, "CALENDARIO LEZIONI")
    rows = []
    for session in sessions:
        morning, afternoon = shift_ranges(session.ora_inizio_giornata, session.ora_fine_giornata)
        hours = max(hours_between(session.ora_inizio_giornata, session.ora_fine_giornata), 0.0)
        rows.append([
            session.data_completa, morning, afternoon, format_hours(hours),
            course.trainer.display_name,
        ])
    _table(doc, ["Data", "Mattina", "Pomeriggio", "Ore", "Docente"], rows)

    _signature(doc, "Il Responsabile della Certificazione")
    _signature(doc, "Il Partecipante")

    return _to_bytes(doc)


def build_event_notice(course: CourseData, session: Session, participant: Participant) -> bytes:
    """Comunicazione evento: one beneficiary's attendance notice for one session day."""
    remote = course.is_remote_session(session)
    doc = Document()

    _title(doc, "COMUNICAZIONE EVENTO")
    _beneficiary_header(doc, course, participant)

    _section(doc, "LEZIONE")
    _info(doc, "Data", session.data_completa)
    _info(doc, "Orario", f"{_value(session.ora_inizio_giornata)} - {_value(session.ora_fine_giornata)}")
    doc.add_paragraph(f"[{' ' if remote else 'X'}] In presenza")
    doc.add_paragraph(f"[{'X' if remote else ' '}] A distanza")

    _signature(doc, "Il Responsabile della Certificazione")

    return _to_bytes(doc)
