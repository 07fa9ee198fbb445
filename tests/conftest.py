"""
Pytest fixtures for the document engine tests.

Layout:
- course records: complete, in-person only, with remote sessions, empty
- DOCX helpers: templates built in memory with python-docx
"""

import copy
import io
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from docx import Document

from coursedocs.domain.schemas import CourseData

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Project root path."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml path."""
    return project_root / "default.yaml"


# =============================================================================
# Course Fixtures
# =============================================================================

BASE_COURSE: dict[str, Any] = {
    "corso": {
        "id": "CRS-2025-01",
        "titolo": "Sicurezza sul Lavoro",
        "tipo": "Formazione in presenza",
        "data_inizio": "01/09/2025",
        "data_fine": "02/09/2025",
        "anno": "2025",
        "ore_totali": "16",
    },
    "moduli": [
        {
            "id": "MOD-A",
            "titolo": "Rischi generali",
            "id_sezione": "SEZ-1",
            "ore_totali": "8",
            "argomenti": ["Normativa", "DPI"],
        },
    ],
    "sessioni": [
        {
            "numero": 2,
            "data_completa": "02/09/2025",
            "ora_inizio_giornata": "09:00",
            "ora_fine_giornata": "17:00",
            "sede": "Aula 1",
            "tipo_sede": "Aula",
            "is_fad": False,
        },
        {
            "numero": 1,
            "data_completa": "01/09/2025",
            "ora_inizio_giornata": "09:00",
            "ora_fine_giornata": "17:00",
            "sede": "Aula 1",
            "tipo_sede": "Aula",
            "is_fad": False,
        },
    ],
    "partecipanti": [
        {"numero": 1, "nome": "Mario", "cognome": "Rossi", "codice_fiscale": "RSSMRA80A01H501U",
         "email": "mario.rossi@example.it"},
        {"numero": 2, "nome": "Laura", "cognome": "Bianchi", "codice_fiscale": "BNCLRA85B41F205X",
         "email": "laura.bianchi@example.it"},
        {"numero": 3, "nome": "Paolo", "cognome": "Verdi", "codice_fiscale": "VRDPLA90C10L219Z",
         "email": "paolo.verdi@example.it"},
    ],
    "ente": {
        "nome": "Ente Formazione Srl",
        "id": "ENT-9",
        "accreditato": {
            "nome": "Ente Formazione Accreditato",
            "via": "Via Roma",
            "numero_civico": "10",
            "comune": "Milano",
            "cap": "20100",
            "provincia": "MI",
        },
    },
    "sede": {"tipo": "Aula", "nome": "Sede Centrale", "indirizzo": "Via Roma 10"},
    "trainer": {"nome": "Giulia", "cognome": "Neri", "codiceFiscale": "NREGLI75D50F205K"},
    "verbale": {
        "data": "02/09/2025",
        "luogo": "Milano",
        "prova": {"descrizione": "Test scritto", "tipo": "Questionario"},
        "esiti": {"positivi": ["Mario Rossi", "Laura Bianchi"], "negativi": ["Paolo Verdi"]},
    },
    "registro": {"numero_pagine": "3", "data_vidimazione": "25/08/2025", "luogo_vidimazione": "Milano"},
    "metadata": {
        "data_estrazione": "2025-08-20T10:00:00",
        "versione_sistema": "2.1.0",
        "completamento_percentuale": 95,
        "warnings": ["Telefono mancante per 3 partecipanti"],
    },
}


@pytest.fixture
def course_dict() -> dict[str, Any]:
    """Complete in-person course: 3 participants, 2 dates (given out of order)."""
    return copy.deepcopy(BASE_COURSE)


@pytest.fixture
def course(course_dict: dict[str, Any]) -> CourseData:
    return CourseData.from_dict(course_dict)


@pytest.fixture
def fad_course_dict(course_dict: dict[str, Any]) -> dict[str, Any]:
    """Same course plus one remote session (09:00-12:30)."""
    course_dict["sessioni"].append({
        "numero": 3,
        "data_completa": "03/09/2025",
        "ora_inizio_giornata": "09:00",
        "ora_fine_giornata": "12:30",
        "sede": "Online",
        "is_fad": True,
    })
    course_dict["calendario_fad"] = {"modalita": "Sincrona", "strumenti": "Zoom"}
    return course_dict


@pytest.fixture
def fad_course(fad_course_dict: dict[str, Any]) -> CourseData:
    return CourseData.from_dict(fad_course_dict)


@pytest.fixture
def empty_course() -> CourseData:
    """Course with identity only: no participants, no sessions."""
    return CourseData.from_dict({"corso": {"id": "CRS-EMPTY", "titolo": "Vuoto"}})


# =============================================================================
# DOCX Helpers
# =============================================================================


def make_docx(*paragraphs: str) -> bytes:
    """DOCX bytes with one paragraph per argument."""
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    output = io.BytesIO()
    doc.save(output)
    return output.getvalue()


def docx_text(content: bytes) -> str:
    """All paragraph and table text of a DOCX, newline separated."""
    doc = Document(io.BytesIO(content))
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.append(" | ".join(cell.text for cell in row.cells))
    return "\n".join(lines)


def count_page_breaks(content: bytes) -> int:
    """Number of <w:br w:type="page"/> in word/document.xml."""
    with zipfile.ZipFile(io.BytesIO(content)) as z:
        xml = z.read("word/document.xml").decode("utf-8")
    return xml.count('w:type="page"')


@pytest.fixture
def docx_factory() -> Callable[..., bytes]:
    return make_docx
