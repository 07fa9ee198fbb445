"""
test_readme.py - README.txt / metadata.json content
"""

import json
from datetime import datetime

from coursedocs.domain.constants import SYSTEM_VERSION
from coursedocs.domain.schemas import CourseData
from coursedocs.packaging.readme import build_metadata, build_readme

NOW = datetime(2025, 9, 15, 10, 30, 0)


def test_readme_sections(course: CourseData):
    text = build_readme(course, NOW, ["Documenti/Verbale_CRS-2025-01.docx"])

    for section in (
        "DOCUMENTAZIONE CORSO FORMATIVO",
        "CONTENUTO DEL PACCHETTO",
        "INFORMAZIONI CORSO",
        "ENTE EROGATORE",
        "VALIDAZIONI",
        "NOTE",
    ):
        assert section in text
    assert "ID Corso: CRS-2025-01" in text
    assert "- Documenti/Verbale_CRS-2025-01.docx" in text
    assert "Numero Partecipanti: 3" in text
    assert "Completamento Dati: 95%" in text
    assert "Avvisi:" in text


def test_readme_without_data(empty_course: CourseData):
    text = build_readme(empty_course, NOW, [])

    assert "Titolo: Vuoto" in text
    assert "Ore Totali: N/A" in text
    assert "Nessun avviso" in text
    assert f"Versione Sistema: {SYSTEM_VERSION}" in text


def test_metadata(course: CourseData):
    payload = json.loads(build_metadata(course, NOW, {"build_id": "BLD-1"}))

    assert payload["corso"]["titolo"] == "Sicurezza sul Lavoro"
    assert payload["generato_il"] == "2025-09-15T10:30:00"
    assert payload["build"] == {"build_id": "BLD-1"}
    assert "build" not in json.loads(build_metadata(course, NOW))


def test_readme_root_files(course: CourseData):
    text = build_readme(course, NOW, ["Documenti/a.docx"], ["README.txt", "metadata.json"])
    assert "- README.txt\n  Questo file" in text
    assert "- metadata.json\n  Metadati del corso in formato JSON" in text

    text = build_readme(course, NOW, ["Documenti/a.docx"])
    assert "- README.txt" in text
    assert "metadata.json" not in text
