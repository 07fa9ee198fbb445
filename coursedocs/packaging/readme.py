"""
Root files of the archive: README.txt and metadata.json.
"""

import json
from datetime import datetime
from typing import Any

from coursedocs.domain.constants import METADATA_FILENAME, README_FILENAME, SYSTEM_VERSION
from coursedocs.domain.schemas import CourseData

RULE = "=" * 40

ROOT_FILE_NOTES = {
    README_FILENAME: "Questo file",
    METADATA_FILENAME: "Metadati del corso in formato JSON",
}


def _banner(title: str) -> list[str]:
    return [RULE, title, RULE, ""]


def _or_na(value: object) -> str:
    text = "" if value is None else str(value)
    return text or "N/A"


def system_version(course: CourseData) -> str:
    return course.metadata.versione_sistema or SYSTEM_VERSION


def build_readme(
    course: CourseData,
    generated_at: datetime,
    files: list[str],
    root_files: list[str] | None = None,
) -> str:
    """
    Human-readable package summary.

    Args:
        course: course record
        generated_at: build timestamp
        files: archive paths relative to the root folder
        root_files: files written at the root next to the documents
            (default: the README alone)

    Returns:
        README text
    """
    corso = course.corso
    accred = course.ente.accreditato
    meta = course.metadata

    lines = _banner("DOCUMENTAZIONE CORSO FORMATIVO")
    lines += [
        f"ID Corso: {_or_na(corso.id)}",
        f"Titolo: {_or_na(corso.titolo)}",
        f"Data Generazione: {generated_at.strftime('%d/%m/%Y %H:%M:%S')}",
        f"Versione Sistema: {system_version(course)}",
        "",
    ]

    lines += _banner("CONTENUTO DEL PACCHETTO")
    lines += [f"- {path}" for path in files]
    for name in root_files if root_files is not None else [README_FILENAME]:
        lines.append(f"- {name}")
        if name in ROOT_FILE_NOTES:
            lines.append(f"  {ROOT_FILE_NOTES[name]}")
    lines.append("")

    lines += _banner("INFORMAZIONI CORSO")
    lines += [
        f"Periodo: dal {_or_na(corso.data_inizio)} al {_or_na(corso.data_fine)}",
        f"Ore Totali: {_or_na(corso.ore_totali)}",
        f"Numero Partecipanti: {len(course.partecipanti)}",
        f"Numero Sessioni: {len(course.sessioni)}",
        f"Sessioni in Presenza: {len(course.in_person_sessions)}",
        f"Sessioni FAD: {len(course.remote_sessions)}",
        "",
    ]

    lines += _banner("ENTE EROGATORE")
    lines += [
        f"Nome: {_or_na(accred.nome or course.ente.nome)}",
        f"Indirizzo: {accred.via} {accred.numero_civico}".rstrip(),
        f"Comune: {accred.comune} ({accred.provincia})",
        f"CAP: {accred.cap}",
        "",
    ]

    lines += _banner("VALIDAZIONI")
    lines.append(f"Completamento Dati: {meta.completamento_percentuale}%")
    if meta.warnings:
        lines += ["", "Avvisi:"] + [f"- {w}" for w in meta.warnings]
    else:
        lines.append("Nessun avviso")
    lines.append("")

    lines += _banner("NOTE")
    lines += [
        "Tutti i documenti sono stati generati automaticamente",
        "dal sistema di compilazione documenti di avvio corso.",
        "",
        "Per informazioni o supporto, contattare l'amministratore",
        "del sistema.",
        RULE,
        "",
    ]
    return "\n".join(lines)


def build_metadata(
    course: CourseData,
    generated_at: datetime,
    build: dict[str, Any] | None = None,
) -> str:
    """metadata.json content: course snapshot, extraction metadata, build summary."""
    raw = course.to_dict()
    payload: dict[str, Any] = {
        "corso": raw.get("corso") or {},
        "metadata": raw.get("metadata") or {},
        "generato_il": generated_at.isoformat(),
        "sistema_versione": system_version(course),
    }
    if build is not None:
        payload["build"] = build
    return json.dumps(payload, ensure_ascii=False, indent=2)
