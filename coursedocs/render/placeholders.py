"""
Placeholder mapper: CourseData → flat name → value map.

Naming convention (template authors rely on it):
- {{ CORSO_* }}, {{ ENTE_* }}, {{ SEDE_* }}, {{ DOCENTE_* }}, {{ FAD_* }},
  {{ VERBALE_* }}, {{ REGISTRO_* }}        scalar groups
- {{ MOD1_* }}, {{ LEZ1_* }}, {{ PART1_* }}  indexed, 1-based, contiguous
- MODULI, SESSIONI, SESSIONI_FAD, SESSIONI_PRESENZA, PARTECIPANTI
                                           lists of records for loops
- NUM_*                                    counts

Rules:
- No None anywhere: missing text → "", missing number → 0
- Lists keep the extraction order
- Pure: same CourseData → equal map; the map is rebuilt on every call
"""

from typing import Any

from coursedocs.core.dates import format_hours, hours_between
from coursedocs.domain.constants import MODALITY_IN_PERSON, MODALITY_REMOTE, SYSTEM_VERSION
from coursedocs.domain.schemas import CourseData, Module, Participant, Session

PlaceholderMap = dict[str, Any]


def build_placeholder_map(
    course: CourseData,
    *,
    module_index: int | None = None,
    participant_index: int | None = None,
) -> PlaceholderMap:
    """
    Build the complete placeholder map for one render pass.

    Args:
        course: validated course record
        module_index: 0-based module to expose as MODULO_* (module documents)
        participant_index: 0-based participant to expose as PARTECIPANTE_*
            (certificates)

    Returns:
        fresh dict, never shared between passes
    """
    mapping: PlaceholderMap = {}

    _add_course(mapping, course)
    _add_modules(mapping, course.moduli)
    _add_sessions(mapping, course.sessioni)
    _add_participants(mapping, course.partecipanti)
    _add_entity(mapping, course)
    _add_location_and_trainer(mapping, course)
    _add_distance_learning(mapping, course)
    _add_exam_record(mapping, course)
    _add_register(mapping, course)

    if module_index is not None and 0 <= module_index < len(course.moduli):
        _add_current_module(mapping, course.moduli[module_index], module_index)

    if participant_index is not None and 0 <= participant_index < len(course.partecipanti):
        _add_current_participant(
            mapping, course.partecipanti[participant_index], participant_index
        )

    mapping["DATA_ESTRAZIONE"] = course.metadata.data_estrazione
    mapping["VERSIONE_SISTEMA"] = course.metadata.versione_sistema or SYSTEM_VERSION

    return mapping


# =============================================================================
# Scalar groups
# =============================================================================

def _add_course(mapping: PlaceholderMap, course: CourseData) -> None:
    corso = course.corso
    mapping.update({
        "CORSO_ID": corso.id,
        "CORSO_TITOLO": corso.titolo,
        "CORSO_TIPO": corso.tipo,
        "CORSO_DATA_INIZIO": corso.data_inizio,
        "CORSO_DATA_FINE": corso.data_fine,
        "CORSO_ANNO": corso.anno,
        "CORSO_ORE_TOTALI": corso.ore_totali,
        "CORSO_DURATA_TOTALE": corso.durata_totale,
        "CORSO_ORE_RENDICONTABILI": corso.ore_rendicontabili,
        "CORSO_STATO": corso.stato,
        "CORSO_CAPIENZA": corso.capienza,
        "CORSO_CAPIENZA_NUMERO": corso.capienza_numero,
        "CORSO_CAPIENZA_TOTALE": corso.capienza_totale,
        "CORSO_PROGRAMMA": corso.programma,
    })


def _add_entity(mapping: PlaceholderMap, course: CourseData) -> None:
    ente = course.ente
    accred = ente.accreditato
    mapping.update({
        "ENTE_NOME": ente.nome,
        "ENTE_ID": ente.id,
        "ENTE_INDIRIZZO": ente.indirizzo,
        "ENTE_ACCRED_NOME": accred.nome,
        "ENTE_ACCRED_VIA": accred.via,
        "ENTE_ACCRED_NUMERO_CIVICO": accred.numero_civico,
        "ENTE_ACCRED_COMUNE": accred.comune,
        "ENTE_ACCRED_CAP": accred.cap,
        "ENTE_ACCRED_PROVINCIA": accred.provincia,
    })

    # Combined address only when street and town are both known
    if accred.via and accred.comune:
        full = f"{accred.via} {accred.numero_civico}, {accred.comune} ({accred.provincia})"
    else:
        full = ""
    mapping["ENTE_ACCRED_INDIRIZZO_COMPLETO"] = full


def _add_location_and_trainer(mapping: PlaceholderMap, course: CourseData) -> None:
    sede = course.sede
    trainer = course.trainer
    mapping.update({
        "SEDE_TIPO": sede.tipo,
        "SEDE_NOME": sede.nome,
        "SEDE_MODALITA": sede.modalita,
        "SEDE_INDIRIZZO": sede.indirizzo,
        "DOCENTE_NOME_COMPLETO": trainer.display_name,
        "DOCENTE_NOME": trainer.nome,
        "DOCENTE_COGNOME": trainer.cognome,
        "DOCENTE_CF": trainer.codice_fiscale,
        "DOCENTE_CODICE_FISCALE": trainer.codice_fiscale,
        "DOCENTE_EMAIL": trainer.email,
        "DOCENTE_TELEFONO": trainer.telefono,
    })


def _add_distance_learning(mapping: PlaceholderMap, course: CourseData) -> None:
    fad = course.calendario_fad
    total = sum(
        hours_between(s.ora_inizio_giornata, s.ora_fine_giornata)
        for s in course.remote_sessions
    )
    mapping.update({
        "FAD_MODALITA": fad.modalita,
        "FAD_PIATTAFORMA": fad.strumenti or fad.piattaforma,
        "FAD_STRUMENTI": fad.strumenti,
        "FAD_OBIETTIVI": fad.obiettivi,
        "FAD_VALUTAZIONE": fad.valutazione,
        "FAD_ID_RIUNIONE": fad.id_riunione,
        "FAD_PASSCODE": fad.passcode,
        "FAD_ORE_TOTALI": format_hours(total),
    })


def _add_exam_record(mapping: PlaceholderMap, course: CourseData) -> None:
    verbale = course.verbale
    mapping.update({
        "VERBALE_DATA": verbale.data,
        "VERBALE_ORA": verbale.ora,
        "VERBALE_LUOGO": verbale.luogo,
        "VERBALE_DATA_COMPLETA": verbale.data_completa,
        "PROVA_DESCRIZIONE": verbale.prova_descrizione,
        "PROVA_TIPO": verbale.prova_tipo,
        "PROVA_DURATA": verbale.prova_durata,
        "PROVA_MODALITA": verbale.prova_modalita,
        "CRITERI_DESCRIZIONE": verbale.criteri_descrizione,
        "CRITERI_INDICATORI": verbale.criteri_indicatori,
        "CRITERI_PESO": verbale.criteri_peso,
        "PARTECIPANTI_PROMOSSI": [{"nome": name} for name in verbale.esiti_positivi],
        "PARTECIPANTI_BOCCIATI": [{"nome": name} for name in verbale.esiti_negativi],
        "PARTECIPANTI_PROMOSSI_TESTO": (
            verbale.esiti_positivi_testo or ", ".join(verbale.esiti_positivi)
        ),
        "PARTECIPANTI_BOCCIATI_TESTO": (
            verbale.esiti_negativi_testo or ", ".join(verbale.esiti_negativi)
        ),
        "PROTOCOLLO_SIUF": verbale.protocollo_siuf,
    })


def _add_register(mapping: PlaceholderMap, course: CourseData) -> None:
    registro = course.registro
    mapping.update({
        "REGISTRO_NUMERO_PAGINE": registro.numero_pagine,
        "REGISTRO_DATA_VIDIMAZIONE": registro.data_vidimazione,
        "REGISTRO_LUOGO_VIDIMAZIONE": registro.luogo_vidimazione,
    })


# =============================================================================
# Collection groups: indexed keys and list records from one iteration
# =============================================================================

def _add_modules(mapping: PlaceholderMap, modules: tuple[Module, ...]) -> None:
    records: list[dict[str, Any]] = []

    for n, modulo in enumerate(modules, start=1):
        argomenti = ", ".join(modulo.argomenti)
        prefix = f"MOD{n}_"
        mapping.update({
            f"{prefix}ID": modulo.id,
            f"{prefix}TITOLO": modulo.titolo,
            f"{prefix}ID_CORSO": modulo.id_corso,
            f"{prefix}ID_SEZIONE": modulo.id_sezione,
            f"{prefix}DATA_INIZIO": modulo.data_inizio,
            f"{prefix}DATA_FINE": modulo.data_fine,
            f"{prefix}ORE_TOTALI": modulo.ore_totali,
            f"{prefix}DURATA": modulo.durata,
            f"{prefix}ORE_RENDICONTABILI": modulo.ore_rendicontabili,
            f"{prefix}CAPIENZA": modulo.capienza,
            f"{prefix}STATO": modulo.stato,
            f"{prefix}TIPO_SEDE": modulo.tipo_sede,
            f"{prefix}PROVIDER": modulo.provider,
            f"{prefix}ARGOMENTI": argomenti,
            f"{prefix}NUM_SESSIONI": modulo.numero_sessioni,
        })
        records.append({
            "id": modulo.id,
            "titolo": modulo.titolo,
            "id_corso": modulo.id_corso,
            "id_sezione": modulo.id_sezione,
            "data_inizio": modulo.data_inizio,
            "data_fine": modulo.data_fine,
            "ore_totali": modulo.ore_totali,
            "argomenti": argomenti,
        })

    mapping["MODULI"] = records
    mapping["NUM_MODULI"] = len(records)


def _session_record(sessione: Session) -> dict[str, Any]:
    duration = hours_between(sessione.ora_inizio_giornata, sessione.ora_fine_giornata)
    return {
        "numero": sessione.numero,
        "data": sessione.data_completa,
        "giorno": sessione.giorno,
        "mese": sessione.mese,
        "anno": sessione.anno,
        "giorno_settimana": sessione.giorno_settimana,
        "ora_inizio": sessione.ora_inizio_giornata,
        "ora_fine": sessione.ora_fine_giornata,
        "sede": sessione.sede,
        "tipo": sessione.tipo_sede,
        "modalita": MODALITY_REMOTE if sessione.is_fad else MODALITY_IN_PERSON,
        "durata": format_hours(duration),
    }


def _add_sessions(mapping: PlaceholderMap, sessions: tuple[Session, ...]) -> None:
    records: list[dict[str, Any]] = []
    remote: list[dict[str, Any]] = []
    in_person: list[dict[str, Any]] = []

    for n, sessione in enumerate(sessions, start=1):
        prefix = f"LEZ{n}_"
        mapping.update({
            f"{prefix}NUMERO": sessione.numero,
            f"{prefix}DATA": sessione.data_completa,
            f"{prefix}GIORNO": sessione.giorno,
            f"{prefix}MESE": sessione.mese,
            f"{prefix}MESE_NUMERO": sessione.mese_numero,
            f"{prefix}ANNO": sessione.anno,
            f"{prefix}GIORNO_SETTIMANA": sessione.giorno_settimana,
            f"{prefix}ORA_INIZIO": sessione.ora_inizio_giornata,
            f"{prefix}ORA_FINE": sessione.ora_fine_giornata,
            f"{prefix}SEDE": sessione.sede,
            f"{prefix}TIPO": sessione.tipo_sede,
            f"{prefix}IS_FAD": "Sì" if sessione.is_fad else "No",
            f"{prefix}MODALITA": MODALITY_REMOTE if sessione.is_fad else MODALITY_IN_PERSON,
        })
        record = _session_record(sessione)
        records.append(record)
        (remote if sessione.is_fad else in_person).append(record)

    mapping["SESSIONI"] = records
    mapping["SESSIONI_FAD"] = remote
    mapping["SESSIONI_PRESENZA"] = in_person
    mapping["NUM_SESSIONI"] = len(records)
    mapping["NUM_SESSIONI_FAD"] = len(remote)
    mapping["NUM_SESSIONI_PRESENZA"] = len(in_person)


def _add_participants(mapping: PlaceholderMap, participants: tuple[Participant, ...]) -> None:
    records: list[dict[str, Any]] = []

    for n, part in enumerate(participants, start=1):
        prefix = f"PART{n}_"
        mapping.update({
            f"{prefix}NUMERO": part.numero,
            f"{prefix}ID": part.id,
            f"{prefix}NOME": part.nome,
            f"{prefix}COGNOME": part.cognome,
            f"{prefix}NOME_COMPLETO": part.display_name,
            f"{prefix}CF": part.codice_fiscale,
            f"{prefix}CODICE_FISCALE": part.codice_fiscale,
            f"{prefix}EMAIL": part.email,
            f"{prefix}TELEFONO": part.telefono,
            f"{prefix}CELLULARE": part.cellulare,
            f"{prefix}PROGRAMMA": part.programma,
            f"{prefix}UFFICIO": part.ufficio,
            f"{prefix}CASE_MANAGER": part.case_manager,
            f"{prefix}BENEFITS": part.benefits or "No",
            f"{prefix}FREQUENZA": part.frequenza,
        })
        records.append({
            "numero": part.numero,
            "nome": part.nome,
            "cognome": part.cognome,
            "nome_completo": part.display_name,
            "codice_fiscale": part.codice_fiscale,
            "email": part.email,
            "telefono": part.telefono,
            "cellulare": part.cellulare,
            "benefits": part.benefits or "No",
        })

    mapping["PARTECIPANTI"] = records
    mapping["NUM_PARTECIPANTI"] = len(records)


# =============================================================================
# Focus (module / participant documents)
# =============================================================================

def _add_current_module(mapping: PlaceholderMap, modulo: Module, index: int) -> None:
    mapping.update({
        "MODULO_ID": modulo.id,
        "MODULO_TITOLO": modulo.titolo,
        "MODULO_ID_SEZIONE": modulo.id_sezione,
        "MODULO_ID_CORSO": modulo.id_corso,
        "MODULO_DATA_INIZIO": modulo.data_inizio,
        "MODULO_DATA_FINE": modulo.data_fine,
        "MODULO_ORE_TOTALI": modulo.ore_totali,
        "MODULO_NUMERO": index + 1,
    })


def _add_current_participant(mapping: PlaceholderMap, part: Participant, index: int) -> None:
    mapping.update({
        "PARTECIPANTE_NUMERO": part.numero or index + 1,
        "PARTECIPANTE_NOME": part.nome,
        "PARTECIPANTE_COGNOME": part.cognome,
        "PARTECIPANTE_NOME_COMPLETO": part.display_name,
        "PARTECIPANTE_CF": part.codice_fiscale,
        "PARTECIPANTE_CODICE_FISCALE": part.codice_fiscale,
        "PARTECIPANTE_EMAIL": part.email,
    })
