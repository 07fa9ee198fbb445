"""
Document bundles: multi-file outputs, each written to its own archive folder.

- Registri_FAD: one Registro FAD per remote session
- Modulo_5: one Calendario di condizionalità per participant with benefits
- Modulo_7: one Comunicazione evento per session and participant with
  benefits, grouped in Giorno_DD-MM-YYYY/ subfolders

Rules:
- producer contract: CourseData → list[RenderedDocument] | None, never raises
- [] is a skip (logged at INFO), None a failure (logged at ERROR)
- Bundles run next to the template generators; neither waits on the other
"""

import asyncio
import logging
from collections.abc import Callable

from coursedocs.core.ids import sanitize_name
from coursedocs.domain.constants import (
    CONDITIONALITY_BUNDLE_ID,
    CONDITIONALITY_FILE_PREFIX,
    DOCX_MIME,
    EVENT_DAY_FOLDER_PREFIX,
    EVENT_NOTICE_FILE_PREFIX,
    EVENT_NOTICES_BUNDLE_ID,
    FAD_REGISTRIES_BUNDLE_ID,
    FAD_REGISTRY_FILE_PREFIX,
)
from coursedocs.domain.errors import CourseDocsError
from coursedocs.domain.schemas import (
    BundleProducer,
    CourseData,
    DocumentBundle,
    Participant,
    RenderedDocument,
    Session,
)
from coursedocs.render import builtin
from coursedocs.render.register import sort_sessions_chronologically

logger = logging.getLogger(__name__)

BundleWork = Callable[[CourseData], list[RenderedDocument]]


# =============================================================================
# Producer wrapping
# =============================================================================

def safe_bundle(bundle_id: str, work: BundleWork) -> BundleProducer:
    """
    Wrap synchronous bundle work into a producer that never raises.

    The work runs in a worker thread (python-docx is CPU-bound).
    """

    async def producer(course: CourseData) -> list[RenderedDocument] | None:
        try:
            documents = await asyncio.to_thread(work, course)
        except CourseDocsError as e:
            logger.error(f"Bundle '{bundle_id}' failed for course '{course.corso.id}': {e.to_dict()}")
            return None
        except Exception:
            logger.exception(f"Bundle '{bundle_id}' failed unexpectedly for course '{course.corso.id}'")
            return None

        if not documents:
            logger.info(f"Bundle '{bundle_id}' has nothing to write for course '{course.corso.id}'")
        return documents

    return producer


# =============================================================================
# Naming
# =============================================================================

def _docx(filename: str, content: bytes) -> RenderedDocument:
    return RenderedDocument(filename=filename, content=content, mime_type=DOCX_MIME)


def _date_token(session: Session, separator: str) -> str:
    """03/09/2025 → 03_09_2025 (or 03-09-2025); undated sessions use their number."""
    if session.data_completa:
        return sanitize_name(session.data_completa.replace("/", separator))
    return f"sessione{separator}{session.numero}"


def _person_token(participant: Participant) -> str:
    cognome = sanitize_name(participant.cognome) or "Cognome"
    nome = sanitize_name(participant.nome) or "Nome"
    return f"{cognome}_{nome}"


# =============================================================================
# Bundle work
# =============================================================================

def build_fad_registries(course: CourseData) -> list[RenderedDocument]:
    """Registro_FAD_{DD_MM_YYYY}.docx for every remote session, chronological."""
    return [
        _docx(
            f"{FAD_REGISTRY_FILE_PREFIX}_{_date_token(session, '_')}.docx",
            builtin.build_fad_registry(course, session),
        )
        for session in sort_sessions_chronologically(course.remote_sessions)
    ]


def build_conditionality_calendars(course: CourseData) -> list[RenderedDocument]:
    """Calendario_condizionalita_{id}_{Cognome}_{Nome}.docx per beneficiary."""
    key = sanitize_name(course.corso.id) or "corso"
    return [
        _docx(
            f"{CONDITIONALITY_FILE_PREFIX}_{key}_{_person_token(participant)}.docx",
            builtin.build_conditionality_calendar(course, participant),
        )
        for participant in course.beneficiaries
    ]


def build_event_notices(course: CourseData) -> list[RenderedDocument]:
    """
    Giorno_{DD-MM-YYYY}/Comunicazione_evento_{DD_MM_YYYY}_{Cognome}_{Nome}.docx

    One file per session and beneficiary, sessions in chronological order.
    """
    beneficiaries = course.beneficiaries
    documents = []
    for session in sort_sessions_chronologically(list(course.sessioni)):
        day_folder = f"{EVENT_DAY_FOLDER_PREFIX}_{_date_token(session, '-')}"
        for participant in beneficiaries:
            filename = (
                f"{EVENT_NOTICE_FILE_PREFIX}_{_date_token(session, '_')}_"
                f"{_person_token(participant)}.docx"
            )
            documents.append(_docx(
                f"{day_folder}/{filename}",
                builtin.build_event_notice(course, session, participant),
            ))
    return documents


def default_bundles() -> list[DocumentBundle]:
    """Bundles in archive order: FAD registries, Modulo 5, Modulo 7."""
    return [
        DocumentBundle(
            FAD_REGISTRIES_BUNDLE_ID, "Registri_FAD",
            safe_bundle(FAD_REGISTRIES_BUNDLE_ID, build_fad_registries),
        ),
        DocumentBundle(
            CONDITIONALITY_BUNDLE_ID, "Modulo_5",
            safe_bundle(CONDITIONALITY_BUNDLE_ID, build_conditionality_calendars),
        ),
        DocumentBundle(
            EVENT_NOTICES_BUNDLE_ID, "Modulo_7",
            safe_bundle(EVENT_NOTICES_BUNDLE_ID, build_event_notices),
        ),
    ]
