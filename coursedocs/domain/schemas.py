"""
Data schemas for the document engine.

Rules:
- Field names match the extraction output (Italian keys: corso, moduli, ...)
- CourseData is read-only during a build
- from_dict() never leaves None in a string field: missing → "" / 0 / []
"""

import re
import unicodedata
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from coursedocs.domain.constants import (
    BENEFITS_FALSE_VALUES,
    BENEFITS_TRUE_PREFIXES,
    IN_PERSON_LOCATION_KEYWORDS,
    LOCATION_IN_PERSON,
    LOCATION_ONLINE,
    REMOTE_LOCATION_KEYWORDS,
)

# =============================================================================
# Coercion helpers
# =============================================================================


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _number(value: Any) -> int | float:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return float(str(value).strip().replace(",", "."))
        except ValueError:
            return 0


def _texts(values: Any) -> list[str]:
    if not values:
        return []
    return [_text(v) for v in values if v is not None]


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# =============================================================================
# Course Record
# =============================================================================

@dataclass(frozen=True)
class Course:
    """Course identity (corso)."""
    id: str = ""
    titolo: str = ""
    tipo: str = ""
    data_inizio: str = ""
    data_fine: str = ""
    anno: str = ""
    durata_totale: str = ""
    ore_totali: str = ""
    ore_rendicontabili: str = ""
    stato: str = ""
    capienza: str = ""
    capienza_numero: int | float = 0
    capienza_totale: int | float = 0
    programma: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Course":
        return cls(
            id=_text(data.get("id")),
            titolo=_text(data.get("titolo")),
            tipo=_text(data.get("tipo")),
            data_inizio=_text(data.get("data_inizio")),
            data_fine=_text(data.get("data_fine")),
            anno=_text(data.get("anno")),
            durata_totale=_text(data.get("durata_totale")),
            ore_totali=_text(data.get("ore_totali")),
            ore_rendicontabili=_text(data.get("ore_rendicontabili")),
            stato=_text(data.get("stato")),
            capienza=_text(data.get("capienza")),
            capienza_numero=_number(data.get("capienza_numero")),
            capienza_totale=_number(data.get("capienza_totale")),
            programma=_text(data.get("programma")),
        )


@dataclass(frozen=True)
class Module:
    """Course module (modulo)."""
    id: str = ""
    titolo: str = ""
    id_corso: str = ""
    id_sezione: str = ""
    data_inizio: str = ""
    data_fine: str = ""
    ore_totali: str = ""
    durata: str = ""
    ore_rendicontabili: str = ""
    capienza: str = ""
    stato: str = ""
    tipo_sede: str = ""
    provider: str = ""
    numero_sessioni: int | float = 0
    argomenti: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Module":
        return cls(
            id=_text(data.get("id")),
            titolo=_text(data.get("titolo")),
            id_corso=_text(data.get("id_corso")),
            id_sezione=_text(data.get("id_sezione")),
            data_inizio=_text(data.get("data_inizio")),
            data_fine=_text(data.get("data_fine")),
            ore_totali=_text(data.get("ore_totali")),
            durata=_text(data.get("durata")),
            ore_rendicontabili=_text(data.get("ore_rendicontabili")),
            capienza=_text(data.get("capienza")),
            stato=_text(data.get("stato")),
            tipo_sede=_text(data.get("tipo_sede")),
            provider=_text(data.get("provider")),
            numero_sessioni=_number(data.get("numero_sessioni")),
            argomenti=tuple(_texts(data.get("argomenti"))),
        )


@dataclass(frozen=True)
class Session:
    """One lesson day (sessione). is_fad=True means remote."""
    numero: int | float = 0
    data_completa: str = ""  # DD/MM/YYYY
    giorno: str = ""
    mese: str = ""
    mese_numero: str = ""
    anno: str = ""
    giorno_settimana: str = ""
    ora_inizio_giornata: str = ""  # HH:MM
    ora_fine_giornata: str = ""  # HH:MM
    sede: str = ""
    tipo_sede: str = ""
    is_fad: bool = False
    modulo_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(
            numero=_number(data.get("numero")),
            data_completa=_text(data.get("data_completa")),
            giorno=_text(data.get("giorno")),
            mese=_text(data.get("mese")),
            mese_numero=_text(data.get("mese_numero")),
            anno=_text(data.get("anno")),
            giorno_settimana=_text(data.get("giorno_settimana")),
            ora_inizio_giornata=_text(data.get("ora_inizio_giornata")),
            ora_fine_giornata=_text(data.get("ora_fine_giornata")),
            sede=_text(data.get("sede")),
            tipo_sede=_text(data.get("tipo_sede")),
            is_fad=bool(data.get("is_fad", False)),
            modulo_id=_text(data.get("modulo_id")),
        )


@dataclass(frozen=True)
class Participant:
    """Enrolled participant (partecipante)."""
    numero: int | float = 0
    id: str = ""
    nome: str = ""
    cognome: str = ""
    nome_completo: str = ""
    codice_fiscale: str = ""
    telefono: str = ""
    cellulare: str = ""
    email: str = ""
    programma: str = ""
    ufficio: str = ""
    case_manager: str = ""
    benefits: str = ""
    frequenza: str = ""

    @property
    def display_name(self) -> str:
        if self.nome_completo:
            return self.nome_completo
        return f"{self.nome} {self.cognome}".strip()

    @property
    def has_benefits(self) -> bool:
        """
        Benefits flag as typed in the source sheet.

        Accents, case and punctuation are ignored: "Sì", "SI - NASpI" and
        "benefit" count, "No" and "" do not.
        """
        decomposed = unicodedata.normalize("NFD", self.benefits)
        cleaned = re.sub(r"[^a-z0-9]", "", decomposed.encode("ascii", "ignore").decode().lower())
        if not cleaned or cleaned in BENEFITS_FALSE_VALUES:
            return False
        return cleaned.startswith(BENEFITS_TRUE_PREFIXES)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Participant":
        return cls(
            numero=_number(data.get("numero")),
            id=_text(data.get("id")),
            nome=_text(data.get("nome")),
            cognome=_text(data.get("cognome")),
            nome_completo=_text(data.get("nome_completo")),
            codice_fiscale=_text(data.get("codice_fiscale")),
            telefono=_text(data.get("telefono")),
            cellulare=_text(data.get("cellulare")),
            email=_text(data.get("email")),
            programma=_text(data.get("programma")),
            ufficio=_text(data.get("ufficio")),
            case_manager=_text(data.get("case_manager")),
            benefits=_text(data.get("benefits")),
            frequenza=_text(data.get("frequenza")),
        )


@dataclass(frozen=True)
class AccreditedEntity:
    nome: str = ""
    via: str = ""
    numero_civico: str = ""
    comune: str = ""
    cap: str = ""
    provincia: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccreditedEntity":
        return cls(
            nome=_text(data.get("nome")),
            via=_text(data.get("via")),
            numero_civico=_text(data.get("numero_civico")),
            comune=_text(data.get("comune")),
            cap=_text(data.get("cap")),
            provincia=_text(data.get("provincia")),
        )


@dataclass(frozen=True)
class Entity:
    """Training entity (ente)."""
    nome: str = ""
    id: str = ""
    indirizzo: str = ""
    accreditato: AccreditedEntity = field(default_factory=AccreditedEntity)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        return cls(
            nome=_text(data.get("nome")),
            id=_text(data.get("id")),
            indirizzo=_text(data.get("indirizzo")),
            accreditato=AccreditedEntity.from_dict(_dict(data.get("accreditato"))),
        )


@dataclass(frozen=True)
class Location:
    """Venue (sede)."""
    tipo: str = ""
    nome: str = ""
    modalita: str = ""
    indirizzo: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Location":
        return cls(
            tipo=_text(data.get("tipo")),
            nome=_text(data.get("nome")),
            modalita=_text(data.get("modalita")),
            indirizzo=_text(data.get("indirizzo")),
        )


@dataclass(frozen=True)
class Trainer:
    """Trainer (docente)."""
    nome_completo: str = ""
    nome: str = ""
    cognome: str = ""
    codice_fiscale: str = ""
    email: str = ""
    telefono: str = ""

    @property
    def display_name(self) -> str:
        if self.nome_completo:
            return self.nome_completo
        return f"{self.nome} {self.cognome}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trainer":
        return cls(
            nome_completo=_text(data.get("nome_completo")),
            nome=_text(data.get("nome")),
            cognome=_text(data.get("cognome")),
            codice_fiscale=_text(data.get("codice_fiscale") or data.get("codiceFiscale")),
            email=_text(data.get("email")),
            telefono=_text(data.get("telefono")),
        )


@dataclass(frozen=True)
class ExamRecord:
    """Final exam record (verbale)."""
    data: str = ""
    ora: str = ""
    luogo: str = ""
    data_completa: str = ""
    prova_descrizione: str = ""
    prova_tipo: str = ""
    prova_durata: str = ""
    prova_modalita: str = ""
    criteri_descrizione: str = ""
    criteri_indicatori: str = ""
    criteri_peso: str = ""
    esiti_positivi: tuple[str, ...] = ()
    esiti_negativi: tuple[str, ...] = ()
    esiti_positivi_testo: str = ""
    esiti_negativi_testo: str = ""
    protocollo_siuf: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExamRecord":
        prova = _dict(data.get("prova"))
        criteri = _dict(data.get("criteri"))
        esiti = _dict(data.get("esiti"))
        return cls(
            data=_text(data.get("data")),
            ora=_text(data.get("ora")),
            luogo=_text(data.get("luogo")),
            data_completa=_text(data.get("data_completa")),
            prova_descrizione=_text(prova.get("descrizione")),
            prova_tipo=_text(prova.get("tipo")),
            prova_durata=_text(prova.get("durata")),
            prova_modalita=_text(prova.get("modalita")),
            criteri_descrizione=_text(criteri.get("descrizione")),
            criteri_indicatori=_text(criteri.get("indicatori")),
            criteri_peso=_text(criteri.get("peso")),
            esiti_positivi=tuple(_texts(esiti.get("positivi"))),
            esiti_negativi=tuple(_texts(esiti.get("negativi"))),
            esiti_positivi_testo=_text(esiti.get("positivi_testo")),
            esiti_negativi_testo=_text(esiti.get("negativi_testo")),
            protocollo_siuf=_text(data.get("protocollo_siuf")),
        )


@dataclass(frozen=True)
class Register:
    """Register stamping info (registro)."""
    numero_pagine: str = ""
    data_vidimazione: str = ""
    luogo_vidimazione: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Register":
        return cls(
            numero_pagine=_text(data.get("numero_pagine")),
            data_vidimazione=_text(data.get("data_vidimazione")),
            luogo_vidimazione=_text(data.get("luogo_vidimazione")),
        )


@dataclass(frozen=True)
class DistanceCalendar:
    """Distance-learning calendar (calendario_fad)."""
    modalita: str = ""
    piattaforma: str = ""
    strumenti: str = ""
    id_riunione: str = ""
    passcode: str = ""
    obiettivi: str = ""
    valutazione: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DistanceCalendar":
        return cls(
            modalita=_text(data.get("modalita")),
            piattaforma=_text(data.get("piattaforma")),
            strumenti=_text(data.get("strumenti")),
            id_riunione=_text(data.get("id_riunione")),
            passcode=_text(data.get("passcode")),
            obiettivi=_text(data.get("obiettivi")),
            valutazione=_text(data.get("valutazione")),
        )


@dataclass(frozen=True)
class Metadata:
    """Extraction metadata."""
    data_estrazione: str = ""
    versione_sistema: str = ""
    utente: str = ""
    completamento_percentuale: int | float = 0
    campi_mancanti: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Metadata":
        return cls(
            data_estrazione=_text(data.get("data_estrazione")),
            versione_sistema=_text(data.get("versione_sistema")),
            utente=_text(data.get("utente")),
            completamento_percentuale=_number(data.get("completamento_percentuale")),
            campi_mancanti=tuple(_texts(data.get("campi_mancanti"))),
            warnings=tuple(_texts(data.get("warnings"))),
        )


@dataclass(frozen=True)
class CourseData:
    """
    Validated course record produced by the extraction step.

    Frozen: no generator may mutate it while a package is being built.
    `raw` keeps the original dict for the metadata snapshot.
    """
    corso: Course = field(default_factory=Course)
    moduli: tuple[Module, ...] = ()
    sessioni: tuple[Session, ...] = ()
    partecipanti: tuple[Participant, ...] = ()
    ente: Entity = field(default_factory=Entity)
    sede: Location = field(default_factory=Location)
    trainer: Trainer = field(default_factory=Trainer)
    verbale: ExamRecord = field(default_factory=ExamRecord)
    registro: Register = field(default_factory=Register)
    calendario_fad: DistanceCalendar = field(default_factory=DistanceCalendar)
    metadata: Metadata = field(default_factory=Metadata)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def in_person_sessions(self) -> list[Session]:
        return [s for s in self.sessioni if not s.is_fad]

    @property
    def remote_sessions(self) -> list[Session]:
        return [s for s in self.sessioni if s.is_fad]

    @property
    def has_remote_sessions(self) -> bool:
        return any(s.is_fad for s in self.sessioni)

    @property
    def beneficiaries(self) -> list[Participant]:
        """Participants with the benefits flag, by numero."""
        return sorted((p for p in self.partecipanti if p.has_benefits), key=lambda p: p.numero)

    def session_location(self, session: Session) -> str:
        """
        Where a session takes place: "presenza", "online" or the extracted text.

        The session venue wins over the course venue; codes "1" and "4" are
        the source sheet's in-person and online values.
        """
        raw = session.sede or session.tipo_sede or self.sede.modalita or self.sede.nome
        if raw == "1":
            return LOCATION_IN_PERSON
        if raw == "4":
            return LOCATION_ONLINE
        if raw:
            return raw
        return LOCATION_ONLINE if session.is_fad else LOCATION_IN_PERSON

    def is_remote_session(self, session: Session) -> bool:
        """Remote unless the location names an office; free text falls back on is_fad."""
        location = self.session_location(session).lower()
        if any(k in location for k in IN_PERSON_LOCATION_KEYWORDS):
            return False
        if any(k in location for k in REMOTE_LOCATION_KEYWORDS):
            return True
        return session.is_fad

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourseData":
        return cls(
            corso=Course.from_dict(_dict(data.get("corso"))),
            moduli=tuple(Module.from_dict(_dict(m)) for m in data.get("moduli") or []),
            sessioni=tuple(Session.from_dict(_dict(s)) for s in data.get("sessioni") or []),
            partecipanti=tuple(
                Participant.from_dict(_dict(p)) for p in data.get("partecipanti") or []
            ),
            ente=Entity.from_dict(_dict(data.get("ente"))),
            sede=Location.from_dict(_dict(data.get("sede"))),
            trainer=Trainer.from_dict(_dict(data.get("trainer"))),
            verbale=ExamRecord.from_dict(_dict(data.get("verbale"))),
            registro=Register.from_dict(_dict(data.get("registro"))),
            calendario_fad=DistanceCalendar.from_dict(_dict(data.get("calendario_fad"))),
            metadata=Metadata.from_dict(_dict(data.get("metadata"))),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Raw snapshot (as received) for metadata.json."""
        return dict(self.raw)


# =============================================================================
# Rendering / Packaging Schemas
# =============================================================================

class TemplateSourceKind(str, Enum):
    """Where a template comes from."""
    BUILTIN = "builtin"  # code-generated
    BUNDLED = "bundled"  # file listed in templates/manifest.yaml
    STORED = "stored"  # administrator upload


@dataclass
class RenderedDocument:
    """One output file. Transient: written into the archive then dropped."""
    filename: str
    content: bytes
    mime_type: str = ""

    @property
    def extension(self) -> str:
        dot = self.filename.rfind(".")
        return self.filename[dot:] if dot >= 0 else ""


Generator = Callable[[CourseData], Awaitable[RenderedDocument | None]]


@dataclass
class TemplateDescriptor:
    """
    Uniform template entry.

    generator contract: CourseData → RenderedDocument | None, never raises.
    None means "nothing written" (intentional skip or logged failure).
    """
    template_id: str
    display_name: str
    filename_base: str
    generator: Generator
    source: TemplateSourceKind = TemplateSourceKind.BUILTIN
    output_kind: str = "docx"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.template_id,
            "name": self.display_name,
            "filename": self.filename_base,
            "source": self.source.value,
            "output_kind": self.output_kind,
        }


BundleProducer = Callable[[CourseData], Awaitable[list[RenderedDocument] | None]]


@dataclass
class DocumentBundle:
    """
    Multi-file output written to its own archive folder.

    producer contract: CourseData → list[RenderedDocument] | None, never raises.
    [] means nothing to write; None means the bundle failed (logged).
    Filenames are relative to `folder` and may hold one subfolder.
    """
    bundle_id: str
    folder: str
    producer: BundleProducer


@dataclass
class FolderRule:
    """One archive subfolder: enabled flag, accepted kinds, assigned templates."""
    name: str
    enabled: bool = True
    file_types: list[str] = field(default_factory=list)
    assigned_templates: list[str] = field(default_factory=list)
    order: int = 0

    def accepts(self, kind: str) -> bool:
        return kind.lower().lstrip(".") in {t.lower().lstrip(".") for t in self.file_types}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FolderRule":
        return cls(
            name=_text(data.get("name")),
            enabled=bool(data.get("enabled", True)),
            file_types=_texts(data.get("file_types") or data.get("fileTypes")),
            assigned_templates=_texts(
                data.get("assigned_templates") or data.get("assignedTemplates")
            ),
            order=int(_number(data.get("order"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "file_types": list(self.file_types),
            "assigned_templates": list(self.assigned_templates),
            "order": self.order,
        }


@dataclass
class WarningLog:
    """
    Build warning.

    Required context: level, code, template_id, folder, message
    """
    level: str = "warning"
    code: str = ""
    template_id: str = ""
    folder: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "template_id": self.template_id,
            "folder": self.folder,
            "message": self.message,
        }


@dataclass
class BuildLog:
    """
    Package build log.

    generated: archive paths written
    omitted: templates that produced nothing (skip or logged failure)
    """
    build_id: str
    course_id: str
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    generated: list[str] = field(default_factory=list)
    omitted: list[dict[str, str]] = field(default_factory=list)
    warnings: list[WarningLog] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_id": self.build_id,
            "course_id": self.course_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "generated": list(self.generated),
            "omitted": [dict(o) for o in self.omitted],
            "warnings": [w.to_dict() for w in self.warnings],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
