"""
Domain Constants: engine-wide values.

Filename policy, MIME types, Italian calendar names and archive layout.
"""

# =============================================================================
# MIME Types
# =============================================================================

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MIME = "application/zip"

MIME_BY_KIND = {
    "docx": DOCX_MIME,
    "xlsx": XLSX_MIME,
}

# =============================================================================
# Output Filenames
# =============================================================================
# Standard spreadsheets: {prefix}_{course_id}.xlsx

ATTENDANCE_FILE_PREFIX = "Registro_Presenze"
ROSTER_FILE_PREFIX = "Partecipanti"
REPORT_FILE_PREFIX = "Report_Completo"
CALENDAR_FILE_PREFIX = "Calendario_Lezioni"

# Multi-file bundles: ids and filename parts
FAD_REGISTRIES_BUNDLE_ID = "registri_fad"
CONDITIONALITY_BUNDLE_ID = "modulo_5"
EVENT_NOTICES_BUNDLE_ID = "modulo_7"

FAD_REGISTRY_FILE_PREFIX = "Registro_FAD"
CONDITIONALITY_FILE_PREFIX = "Calendario_condizionalita"
EVENT_NOTICE_FILE_PREFIX = "Comunicazione_evento"
EVENT_DAY_FOLDER_PREFIX = "Giorno"

README_FILENAME = "README.txt"
METADATA_FILENAME = "metadata.json"

# =============================================================================
# Archive Layout
# =============================================================================
# {root}/
# ├── Documenti/     (docx)
# ├── Excel/         (xlsx + standard reports)
# ├── Registri_FAD/  (one registry per remote session)
# ├── Modulo_5/      (one calendar per beneficiary)
# ├── Modulo_7/      (Giorno_DD-MM-YYYY/ notices per beneficiary)
# ├── PDF/           (disabled by default)
# ├── README.txt
# └── metadata.json

DEFAULT_ROOT_FOLDER_PATTERN = "{ID_CORSO} - {NOME_CORSO}"
SANITIZED_NAME_MAX_LENGTH = 50

SYSTEM_VERSION = "2.1.0"

# =============================================================================
# Template Store Layout
# =============================================================================
# templates/stored/<template_id>/
# ├── template.docx
# └── meta.json

STORED_TEMPLATES_DIR = "stored"
STORED_TEMPLATE_FILENAME = "template.docx"
TEMPLATE_META_FILENAME = "meta.json"
TEMPLATE_MANIFEST_FILENAME = "manifest.yaml"

# =============================================================================
# Italian Calendar
# =============================================================================

ITALIAN_MONTHS = [
    "Gennaio", "Febbraio", "Marzo", "Aprile", "Maggio", "Giugno",
    "Luglio", "Agosto", "Settembre", "Ottobre", "Novembre", "Dicembre",
]

# Indexed by datetime.weekday() (Monday = 0)
ITALIAN_WEEKDAYS = [
    "Lunedì", "Martedì", "Mercoledì", "Giovedì", "Venerdì", "Sabato", "Domenica",
]

# Session modality labels
MODALITY_REMOTE = "FAD"
MODALITY_IN_PERSON = "Presenza"

# Session location labels
LOCATION_IN_PERSON = "presenza"
LOCATION_ONLINE = "online"

# Location text containing one of these marks the session in person / remote
IN_PERSON_LOCATION_KEYWORDS = ("office", "ufficio", "presenza")
REMOTE_LOCATION_KEYWORDS = ("online", "fad", "distanza", "remoto")

# Lesson calendar codes: TIPOLOGIA / SEDE SVOLGIMENTO
LESSON_TYPE_IN_PERSON = "1"
LESSON_TYPE_REMOTE = "4"
LESSON_VENUE_IN_PERSON = "1"

# Lunch break dropped from hourly lesson blocks (minutes since midnight)
LUNCH_BREAK_START = 13 * 60
LUNCH_BREAK_END = 14 * 60

# Benefits flag
BENEFITS_FALSE_VALUES = ("no", "0", "false")
BENEFITS_TRUE_PREFIXES = ("si", "yes", "y", "true", "1", "benefit")
