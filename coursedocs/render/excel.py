"""
Excel (XLSX) builder: openpyxl based.

Standard spreadsheets produced for every package with a spreadsheet folder:
- Registro_Presenze_{id}.xlsx: attendance grid with live formulas
- Partecipanti_{id}.xlsx: participant roster
- Report_Completo_{id}.xlsx: summary, participants, sessions
- Calendario_Lezioni_{id}.xlsx: one text-only row per hourly lesson block

Attendance layout (N participants, D dates):
    row 1          Nome Corsista | date 1 .. date D | Totale Ore Corsista
    rows 2..N+1    one row per participant (sorted by numero)
    row N+2        Totali Giorno
    row N+3        Ore Cumulative

Rules:
- Every cell reference goes through cell_address(); no ad-hoc letters
- Cumulative cells chain on the previous column (running total), never
  a re-summed range
- Zero participants or zero dates → no attendance sheet at all
"""

import io
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from coursedocs.core.dates import parse_italian_date, split_hourly_blocks
from coursedocs.core.ids import sanitize_name
from coursedocs.domain.constants import (
    ATTENDANCE_FILE_PREFIX,
    CALENDAR_FILE_PREFIX,
    LESSON_TYPE_IN_PERSON,
    LESSON_TYPE_REMOTE,
    LESSON_VENUE_IN_PERSON,
    MODALITY_IN_PERSON,
    MODALITY_REMOTE,
    REPORT_FILE_PREFIX,
    ROSTER_FILE_PREFIX,
    XLSX_MIME,
)
from coursedocs.domain.schemas import CourseData, Participant, RenderedDocument
from coursedocs.render.register import sort_sessions_chronologically

HEADER_FONT = Font(bold=True)

# =============================================================================
# Addressing
# =============================================================================


def column_letter(col: int) -> str:
    """1-based column index → letters (1 → "A", 27 → "AA")."""
    return get_column_letter(col)


def cell_address(row: int, col: int) -> str:
    """1-based (row, col) → A1 reference."""
    return f"{column_letter(col)}{row}"


# =============================================================================
# Attendance Grid
# =============================================================================

class AttendanceGrid:
    """
    Layout and formulas of the attendance sheet.

    Pure computation: no workbook needed until write().
    """

    NAME_COL = 1
    FIRST_DATE_COL = 2
    HEADER_ROW = 1
    FIRST_PARTICIPANT_ROW = 2

    def __init__(self, participants: list[Participant], dates: list[str]):
        self.participants = sorted(participants, key=lambda p: p.numero)
        self.dates = list(dates)

    @property
    def is_empty(self) -> bool:
        return not self.participants or not self.dates

    @property
    def last_participant_row(self) -> int:
        return self.FIRST_PARTICIPANT_ROW + len(self.participants) - 1

    @property
    def daily_total_row(self) -> int:
        return self.last_participant_row + 1

    @property
    def cumulative_row(self) -> int:
        return self.last_participant_row + 2

    @property
    def last_date_col(self) -> int:
        return self.FIRST_DATE_COL + len(self.dates) - 1

    @property
    def total_col(self) -> int:
        return self.last_date_col + 1

    def date_col(self, index: int) -> int:
        """0-based date index → sheet column."""
        return self.FIRST_DATE_COL + index

    # --- formulas -----------------------------------------------------------

    def participant_total_formula(self, row: int) -> str:
        first = cell_address(row, self.FIRST_DATE_COL)
        last = cell_address(row, self.last_date_col)
        return f"=SUM({first}:{last})"

    def daily_total_formula(self, col: int) -> str:
        first = cell_address(self.FIRST_PARTICIPANT_ROW, col)
        last = cell_address(self.last_participant_row, col)
        return f"=SUM({first}:{last})"

    def cumulative_formula(self, col: int) -> str:
        daily = cell_address(self.daily_total_row, col)
        if col == self.FIRST_DATE_COL:
            return f"={daily}"
        previous = cell_address(self.cumulative_row, col - 1)
        return f"={daily}+{previous}"

    # --- output ---------------------------------------------------------------

    def write(self, ws: Worksheet) -> None:
        ws.cell(row=self.HEADER_ROW, column=self.NAME_COL, value="Nome Corsista")
        for index, day in enumerate(self.dates):
            ws.cell(row=self.HEADER_ROW, column=self.date_col(index), value=day)
        ws.cell(row=self.HEADER_ROW, column=self.total_col, value="Totale Ore Corsista")
        for col in range(1, self.total_col + 1):
            ws.cell(row=self.HEADER_ROW, column=col).font = HEADER_FONT

        for offset, participant in enumerate(self.participants):
            row = self.FIRST_PARTICIPANT_ROW + offset
            ws.cell(row=row, column=self.NAME_COL, value=participant.display_name)
            ws.cell(row=row, column=self.total_col, value=self.participant_total_formula(row))

        ws.cell(row=self.daily_total_row, column=self.NAME_COL, value="Totali Giorno")
        ws.cell(row=self.cumulative_row, column=self.NAME_COL, value="Ore Cumulative")
        for index in range(len(self.dates)):
            col = self.date_col(index)
            ws.cell(row=self.daily_total_row, column=col, value=self.daily_total_formula(col))
            ws.cell(row=self.cumulative_row, column=col, value=self.cumulative_formula(col))

        ws.column_dimensions[column_letter(self.NAME_COL)].width = 30
        for index in range(len(self.dates)):
            ws.column_dimensions[column_letter(self.date_col(index))].width = 12
        ws.column_dimensions[column_letter(self.total_col)].width = 15


def attendance_dates(course: CourseData) -> list[str]:
    """
    Distinct in-person session dates, chronological.

    Unparsable dates keep first-appearance order for the whole set.
    """
    distinct: list[str] = []
    for session in course.in_person_sessions:
        if session.data_completa and session.data_completa not in distinct:
            distinct.append(session.data_completa)

    parsed = [parse_italian_date(d) for d in distinct]
    if any(p is None for p in parsed):
        return distinct
    return [d for _, d in sorted(zip(parsed, distinct, strict=True))]


# =============================================================================
# Lesson Calendar
# =============================================================================

CALENDAR_HEADERS = [
    "ID_SEZIONE", "DATA LEZIONE", "TOTALE_ORE", "ORA_INIZIO", "ORA_FINE", "TIPOLOGIA",
    "CODICE FISCALE DOCENTE", "MATERIA", "CONTENUTI MATERIA", "SEDE SVOLGIMENTO",
]
CALENDAR_WIDTHS = [15, 12, 10, 10, 10, 10, 22, 30, 30, 18]


def lesson_calendar_rows(course: CourseData) -> list[list[str]]:
    """
    One row per hourly block of every dated session, chronological.

    In-person blocks get TIPOLOGIA "1" and SEDE SVOLGIMENTO "1"; remote
    blocks get "4" and an empty venue.
    """
    corso = course.corso
    rows = []
    for session in sort_sessions_chronologically(list(course.sessioni)):
        if not session.data_completa:
            continue
        if course.is_remote_session(session):
            lesson_type, venue = LESSON_TYPE_REMOTE, ""
        else:
            lesson_type, venue = LESSON_TYPE_IN_PERSON, LESSON_VENUE_IN_PERSON
        for start, end, hours in split_hourly_blocks(session.ora_inizio_giornata, session.ora_fine_giornata):
            rows.append([
                corso.id, session.data_completa, hours, start, end, lesson_type,
                course.trainer.codice_fiscale, corso.titolo, corso.titolo, venue,
            ])
    return rows


# =============================================================================
# Spreadsheet Builder
# =============================================================================

def _save(wb: Workbook) -> bytes:
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _write_table(ws: Worksheet, headers: list[str], rows: list[list[Any]], widths: list[int]) -> None:
    ws.append(headers)
    for cell in ws[1]:
        cell.font = HEADER_FONT
    for row in rows:
        ws.append(row)
    for col, width in enumerate(widths, start=1):
        ws.column_dimensions[column_letter(col)].width = width


class SpreadsheetBuilder:
    """
    Standard spreadsheet builder for one course.

    Usage:
        builder = SpreadsheetBuilder(course)
        documents = builder.build_standard_reports()
    """

    def __init__(self, course: CourseData):
        self.course = course
        self.course_key = sanitize_name(course.corso.id) or "corso"

    def _sorted_participants(self) -> list[Participant]:
        return sorted(self.course.partecipanti, key=lambda p: p.numero)

    def build_attendance_register(self) -> bytes | None:
        """
        Attendance grid workbook.

        Returns:
            XLSX bytes, or None when there are no participants or no dates
        """
        grid = AttendanceGrid(list(self.course.partecipanti), attendance_dates(self.course))
        if grid.is_empty:
            return None

        wb = Workbook()
        ws = wb.active
        ws.title = "RegistroPresenze"
        grid.write(ws)
        return _save(wb)

    def build_participants_roster(self) -> bytes | None:
        """Participant roster workbook (None without participants)."""
        participants = self._sorted_participants()
        if not participants:
            return None

        wb = Workbook()
        ws = wb.active
        ws.title = "Partecipanti"
        _write_table(
            ws,
            ["Numero", "Nome", "Cognome", "Nome Completo", "Codice Fiscale",
             "Email", "Telefono", "Cellulare", "Benefits"],
            [
                [p.numero, p.nome, p.cognome, p.display_name, p.codice_fiscale,
                 p.email, p.telefono, p.cellulare, p.benefits or "No"]
                for p in participants
            ],
            [8, 15, 15, 30, 18, 30, 15, 15, 10],
        )
        return _save(wb)

    def build_course_report(self) -> bytes:
        """Summary workbook: Riepilogo, Partecipanti, Sessioni."""
        corso = self.course.corso
        wb = Workbook()

        summary = wb.active
        summary.title = "Riepilogo"
        _write_table(
            summary,
            ["Campo", "Valore"],
            [
                ["ID Corso", corso.id or "N/A"],
                ["Titolo", corso.titolo or "N/A"],
                ["Data Inizio", corso.data_inizio or "N/A"],
                ["Data Fine", corso.data_fine or "N/A"],
                ["Ore Totali", corso.ore_totali or "N/A"],
                ["Numero Partecipanti", len(self.course.partecipanti)],
                ["Numero Sessioni", len(self.course.sessioni)],
                ["Sessioni Presenza", len(self.course.in_person_sessions)],
                ["Sessioni FAD", len(self.course.remote_sessions)],
            ],
            [25, 50],
        )

        _write_table(
            wb.create_sheet("Partecipanti"),
            ["Numero", "Nome Completo", "Codice Fiscale", "Email", "Telefono"],
            [
                [p.numero, p.display_name, p.codice_fiscale, p.email, p.telefono]
                for p in self._sorted_participants()
            ],
            [8, 30, 18, 30, 15],
        )

        _write_table(
            wb.create_sheet("Sessioni"),
            ["Data", "Ora Inizio", "Ora Fine", "Sede", "Modalità"],
            [
                [s.data_completa, s.ora_inizio_giornata, s.ora_fine_giornata, s.sede,
                 MODALITY_REMOTE if s.is_fad else MODALITY_IN_PERSON]
                for s in self.course.sessioni
            ],
            [12, 10, 10, 30, 10],
        )
        return _save(wb)

    def build_lesson_calendar(self) -> bytes | None:
        """
        Lesson calendar workbook, every cell stored as text.

        Returns:
            XLSX bytes, or None when no session yields a lesson block
        """
        rows = lesson_calendar_rows(self.course)
        if not rows:
            return None

        wb = Workbook()
        ws = wb.active
        ws.title = "Calendario"
        _write_table(ws, CALENDAR_HEADERS, rows, CALENDAR_WIDTHS)
        for row in ws.iter_rows():
            for cell in row:
                cell.number_format = "@"
        return _save(wb)

    def build_standard_reports(self) -> list[RenderedDocument]:
        """The standard spreadsheets, skipping the ones with nothing to show."""
        candidates = [
            (ATTENDANCE_FILE_PREFIX, self.build_attendance_register()),
            (ROSTER_FILE_PREFIX, self.build_participants_roster()),
            (REPORT_FILE_PREFIX, self.build_course_report()),
            (CALENDAR_FILE_PREFIX, self.build_lesson_calendar()),
        ]
        return [
            RenderedDocument(
                filename=f"{prefix}_{self.course_key}.xlsx",
                content=content,
                mime_type=XLSX_MIME,
            )
            for prefix, content in candidates
            if content is not None
        ]
