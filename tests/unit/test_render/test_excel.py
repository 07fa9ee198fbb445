"""
test_excel.py - Excel (XLSX) builder tests

Targets:
- cell_address / column_letter
- attendance grid layout and formulas (running cumulative total)
- zero participants / zero dates → no attendance sheet
- roster and summary workbooks
- lesson calendar: hourly blocks, lesson type codes, text cells
"""

import io
import re

import pytest
from openpyxl import load_workbook

from coursedocs.domain.schemas import CourseData, Participant
from coursedocs.render.excel import (
    AttendanceGrid,
    SpreadsheetBuilder,
    attendance_dates,
    cell_address,
    column_letter,
    lesson_calendar_rows,
)

REF_PATTERN = re.compile(r"^([A-Z]+)(\d+)$")


def _participants(count: int) -> list[Participant]:
    return [Participant(numero=n, nome=f"Nome{n}", cognome=f"Cognome{n}") for n in range(1, count + 1)]


class TestAddressing:
    @pytest.mark.parametrize(
        ("col", "letters"),
        [(1, "A"), (2, "B"), (26, "Z"), (27, "AA"), (52, "AZ"), (703, "AAA")],
    )
    def test_column_letter(self, col: int, letters: str) -> None:
        assert column_letter(col) == letters

    def test_cell_address(self) -> None:
        assert cell_address(1, 1) == "A1"
        assert cell_address(12, 28) == "AB12"


class TestAttendanceGrid:
    def test_three_participants_two_dates(self) -> None:
        grid = AttendanceGrid(_participants(3), ["01/09/2025", "02/09/2025"])

        assert grid.last_participant_row == 4
        assert grid.daily_total_row == 5
        assert grid.cumulative_row == 6
        assert grid.total_col == 4
        assert grid.daily_total_formula(2) == "=SUM(B2:B4)"
        assert grid.participant_total_formula(2) == "=SUM(B2:C2)"
        assert grid.cumulative_formula(2) == "=B5"
        assert grid.cumulative_formula(3) == "=C5+B6"

    def test_participants_sorted_by_numero(self) -> None:
        grid = AttendanceGrid(list(reversed(_participants(3))), ["01/09/2025"])
        assert [p.numero for p in grid.participants] == [1, 2, 3]

    def test_cumulative_is_running_sum_of_daily_totals(self) -> None:
        grid = AttendanceGrid(_participants(2), [f"{d:02d}/09/2025" for d in range(1, 31)])
        daily = {grid.date_col(i): (i + 1) * 3 for i in range(len(grid.dates))}

        def evaluate(col: int) -> int:
            total = 0
            for ref in grid.cumulative_formula(col).lstrip("=").split("+"):
                letters, row = REF_PATTERN.match(ref).groups()
                ref_col = next(c for c in daily if column_letter(c) == letters)
                if int(row) == grid.daily_total_row:
                    total += daily[ref_col]
                else:
                    assert int(row) == grid.cumulative_row
                    total += evaluate(ref_col)
            return total

        for index in range(len(grid.dates)):
            col = grid.date_col(index)
            assert evaluate(col) == sum(daily[grid.date_col(i)] for i in range(index + 1))

    def test_empty_grid(self) -> None:
        assert AttendanceGrid([], ["01/09/2025"]).is_empty
        assert AttendanceGrid(_participants(2), []).is_empty


class TestAttendanceDates:
    def test_distinct_chronological_in_person(self, fad_course_dict: dict) -> None:
        fad_course_dict["sessioni"].append(
            {"data_completa": "01/09/2025", "ora_inizio_giornata": "14:00", "is_fad": False}
        )
        course = CourseData.from_dict(fad_course_dict)
        assert attendance_dates(course) == ["01/09/2025", "02/09/2025"]


class TestSpreadsheetBuilder:
    def test_attendance_workbook(self, course: CourseData) -> None:
        content = SpreadsheetBuilder(course).build_attendance_register()
        ws = load_workbook(io.BytesIO(content))["RegistroPresenze"]

        assert [ws.cell(row=1, column=c).value for c in range(1, 5)] == [
            "Nome Corsista", "01/09/2025", "02/09/2025", "Totale Ore Corsista",
        ]
        assert [ws.cell(row=r, column=1).value for r in range(2, 7)] == [
            "Mario Rossi", "Laura Bianchi", "Paolo Verdi", "Totali Giorno", "Ore Cumulative",
        ]
        assert ws["B5"].value == "=SUM(B2:B4)"
        assert ws["D2"].value == "=SUM(B2:C2)"
        assert ws["C6"].value == "=C5+B6"
        assert ws.cell(row=1, column=1).font.bold

    def test_no_participants_no_sheet(self, course_dict: dict) -> None:
        course_dict["partecipanti"] = []
        builder = SpreadsheetBuilder(CourseData.from_dict(course_dict))
        assert builder.build_attendance_register() is None
        assert builder.build_participants_roster() is None

    def test_no_sessions_no_sheet(self, course_dict: dict) -> None:
        course_dict["sessioni"] = []
        builder = SpreadsheetBuilder(CourseData.from_dict(course_dict))
        assert builder.build_attendance_register() is None

    def test_remote_only_no_sheet(self, course_dict: dict) -> None:
        for session in course_dict["sessioni"]:
            session["is_fad"] = True
        builder = SpreadsheetBuilder(CourseData.from_dict(course_dict))
        assert builder.build_attendance_register() is None

    def test_roster(self, course: CourseData) -> None:
        ws = load_workbook(io.BytesIO(SpreadsheetBuilder(course).build_participants_roster()))["Partecipanti"]
        assert ws["A1"].value == "Numero"
        assert ws["D2"].value == "Mario Rossi"
        assert ws["I2"].value == "No"
        assert ws.max_row == 4

    def test_course_report_sheets(self, fad_course: CourseData) -> None:
        wb = load_workbook(io.BytesIO(SpreadsheetBuilder(fad_course).build_course_report()))
        assert wb.sheetnames == ["Riepilogo", "Partecipanti", "Sessioni"]
        summary = {row[0]: row[1] for row in wb["Riepilogo"].iter_rows(min_row=2, values_only=True)}
        assert summary["ID Corso"] == "CRS-2025-01"
        assert summary["Sessioni FAD"] == 1
        assert summary["Sessioni Presenza"] == 2

    def test_standard_reports_filenames(self, course: CourseData) -> None:
        names = [d.filename for d in SpreadsheetBuilder(course).build_standard_reports()]
        assert names == [
            "Registro_Presenze_CRS-2025-01.xlsx",
            "Partecipanti_CRS-2025-01.xlsx",
            "Report_Completo_CRS-2025-01.xlsx",
            "Calendario_Lezioni_CRS-2025-01.xlsx",
        ]

    def test_standard_reports_skip_empty(self, empty_course: CourseData) -> None:
        names = [d.filename for d in SpreadsheetBuilder(empty_course).build_standard_reports()]
        assert names == ["Report_Completo_CRS-EMPTY.xlsx"]


class TestLessonCalendar:
    def test_in_person_day_split_around_lunch(self, course: CourseData) -> None:
        rows = lesson_calendar_rows(course)

        assert len(rows) == 14
        first_day = [row for row in rows if row[1] == "01/09/2025"]
        assert [(row[3], row[4]) for row in first_day] == [
            ("09:00", "10:00"), ("10:00", "11:00"), ("11:00", "12:00"), ("12:00", "13:00"),
            ("14:00", "15:00"), ("15:00", "16:00"), ("16:00", "17:00"),
        ]
        assert first_day[0] == [
            "CRS-2025-01", "01/09/2025", "1", "09:00", "10:00", "1",
            "NREGLI75D50F205K", "Sicurezza sul Lavoro", "Sicurezza sul Lavoro", "1",
        ]

    def test_sessions_in_chronological_order(self, course: CourseData) -> None:
        dates = [row[1] for row in lesson_calendar_rows(course)]
        assert dates == ["01/09/2025"] * 7 + ["02/09/2025"] * 7

    def test_remote_session_codes(self, fad_course: CourseData) -> None:
        remote = [row for row in lesson_calendar_rows(fad_course) if row[1] == "03/09/2025"]

        assert len(remote) == 4
        assert {(row[5], row[9]) for row in remote} == {("4", "")}
        assert remote[-1][2:5] == ["0.5", "12:00", "12:30"]

    def test_undated_and_malformed_sessions_skipped(self, course_dict: dict) -> None:
        course_dict["sessioni"][0]["data_completa"] = ""
        course_dict["sessioni"][1]["ora_fine_giornata"] = "pomeriggio"
        assert lesson_calendar_rows(CourseData.from_dict(course_dict)) == []

    def test_workbook_cells_are_text(self, fad_course: CourseData) -> None:
        ws = load_workbook(io.BytesIO(SpreadsheetBuilder(fad_course).build_lesson_calendar()))["Calendario"]

        assert ws["A1"].value == "ID_SEZIONE"
        assert ws["J1"].value == "SEDE SVOLGIMENTO"
        assert ws.max_row == 1 + 18
        assert ws["C2"].value == "1"
        assert all(cell.number_format == "@" for row in ws.iter_rows() for cell in row)

    def test_no_sessions_no_workbook(self, empty_course: CourseData) -> None:
        assert SpreadsheetBuilder(empty_course).build_lesson_calendar() is None
