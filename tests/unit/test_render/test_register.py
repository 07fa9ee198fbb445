"""
test_register.py - attendance register assembly tests

Targets:
- page count = 1 + in-person sessions
- chronological page order, extraction order fallback
- SESSIONE_* keys
- splice failures → AssemblyError; build_register → None
"""

import io
import zipfile

import pytest
from conftest import count_page_breaks, docx_text, make_docx

from coursedocs.domain.errors import AssemblyError, ErrorCodes
from coursedocs.domain.schemas import CourseData, Session
from coursedocs.render.placeholders import build_placeholder_map
from coursedocs.render.register import (
    RegisterAssembler,
    build_register,
    session_placeholders,
    sort_sessions_chronologically,
    splice_pages,
)
from coursedocs.render.word import DocxRenderer
from coursedocs.templates.scaffolder import (
    build_register_head_template,
    build_register_page_template,
)


@pytest.fixture
def head() -> bytes:
    return make_docx("REGISTRO {{ CORSO_ID }}")


@pytest.fixture
def page() -> bytes:
    return make_docx("Pagina {{ PAGINA }}: {{ SESSIONE_DATA }} ({{ SESSIONE_MESE }})")


class TestAssemble:
    def test_page_count(self, course: CourseData, head: bytes, page: bytes) -> None:
        content = RegisterAssembler(head, page).assemble(course)
        assert count_page_breaks(content) == len(course.in_person_sessions) == 2

    def test_remote_sessions_get_no_page(self, fad_course: CourseData, head: bytes, page: bytes) -> None:
        content = RegisterAssembler(head, page).assemble(fad_course)
        assert count_page_breaks(content) == 2
        assert "03/09/2025" not in docx_text(content)

    def test_pages_in_chronological_order(self, course: CourseData, head: bytes, page: bytes) -> None:
        text = docx_text(RegisterAssembler(head, page).assemble(course))
        assert text.index("REGISTRO CRS-2025-01") < text.index("Pagina 2: 01/09/2025")
        assert text.index("Pagina 2: 01/09/2025 (Settembre)") < text.index("Pagina 3: 02/09/2025")

    def test_no_sessions_is_head_only(self, empty_course: CourseData, head: bytes, page: bytes) -> None:
        content = RegisterAssembler(head, page).assemble(empty_course)
        assert count_page_breaks(content) == 0
        assert "REGISTRO CRS-EMPTY" in docx_text(content)

    def test_only_document_part_replaced(self, course: CourseData, head: bytes, page: bytes) -> None:
        rendered_head = DocxRenderer(head).render(build_placeholder_map(course))
        content = RegisterAssembler(head, page).assemble(course)
        with zipfile.ZipFile(io.BytesIO(rendered_head)) as original, \
                zipfile.ZipFile(io.BytesIO(content)) as assembled:
            assert sorted(original.namelist()) == sorted(assembled.namelist())
            assert original.read("word/styles.xml") == assembled.read("word/styles.xml")
            assert original.read("word/document.xml") != assembled.read("word/document.xml")

    def test_default_templates(self, course: CourseData) -> None:
        content = RegisterAssembler(
            build_register_head_template(), build_register_page_template()
        ).assemble(course)
        text = docx_text(content)
        assert count_page_breaks(content) == 2
        assert "Lunedì 01 Settembre 2025" in text
        assert "Martedì 02 Settembre 2025" in text
        assert "Mario Rossi" in text


class TestSessionOrdering:
    def test_sorted_by_date(self) -> None:
        sessions = [
            Session(data_completa="10/10/2025"),
            Session(data_completa="05/01/2025"),
            Session(data_completa="20/03/2025"),
        ]
        result = sort_sessions_chronologically(sessions)
        assert [s.data_completa for s in result] == ["05/01/2025", "20/03/2025", "10/10/2025"]

    def test_unparsable_date_keeps_order(self) -> None:
        sessions = [
            Session(data_completa="10/10/2025"),
            Session(data_completa="domani"),
            Session(data_completa="05/01/2025"),
        ]
        result = sort_sessions_chronologically(sessions)
        assert [s.data_completa for s in result] == ["10/10/2025", "domani", "05/01/2025"]

    def test_session_placeholders_from_date(self) -> None:
        keys = session_placeholders(
            Session(data_completa="01/09/2025", ora_inizio_giornata="09:00", sede="Aula 1"), 2
        )
        assert keys["SESSIONE_GIORNO"] == "01"
        assert keys["SESSIONE_MESE"] == "Settembre"
        assert keys["SESSIONE_MESE_NUMERO"] == "09"
        assert keys["SESSIONE_ANNO"] == "2025"
        assert keys["SESSIONE_GIORNO_SETTIMANA"] == "Lunedì"
        assert keys["SESSIONE_SEDE"] == "Aula 1"
        assert keys["PAGINA"] == 2

    def test_session_placeholders_fallback_fields(self) -> None:
        keys = session_placeholders(
            Session(data_completa="", giorno="3", mese="Marzo", anno="2025"), 5
        )
        assert keys["SESSIONE_GIORNO"] == "3"
        assert keys["SESSIONE_MESE"] == "Marzo"


class TestFailures:
    def test_missing_body(self, head: bytes) -> None:
        output = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(head)) as zin, zipfile.ZipFile(output, "w") as zout:
            for item in zin.infolist():
                data = zin.read(item.filename)
                if item.filename == "word/document.xml":
                    data = (
                        b'<w:document xmlns:w="http://schemas.openxmlformats.org/'
                        b'wordprocessingml/2006/main"/>'
                    )
                zout.writestr(item, data)

        with pytest.raises(AssemblyError) as exc_info:
            splice_pages(head, [output.getvalue()])
        assert exc_info.value.code == ErrorCodes.REGISTER_BODY_MISSING

    def test_not_a_package(self, head: bytes) -> None:
        with pytest.raises(AssemblyError) as exc_info:
            splice_pages(head, [b"garbage"])
        assert exc_info.value.code == ErrorCodes.REGISTER_MARKUP_INVALID

    def test_build_register_returns_none_on_render_error(self, course: CourseData, head: bytes) -> None:
        broken_page = make_docx("{{ SESSIONE_INESISTENTE }}")
        assert build_register(course, head, broken_page) is None

    def test_build_register_success(self, course: CourseData, head: bytes, page: bytes) -> None:
        content = build_register(course, head, page)
        assert content is not None
        assert count_page_breaks(content) == 2
