"""
test_word.py - Word (DOCX) renderer tests

Targets:
- DocxRenderer: load, check, render, placeholder listing
- every problem reported in one RenderError
- render_docx: convenience function
"""

import io

import pytest
from conftest import docx_text, make_docx
from docx import Document

from coursedocs.domain.errors import ErrorCodes, RenderError, TemplateLoadError
from coursedocs.render.word import DocxRenderer, load_document, render_docx, scan_tags
from coursedocs.templates.scaffolder import build_register_page_template

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def simple_template() -> bytes:
    """placeholders: {{ CORSO_ID }}, {{ CORSO_TITOLO }}"""
    return make_docx("ID: {{ CORSO_ID }}", "Titolo: {{ CORSO_TITOLO }}")


@pytest.fixture
def table_loop_template() -> bytes:
    """Participant table with a {%tr %} row loop."""
    doc = Document()
    doc.add_paragraph("Corso {{ CORSO_ID }}")
    table = doc.add_table(rows=4, cols=2)
    table.rows[0].cells[0].text = "N."
    table.rows[0].cells[1].text = "Nome"
    table.rows[1].cells[0].text = "{%tr for p in PARTECIPANTI %}"
    table.rows[2].cells[0].text = "{{ p.numero }}"
    table.rows[2].cells[1].text = "{{ p.nome_completo }}"
    table.rows[3].cells[0].text = "{%tr endfor %}"
    output = io.BytesIO()
    doc.save(output)
    return output.getvalue()


# =============================================================================
# Rendering
# =============================================================================


class TestRender:
    def test_simple_substitution(self, simple_template: bytes) -> None:
        content = DocxRenderer(simple_template).render(
            {"CORSO_ID": "CRS-1", "CORSO_TITOLO": "Primo Soccorso"}
        )
        text = docx_text(content)
        assert "ID: CRS-1" in text
        assert "Titolo: Primo Soccorso" in text

    def test_table_row_loop(self, table_loop_template: bytes) -> None:
        mapping = {
            "CORSO_ID": "CRS-1",
            "PARTECIPANTI": [
                {"numero": 1, "nome_completo": "Mario Rossi"},
                {"numero": 2, "nome_completo": "Laura Bianchi"},
            ],
        }
        text = docx_text(DocxRenderer(table_loop_template).render(mapping))
        assert "1 | Mario Rossi" in text
        assert "2 | Laura Bianchi" in text
        assert "{%" not in text

    def test_paragraph_loop(self) -> None:
        template = make_docx(
            "{%p for s in SESSIONI %}",
            "Lezione {{ s.data }}",
            "{%p endfor %}",
        )
        mapping = {"SESSIONI": [{"data": "01/09/2025"}, {"data": "02/09/2025"}]}
        text = docx_text(render_docx(template, mapping))
        assert "Lezione 01/09/2025" in text
        assert "Lezione 02/09/2025" in text

    def test_special_characters_escaped(self, simple_template: bytes) -> None:
        content = DocxRenderer(simple_template).render(
            {"CORSO_ID": "A&B <1>", "CORSO_TITOLO": "x"}
        )
        assert "ID: A&B <1>" in docx_text(content)

    def test_renderer_reusable(self, simple_template: bytes) -> None:
        renderer = DocxRenderer(simple_template)
        first = renderer.render({"CORSO_ID": "ONE", "CORSO_TITOLO": "t"})
        second = renderer.render({"CORSO_ID": "TWO", "CORSO_TITOLO": "t"})
        assert "ID: ONE" in docx_text(first)
        assert "ID: TWO" in docx_text(second)


# =============================================================================
# Problem collection
# =============================================================================


class TestProblems:
    def test_all_unresolved_reported_together(self) -> None:
        template = make_docx("{{ CORSO_ID }}", "{{ MANCANTE_UNO }}", "{{ MANCANTE_DUE }}")
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template, "verbale").render({"CORSO_ID": "X"})

        error = exc_info.value
        assert error.code == ErrorCodes.UNRESOLVED_PLACEHOLDER
        tags = [t["tag"] for t in error.tags]
        assert tags == ["{{ MANCANTE_UNO }}", "{{ MANCANTE_DUE }}"]
        assert all(t["reason"] == "unresolved placeholder" for t in error.tags)
        assert error.tags[0]["location"] == "body, paragraph 2"
        assert error.context["template_id"] == "verbale"

    def test_unknown_field_on_loop_variable(self) -> None:
        template = make_docx(
            "{%p for p in PARTECIPANTI %}",
            "{{ p.inesistente }}",
            "{%p endfor %}",
        )
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({"PARTECIPANTI": [{"nome": "Mario"}]})
        assert exc_info.value.tags[0]["tag"] == "{{ p.inesistente }}"

    def test_loop_variable_out_of_scope(self) -> None:
        template = make_docx(
            "{%p for p in PARTECIPANTI %}",
            "{{ p.nome }}",
            "{%p endfor %}",
            "{{ p.nome }}",
        )
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({"PARTECIPANTI": [{"nome": "Mario"}]})
        assert len(exc_info.value.tags) == 1
        assert exc_info.value.tags[0]["location"] == "body, paragraph 4"

    def test_loop_over_non_list(self) -> None:
        template = make_docx("{%p for p in CORSO_ID %}", "x", "{%p endfor %}")
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({"CORSO_ID": "CRS"})
        assert exc_info.value.tags[0]["reason"] == "loop source is not a list"

    def test_unclosed_loop(self) -> None:
        template = make_docx("{%p for p in PARTECIPANTI %}", "{{ p.nome }}")
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({"PARTECIPANTI": []})
        assert exc_info.value.tags[0]["reason"] == "'for' block is never closed"

    def test_endfor_without_for(self) -> None:
        template = make_docx("testo", "{%p endfor %}")
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({})
        assert exc_info.value.tags[0]["reason"] == "'endfor' without matching 'for'"

    def test_malformed_tag(self) -> None:
        template = make_docx("Corso {{ CORSO_ID }", "ok")
        with pytest.raises(RenderError) as exc_info:
            DocxRenderer(template).render({"CORSO_ID": "X"})
        assert exc_info.value.tags[0]["reason"] == "malformed tag"

    def test_empty_list_loop_renders(self) -> None:
        template = make_docx(
            "Prima",
            "{%p for p in PARTECIPANTI %}",
            "{{ p.nome }}",
            "{%p endfor %}",
            "Dopo",
        )
        text = docx_text(DocxRenderer(template).render({"PARTECIPANTI": []}))
        assert "Prima" in text
        assert "Dopo" in text

    def test_check_returns_empty_when_renderable(self, simple_template: bytes) -> None:
        renderer = DocxRenderer(simple_template)
        assert renderer.check({"CORSO_ID": "1", "CORSO_TITOLO": "t"}) == []


# =============================================================================
# Loading / placeholder listing
# =============================================================================


class TestLoad:
    def test_corrupt_bytes(self) -> None:
        with pytest.raises(TemplateLoadError) as exc_info:
            DocxRenderer(b"not a zip", "rotto").render({})
        assert exc_info.value.code == ErrorCodes.TEMPLATE_CORRUPT

    def test_empty_bytes(self) -> None:
        with pytest.raises(TemplateLoadError) as exc_info:
            DocxRenderer(b"", "vuoto")
        assert exc_info.value.code == ErrorCodes.TEMPLATE_NOT_FOUND

    def test_get_placeholders_excludes_loop_vars(self, table_loop_template: bytes) -> None:
        assert DocxRenderer(table_loop_template).get_placeholders() == [
            "CORSO_ID", "PARTECIPANTI",
        ]

    def test_header_tags_are_scanned(self) -> None:
        doc = Document()
        doc.sections[0].header.is_linked_to_previous = False
        doc.sections[0].header.paragraphs[0].text = "{{ ENTE_NOME }}"
        doc.add_paragraph("{{ CORSO_ID }}")
        output = io.BytesIO()
        doc.save(output)

        renderer = DocxRenderer(output.getvalue())
        assert renderer.get_placeholders() == ["CORSO_ID", "ENTE_NOME"]
        problems = renderer.check({"CORSO_ID": "X"})
        assert problems[0]["location"].startswith("header (section 1)")


# =============================================================================
# Scanning
# =============================================================================


@pytest.fixture
def merged_table_template() -> bytes:
    """Table with a merged heading row and an unresolved tag in a body cell."""
    doc = Document()
    table = doc.add_table(rows=3, cols=3)
    table.cell(0, 0).merge(table.cell(0, 2)).text = "{{ CORSO_TITOLO }}"
    table.rows[1].cells[0].text = "{{ CORSO_ID }}"
    table.rows[2].cells[2].text = "{{ NON_ESISTE }}"
    output = io.BytesIO()
    doc.save(output)
    return output.getvalue()


class TestScan:
    def test_scan_is_stable_across_loads(self, table_loop_template: bytes) -> None:
        first = [(t.text, t.location) for t in scan_tags(load_document(table_loop_template))]
        assert "{%tr for p in PARTECIPANTI %}" in [text for text, _ in first]
        assert "{%tr endfor %}" in [text for text, _ in first]

        for _ in range(30):
            again = [(t.text, t.location) for t in scan_tags(load_document(table_loop_template))]
            assert again == first

    def test_register_page_template_scan_is_stable(self) -> None:
        content = build_register_page_template()
        first = DocxRenderer(content).get_placeholders()
        assert "PARTECIPANTI" in first

        for _ in range(30):
            assert DocxRenderer(content).get_placeholders() == first

    def test_merged_cell_scanned_once(self, merged_table_template: bytes) -> None:
        texts = [t.text for t in scan_tags(load_document(merged_table_template))]
        assert texts.count("{{ CORSO_TITOLO }}") == 1

    def test_unresolved_tag_in_table_cell_always_reported(self, merged_table_template: bytes) -> None:
        mapping = {"CORSO_TITOLO": "Sicurezza", "CORSO_ID": "CRS-1"}
        for _ in range(30):
            problems = DocxRenderer(merged_table_template, "tabella").check(mapping)
            assert [p["tag"] for p in problems] == ["{{ NON_ESISTE }}"]
            assert "row 3, cell 3" in problems[0]["location"]
