"""
Attendance register assembler: one head page + one page per in-person session.

A full-page layout with its own header/footer cannot repeat through a
template loop, so every session page is rendered on its own from a
single-page template and spliced into the head document at XML level.

Rules:
- Page count = 1 + number of in-person sessions (one page break per session)
- Session pages follow chronological order (DD/MM/YYYY); one unparsable
  date keeps the extraction order for the whole set
- Only word/document.xml of the head package is replaced
- Any load/render/splice failure abandons the whole register (None), never
  the package
"""

import io
import logging
import zipfile
from collections.abc import Callable
from typing import Any

from lxml import etree

from coursedocs.core.dates import italian_month_name, italian_weekday_name, parse_italian_date
from coursedocs.domain.errors import (
    AssemblyError,
    ErrorCodes,
    RenderError,
    TemplateLoadError,
)
from coursedocs.domain.schemas import CourseData, Session
from coursedocs.render.placeholders import build_placeholder_map
from coursedocs.render.word import DocxRenderer

logger = logging.getLogger(__name__)

# XML namespaces
_NS_W = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
_NS_R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_NS_REL = "http://schemas.openxmlformats.org/package/2006/relationships"

DOCUMENT_PART = "word/document.xml"
DOCUMENT_RELS_PART = "word/_rels/document.xml.rels"

RendererFactory = Callable[[bytes, str], DocxRenderer]


# =============================================================================
# Session ordering / placeholders
# =============================================================================

def sort_sessions_chronologically(sessions: list[Session]) -> list[Session]:
    """Sort by date; if any date is unparsable keep the given order."""
    dates = [parse_italian_date(s.data_completa) for s in sessions]
    if any(d is None for d in dates):
        return list(sessions)
    order = sorted(range(len(sessions)), key=lambda i: dates[i])
    return [sessions[i] for i in order]


def session_placeholders(session: Session, page_number: int) -> dict[str, Any]:
    """
    SESSIONE_* keys for one register page.

    Calendar names come from the parsed date when it is valid, otherwise
    from the extracted session fields.
    """
    day = parse_italian_date(session.data_completa)
    if day is not None:
        giorno = f"{day.day:02d}"
        mese = italian_month_name(day.month)
        mese_numero = f"{day.month:02d}"
        anno = str(day.year)
        giorno_settimana = italian_weekday_name(day)
    else:
        giorno = session.giorno
        mese = session.mese
        mese_numero = session.mese_numero
        anno = session.anno
        giorno_settimana = session.giorno_settimana

    return {
        "SESSIONE_DATA": session.data_completa,
        "SESSIONE_GIORNO": giorno,
        "SESSIONE_MESE": mese,
        "SESSIONE_MESE_NUMERO": mese_numero,
        "SESSIONE_ANNO": anno,
        "SESSIONE_GIORNO_SETTIMANA": giorno_settimana,
        "SESSIONE_ORA_INIZIO": session.ora_inizio_giornata,
        "SESSIONE_ORA_FINE": session.ora_fine_giornata,
        "SESSIONE_SEDE": session.sede,
        "PAGINA": page_number,
    }


# =============================================================================
# Package / XML helpers
# =============================================================================

def _read_part(package: bytes, name: str) -> bytes:
    try:
        with zipfile.ZipFile(io.BytesIO(package), "r") as z:
            return z.read(name)
    except (zipfile.BadZipFile, KeyError) as e:
        raise AssemblyError(
            ErrorCodes.REGISTER_MARKUP_INVALID,
            part=name,
            error=str(e),
        ) from e


def _parse_xml(raw: bytes, part: str) -> etree._Element:
    try:
        return etree.fromstring(raw)
    except etree.XMLSyntaxError as e:
        raise AssemblyError(
            ErrorCodes.REGISTER_MARKUP_INVALID,
            part=part,
            error=str(e),
        ) from e


def _find_body(root: etree._Element, part: str) -> etree._Element:
    body = root.find(f"{{{_NS_W}}}body")
    if body is None:
        raise AssemblyError(ErrorCodes.REGISTER_BODY_MISSING, part=part)
    return body


def _relationships(package: bytes) -> dict[str, tuple[str, str]]:
    """rId → (Type, Target) of the main document part."""
    try:
        with zipfile.ZipFile(io.BytesIO(package), "r") as z:
            if DOCUMENT_RELS_PART not in z.namelist():
                return {}
            raw = z.read(DOCUMENT_RELS_PART)
    except zipfile.BadZipFile as e:
        raise AssemblyError(
            ErrorCodes.REGISTER_MARKUP_INVALID,
            part=DOCUMENT_RELS_PART,
            error=str(e),
        ) from e

    root = _parse_xml(raw, DOCUMENT_RELS_PART)
    rels: dict[str, tuple[str, str]] = {}
    for rel in root.iter(f"{{{_NS_REL}}}Relationship"):
        rels[rel.get("Id", "")] = (rel.get("Type", ""), rel.get("Target", ""))
    return rels


def _page_break_paragraph() -> etree._Element:
    paragraph = etree.Element(f"{{{_NS_W}}}p")
    run = etree.SubElement(paragraph, f"{{{_NS_W}}}r")
    br = etree.SubElement(run, f"{{{_NS_W}}}br")
    br.set(f"{{{_NS_W}}}type", "page")
    return paragraph


def _content_nodes(body: etree._Element) -> list[etree._Element]:
    """Body block children without the trailing section properties."""
    return [child for child in body if child.tag != f"{{{_NS_W}}}sectPr"]


def _check_relationships(
    nodes: list[etree._Element],
    page_rels: dict[str, tuple[str, str]],
    head_rels: dict[str, tuple[str, str]],
    page_number: int,
) -> None:
    """Every r:* reference in a page fragment must mean the same thing in the head."""
    prefix = f"{{{_NS_R}}}"
    missing: list[str] = []
    for node in nodes:
        for element in node.iter():
            for attr, value in element.attrib.items():
                if not attr.startswith(prefix):
                    continue
                if value not in head_rels or head_rels[value] != page_rels.get(value):
                    missing.append(value)

    if missing:
        raise AssemblyError(
            ErrorCodes.REGISTER_RELATIONSHIP_MISSING,
            page=page_number,
            relationship_ids=sorted(set(missing)),
        )


def splice_pages(head: bytes, pages: list[bytes]) -> bytes:
    """
    Splice rendered page documents into the head document.

    Each page's block content goes before the head body's final w:sectPr,
    preceded by a page-break paragraph.

    Args:
        head: rendered head DOCX
        pages: rendered page DOCX list, already in page order

    Returns:
        head package with word/document.xml replaced

    Raises:
        AssemblyError: REGISTER_BODY_MISSING, REGISTER_MARKUP_INVALID,
            REGISTER_RELATIONSHIP_MISSING
    """
    head_root = _parse_xml(_read_part(head, DOCUMENT_PART), DOCUMENT_PART)
    head_body = _find_body(head_root, DOCUMENT_PART)
    head_rels = _relationships(head)

    sect_pr = head_body.find(f"{{{_NS_W}}}sectPr")

    for page_number, page in enumerate(pages, start=2):
        page_root = _parse_xml(_read_part(page, DOCUMENT_PART), DOCUMENT_PART)
        page_body = _find_body(page_root, DOCUMENT_PART)
        nodes = _content_nodes(page_body)
        _check_relationships(nodes, _relationships(page), head_rels, page_number)

        for node in [_page_break_paragraph(), *nodes]:
            if sect_pr is not None:
                sect_pr.addprevious(node)
            else:
                head_body.append(node)

    document_xml = etree.tostring(
        head_root, xml_declaration=True, encoding="UTF-8", standalone=True
    )
    return _replace_part(head, DOCUMENT_PART, document_xml)


def _replace_part(package: bytes, name: str, content: bytes) -> bytes:
    output = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(package), "r") as zin, \
            zipfile.ZipFile(output, "w", zipfile.ZIP_DEFLATED) as zout:
        for item in zin.infolist():
            data = content if item.filename == name else zin.read(item.filename)
            zout.writestr(item, data, compress_type=zipfile.ZIP_DEFLATED)
    return output.getvalue()


# =============================================================================
# Assembler
# =============================================================================

class RegisterAssembler:
    """
    Multi-page register builder.

    Usage:
        assembler = RegisterAssembler(head_bytes, page_bytes)
        content = assembler.assemble(course)
    """

    def __init__(
        self,
        head_template: bytes,
        page_template: bytes,
        renderer_factory: RendererFactory = DocxRenderer,
        template_id: str = "registro_presenze",
    ):
        self.template_id = template_id
        self._head = renderer_factory(head_template, f"{template_id}:head")
        self._page = renderer_factory(page_template, f"{template_id}:page")

    def assemble(self, course: CourseData) -> bytes:
        """
        Render head + session pages and splice them into one DOCX.

        Raises:
            TemplateLoadError, RenderError, AssemblyError
        """
        head = self._head.render(build_placeholder_map(course))

        sessions = sort_sessions_chronologically(course.in_person_sessions)
        pages: list[bytes] = []
        for page_number, session in enumerate(sessions, start=2):
            mapping = build_placeholder_map(course)
            mapping.update(session_placeholders(session, page_number))
            pages.append(self._page.render(mapping))

        return splice_pages(head, pages)


def build_register(
    course: CourseData,
    head_template: bytes,
    page_template: bytes,
    template_id: str = "registro_presenze",
) -> bytes | None:
    """
    Register generation with the single-document failure boundary.

    Returns:
        DOCX bytes, or None when the register was abandoned (logged)
    """
    try:
        assembler = RegisterAssembler(head_template, page_template, template_id=template_id)
        return assembler.assemble(course)
    except RenderError as e:
        logger.error(
            f"Register '{template_id}' abandoned for course '{course.corso.id}': "
            f"{e.code} tags={e.tags}"
        )
        return None
    except (TemplateLoadError, AssemblyError) as e:
        logger.error(
            f"Register '{template_id}' abandoned for course '{course.corso.id}': {e.to_dict()}"
        )
        return None
