"""
Word (DOCX) renderer: docxtpl based.

Template syntax (Jinja2 inside the document):
- substitution: {{ CORSO_TITOLO }}
- dot-path into list records: {{ item.nome }}
- loops: {%p for item in PARTECIPANTI %} ... {%p endfor %}
  ({%tr ... %} for table rows, plain {% ... %} inline)

Rules:
- The whole template (body, tables, headers, footers) is checked before
  rendering; every problem is reported at once in a single RenderError
- StrictUndefined stays on as a backstop: an unknown name never renders blank
- Corrupt / non-DOCX bytes → TemplateLoadError
"""

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import jinja2
from docx import Document
from docx.document import Document as DocumentObject
from docx.table import Table
from docx.text.paragraph import Paragraph
from docxtpl import DocxTemplate

from coursedocs.domain.errors import ErrorCodes, RenderError, TemplateLoadError

# =============================================================================
# Tag Scanning
# =============================================================================

TAG_PATTERN = re.compile(r"\{\{(?P<var>.*?)\}\}|\{%(?P<block>.*?)%\}", re.DOTALL)
COMMENT_PATTERN = re.compile(r"\{#.*?#\}", re.DOTALL)
DOCXTPL_PREFIX = re.compile(r"^(?:p|tr|tc|r)\s+")
PATH_PATTERN = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")
FOR_PATTERN = re.compile(r"^for\s+(?P<targets>.+?)\s+in\s+(?P<source>.+?)$", re.DOTALL)
SET_PATTERN = re.compile(r"^set\s+(?P<name>[A-Za-z_]\w*)\s*=")

BLOCK_KEYWORDS = {"for", "endfor", "if", "elif", "else", "endif", "set"}

# Loop variables whose record shape is unknown (empty list, complex source)
_UNCHECKED = object()


@dataclass(frozen=True)
class TagOccurrence:
    """One tag found in the template text."""
    kind: str  # "var" | "block" | "malformed"
    text: str  # tag as written
    expression: str  # inner expression, docxtpl prefix stripped
    location: str
    part: str  # body / header N / footer N (loops never cross parts)


def _clean_expression(raw: str) -> str:
    expr = raw.strip().strip("-").strip()
    return DOCXTPL_PREFIX.sub("", expr, count=1).strip()


def _iter_container(container: Any, location: str) -> Iterator[tuple[str, str]]:
    """(location, text) for every paragraph in a block container, tables included."""
    paragraph_no = 0
    table_no = 0
    for block in container.iter_inner_content():
        if isinstance(block, Paragraph):
            paragraph_no += 1
            yield f"{location}, paragraph {paragraph_no}", block.text
        elif isinstance(block, Table):
            table_no += 1
            yield from _iter_table(block, f"{location}, table {table_no}")


def _iter_table(table: Table, location: str) -> Iterator[tuple[str, str]]:
    # Holds the <w:tc> elements themselves: lxml proxies only keep their
    # identity while referenced. Merged cells repeat in row.cells.
    seen: set[Any] = set()
    for row_no, row in enumerate(table.rows, start=1):
        for cell_no, cell in enumerate(row.cells, start=1):
            if cell._tc in seen:
                continue
            seen.add(cell._tc)
            yield from _iter_container(cell, f"{location} (row {row_no}, cell {cell_no})")


def _iter_parts(document: DocumentObject) -> Iterator[tuple[str, Iterator[tuple[str, str]]]]:
    yield "body", _iter_container(document, "body")
    for section_no, section in enumerate(document.sections, start=1):
        if not section.header.is_linked_to_previous:
            name = f"header (section {section_no})"
            yield name, _iter_container(section.header, name)
        if not section.footer.is_linked_to_previous:
            name = f"footer (section {section_no})"
            yield name, _iter_container(section.footer, name)


def scan_tags(document: DocumentObject) -> list[TagOccurrence]:
    """
    Collect every template tag in document order.

    Text left over once well-formed tags are removed but still holding a
    tag delimiter is reported as a "malformed" occurrence.
    """
    occurrences: list[TagOccurrence] = []

    for part, segments in _iter_parts(document):
        for location, text in segments:
            text = COMMENT_PATTERN.sub("", text)
            if "{" not in text and "}" not in text:
                continue

            for match in TAG_PATTERN.finditer(text):
                raw = match.group("var")
                kind = "var"
                if raw is None:
                    raw = match.group("block")
                    kind = "block"
                occurrences.append(TagOccurrence(
                    kind=kind,
                    text=match.group(0),
                    expression=_clean_expression(raw),
                    location=location,
                    part=part,
                ))

            leftover = TAG_PATTERN.sub("", text)
            for delimiter in ("{{", "}}", "{%", "%}"):
                index = leftover.find(delimiter)
                if index >= 0:
                    snippet = leftover[max(0, index - 10):index + 30].strip()
                    occurrences.append(TagOccurrence(
                        kind="malformed",
                        text=snippet,
                        expression="",
                        location=location,
                        part=part,
                    ))
                    break

    return occurrences


# =============================================================================
# Tag Checking
# =============================================================================

def _resolve(path: str, scopes: list[dict[str, Any]], mapping: dict[str, Any]) -> tuple[bool, Any]:
    root, *attrs = path.split(".")
    for scope in reversed(scopes):
        if root in scope:
            value = scope[root]
            break
    else:
        if root not in mapping:
            return False, None
        value = mapping[root]

    for attr in attrs:
        if value is _UNCHECKED:
            return True, _UNCHECKED
        if isinstance(value, dict) and attr in value:
            value = value[attr]
        else:
            return False, None
    return True, value


def _problem(tag: TagOccurrence, reason: str) -> dict[str, str]:
    return {"tag": tag.text, "location": tag.location, "reason": reason}


def check_tags(occurrences: list[TagOccurrence], mapping: dict[str, Any]) -> list[dict[str, str]]:
    """
    Check scanned tags against a placeholder map.

    Loop variables are scoped to their for/endfor block; a dot-path on a loop
    variable is checked against the first record of the bound list.

    Returns:
        problems as {"tag", "location", "reason"}, empty when renderable
    """
    problems: list[dict[str, str]] = []
    # scopes[0] holds top-level {% set %} names for the current part
    scopes: list[dict[str, Any]] = [{}]
    open_blocks: list[tuple[str, TagOccurrence]] = []
    current_part = None

    def close_part() -> None:
        for keyword, tag in open_blocks:
            problems.append(_problem(tag, f"'{keyword}' block is never closed"))
        open_blocks.clear()
        del scopes[1:]
        scopes[0].clear()

    for tag in occurrences:
        if tag.part != current_part:
            close_part()
            current_part = tag.part

        if tag.kind == "malformed":
            problems.append(_problem(tag, "malformed tag"))
            continue

        if tag.kind == "var":
            expr = tag.expression.split("|", 1)[0].strip()
            if not PATH_PATTERN.match(expr):
                continue  # complex expression: left to StrictUndefined
            found, _ = _resolve(expr, scopes, mapping)
            if not found:
                problems.append(_problem(tag, "unresolved placeholder"))
            continue

        keyword = tag.expression.split(None, 1)[0] if tag.expression else ""
        if keyword not in BLOCK_KEYWORDS:
            problems.append(_problem(tag, f"unknown block tag '{keyword}'"))
            continue

        if keyword == "for":
            match = FOR_PATTERN.match(tag.expression)
            if match is None:
                problems.append(_problem(tag, "malformed loop"))
                # still opened: keeps endfor balanced
                open_blocks.append(("for", tag))
                scopes.append({})
                continue

            targets = [t.strip() for t in match.group("targets").split(",")]
            source = match.group("source").strip()
            sample: Any = _UNCHECKED
            if PATH_PATTERN.match(source):
                found, value = _resolve(source, scopes, mapping)
                if not found:
                    problems.append(_problem(tag, "unresolved placeholder"))
                elif value is not _UNCHECKED and not isinstance(value, (list, tuple)):
                    problems.append(_problem(tag, "loop source is not a list"))
                elif isinstance(value, (list, tuple)) and value and len(targets) == 1:
                    sample = value[0]

            scope = {name: sample if len(targets) == 1 else _UNCHECKED for name in targets}
            scope["loop"] = _UNCHECKED
            scopes.append(scope)
            open_blocks.append(("for", tag))

        elif keyword == "if":
            open_blocks.append(("if", tag))

        elif keyword in ("elif", "else"):
            if not open_blocks:
                problems.append(_problem(tag, f"'{keyword}' outside of a block"))

        elif keyword == "set":
            match = SET_PATTERN.match(tag.expression)
            if match:
                scopes[-1][match.group("name")] = _UNCHECKED

        else:  # endfor / endif
            expected = keyword[3:]
            if not open_blocks or open_blocks[-1][0] != expected:
                problems.append(_problem(tag, f"'{keyword}' without matching '{expected}'"))
                continue
            open_blocks.pop()
            if expected == "for":
                scopes.pop()

    close_part()
    return problems


# =============================================================================
# Renderer
# =============================================================================

def load_document(content: bytes, template_id: str = "") -> DocumentObject:
    """
    Open DOCX bytes with python-docx.

    Raises:
        TemplateLoadError: TEMPLATE_CORRUPT
    """
    try:
        return Document(io.BytesIO(content))
    except Exception as e:
        raise TemplateLoadError(
            ErrorCodes.TEMPLATE_CORRUPT,
            template_id=template_id,
            error=str(e),
        ) from e


class DocxRenderer:
    """
    Word document renderer.

    Usage:
        renderer = DocxRenderer(template_bytes, template_id="registro")
        content = renderer.render(build_placeholder_map(course))

    One instance may render many times: every pass starts from the
    original template bytes.
    """

    def __init__(self, template_bytes: bytes, template_id: str = ""):
        """
        Args:
            template_bytes: DOCX template content
            template_id: used in errors and logs

        Raises:
            TemplateLoadError: TEMPLATE_NOT_FOUND (empty content)
        """
        if not template_bytes:
            raise TemplateLoadError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                template_id=template_id,
            )

        self.template_bytes = template_bytes
        self.template_id = template_id
        self._tags: list[TagOccurrence] | None = None

    def _load_tags(self) -> list[TagOccurrence]:
        """Scan template tags (lazy)."""
        if self._tags is None:
            document = load_document(self.template_bytes, self.template_id)
            self._tags = scan_tags(document)
        return self._tags

    def check(self, mapping: dict[str, Any]) -> list[dict[str, str]]:
        """Problems that would prevent rendering with this mapping."""
        return check_tags(self._load_tags(), mapping)

    def render(self, mapping: dict[str, Any]) -> bytes:
        """
        Fill the template with a placeholder map.

        Args:
            mapping: PlaceholderMap (see render.placeholders)

        Returns:
            rendered DOCX bytes

        Raises:
            TemplateLoadError: TEMPLATE_CORRUPT
            RenderError: UNRESOLVED_PLACEHOLDER, RENDER_FAILED
        """
        problems = self.check(mapping)
        if problems:
            raise RenderError(
                ErrorCodes.UNRESOLVED_PLACEHOLDER,
                tags=problems,
                template_id=self.template_id,
            )

        try:
            doc = DocxTemplate(io.BytesIO(self.template_bytes))
            env = jinja2.Environment(undefined=jinja2.StrictUndefined, autoescape=True)
            doc.render(mapping, jinja_env=env, autoescape=True)

            output = io.BytesIO()
            doc.save(output)
            return output.getvalue()

        except jinja2.UndefinedError as e:
            raise RenderError(
                ErrorCodes.UNRESOLVED_PLACEHOLDER,
                tags=[{"tag": str(e), "location": "template", "reason": "undefined at render time"}],
                template_id=self.template_id,
            ) from e
        except jinja2.TemplateSyntaxError as e:
            raise RenderError(
                ErrorCodes.RENDER_FAILED,
                tags=[{"tag": e.message or "", "location": f"line {e.lineno}", "reason": "syntax error"}],
                template_id=self.template_id,
            ) from e
        except Exception as e:
            raise RenderError(
                ErrorCodes.RENDER_FAILED,
                template_id=self.template_id,
                error=str(e),
            ) from e

    def get_placeholders(self) -> list[str]:
        """
        Top-level names referenced by the template.

        Loop variables are excluded; list sources (e.g. PARTECIPANTI) are kept.

        Returns:
            sorted name list (e.g. ["CORSO_ID", "PARTECIPANTI", ...])
        """
        names: set[str] = set()
        loop_vars: set[str] = {"loop"}

        for tag in self._load_tags():
            if tag.kind == "block":
                match = FOR_PATTERN.match(tag.expression)
                if match:
                    loop_vars.update(t.strip() for t in match.group("targets").split(","))
                    source = match.group("source").strip()
                    if PATH_PATTERN.match(source):
                        names.add(source.split(".", 1)[0])
                continue
            if tag.kind == "var":
                expr = tag.expression.split("|", 1)[0].strip()
                if PATH_PATTERN.match(expr):
                    names.add(expr.split(".", 1)[0])

        return sorted(names - loop_vars)


def render_docx(
    template_bytes: bytes,
    mapping: dict[str, Any],
    template_id: str = "",
) -> bytes:
    """
    Render a Word document (convenience function).

    Args:
        template_bytes: DOCX template content
        mapping: placeholder map
        template_id: used in errors

    Returns:
        rendered DOCX bytes
    """
    renderer = DocxRenderer(template_bytes, template_id)
    return renderer.render(mapping)
