"""
Template registry: template id → generator, whatever the template source.

Sources (registered in this order by create_default_registry):
1. builtin  - documents generated in code, default register/certificates
2. bundled  - DOCX files listed in templates/manifest.yaml
3. stored   - administrator uploads (TemplateManager)

Rules:
- Generator contract: async (CourseData) → RenderedDocument | None, never raises
- None covers both "nothing to produce" and "failed"; only the log tells
  them apart (INFO for a skip, ERROR with template id and tags for a failure)
- Same id in two sources: the source registered later wins, logged at INFO
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import yaml

from coursedocs.domain.constants import DOCX_MIME
from coursedocs.domain.errors import (
    CourseDocsError,
    ErrorCodes,
    RenderError,
    TemplateLoadError,
)
from coursedocs.domain.schemas import (
    CourseData,
    Generator,
    RenderedDocument,
    TemplateDescriptor,
    TemplateSourceKind,
)
from coursedocs.render import builtin
from coursedocs.render.placeholders import build_placeholder_map
from coursedocs.render.register import build_register
from coursedocs.render.word import DocxRenderer
from coursedocs.templates import scaffolder
from coursedocs.templates.manager import TemplateManager

logger = logging.getLogger(__name__)

Work = Callable[[CourseData], Awaitable[bytes | None]]


# =============================================================================
# Generator wrapping
# =============================================================================

def safe_generator(template_id: str, filename_base: str, work: Work) -> Generator:
    """
    Wrap document work into a generator that never raises.

    Args:
        template_id: used in logs
        filename_base: output name without extension
        work: coroutine producing DOCX bytes, or None for a skip

    Returns:
        generator honoring the registry contract
    """

    async def generator(course: CourseData) -> RenderedDocument | None:
        try:
            content = await work(course)
        except RenderError as e:
            logger.error(
                f"Template '{template_id}' failed for course '{course.corso.id}': "
                f"{e.code} tags={e.tags}"
            )
            return None
        except CourseDocsError as e:
            logger.error(
                f"Template '{template_id}' failed for course '{course.corso.id}': {e.to_dict()}"
            )
            return None
        except Exception:
            logger.exception(
                f"Template '{template_id}' failed unexpectedly for course '{course.corso.id}'"
            )
            return None

        if content is None:
            logger.info(f"Template '{template_id}' produced no document for course '{course.corso.id}'")
            return None

        return RenderedDocument(
            filename=f"{filename_base}.docx",
            content=content,
            mime_type=DOCX_MIME,
        )

    return generator


def _descriptor(
    template_id: str,
    display_name: str,
    filename_base: str,
    source: TemplateSourceKind,
    work: Work,
) -> TemplateDescriptor:
    return TemplateDescriptor(
        template_id=template_id,
        display_name=display_name,
        filename_base=filename_base,
        generator=safe_generator(template_id, filename_base, work),
        source=source,
        output_kind="docx",
    )


async def _render_template(template_id: str, content: bytes, course: CourseData) -> bytes:
    renderer = DocxRenderer(content, template_id)
    return await asyncio.to_thread(renderer.render, build_placeholder_map(course))


async def _assemble_register(
    template_id: str,
    head: bytes,
    page: bytes,
    course: CourseData,
) -> bytes | None:
    """Register through its own failure boundary: None when abandoned (logged there)."""
    return await asyncio.to_thread(build_register, course, head, page, template_id)


# =============================================================================
# Sources
# =============================================================================

class TemplateSource(Protocol):
    """One capability: list the templates it can produce."""

    kind: TemplateSourceKind

    def descriptors(self) -> list[TemplateDescriptor]:
        ...


@dataclass
class DefaultTemplates:
    """Scaffolded DOCX templates used by the built-in source."""
    register_head: bytes
    register_page: bytes
    certificate: bytes

    @classmethod
    def build(cls) -> "DefaultTemplates":
        return cls(
            register_head=scaffolder.build_register_head_template(),
            register_page=scaffolder.build_register_page_template(),
            certificate=scaffolder.build_certificate_template(),
        )


class BuiltinTemplateSource:
    """Documents generated in code plus the default register and certificates."""

    kind = TemplateSourceKind.BUILTIN

    def __init__(self, defaults: DefaultTemplates | None = None):
        self._defaults = defaults

    def _get_defaults(self) -> DefaultTemplates:
        """Scaffold the default templates (lazy)."""
        if self._defaults is None:
            self._defaults = DefaultTemplates.build()
        return self._defaults

    def descriptors(self) -> list[TemplateDescriptor]:
        programmatic: list[tuple[str, str, str, Callable[[CourseData], bytes | None]]] = [
            ("registro_didattico", "Registro Didattico e Presenze", "Registro_Didattico",
             builtin.build_registro_didattico),
            ("verbale_partecipazione", "Verbale di Partecipazione", "Verbale_Partecipazione",
             builtin.build_verbale_partecipazione),
            ("verbale_scrutinio", "Verbale di Scrutinio", "Verbale_Scrutinio",
             builtin.build_verbale_scrutinio),
            ("verbale_ammissione", "Verbale di Ammissione all'Esame", "Verbale_Ammissione_Esame",
             builtin.build_verbale_ammissione),
            ("modello_a_fad", "Modello A FAD", "Modello_A_FAD",
             builtin.build_modello_fad),
        ]

        descriptors = []
        for template_id, name, filename_base, build in programmatic:

            async def work(course: CourseData, build=build) -> bytes | None:
                return await asyncio.to_thread(build, course)

            descriptors.append(
                _descriptor(template_id, name, filename_base, self.kind, work)
            )

        async def register_work(course: CourseData) -> bytes | None:
            defaults = await asyncio.to_thread(self._get_defaults)
            return await _assemble_register(
                "registro_presenze", defaults.register_head, defaults.register_page, course
            )

        async def certificate_work(course: CourseData) -> bytes | None:
            defaults = await asyncio.to_thread(self._get_defaults)
            return await asyncio.to_thread(
                builtin.build_certificates, course, defaults.certificate
            )

        descriptors.append(_descriptor(
            "registro_presenze", "Registro Presenze", "Registro_Presenze",
            self.kind, register_work,
        ))
        descriptors.append(_descriptor(
            "attestati", "Attestati di Partecipazione", "Attestati",
            self.kind, certificate_work,
        ))
        return descriptors


def load_manifest(manifest_path: Path) -> list[dict[str, Any]]:
    """
    Read templates/manifest.yaml.

    Entry keys: id, name, filename, path; or kind: register with head/page.

    Returns:
        validated entries (empty when the file does not exist)

    Raises:
        TemplateLoadError: MANIFEST_INVALID
    """
    if not manifest_path.exists():
        return []

    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TemplateLoadError(
            ErrorCodes.MANIFEST_INVALID,
            path=str(manifest_path),
            error=str(e),
        ) from e

    entries = data.get("templates") or [] if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise TemplateLoadError(
            ErrorCodes.MANIFEST_INVALID,
            path=str(manifest_path),
            error="'templates' must be a list",
        )

    for index, entry in enumerate(entries):
        required = ["id", "head", "page"] if (
            isinstance(entry, dict) and entry.get("kind") == "register"
        ) else ["id", "path"]
        if not isinstance(entry, dict) or any(not entry.get(k) for k in required):
            raise TemplateLoadError(
                ErrorCodes.MANIFEST_INVALID,
                path=str(manifest_path),
                entry=index,
                required=required,
            )
    return entries


class BundledTemplateSource:
    """DOCX files shipped with the application, listed in a manifest."""

    kind = TemplateSourceKind.BUNDLED

    def __init__(self, manifest_path: Path):
        self.manifest_path = manifest_path
        self.base_dir = manifest_path.parent

    async def _read(self, template_id: str, relative: str) -> bytes:
        path = self.base_dir / relative
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise TemplateLoadError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                template_id=template_id,
                path=str(path),
                error=str(e),
            ) from e

    def descriptors(self) -> list[TemplateDescriptor]:
        descriptors = []
        for entry in load_manifest(self.manifest_path):
            template_id = str(entry["id"])
            name = str(entry.get("name") or template_id)
            filename_base = str(entry.get("filename") or template_id)

            if entry.get("kind") == "register":

                async def work(course: CourseData, tid=template_id, entry=entry) -> bytes | None:
                    head = await self._read(tid, str(entry["head"]))
                    page = await self._read(tid, str(entry["page"]))
                    return await _assemble_register(tid, head, page, course)

            else:

                async def work(course: CourseData, tid=template_id, entry=entry) -> bytes:
                    content = await self._read(tid, str(entry["path"]))
                    return await _render_template(tid, content, course)

            descriptors.append(_descriptor(template_id, name, filename_base, self.kind, work))
        return descriptors


class StoredTemplateSource:
    """Administrator-uploaded templates held by TemplateManager."""

    kind = TemplateSourceKind.STORED

    def __init__(self, manager: TemplateManager):
        self.manager = manager

    def descriptors(self) -> list[TemplateDescriptor]:
        descriptors = []
        for meta in self.manager.list_templates():

            async def work(course: CourseData, tid=meta.template_id) -> bytes:
                content = await asyncio.to_thread(self.manager.load_bytes, tid)
                return await _render_template(tid, content, course)

            descriptors.append(_descriptor(
                meta.template_id, meta.display_name, meta.filename_base, self.kind, work
            ))
        return descriptors


# =============================================================================
# Registry
# =============================================================================

class TemplateRegistry:
    """
    Uniform template lookup.

    Usage:
        registry = TemplateRegistry()
        registry.register_source(BuiltinTemplateSource())
        descriptor = registry.resolve("registro_didattico")
        document = await descriptor.generator(course)
    """

    def __init__(self) -> None:
        self._sources: list[TemplateSource] = []
        self._descriptors: dict[str, TemplateDescriptor] = {}

    def register_source(self, source: TemplateSource) -> None:
        """Add a source; its templates override earlier ones with the same id."""
        self._sources.append(source)
        self._index(source)

    def _index(self, source: TemplateSource) -> None:
        for descriptor in source.descriptors():
            previous = self._descriptors.get(descriptor.template_id)
            if previous is not None:
                logger.info(
                    f"Template '{descriptor.template_id}' from {descriptor.source.value} "
                    f"overrides {previous.source.value}"
                )
            self._descriptors[descriptor.template_id] = descriptor

    def refresh(self) -> None:
        """Re-read every source in registration order (after uploads/deletes)."""
        self._descriptors = {}
        for source in self._sources:
            self._index(source)

    def resolve(self, template_id: str) -> TemplateDescriptor | None:
        return self._descriptors.get(template_id)

    def descriptors(self) -> list[TemplateDescriptor]:
        return list(self._descriptors.values())

    def ids(self) -> list[str]:
        return list(self._descriptors)


def create_default_registry(
    manifest_path: Path | None = None,
    manager: TemplateManager | None = None,
    defaults: DefaultTemplates | None = None,
) -> TemplateRegistry:
    """Registry with builtin → bundled → stored sources."""
    registry = TemplateRegistry()
    registry.register_source(BuiltinTemplateSource(defaults))
    if manifest_path is not None:
        registry.register_source(BundledTemplateSource(manifest_path))
    if manager is not None:
        registry.register_source(StoredTemplateSource(manager))
    return registry
