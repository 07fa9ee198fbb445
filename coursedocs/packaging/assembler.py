"""
Package assembler: course record → one ZIP with every configured document.

Archive layout (default settings):
    {ID_CORSO} - {NOME_CORSO}/
    ├── Documenti/{filename_base}_{course_id}.docx
    ├── Excel/{Registro_Presenze|Partecipanti|Report_Completo|Calendario_Lezioni}_{course_id}.xlsx
    ├── Registri_FAD/Registro_FAD_{DD_MM_YYYY}.docx
    ├── Modulo_5/Calendario_condizionalita_{course_id}_{Cognome}_{Nome}.docx
    ├── Modulo_7/Giorno_{DD-MM-YYYY}/Comunicazione_evento_{DD_MM_YYYY}_{Cognome}_{Nome}.docx
    ├── README.txt
    └── metadata.json

Rules:
- All generators of all enabled folders and all configured bundles run
  concurrently; the archive is serialized only once every result is in
- A generator or bundle returning None → recorded as omitted, the build goes on
- Unknown template or bundle ids → build warning, never an error
- The root and every enabled folder exist in the archive even when empty
- Archive serialization failure → ArchiveError (the only fatal error)
"""

import asyncio
import io
import logging
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from coursedocs.core.config import PackageSettings
from coursedocs.core.ids import sanitize_name
from coursedocs.core.logging import (
    complete_build_log,
    create_build_log,
    emit_warning,
    record_generated,
    record_omitted,
    save_build_log,
)
from coursedocs.domain.constants import METADATA_FILENAME, README_FILENAME
from coursedocs.domain.errors import ArchiveError, ErrorCodes
from coursedocs.domain.schemas import (
    BuildLog,
    CourseData,
    DocumentBundle,
    FolderRule,
    RenderedDocument,
    TemplateDescriptor,
)
from coursedocs.packaging.readme import build_metadata, build_readme
from coursedocs.render.excel import SpreadsheetBuilder
from coursedocs.templates.bundles import default_bundles
from coursedocs.templates.registry import TemplateRegistry

logger = logging.getLogger(__name__)

STANDARD_REPORTS_ID = "standard_reports"


# =============================================================================
# Naming
# =============================================================================

def course_key(course: CourseData) -> str:
    """Sanitized course id used in every output filename."""
    return sanitize_name(course.corso.id) or "corso"


def title_key(course: CourseData) -> str:
    return sanitize_name(course.corso.titolo) or "senza_titolo"


def root_folder_name(pattern: str, course: CourseData) -> str:
    """
    Root folder from the configured pattern.

    {ID_CORSO} → sanitized course id, {NOME_CORSO} → sanitized title.
    """
    return (
        pattern.replace("{ID_CORSO}", course_key(course))
        .replace("{NOME_CORSO}", title_key(course))
    )


def archive_filename(course: CourseData, now: datetime, include_timestamp: bool = True) -> str:
    """Corso_{id}_{title}[_{YYYYMMDD}].zip"""
    name = f"Corso_{course_key(course)}_{title_key(course)}"
    if include_timestamp:
        name += f"_{now.strftime('%Y%m%d')}"
    return f"{name}.zip"


# =============================================================================
# Result
# =============================================================================

@dataclass
class PackageResult:
    """Finished archive plus the build log that produced it."""
    filename: str
    content: bytes
    build_log: BuildLog


@dataclass
class _Job:
    folder: FolderRule
    descriptor: TemplateDescriptor


# =============================================================================
# Assembler
# =============================================================================

class PackageAssembler:
    """
    Builds the course package.

    Usage:
        assembler = PackageAssembler(registry, settings)
        result = await assembler.build(course)
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        settings: PackageSettings,
        spreadsheet_builder_factory: Callable[[CourseData], SpreadsheetBuilder] = SpreadsheetBuilder,
        logs_dir: Path | None = None,
        bundles: list[DocumentBundle] | None = None,
    ):
        self.registry = registry
        self.settings = settings
        self.spreadsheet_builder_factory = spreadsheet_builder_factory
        self.logs_dir = logs_dir
        self.bundles = default_bundles() if bundles is None else bundles

    async def build(self, course: CourseData, now: datetime | None = None) -> PackageResult:
        """
        Generate every document and serialize the archive.

        Args:
            course: validated course record (never mutated)
            now: build timestamp (default: current local time)

        Returns:
            PackageResult

        Raises:
            ArchiveError: ARCHIVE_FAILED
        """
        now = now or datetime.now()
        build_log = create_build_log(course.corso.id)
        root = root_folder_name(self.settings.root_folder_pattern, course)
        key = course_key(course)
        logger.info(f"Build {build_log.build_id} started for course '{course.corso.id}'")

        jobs = self._plan(build_log)
        bundles = self._plan_bundles(build_log)
        report_folders = [f for f in self.settings.enabled_folders if f.accepts("xlsx")]

        results, bundle_results = await asyncio.gather(
            asyncio.gather(*(job.descriptor.generator(course) for job in jobs)),
            asyncio.gather(*(bundle.producer(course) for bundle in bundles)),
        )
        reports = await self._standard_reports(course, build_log) if report_folders else []

        entries: dict[str, bytes] = {}
        for job, document in zip(jobs, results, strict=True):
            if document is None:
                record_omitted(build_log, job.descriptor.template_id, job.folder.name)
                continue
            filename = f"{job.descriptor.filename_base}_{key}{document.extension}"
            self._add(
                entries, build_log, f"{job.folder.name}/{filename}", document,
                job.descriptor.template_id, job.folder.name,
            )

        for folder in report_folders:
            for document in reports:
                self._add(
                    entries, build_log, f"{folder.name}/{document.filename}", document,
                    STANDARD_REPORTS_ID, folder.name,
                )

        for bundle, documents in zip(bundles, bundle_results, strict=True):
            if documents is None:
                record_omitted(build_log, bundle.bundle_id, bundle.folder)
                continue
            for document in documents:
                self._add(
                    entries, build_log, f"{bundle.folder}/{document.filename}", document,
                    bundle.bundle_id, bundle.folder,
                )

        root_files = [
            name
            for name, enabled in (
                (README_FILENAME, self.settings.generate_readme),
                (METADATA_FILENAME, self.settings.generate_metadata),
            )
            if enabled
        ]
        if self.settings.generate_readme:
            readme = build_readme(course, now, list(entries), root_files)
            entries[README_FILENAME] = readme.encode("utf-8")
        if self.settings.generate_metadata:
            summary = {
                "build_id": build_log.build_id,
                "started_at": build_log.started_at,
                "generated": list(build_log.generated),
                "omitted": [dict(o) for o in build_log.omitted],
                "warnings": [w.to_dict() for w in build_log.warnings],
            }
            entries[METADATA_FILENAME] = build_metadata(course, now, summary).encode("utf-8")

        filename = archive_filename(course, now, self.settings.include_timestamp)
        try:
            content = self._serialize(
                root, entries, [f.name for f in self.settings.enabled_folders]
            )
        except ArchiveError as e:
            complete_build_log(build_log, False, e.code, e.context)
            self._save_log(build_log)
            raise

        complete_build_log(build_log, True)
        self._save_log(build_log)
        logger.info(
            f"Build {build_log.build_id} finished: {len(build_log.generated)} files, "
            f"{len(build_log.omitted)} omitted, {len(build_log.warnings)} warnings"
        )
        return PackageResult(filename=filename, content=content, build_log=build_log)

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _plan(self, build_log: BuildLog) -> list[_Job]:
        """Resolve assigned template ids of every enabled folder."""
        jobs = []
        for folder in self.settings.enabled_folders:
            for template_id in folder.assigned_templates:
                descriptor = self.registry.resolve(template_id)
                if descriptor is None:
                    logger.warning(f"Unknown template '{template_id}' in folder '{folder.name}'")
                    emit_warning(
                        build_log,
                        ErrorCodes.UNKNOWN_TEMPLATE_ID,
                        f"Template '{template_id}' is not registered",
                        template_id=template_id,
                        folder=folder.name,
                    )
                    continue
                if not folder.accepts(descriptor.output_kind):
                    emit_warning(
                        build_log,
                        ErrorCodes.TEMPLATE_OMITTED,
                        f"Folder does not accept '{descriptor.output_kind}' files",
                        template_id=template_id,
                        folder=folder.name,
                    )
                    continue
                jobs.append(_Job(folder=folder, descriptor=descriptor))
        return jobs

    def _plan_bundles(self, build_log: BuildLog) -> list[DocumentBundle]:
        """Configured bundles in settings order; unknown ids become warnings."""
        known = {bundle.bundle_id: bundle for bundle in self.bundles}
        planned = []
        for bundle_id in dict.fromkeys(self.settings.bundles):
            bundle = known.get(bundle_id)
            if bundle is None:
                logger.warning(f"Unknown bundle '{bundle_id}'")
                emit_warning(
                    build_log,
                    ErrorCodes.UNKNOWN_TEMPLATE_ID,
                    f"Bundle '{bundle_id}' is not registered",
                    template_id=bundle_id,
                    folder="",
                )
                continue
            planned.append(bundle)
        return planned

    async def _standard_reports(
        self,
        course: CourseData,
        build_log: BuildLog,
    ) -> list[RenderedDocument]:
        builder = self.spreadsheet_builder_factory(course)
        try:
            return await asyncio.to_thread(builder.build_standard_reports)
        except Exception:
            logger.exception(f"Standard spreadsheets failed for course '{course.corso.id}'")
            record_omitted(build_log, STANDARD_REPORTS_ID, "")
            return []

    def _add(
        self,
        entries: dict[str, bytes],
        build_log: BuildLog,
        path: str,
        document: RenderedDocument,
        template_id: str,
        folder: str,
    ) -> None:
        if path in entries:
            emit_warning(
                build_log,
                ErrorCodes.TEMPLATE_OMITTED,
                f"Duplicate archive path '{path}'",
                template_id=template_id,
                folder=folder,
            )
            return
        entries[path] = document.content
        record_generated(build_log, path)

    def _serialize(self, root: str, entries: dict[str, bytes], folders: list[str]) -> bytes:
        """
        Write all entries under the root folder into one DEFLATED ZIP.

        The root and every enabled folder get a directory entry even when
        nothing was generated into them.

        Raises:
            ArchiveError: ARCHIVE_FAILED
        """
        directories = [root] + [f"{root}/{name}" for name in folders]
        for path in entries:
            parts = f"{root}/{path}".split("/")[:-1]
            directories.extend("/".join(parts[:i]) for i in range(1, len(parts) + 1))

        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
                for directory in dict.fromkeys(directories):
                    zf.mkdir(directory)
                for path, content in entries.items():
                    zf.writestr(f"{root}/{path}", content)
        except Exception as e:
            raise ArchiveError(
                ErrorCodes.ARCHIVE_FAILED,
                root=root,
                error=str(e),
            ) from e
        return buffer.getvalue()

    def _save_log(self, build_log: BuildLog) -> None:
        if self.logs_dir is not None:
            save_build_log(build_log, self.logs_dir)
