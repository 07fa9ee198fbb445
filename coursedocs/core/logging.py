"""
Build logging: build log schema, events, warnings

Rules:
- Warning context: level, code, template_id, folder, message
- Every template that produced nothing is listed under `omitted`
- The log never aborts a build: it only records
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from coursedocs.core.files import atomic_write_json
from coursedocs.core.ids import generate_build_id
from coursedocs.domain.schemas import BuildLog, WarningLog

# =============================================================================
# Build Log Management
# =============================================================================


def create_build_log(course_id: str) -> BuildLog:
    """
    Create a new BuildLog.

    Args:
        course_id: Course ID (corso.id)

    Returns:
        initialized BuildLog
    """
    now = datetime.now(UTC).isoformat()

    return BuildLog(
        build_id=generate_build_id(),
        course_id=course_id,
        started_at=now,
        result="pending",
    )


def record_generated(build_log: BuildLog, archive_path: str) -> None:
    """Record a file written into the archive."""
    build_log.generated.append(archive_path)


def record_omitted(build_log: BuildLog, template_id: str, folder: str) -> None:
    """
    Record a template that produced no file.

    Skip and logged failure look the same here; the module logger
    already told them apart (INFO vs ERROR).
    """
    build_log.omitted.append({"template_id": template_id, "folder": folder})


def emit_warning(
    build_log: BuildLog,
    code: str,
    message: str,
    template_id: str = "",
    folder: str = "",
) -> None:
    """
    Record a warning event.

    Args:
        build_log: BuildLog instance
        code: warning code (ErrorCodes)
        message: human readable message
        template_id: template concerned
        folder: archive folder concerned
    """
    warning = WarningLog(
        level="warning",
        code=code,
        template_id=template_id,
        folder=folder,
        message=message,
    )
    build_log.warnings.append(warning)


def complete_build_log(
    build_log: BuildLog,
    success: bool,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    Mark a BuildLog as finished.

    Args:
        build_log: BuildLog instance
        success: outcome
        error_code: error code (on failure)
        error_context: error context (on failure)
    """
    build_log.finished_at = datetime.now(UTC).isoformat()
    build_log.result = "success" if success else "failed"

    if not success:
        build_log.error_code = error_code
        build_log.error_context = error_context


def save_build_log(build_log: BuildLog, logs_dir: Path) -> Path:
    """
    Persist a BuildLog as JSON.

    Args:
        build_log: BuildLog instance
        logs_dir: target directory

    Returns:
        saved file path
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"build_{build_log.build_id}.json"
    atomic_write_json(log_path, build_log.to_dict())
    return log_path
