"""
Error definitions for the document engine.

Rules:
- Failures are explicit: every error carries a code + context
- TemplateLoadError / RenderError / AssemblyError → one document omitted
- ArchiveError → whole build aborted
"""

from typing import Any


class CourseDocsError(Exception):
    """
    Base error for the engine.

    Usage:
        raise TemplateLoadError(ErrorCodes.TEMPLATE_CORRUPT, template_id="x", error=str(e))
    """

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """For logs / JSON serialization."""
        return {
            "code": self.code,
            **self.context,
        }


class TemplateLoadError(CourseDocsError):
    """Template source unreachable, missing or not a valid document package."""


class RenderError(CourseDocsError):
    """
    Placeholder substitution failed.

    `tags` lists every offending tag as {"tag", "location", "reason"} so the
    message can be handed to whoever maintains the template.
    """

    def __init__(
        self,
        code: str,
        tags: list[dict[str, str]] | None = None,
        **context: Any,
    ) -> None:
        self.tags = tags or []
        super().__init__(code, **context)

    def _format_message(self) -> str:
        base = super()._format_message()
        if not self.tags:
            return base
        lines = [
            f"  - {t.get('tag', '')} ({t.get('location', '?')}): {t.get('reason', '')}"
            for t in self.tags
        ]
        return base + "\n" + "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "tags": list(self.tags),
        }


class AssemblyError(CourseDocsError):
    """Invalid internal markup met while splicing register pages."""


class ArchiveError(CourseDocsError):
    """Final archive serialization failed. Fatal for the build."""


class TemplateError(CourseDocsError):
    """Stored template management error (invalid id, missing, lock timeout)."""

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.message = message
        super().__init__(code, **context)

    def _format_message(self) -> str:
        return f"[{self.code}] {self.message}"


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Error code constants."""

    # === Template load ===
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_CORRUPT = "TEMPLATE_CORRUPT"
    MANIFEST_INVALID = "MANIFEST_INVALID"

    # === Render ===
    UNRESOLVED_PLACEHOLDER = "UNRESOLVED_PLACEHOLDER"
    RENDER_FAILED = "RENDER_FAILED"

    # === Register assembly ===
    REGISTER_BODY_MISSING = "REGISTER_BODY_MISSING"
    REGISTER_MARKUP_INVALID = "REGISTER_MARKUP_INVALID"
    REGISTER_RELATIONSHIP_MISSING = "REGISTER_RELATIONSHIP_MISSING"

    # === Archive ===
    ARCHIVE_FAILED = "ARCHIVE_FAILED"

    # === Template store ===
    INVALID_TEMPLATE_ID = "INVALID_TEMPLATE_ID"
    TEMPLATE_LOCK_TIMEOUT = "TEMPLATE_LOCK_TIMEOUT"

    # === Build warnings ===
    UNKNOWN_TEMPLATE_ID = "UNKNOWN_TEMPLATE_ID"
    TEMPLATE_OMITTED = "TEMPLATE_OMITTED"
