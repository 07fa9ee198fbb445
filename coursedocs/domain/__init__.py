"""Domain layer: errors, schemas and constants."""

from .errors import (
    ArchiveError,
    AssemblyError,
    CourseDocsError,
    ErrorCodes,
    RenderError,
    TemplateError,
    TemplateLoadError,
)
from .schemas import (
    BuildLog,
    CourseData,
    FolderRule,
    RenderedDocument,
    TemplateDescriptor,
    TemplateSourceKind,
)

__all__ = [
    "CourseDocsError",
    "TemplateLoadError",
    "RenderError",
    "AssemblyError",
    "ArchiveError",
    "TemplateError",
    "ErrorCodes",
    "CourseData",
    "RenderedDocument",
    "TemplateDescriptor",
    "TemplateSourceKind",
    "FolderRule",
    "BuildLog",
]
