"""
Template manager: administrator-stored DOCX templates.

Rules:
- template_id naming: lowercase, digits, underscores; at most 50 characters
- Uploaded bytes must open as a DOCX (checked before anything is written)
- Every write/delete of one template holds that template's file lock
- Saving an existing id replaces its document; created_at/created_by kept
"""

import json
import re
import shutil
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from coursedocs.core.files import atomic_write_bytes, atomic_write_json
from coursedocs.domain.constants import (
    STORED_TEMPLATE_FILENAME,
    STORED_TEMPLATES_DIR,
    TEMPLATE_META_FILENAME,
)
from coursedocs.domain.errors import ErrorCodes, TemplateError
from coursedocs.render.word import DocxRenderer, load_document

# =============================================================================
# Constants
# =============================================================================

# template_id naming rules
TEMPLATE_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_]*[a-z0-9]$")
TEMPLATE_ID_MAX_LENGTH = 50
FORBIDDEN_CHARS = set('/\\:*?"<>| ')


# =============================================================================
# Validation
# =============================================================================

def validate_template_id(template_id: str) -> None:
    """
    Validate a template_id.

    Rules:
    - lowercase letters, digits, underscores only
    - starts and ends with a letter or digit
    - at most 50 characters
    - forbidden: / \\ : * ? " < > | space

    Args:
        template_id: ID to check

    Raises:
        TemplateError: INVALID_TEMPLATE_ID
    """
    if not template_id:
        raise TemplateError(
            ErrorCodes.INVALID_TEMPLATE_ID,
            "template_id cannot be empty",
        )

    if len(template_id) > TEMPLATE_ID_MAX_LENGTH:
        raise TemplateError(
            ErrorCodes.INVALID_TEMPLATE_ID,
            f"template_id exceeds {TEMPLATE_ID_MAX_LENGTH} characters",
            length=len(template_id),
        )

    found_forbidden = set(template_id) & FORBIDDEN_CHARS
    if found_forbidden:
        raise TemplateError(
            ErrorCodes.INVALID_TEMPLATE_ID,
            f"template_id contains forbidden characters: {sorted(found_forbidden)}",
            forbidden=sorted(found_forbidden),
        )

    if not TEMPLATE_ID_PATTERN.match(template_id):
        raise TemplateError(
            ErrorCodes.INVALID_TEMPLATE_ID,
            "template_id must be lowercase alphanumeric with underscores, "
            "start/end with alphanumeric",
            pattern=TEMPLATE_ID_PATTERN.pattern,
        )


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class StoredTemplateMeta:
    """Stored template metadata (meta.json)."""
    template_id: str
    display_name: str
    filename_base: str

    created_at: str = ""
    created_by: str = ""
    updated_at: str = ""

    placeholders: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "display_name": self.display_name,
            "filename_base": self.filename_base,
            "created_at": self.created_at,
            "created_by": self.created_by,
            "updated_at": self.updated_at,
            "placeholders": list(self.placeholders),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoredTemplateMeta":
        return cls(
            template_id=data["template_id"],
            display_name=data.get("display_name", data["template_id"]),
            filename_base=data.get("filename_base", data["template_id"]),
            created_at=data.get("created_at", ""),
            created_by=data.get("created_by", ""),
            updated_at=data.get("updated_at", ""),
            placeholders=list(data.get("placeholders", [])),
        )


# =============================================================================
# Template Manager
# =============================================================================

class TemplateManager:
    """
    Stored template CRUD.

    Layout:
    templates/stored/<template_id>/
    ├── template.docx
    └── meta.json
    """

    # lock timeout (seconds)
    LOCK_TIMEOUT = 10.0

    def __init__(self, templates_root: Path):
        """
        Args:
            templates_root: templates/ root path
        """
        self.templates_root = templates_root
        self.stored_dir = templates_root / STORED_TEMPLATES_DIR
        self._locks_dir = templates_root / ".locks"

    @contextmanager
    def _template_lock(self, template_id: str) -> Generator[None, None, None]:
        """
        Per-template lock.

        Raises:
            TemplateError: TEMPLATE_LOCK_TIMEOUT
        """
        self._locks_dir.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self._locks_dir / f"{template_id}.lock", timeout=self.LOCK_TIMEOUT)

        try:
            lock.acquire()
        except Timeout as e:
            raise TemplateError(
                ErrorCodes.TEMPLATE_LOCK_TIMEOUT,
                f"Failed to acquire lock for template '{template_id}'",
                template_id=template_id,
                timeout=self.LOCK_TIMEOUT,
            ) from e

        try:
            yield
        finally:
            lock.release()

    # =========================================================================
    # Write
    # =========================================================================

    def save(
        self,
        template_id: str,
        display_name: str,
        content: bytes,
        filename_base: str | None = None,
        created_by: str = "",
    ) -> StoredTemplateMeta:
        """
        Store (or replace) a template.

        Args:
            template_id: template ID
            display_name: name shown to administrators
            content: DOCX bytes
            filename_base: output filename base (default: template_id)
            created_by: uploader

        Returns:
            saved metadata

        Raises:
            TemplateError: INVALID_TEMPLATE_ID, TEMPLATE_LOCK_TIMEOUT
            TemplateLoadError: TEMPLATE_CORRUPT (not a DOCX)
        """
        validate_template_id(template_id)
        load_document(content, template_id)
        placeholders = DocxRenderer(content, template_id).get_placeholders()

        with self._template_lock(template_id):
            template_path = self.stored_dir / template_id
            now = datetime.now(UTC).isoformat()

            meta = StoredTemplateMeta(
                template_id=template_id,
                display_name=display_name or template_id,
                filename_base=filename_base or template_id,
                created_at=now,
                created_by=created_by,
                updated_at=now,
                placeholders=placeholders,
            )
            meta_path = template_path / TEMPLATE_META_FILENAME
            if meta_path.exists():
                previous = self._read_meta(meta_path)
                meta.created_at = previous.created_at or now
                meta.created_by = previous.created_by or created_by

            atomic_write_bytes(template_path / STORED_TEMPLATE_FILENAME, content)
            atomic_write_json(meta_path, meta.to_dict())
            return meta

    def delete(self, template_id: str) -> None:
        """
        Remove a stored template.

        Raises:
            TemplateError: TEMPLATE_NOT_FOUND
        """
        validate_template_id(template_id)
        with self._template_lock(template_id):
            template_path = self._get_template_path(template_id)
            shutil.rmtree(template_path)

    # =========================================================================
    # Read
    # =========================================================================

    def get_meta(self, template_id: str) -> StoredTemplateMeta:
        """
        Stored template metadata.

        Raises:
            TemplateError: TEMPLATE_NOT_FOUND
        """
        meta_path = self._get_template_path(template_id) / TEMPLATE_META_FILENAME
        if not meta_path.exists():
            raise TemplateError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                f"meta.json not found for '{template_id}'",
                template_id=template_id,
            )
        return self._read_meta(meta_path)

    def load_bytes(self, template_id: str) -> bytes:
        """
        Stored DOCX content.

        Raises:
            TemplateError: TEMPLATE_NOT_FOUND
        """
        path = self._get_template_path(template_id) / STORED_TEMPLATE_FILENAME
        if not path.exists():
            raise TemplateError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                f"{STORED_TEMPLATE_FILENAME} not found for '{template_id}'",
                template_id=template_id,
            )
        return path.read_bytes()

    def list_templates(self) -> list[StoredTemplateMeta]:
        """All stored templates with readable metadata, sorted by id."""
        if not self.stored_dir.exists():
            return []

        results = []
        for template_dir in sorted(self.stored_dir.iterdir()):
            if not template_dir.is_dir() or template_dir.name.startswith("."):
                continue
            meta_path = template_dir / TEMPLATE_META_FILENAME
            if not meta_path.exists():
                continue
            try:
                results.append(self._read_meta(meta_path))
            except (json.JSONDecodeError, KeyError):
                continue
        return results

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _get_template_path(self, template_id: str) -> Path:
        """Template folder (must exist)."""
        validate_template_id(template_id)
        path = self.stored_dir / template_id
        if path.is_dir():
            return path

        raise TemplateError(
            ErrorCodes.TEMPLATE_NOT_FOUND,
            f"Template '{template_id}' not found",
            template_id=template_id,
        )

    def _read_meta(self, meta_path: Path) -> StoredTemplateMeta:
        data = json.loads(meta_path.read_text(encoding="utf-8"))
        return StoredTemplateMeta.from_dict(data)
