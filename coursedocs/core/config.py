"""
Configuration: default.yaml loading and typed package settings.

Rules:
- Missing file → empty config (every setting has a default)
- Settings are handed explicitly to the assembler, never read globally
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from coursedocs.domain.constants import (
    CONDITIONALITY_BUNDLE_ID,
    DEFAULT_ROOT_FOLDER_PATTERN,
    EVENT_NOTICES_BUNDLE_ID,
    FAD_REGISTRIES_BUNDLE_ID,
)
from coursedocs.domain.schemas import FolderRule

PROJECT_ROOT = Path(__file__).parent.parent.parent


DEFAULT_DOCUMENT_TEMPLATES = [
    "registro_didattico",
    "verbale_partecipazione",
    "verbale_scrutinio",
    "verbale_ammissione",
    "modello_a_fad",
    "registro_presenze",
    "attestati",
]

# Multi-file bundles, each in its own folder
DEFAULT_BUNDLES = [
    FAD_REGISTRIES_BUNDLE_ID,
    CONDITIONALITY_BUNDLE_ID,
    EVENT_NOTICES_BUNDLE_ID,
]


def default_folders() -> list[FolderRule]:
    """Documenti (docx), Excel (xlsx) enabled; PDF disabled."""
    return [
        FolderRule(
            name="Documenti",
            enabled=True,
            file_types=["docx"],
            assigned_templates=list(DEFAULT_DOCUMENT_TEMPLATES),
            order=1,
        ),
        FolderRule(name="Excel", enabled=True, file_types=["xlsx"], order=2),
        FolderRule(name="PDF", enabled=False, file_types=["pdf"], order=3),
    ]


@dataclass
class PackageSettings:
    """Archive layout settings (package section of default.yaml)."""
    root_folder_pattern: str = DEFAULT_ROOT_FOLDER_PATTERN
    folders: list[FolderRule] = field(default_factory=default_folders)
    generate_readme: bool = True
    generate_metadata: bool = True
    include_timestamp: bool = True
    bundles: list[str] = field(default_factory=lambda: list(DEFAULT_BUNDLES))

    @property
    def enabled_folders(self) -> list[FolderRule]:
        return sorted((f for f in self.folders if f.enabled), key=lambda f: f.order)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PackageSettings":
        data = data or {}
        raw_bundles = data.get("bundles")
        raw_folders = data.get("folders")
        folders = (
            [FolderRule.from_dict(f) for f in raw_folders]
            if raw_folders
            else default_folders()
        )
        return cls(
            root_folder_pattern=data.get("root_folder_pattern") or DEFAULT_ROOT_FOLDER_PATTERN,
            folders=folders,
            generate_readme=bool(data.get("generate_readme", True)),
            generate_metadata=bool(data.get("generate_metadata", True)),
            include_timestamp=bool(data.get("include_timestamp", True)),
            bundles=[str(b) for b in raw_bundles] if raw_bundles is not None else list(DEFAULT_BUNDLES),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_folder_pattern": self.root_folder_pattern,
            "folders": [f.to_dict() for f in self.folders],
            "generate_readme": self.generate_readme,
            "generate_metadata": self.generate_metadata,
            "include_timestamp": self.include_timestamp,
            "bundles": list(self.bundles),
        }


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load default.yaml (project root unless a path is given)."""
    if config_path is None:
        config_path = PROJECT_ROOT / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}
        return data


def resolve_path(config: dict[str, Any], key: str, default: str) -> Path:
    """paths.<key> from config, relative paths anchored at the project root."""
    raw = (config.get("paths") or {}).get(key) or default
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_ROOT / path
