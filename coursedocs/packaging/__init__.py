"""
Packaging layer: course package assembly and archive root files.
"""

from .assembler import PackageAssembler, PackageResult, archive_filename, root_folder_name
from .readme import build_metadata, build_readme

__all__ = [
    "PackageAssembler",
    "PackageResult",
    "archive_filename",
    "root_folder_name",
    "build_readme",
    "build_metadata",
]
