"""
Render layer: placeholder maps, DOCX/XLSX output, register assembly.

Role:
- CourseData → PlaceholderMap → filled documents
- No archive or template-source knowledge here
"""

from .excel import AttendanceGrid, SpreadsheetBuilder, cell_address, column_letter
from .placeholders import build_placeholder_map
from .register import RegisterAssembler, build_register
from .word import DocxRenderer, render_docx

__all__ = [
    "build_placeholder_map",
    "DocxRenderer",
    "render_docx",
    "RegisterAssembler",
    "build_register",
    "SpreadsheetBuilder",
    "AttendanceGrid",
    "cell_address",
    "column_letter",
]
