"""
Core layer: ids, build log, configuration, dates.

Role:
- Build bookkeeping (BuildLog) and settings loading
- Italian calendar helpers shared by renderers
"""

from .config import PackageSettings, load_config
from .ids import generate_build_id, sanitize_name
from .logging import (
    complete_build_log,
    create_build_log,
    emit_warning,
    record_generated,
    record_omitted,
    save_build_log,
)

__all__ = [
    # config
    "PackageSettings",
    "load_config",
    # ids
    "generate_build_id",
    "sanitize_name",
    # logging
    "create_build_log",
    "record_generated",
    "record_omitted",
    "emit_warning",
    "complete_build_log",
    "save_build_log",
]
