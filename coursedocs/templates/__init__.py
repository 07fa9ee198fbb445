"""
Templates layer: template sources, registry, administrator store.

Role:
- Every template source exposes the same descriptor/generator shape
- Stored templates are managed on disk (TemplateManager)
- Multi-file bundles write their own archive folders (DocumentBundle)
"""

from .bundles import default_bundles, safe_bundle
from .manager import StoredTemplateMeta, TemplateManager, validate_template_id
from .registry import (
    BuiltinTemplateSource,
    BundledTemplateSource,
    StoredTemplateSource,
    TemplateRegistry,
    create_default_registry,
    safe_generator,
)

__all__ = [
    # bundles
    "default_bundles",
    "safe_bundle",
    # manager
    "TemplateManager",
    "StoredTemplateMeta",
    "validate_template_id",
    # registry
    "TemplateRegistry",
    "BuiltinTemplateSource",
    "BundledTemplateSource",
    "StoredTemplateSource",
    "create_default_registry",
    "safe_generator",
]
