"""
Course document package engine.

Layers:
- domain/ → schemas, errors, constants
- core/ → ids, build log, configuration, dates
- render/ → placeholder maps, DOCX/XLSX output, register assembly
- templates/ → template sources, registry, administrator store
- packaging/ → course archive assembly
- app/ → FastAPI surface
"""
