"""
Templates Routes: template listing and administrator uploads.

- GET /api/templates → every resolvable template (all sources)
- POST /api/templates → upload a stored DOCX template
- DELETE /api/templates/{template_id} → remove a stored template
"""

import asyncio
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from coursedocs.domain.errors import ErrorCodes, TemplateError, TemplateLoadError

api_router = APIRouter()


@api_router.get("")
async def list_templates(request: Request) -> list[dict[str, Any]]:
    """Registered templates (id, name, filename, source, output_kind)."""
    return [d.to_dict() for d in request.app.state.registry.descriptors()]


@api_router.post("")
async def create_template(
    request: Request,
    template_id: str = Form(...),
    display_name: str = Form(...),
    filename_base: str | None = Form(None),
    file: UploadFile = File(...),
) -> dict[str, Any]:
    """
    Store a template.

    The uploaded DOCX is checked before it is written; the registry is
    refreshed so the template is usable right away.
    """
    content = await file.read()
    state = request.app.state
    try:
        meta = await asyncio.to_thread(
            state.template_manager.save,
            template_id=template_id,
            display_name=display_name,
            content=content,
            filename_base=filename_base,
        )
    except TemplateError as e:
        raise HTTPException(status_code=400, detail={"code": e.code, "message": e.message}) from e
    except TemplateLoadError as e:
        raise HTTPException(status_code=400, detail=e.to_dict()) from e

    state.registry.refresh()
    return {"success": True, **meta.to_dict()}


@api_router.delete("/{template_id}")
async def delete_template(request: Request, template_id: str) -> dict[str, Any]:
    """Delete a stored template."""
    state = request.app.state
    try:
        await asyncio.to_thread(state.template_manager.delete, template_id)
    except TemplateError as e:
        status_code = 404 if e.code == ErrorCodes.TEMPLATE_NOT_FOUND else 400
        raise HTTPException(
            status_code=status_code, detail={"code": e.code, "message": e.message}
        ) from e

    state.registry.refresh()
    return {"success": True, "template_id": template_id}
