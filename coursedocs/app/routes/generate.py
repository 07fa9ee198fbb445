"""
Generate Routes: course package download.

- POST /api/generate → ZIP archive for one course record

Rules:
- Body is the extracted course record (JSON object with a `corso` object)
- Individual document failures never fail the request (see build log)
- Only archive serialization failure → 500
"""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request
from fastapi.responses import Response

from coursedocs.domain.constants import ZIP_MIME
from coursedocs.domain.errors import ArchiveError
from coursedocs.domain.schemas import CourseData
from coursedocs.packaging.assembler import PackageAssembler

api_router = APIRouter()


@api_router.post("")
async def generate_package(
    request: Request,
    payload: Any = Body(...),
) -> Response:
    """Build the course package and return it as an attachment."""
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=422,
            detail={"code": "INVALID_COURSE_DATA", "message": "Body must be a JSON object"},
        )
    if not isinstance(payload.get("corso"), dict):
        raise HTTPException(
            status_code=422,
            detail={"code": "INVALID_COURSE_DATA", "message": "'corso' object is required"},
        )

    course = CourseData.from_dict(payload)
    state = request.app.state
    assembler = PackageAssembler(state.registry, state.settings, logs_dir=state.logs_dir)

    try:
        result = await assembler.build(course)
    except ArchiveError as e:
        raise HTTPException(status_code=500, detail=e.to_dict()) from e

    return Response(
        content=result.content,
        media_type=ZIP_MIME,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Build-Id": result.build_log.build_id,
        },
    )
