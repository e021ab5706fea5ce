"""TDS return endpoints (Form 24Q and Form 16)."""

import json
from typing import Annotated, Any, Literal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status
from fastapi.responses import PlainTextResponse

from statutory_payroll.api.dependencies import AppSettings, DbSession
from statutory_payroll.api.schemas import ErrorResponse
from statutory_payroll.calculators.types import PayrollInputError
from statutory_payroll.services.statutory_file_service import StatutoryFileService

router = APIRouter(prefix="/tds", tags=["tds"])


@router.get("/form24q", responses={400: {"model": ErrorResponse}})
async def get_form24q(
    db: DbSession,
    settings: AppSettings,
    quarter: Annotated[int, Query(ge=1, le=4)],
    financial_year: Annotated[int, Query(ge=2000, le=2100, description="FY start year")],
) -> dict[str, Any]:
    """Form 24Q data for a quarter; Annexure II is included for Q4."""
    data, rendered = await StatutoryFileService(db, settings).generate_form24q(quarter, financial_year)
    await db.commit()
    return {
        "file_id": str(rendered.audit.file_id),
        "content_sha256": rendered.audit.content_sha256,
        **data.to_json_dict(),
    }


@router.get(
    "/form16/{employee_id}",
    responses={404: {"model": ErrorResponse}},
)
async def get_form16(
    db: DbSession,
    settings: AppSettings,
    employee_id: Annotated[UUID, Path()],
    financial_year: Annotated[int, Query(ge=2000, le=2100, description="FY start year")],
    format: Annotated[Literal["json", "text"], Query()] = "json",
) -> Any:
    """Form 16 for one employee as JSON or a plain-text certificate."""
    try:
        data, rendered = await StatutoryFileService(db, settings).generate_form16(
            employee_id, financial_year, fmt=format
        )
        await db.commit()
    except PayrollInputError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if format == "text":
        return PlainTextResponse(
            content=rendered.content,
            headers={"Content-Disposition": f'attachment; filename="{rendered.audit.filename}"'},
        )
    return json.loads(rendered.content)
