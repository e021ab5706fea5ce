"""Professional Tax slab administration endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from statutory_payroll.api.dependencies import DbSession
from statutory_payroll.api.schemas import (
    ErrorResponse,
    PTSlabCreate,
    PTSlabListResponse,
    PTSlabResponse,
    PTSlabUpdate,
)
from statutory_payroll.services.slab_service import SlabNotFoundError, SlabOverlapError, SlabService

router = APIRouter(prefix="/pt-slabs", tags=["pt-slabs"])


@router.get("", response_model=PTSlabListResponse)
async def list_pt_slabs(
    db: DbSession,
    state_code: Annotated[str | None, Query(min_length=2, max_length=2)] = None,
    include_inactive: bool = False,
) -> PTSlabListResponse:
    slabs = await SlabService(db).list_slabs(state_code, include_inactive=include_inactive)
    return PTSlabListResponse(
        items=[PTSlabResponse.model_validate(s) for s in slabs],
        total=len(slabs),
    )


@router.post(
    "",
    response_model=PTSlabResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_pt_slab(db: DbSession, payload: PTSlabCreate) -> PTSlabResponse:
    try:
        slab = await SlabService(db).create_slab(**payload.model_dump())
        await db.commit()
    except SlabOverlapError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PTSlabResponse.model_validate(slab)


@router.put(
    "/{slab_id}",
    response_model=PTSlabResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_pt_slab(
    db: DbSession,
    slab_id: Annotated[UUID, Path()],
    payload: PTSlabUpdate,
) -> PTSlabResponse:
    """Supersede a slab: the old row is deactivated and a new one returned."""
    try:
        slab = await SlabService(db).supersede_slab(slab_id, **payload.model_dump(exclude_unset=True))
        await db.commit()
    except SlabNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SlabOverlapError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PTSlabResponse.model_validate(slab)


@router.delete(
    "/{slab_id}",
    response_model=PTSlabResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_pt_slab(db: DbSession, slab_id: Annotated[UUID, Path()]) -> PTSlabResponse:
    """Soft delete: the slab is deactivated, never removed."""
    try:
        slab = await SlabService(db).deactivate_slab(slab_id)
        await db.commit()
    except SlabNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PTSlabResponse.model_validate(slab)
