"""RFD record endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from rfd_store.api.rfds.schemas import RFDDeleted, RFDSummary
from rfd_store.config.logger import app_logger
from rfd_store.models import RFDRead, RFDWrite
from rfd_store.services.rfd_store import RFDFilter, RFDStore
from rfd_store.utils.responses import (
    PaginatedResponse,
    SuccessResponse,
    paginated_response,
    success_response,
)

router = APIRouter(prefix="/v1/rfds", tags=["rfds"])


def get_store(request: Request) -> RFDStore:
    """Dependency returning the store opened by the application lifespan."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable. The RFD store has not been initialized.",
        )
    return store


@router.get("", response_model=PaginatedResponse[RFDSummary])
async def list_rfds(
    state: Optional[str] = Query(default=None, description="Only RFDs in this lifecycle state"),
    milestone: Optional[str] = Query(default=None, description="Only RFDs tagged with this milestone"),
    complaint: Optional[str] = Query(default=None, description="Only RFDs tagged with this complaint"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=1000),
    store: RFDStore = Depends(get_store),
):
    """List RFDs ordered by number, without document bodies."""
    total, rfds = await store.page(
        RFDFilter(state=state, milestone=milestone, complaint=complaint),
        offset=(page - 1) * limit,
        limit=limit,
    )

    return paginated_response(
        data=[RFDSummary.model_validate(rfd) for rfd in rfds],
        page=page,
        limit=limit,
        total=total,
        message="RFDs retrieved successfully",
    )


@router.get("/{number}", response_model=SuccessResponse[RFDRead])
async def get_rfd(number: int, store: RFDStore = Depends(get_store)):
    """Fetch a single RFD by its public number."""
    rfd = await store.get_by_number(number)
    return success_response(data=RFDRead.model_validate(rfd), message="RFD retrieved successfully")


@router.post("", response_model=SuccessResponse[RFDRead], status_code=status.HTTP_201_CREATED)
async def create_rfd(payload: RFDWrite, store: RFDStore = Depends(get_store)):
    """Create a newly discovered RFD."""
    rfd = await store.insert(payload)
    return success_response(data=RFDRead.model_validate(rfd), message="RFD created successfully")


@router.put("/{number}", response_model=SuccessResponse[RFDRead])
async def upsert_rfd(number: int, payload: RFDWrite, store: RFDStore = Depends(get_store)):
    """Create or fully replace the RFD with this number."""
    rfd = await store.upsert_by_number(number, payload)
    return success_response(data=RFDRead.model_validate(rfd), message="RFD saved successfully")


@router.delete("/{number}", response_model=SuccessResponse[RFDDeleted])
async def delete_rfd(number: int, store: RFDStore = Depends(get_store)):
    """Remove an RFD record."""
    await store.delete(number)
    app_logger.info(f"RFD {number} deleted via API")
    return success_response(data=RFDDeleted(number=number), message="RFD deleted successfully")
