"""Recommendation API routes: inspect, apply and reject pending code changes."""

from fastapi import APIRouter, HTTPException

from coderelay.api.schemas import (
    ApplyRequest,
    ApplyResponse,
    ApplyResultModel,
    PendingResponse,
    RecommendationModel,
    SuccessResponse,
)
from coderelay.api.session_store import get_session
from coderelay.engine.executor import APPLY_ALL
from coderelay.utils.logging import logger
from coderelay.utils.response_formatter import ResponseFormatter

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("", response_model=PendingResponse)
async def list_pending() -> PendingResponse:
    """List every pending recommendation set."""
    pending = get_session().get_pending()
    return PendingResponse(
        pending={
            request_id: [RecommendationModel(**rec.to_dict()) for rec in recs]
            for request_id, recs in pending.items()
        }
    )


@router.delete("", response_model=SuccessResponse)
async def clear_pending() -> SuccessResponse:
    """Drop every pending recommendation set."""
    count = get_session().store.clear_all()
    return SuccessResponse(success=True, message=f"Cleared {count} pending recommendation set(s)")


@router.post("/{request_id}/apply", response_model=ApplyResponse)
async def apply_recommendation(request_id: str, request: ApplyRequest) -> ApplyResponse:
    """Apply one file (exact path) or every file ("*") of a request."""
    logger.info(f"Apply requested for {request_id}: {request.file_path}")
    session = get_session()
    results = await session.apply_recommendation(request_id, request.file_path)

    if len(results) == 1 and results[0].not_found:
        raise HTTPException(status_code=404, detail=results[0].error)

    return ApplyResponse(
        request_id=request_id,
        results=[ApplyResultModel(**result.to_dict()) for result in results],
        message=ResponseFormatter.format_apply_results(
            results, batch=request.file_path == APPLY_ALL
        ),
    )


@router.post("/{request_id}/reject", response_model=SuccessResponse)
async def reject_recommendations(request_id: str) -> SuccessResponse:
    """Discard a request's recommendations without writing anything."""
    removed = get_session().reject_recommendations(request_id)
    return SuccessResponse(success=removed, message=ResponseFormatter.REJECT_ACK)
