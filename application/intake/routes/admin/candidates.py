from typing import Optional

from fastapi import APIRouter, Depends, Query

from intake.dto.candidates import (
    CandidateDetailResponse,
    CandidateListResponse,
    CandidateOut,
    CandidateStatusUpdateRequest,
)
from intake.logging.utils import get_app_logger
from intake.middlewares.request_context import request_context
from intake.repository.candidates import CandidateRepository
from intake.routes.candidates import get_candidate_repository
from intake.services.candidate_service import CandidateService

logger = get_app_logger(__name__)

admin_candidates_router = APIRouter(prefix="/candidates", tags=["admin"])


def get_candidate_service(repository: CandidateRepository = Depends(get_candidate_repository)) -> CandidateService:
    return CandidateService(repository)


@admin_candidates_router.get("", response_model=CandidateListResponse)
async def list_candidates(
    status: Optional[str] = Query(None, description="pending, reviewed, contacted or rejected"),
    user_type: Optional[str] = Query(None, description="student or company"),
    search: Optional[str] = Query(None, description="Matches name, email, phone, registration id or company"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: CandidateService = Depends(get_candidate_service),
):
    """All candidates, newest first"""
    rows, total = service.list_candidates(status=status, user_type=user_type, search=search, page=page, page_size=page_size)
    return CandidateListResponse(
        success=True,
        count=len(rows),
        total=total,
        page=page,
        page_size=page_size,
        data=[CandidateOut.model_validate(row) for row in rows],
    )


@admin_candidates_router.get("/{candidate_id}", response_model=CandidateDetailResponse)
async def get_candidate(candidate_id: int, service: CandidateService = Depends(get_candidate_service)):
    request_context.candidate_id = candidate_id
    return CandidateDetailResponse(success=True, data=CandidateOut.model_validate(service.get_candidate(candidate_id)))


@admin_candidates_router.put("/{candidate_id}/status", response_model=CandidateDetailResponse)
async def update_candidate_status(
    candidate_id: int,
    payload: CandidateStatusUpdateRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    request_context.candidate_id = candidate_id
    candidate = service.update_status(candidate_id, payload.status, payload.notes)
    logger.info(f"admin_status_update | candidate_id={candidate_id} status={payload.status}")
    return CandidateDetailResponse(success=True, data=CandidateOut.model_validate(candidate))
