import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from ris_app.api.dependencies import get_current_user, require_admin
from ris_app.core.database import get_async_session
from ris_app.models.shared.enums import RequestStatus
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.schemas.common.response import ApiResponse, MessageResponse
from ris_app.schemas.requisition.request import Request, RequestCreate, RequestUpdate, RequestReject
from ris_app.services.requisition.request_service import RequestService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=ApiResponse[Request], status_code=status.HTTP_201_CREATED)
async def create_request(
    request_data: RequestCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a supply request (single item or ``items`` list)"""
    try:
        service = RequestService(db)
        request = await service.create_request(request_data, current_user)
        return {"success": True, "data": request}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create request error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create request"
        )

@router.get("/", response_model=ApiResponse[List[Request]])
async def get_requests(
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Own requests for users, every request for admins"""
    service = RequestService(db)
    requests = await service.get_requests(current_user, status=request_status, skip=skip, limit=limit)
    return {"success": True, "count": len(requests), "data": requests}

@router.get("/{request_id}", response_model=ApiResponse[Request])
async def get_request(
    request_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = RequestService(db)
    request = await service.get_request(request_id, current_user)
    return {"success": True, "data": request}

@router.put("/{request_id}", response_model=ApiResponse[Request])
async def update_request(
    request_id: int,
    request_data: RequestUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Requester edit while the request is still pending"""
    service = RequestService(db)
    request = await service.update_request(request_id, request_data, current_user)
    return {"success": True, "data": request}

@router.put("/{request_id}/approve", response_model=ApiResponse[Request])
async def approve_request(
    request_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Approve all pending items of a request and issue their stock"""
    service = RequestService(db)
    request = await service.approve_request(request_id, current_user)
    return {"success": True, "data": request}

@router.put("/{request_id}/reject", response_model=ApiResponse[Request])
async def reject_request(
    request_id: int,
    reject_data: RequestReject,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    service = RequestService(db)
    request = await service.reject_request(request_id, reject_data.rejection_reason, current_user)
    return {"success": True, "data": request}

@router.put("/{request_id}/items/{line_ref}/approve", response_model=ApiResponse[Request])
async def approve_request_item(
    request_id: int,
    line_ref: str,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Approve one item; ``line_ref`` is the line id (or, for older clients, its index)"""
    service = RequestService(db)
    request = await service.approve_request_line(request_id, line_ref, current_user)
    return {"success": True, "data": request}

@router.put("/{request_id}/items/{line_ref}/reject", response_model=ApiResponse[Request])
async def reject_request_item(
    request_id: int,
    line_ref: str,
    reject_data: Optional[RequestReject] = None,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    service = RequestService(db)
    reason = reject_data.rejection_reason if reject_data else None
    request = await service.reject_request_line(request_id, line_ref, reason, current_user)
    return {"success": True, "data": request}

@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_request(
    request_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = RequestService(db)
    await service.delete_request(request_id, current_user)
    return {"success": True, "message": "Request deleted successfully"}
