import logging
from io import BytesIO
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from ris_app.api.dependencies import get_current_user, require_admin
from ris_app.core.database import get_async_session
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.schemas.common.response import ApiResponse
from ris_app.schemas.requisition.ris import RisBatchCreate, CustomRisCreate, TemplatePreview
from ris_app.services.requisition.ris_service import RisService
from ris_app.utils.ris_workbook import XLSX_MEDIA_TYPE

router = APIRouter()
logger = logging.getLogger(__name__)

def xlsx_download(content: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.post("/generate/{request_id}")
async def generate_ris(
    request_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """RIS for one request with at least one approved item (owner or admin)"""
    service = RisService(db)
    content, filename = await service.generate_ris(request_id, current_user)
    return xlsx_download(content, filename)

@router.post("/generate-batch")
async def generate_ris_batch(
    batch_data: RisBatchCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Two RIS forms per sheet for two or more requests"""
    service = RisService(db)
    content, filename = await service.generate_batch(batch_data.request_ids, current_user)
    return xlsx_download(content, filename)

@router.post("/generate-custom")
async def generate_custom_ris(
    custom_data: CustomRisCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    service = RisService(db)
    content, filename = await service.generate_custom(custom_data, current_user)
    return xlsx_download(content, filename)

@router.get("/preview-template", response_model=ApiResponse[TemplatePreview])
async def preview_template(
    db: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(require_admin)
):
    """Non-empty cells of the blank RIS form, for mapping a custom template"""
    service = RisService(db)
    preview = service.preview_template(current_user)
    return {"success": True, "count": len(preview.cells), "data": preview}
