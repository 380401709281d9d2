from datetime import datetime
from typing import List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy import and_, update
from ris_app.models.requisition.request import Request
from ris_app.models.shared.enums import RequestStatus
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.schemas.requisition.ris import (
    RisDocumentView, RisLineView, CustomRisCreate, TemplatePreview
)
from ris_app.services.inventory.stock_transaction_service import StockTransactionService
from ris_app.services.requisition.request_service import RequestService
from ris_app.services.requisition.request_status import has_approved_line
from ris_app.services.requisition.ris_numbering import RisNumberService, local_date
from ris_app.utils.ris_workbook import RisWorkbookRenderer
from ris_app.core.config import settings
from ris_app.core.exceptions import (
    NotFoundError, ForbiddenError, InvalidStateError, ValidationError, ConflictError
)
from ris_app.core.logging import log_user_action
import logging

logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 2


class RisService:
    """RIS documents: lazy numbering, historical view assembly and rendering.

    Returns ``(content, filename)`` pairs; the router wraps them as downloads.
    """

    def __init__(self, db: AsyncSession, renderer: RisWorkbookRenderer = None):
        self.db = db
        self.ledger = StockTransactionService(db)
        self.requests = RequestService(db)
        self.numbering = RisNumberService(db)
        self.renderer = renderer or RisWorkbookRenderer()

    async def generate_ris(self, request_id: int, current_user: CurrentUser) -> Tuple[bytes, str]:
        request = await self._load_eligible(request_id, current_user)

        try:
            ris_number = await self.ensure_ris_number(request)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"RIS number collision for request {request_id}: {e.orig}")
            raise ConflictError("RIS number already assigned to another request, please try again")
        except Exception:
            await self.db.rollback()
            raise

        document = await self.build_document(request, ris_number)
        content = self.renderer.render_single(document)

        log_user_action(current_user.id, "generate_ris", "request", request_id, ris_number)
        return content, f"RIS-{ris_number}-{self._timestamp()}.xlsx"

    async def generate_batch(self, request_ids: List[int], current_user: CurrentUser) -> Tuple[bytes, str]:
        """Several requests in one workbook, two forms per sheet.

        Every request is checked before any number is assigned, so one bad id
        aborts the batch without side effects.
        """
        if not request_ids or len(request_ids) < MIN_BATCH_SIZE:
            raise ValidationError("Please provide at least 2 request IDs for batch generation")

        requests = []
        for request_id in request_ids:
            requests.append(await self._load_eligible(request_id, current_user, in_batch=True))

        try:
            numbers = []
            for request in requests:
                numbers.append(await self.ensure_ris_number(request))
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"RIS number collision during batch generation: {e.orig}")
            raise ConflictError("RIS number already assigned to another request, please try again")
        except Exception:
            await self.db.rollback()
            raise

        documents = []
        for request, ris_number in zip(requests, numbers):
            documents.append(await self.build_document(request, ris_number))
        content = self.renderer.render_batch(documents)

        log_user_action(
            current_user.id, "generate_ris_batch", "request", None,
            ", ".join(numbers)
        )
        return content, f"RIS-Batch-{len(requests)}requests-{self._timestamp()}.xlsx"

    async def generate_custom(self, data: CustomRisCreate, current_user: CurrentUser) -> Tuple[bytes, str]:
        """Manual form from caller-supplied lines; takes the next number of today"""
        if not current_user.is_admin:
            raise ForbiddenError("Only admins can generate custom RIS forms")

        if len(data.items) > self.renderer.item_rows:
            raise ValidationError(f"A RIS form holds at most {self.renderer.item_rows} items")

        try:
            ris_number = await self.numbering.next_number()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        today = local_date()
        document = RisDocumentView(
            ris_number=ris_number,
            budget_source=data.budget_source.value,
            purpose=data.purpose,
            lines=[
                RisLineView(
                    stock_no=line.stock_no,
                    unit=line.unit,
                    description=line.description,
                    quantity=line.quantity,
                )
                for line in data.items
            ],
            requested_by_name=data.requested_by or current_user.username or "",
            requested_by_designation=data.requested_by_position or "",
            received_by_name=data.received_by or "",
            received_by_designation=data.received_by_position or "",
            approved_by_name=data.approved_by or data.issued_by or settings.RIS_APPROVING_OFFICER,
            approved_by_designation=settings.RIS_APPROVING_DESIGNATION,
            request_date=today,
            issue_date=today,
            entity_name=data.entity_name,
            fund_cluster=data.fund_cluster,
            division=data.division,
            responsibility_center=data.responsibility_center,
        )
        content = self.renderer.render_single(document)

        log_user_action(current_user.id, "generate_custom_ris", "ris", None, ris_number)
        return content, f"RIS-{ris_number}.xlsx"

    def preview_template(self, current_user: CurrentUser) -> TemplatePreview:
        if not current_user.is_admin:
            raise ForbiddenError("Only admins can preview the RIS template")
        return self.renderer.preview_template()

    async def ensure_ris_number(self, request: Request) -> str:
        """Return the request's RIS number, assigning one on first use. Never commits."""
        result = await self.db.execute(
            select(Request.ris_number).where(Request.id == request.id).with_for_update()
        )
        current = result.scalar_one_or_none()
        if current:
            request.ris_number = current
            return current

        # Day key is the review date, or the creation date for unreviewed data
        candidate = await self.numbering.next_number(request.reviewed_at or request.created_at)
        assigned = await self.db.execute(
            update(Request)
            .where(and_(Request.id == request.id, Request.ris_number.is_(None)))
            .values(ris_number=candidate)
            .execution_options(synchronize_session=False)
        )
        if assigned.rowcount == 0:
            result = await self.db.execute(select(Request.ris_number).where(Request.id == request.id))
            current = result.scalar_one()
            logger.info(f"Request {request.id} got RIS number {current} concurrently, {candidate} unused")
            request.ris_number = current
            return current

        logger.info(f"Assigned RIS number {candidate} to request {request.id}")
        request.ris_number = candidate
        return candidate

    async def build_document(self, request: Request, ris_number: str) -> RisDocumentView:
        """View model of one request as it stood when its lines were issued.

        The balance column comes from the issue transaction recorded at approval,
        not from the item's live quantity.
        """
        balances = await self.ledger.get_issue_balances(request.id)
        by_line, by_item = balances["by_line"], balances["by_item"]

        lines = []
        for line in sorted(request.lines, key=lambda line: line.position):
            item = line.item
            if line.id in by_line:
                balance = by_line[line.id]
            elif line.item_id in by_item:
                balance = by_item[line.item_id]
            else:
                # Issues recorded before lines were linked
                balance = item.quantity if item else 0

            if line.status == RequestStatus.APPROVED:
                remarks = "Issued"
            elif line.status == RequestStatus.REJECTED:
                remarks = "Rejected"
            else:
                remarks = ""

            lines.append(RisLineView(
                stock_no=(item.sku if item else None) or "N/A",
                unit=line.unit or settings.DEFAULT_UNIT,
                description=item.name if item else "",
                quantity=line.quantity,
                status=line.status,
                balance_after_issue=balance,
                remarks=remarks,
            ))

        return RisDocumentView(
            ris_number=ris_number,
            request_id=request.id,
            budget_source=request.budget_source.value if request.budget_source else settings.RIS_DEFAULT_BUDGET_SOURCE,
            purpose=request.purpose,
            lines=lines,
            requested_by_name=request.requested_by_name or "",
            requested_by_designation=request.requested_by_designation or "",
            received_by_name=request.received_by_name or "",
            received_by_designation=request.received_by_designation or "",
            reviewed_by=request.reviewed_by,
            request_date=local_date(request.created_at) if request.created_at else None,
            issue_date=local_date(),
        )

    async def _load_eligible(self, request_id: int, current_user: CurrentUser, in_batch: bool = False) -> Request:
        request = await self.requests.get_request_by_id(request_id)
        if not request:
            raise NotFoundError(f"Request {request_id} not found" if in_batch else "Request not found")

        if not current_user.is_admin and request.requested_by != current_user.id:
            raise ForbiddenError(
                f"Not authorized to generate RIS for request {request_id}" if in_batch
                else "Not authorized to generate RIS for this request"
            )

        if not has_approved_line(line.status for line in request.lines):
            raise InvalidStateError(
                f"Request {request_id} does not have approved items" if in_batch
                else "Can only generate RIS for requests with at least one approved item"
            )

        if len(request.lines) > self.renderer.item_rows:
            raise ValidationError(
                f"Request {request_id} has {len(request.lines)} items; "
                f"a RIS form holds at most {self.renderer.item_rows}"
            )
        return request

    def _timestamp(self) -> int:
        return int(datetime.now().timestamp() * 1000)
