from typing import List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import and_, desc, update
from ris_app.models.requisition.request import Request
from ris_app.models.requisition.request_line import RequestLine
from ris_app.models.inventory.item import Item
from ris_app.schemas.requisition.request import RequestCreate, RequestUpdate, RequestLineCreate
from ris_app.schemas.common.current_user import CurrentUser
from ris_app.services.inventory.stock_transaction_service import StockTransactionService
from ris_app.services.requisition.request_status import fold_request_status, locate_line
from ris_app.core.exceptions import (
    NotFoundError, ValidationError, ForbiddenError, InvalidStateError, InsufficientStockError
)
from ris_app.core.config import settings
from ris_app.core.logging import log_user_action
from ris_app.models.shared.enums import RequestStatus, TransactionType
from ris_app.db.base import utcnow
import logging

logger = logging.getLogger(__name__)

DEFAULT_LINE_REJECTION_REASON = "No reason provided"


class RequestService:
    """Requisition workflow: creation, review of whole requests and single lines, deletion.

    Every review action runs as one database transaction: the request row is
    locked, the line is claimed with a conditional update, stock is debited
    conditionally and the issue is appended to the ledger. Any failure rolls
    the whole action back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = StockTransactionService(db)

    async def create_request(self, request_data: RequestCreate, current_user: CurrentUser) -> Request:
        line_inputs, is_single_item = self._normalize_lines(request_data)
        if len(line_inputs) > settings.RIS_ITEM_ROWS:
            # Every approvable request must fit on one printed RIS form
            raise ValidationError(f"A request can hold at most {settings.RIS_ITEM_ROWS} items")

        # Point-in-time check only; stock is not reserved
        lines = []
        for position, line_data in enumerate(line_inputs):
            item = await self._get_item(line_data.item_id)
            if item.quantity < line_data.quantity:
                if is_single_item:
                    message = f"Insufficient stock. Available quantity: {item.quantity}"
                else:
                    message = f"Insufficient stock for {item.name}. Available: {item.quantity}"
                raise InsufficientStockError(message)

            lines.append(RequestLine(
                position=position,
                item_id=item.id,
                quantity=line_data.quantity,
                unit=line_data.unit or item.unit,
                status=RequestStatus.PENDING,
                created_by=current_user.id,
            ))

        request = Request(
            requested_by=current_user.id,
            requested_by_name=request_data.requested_by_name,
            requested_by_designation=request_data.requested_by_designation,
            received_by_name=request_data.received_by_name,
            received_by_designation=request_data.received_by_designation,
            purpose=request_data.purpose,
            notes=request_data.notes,
            budget_source=request_data.budget_source,
            status=RequestStatus.PENDING,
            is_single_item=is_single_item,
            lines=lines,
            created_by=current_user.id,
            updated_by=current_user.id
        )

        try:
            self.db.add(request)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "create_request", "request", request.id, f"{len(lines)} item(s)")
        return await self.get_request_by_id(request.id)

    def _normalize_lines(self, request_data: RequestCreate):
        """Both request shapes become a list of lines; returns (lines, is_single_item)"""
        if request_data.items:
            return request_data.items, False

        if request_data.item_id is not None:
            if request_data.quantity is None:
                raise ValidationError("Please specify the quantity to request")
            single = RequestLineCreate(
                item_id=request_data.item_id,
                quantity=request_data.quantity,
                unit=request_data.unit
            )
            return [single], True

        raise ValidationError("Please add at least one item to the request")

    async def get_request_by_id(self, request_id: int, for_update: bool = False) -> Optional[Request]:
        query = (
            select(Request)
            .options(selectinload(Request.lines).selectinload(RequestLine.item))
            .where(Request.id == request_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_request(self, request_id: int, current_user: CurrentUser) -> Request:
        request = await self.get_request_by_id(request_id)
        if not request:
            raise NotFoundError("Request not found")

        if not current_user.is_admin and request.requested_by != current_user.id:
            raise ForbiddenError("Not authorized to view this request")
        return request

    async def get_requests(
        self,
        current_user: CurrentUser,
        status: Optional[RequestStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Request]:
        """Admins see every request, other users only their own"""
        query = select(Request).options(
            selectinload(Request.lines).selectinload(RequestLine.item)
        )

        conditions = []
        if not current_user.is_admin:
            conditions.append(Request.requested_by == current_user.id)
        if status:
            conditions.append(Request.status == status)

        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(desc(Request.created_at), desc(Request.id)).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()

    async def update_request(self, request_id: int, request_data: RequestUpdate, current_user: CurrentUser) -> Request:
        request = await self.get_request_by_id(request_id, for_update=True)
        if not request:
            raise NotFoundError("Request not found")

        if request.requested_by != current_user.id:
            raise ForbiddenError("Not authorized to update this request")

        if request.status != RequestStatus.PENDING:
            raise InvalidStateError("Cannot update a request that has been reviewed")

        try:
            if request_data.quantity is not None:
                if not request.is_single_item or len(request.lines) != 1:
                    raise ValidationError("Quantity can only be changed on single-item requests; edit the items instead")

                line = request.lines[0]
                if line.status != RequestStatus.PENDING:
                    raise InvalidStateError("Cannot update a request that has been reviewed")

                available = await self.ledger.get_quantity(line.item_id)
                if available is None:
                    raise NotFoundError("Item not found")
                if available < request_data.quantity:
                    raise InsufficientStockError(f"Insufficient stock. Available quantity: {available}")

                line.quantity = request_data.quantity
                line.updated_by = current_user.id

            if request_data.purpose is not None:
                request.purpose = request_data.purpose
            if request_data.notes is not None:
                request.notes = request_data.notes

            request.updated_by = current_user.id
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "update_request", "request", request_id)
        return await self.get_request_by_id(request_id)

    async def approve_request(self, request_id: int, current_user: CurrentUser) -> Request:
        """Approve every still-pending line of a request as one all-or-nothing action"""
        self._require_reviewer(current_user)

        try:
            request = await self.get_request_by_id(request_id, for_update=True)
            if not request:
                raise NotFoundError("Request not found")

            if request.status != RequestStatus.PENDING:
                raise InvalidStateError("Request has already been reviewed")

            for line in [line for line in request.lines if line.status == RequestStatus.PENDING]:
                await self._issue_line(
                    request, line, current_user,
                    shortage_message="Insufficient stock to approve this request"
                )

            await self._refresh_overall_status(request, current_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "approve_request", "request", request_id)
        return await self.get_request_by_id(request_id)

    async def reject_request(self, request_id: int, rejection_reason: Optional[str], current_user: CurrentUser) -> Request:
        """Reject a request that has no approved lines yet"""
        self._require_reviewer(current_user)

        if not rejection_reason or not rejection_reason.strip():
            raise ValidationError("Please provide a rejection reason")
        rejection_reason = rejection_reason.strip()

        try:
            request = await self.get_request_by_id(request_id, for_update=True)
            if not request:
                raise NotFoundError("Request not found")

            if request.status != RequestStatus.PENDING:
                raise InvalidStateError("Request has already been reviewed")

            if any(line.status == RequestStatus.APPROVED for line in request.lines):
                raise InvalidStateError(
                    "Request already has approved items; reject the remaining items individually"
                )

            await self.db.execute(
                update(RequestLine)
                .where(and_(
                    RequestLine.request_id == request.id,
                    RequestLine.status == RequestStatus.PENDING
                ))
                .values(
                    status=RequestStatus.REJECTED,
                    rejection_reason=rejection_reason,
                    updated_by=current_user.id,
                    updated_at=utcnow()
                )
            )
            request.rejection_reason = rejection_reason
            await self._refresh_overall_status(request, current_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "reject_request", "request", request_id, rejection_reason)
        return await self.get_request_by_id(request_id)

    async def approve_request_line(
        self,
        request_id: int,
        line_ref: Union[str, int],
        current_user: CurrentUser
    ) -> Request:
        """Approve one line: debit its item and record the issue"""
        self._require_reviewer(current_user)

        try:
            request = await self.get_request_by_id(request_id, for_update=True)
            if not request:
                raise NotFoundError("Request not found")

            line = locate_line(request.lines, line_ref)
            if line is None:
                raise NotFoundError("Item not found in request")

            await self._issue_line(
                request, line, current_user,
                shortage_message="Insufficient stock to approve this item"
            )
            await self._refresh_overall_status(request, current_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "approve_request", "request", request_id, f"line {line.id}")
        return await self.get_request_by_id(request_id)

    async def reject_request_line(
        self,
        request_id: int,
        line_ref: Union[str, int],
        rejection_reason: Optional[str],
        current_user: CurrentUser
    ) -> Request:
        self._require_reviewer(current_user)
        reason = (rejection_reason or "").strip() or DEFAULT_LINE_REJECTION_REASON

        try:
            request = await self.get_request_by_id(request_id, for_update=True)
            if not request:
                raise NotFoundError("Request not found")

            line = locate_line(request.lines, line_ref)
            if line is None:
                raise NotFoundError("Item not found in request")

            await self._claim_line(line, RequestStatus.REJECTED, current_user, rejection_reason=reason)
            await self._refresh_overall_status(request, current_user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "reject_request", "request", request_id, f"line {line.id}: {reason}")
        return await self.get_request_by_id(request_id)

    async def delete_request(self, request_id: int, current_user: CurrentUser) -> None:
        """Delete a request that is still fully pending (owner or admin)"""
        request = await self.get_request_by_id(request_id, for_update=True)
        if not request:
            raise NotFoundError("Request not found")

        if request.requested_by != current_user.id and not current_user.is_admin:
            raise ForbiddenError("Not authorized to delete this request")

        if request.status != RequestStatus.PENDING or any(
            line.status != RequestStatus.PENDING for line in request.lines
        ):
            raise InvalidStateError("Cannot delete a request that has been reviewed")

        try:
            await self.db.delete(request)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_user_action(current_user.id, "delete_request", "request", request_id)

    async def _issue_line(
        self,
        request: Request,
        line: RequestLine,
        current_user: CurrentUser,
        shortage_message: str
    ):
        """Claim the line, debit stock and append the linked ``out`` transaction"""
        await self._claim_line(line, RequestStatus.APPROVED, current_user)

        balance_after = await self.ledger.debit(line.item_id, line.quantity, shortage_message)
        await self.ledger.append(
            item_id=line.item_id,
            transaction_type=TransactionType.OUT,
            quantity=line.quantity,
            balance_after=balance_after,
            performed_by=current_user.id,
            notes=f"Request approved - {request.purpose}",
            request_id=request.id,
            request_line_id=line.id,
        )
        logger.info(
            f"Issued {line.quantity} of item {line.item_id} for request {request.id} "
            f"(line {line.id}), balance {balance_after}"
        )

    async def _claim_line(
        self,
        line: RequestLine,
        new_status: RequestStatus,
        current_user: CurrentUser,
        rejection_reason: Optional[str] = None
    ):
        """Move a line out of pending; fails if another action already resolved it"""
        values = {
            "status": new_status,
            "updated_by": current_user.id,
            "updated_at": utcnow(),
        }
        if rejection_reason is not None:
            values["rejection_reason"] = rejection_reason

        result = await self.db.execute(
            update(RequestLine)
            .where(and_(RequestLine.id == line.id, RequestLine.status == RequestStatus.PENDING))
            .values(**values)
        )
        if result.rowcount == 0:
            raise InvalidStateError("This item has already been reviewed")

    async def _refresh_overall_status(self, request: Request, current_user: CurrentUser):
        """Re-derive the request status from stored line statuses; stamp the reviewer once resolved"""
        result = await self.db.execute(
            select(RequestLine.status).where(RequestLine.request_id == request.id)
        )
        new_status = fold_request_status(result.scalars().all())

        if new_status != RequestStatus.PENDING and request.status == RequestStatus.PENDING:
            request.status = new_status
            request.reviewed_by = current_user.id
            request.reviewed_at = utcnow()
        request.updated_by = current_user.id
        await self.db.flush()

    async def _get_item(self, item_id: int) -> Item:
        result = await self.db.execute(select(Item).where(Item.id == item_id))
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError(f"Item not found: {item_id}")
        return item

    def _require_reviewer(self, current_user: CurrentUser):
        if not current_user.is_admin:
            raise ForbiddenError("Only reviewers can approve or reject requests")
