"""Dues API endpoints.

Handles membership dues operations:
- Due schedule, status and timeline per member
- Marking periods paid / unpaid, payment history and audit trail
- Voucher suggestions and manual voucher search
- Batch due list across members for one billing run
"""

import datetime as dt
import logging
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from dues.api.errors import raise_dues_error
from dues.models.member import ContributionInterval
from dues.services import get_db
from dues.services.dues_service import DuesService
from dues.services.errors import DuesError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dues", tags=["dues"])


def get_dues_service(db: Session = Depends(get_db)) -> DuesService:  # noqa: B008
    """Build a DuesService bound to the request's database session."""
    return DuesService(db)


def _as_of(value: date | None) -> date:
    # The transport layer supplies "now"; the engine itself never reads the clock
    return value or date.today()


# Response schemas
class DuePeriodResponse(BaseModel):
    """A period the member owes."""

    period_key: str
    interval: str
    amount: Decimal
    window_start: date
    window_end: date


class StatusResponse(BaseModel):
    """Member dues status summary."""

    state: str
    overdue_count: int
    join_date: date | None = None
    leave_date: date | None = None
    interval: str | None = None
    amount: Decimal | None = None
    last_paid_period: str | None = None
    last_paid_date: datetime | None = None
    initial_due_date: date | None = None
    first_overdue_period: str | None = None


class TimelineEntryResponse(BaseModel):
    """One timeline period with its display label."""

    period_key: str
    label: str


class PaymentResponse(BaseModel):
    """Stored payment record."""

    id: int
    member_id: int
    period_key: str
    interval: str
    amount: Decimal
    date_paid: datetime
    voucher_id: int | None = None
    verified: bool

    model_config = ConfigDict(from_attributes=True)


class MarkPaidRequest(BaseModel):
    """Request body for marking a period paid."""

    period_key: str
    interval: ContributionInterval
    amount: Decimal = Field(ge=0)
    voucher_id: int | None = None
    actor_id: int | None = None


class MarkPaidResponse(BaseModel):
    """Stored payment plus soft amount warnings."""

    payment: PaymentResponse
    warnings: list[str]


class AuditEntryResponse(BaseModel):
    """Payment audit trail entry."""

    id: int
    entity_type: str
    entity_id: int
    action: str
    actor_id: int | None = None
    changes: dict | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    """Accounting voucher summary."""

    id: int
    voucher_no: str | None = None
    date: dt.date
    amount: Decimal
    description: str | None = None
    counterparty: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SuggestionResponse(TransactionResponse):
    """Voucher suggestion with ranking signals."""

    amount_match: str
    multiple: int | None = None
    in_window: bool
    name_score: float
    days_from_due: int


class DueRowResponse(BaseModel):
    """Member period in the batch due list."""

    member_id: int
    name: str
    member_no: str | None = None
    status: str
    period_key: str
    interval: str
    amount: Decimal
    paid: bool
    voucher_id: int | None = None
    verified: bool

    model_config = ConfigDict(from_attributes=True)


@router.get("/members/{member_id}/schedule", response_model=list[DuePeriodResponse])
def get_schedule(
    member_id: int,
    as_of: date | None = None,
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[DuePeriodResponse]:
    """Get every period the member owes up to as_of (default: today)."""
    try:
        periods = service.generate_schedule(member_id, _as_of(as_of))
    except DuesError as e:
        raise_dues_error(e)
    return [
        DuePeriodResponse(
            period_key=str(p.period_key),
            interval=p.interval.value,
            amount=p.amount,
            window_start=p.window_start,
            window_end=p.window_end,
        )
        for p in periods
    ]


@router.get("/members/{member_id}/status", response_model=StatusResponse)
def get_status(
    member_id: int,
    as_of: date | None = None,
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> StatusResponse:
    """Get the member's dues status as of a date."""
    try:
        summary = service.get_status(member_id, _as_of(as_of))
    except DuesError as e:
        raise_dues_error(e)
    return StatusResponse(
        state=summary.state.value,
        overdue_count=summary.overdue_count,
        join_date=summary.join_date,
        leave_date=summary.leave_date,
        interval=summary.interval.value if summary.interval else None,
        amount=summary.amount,
        last_paid_period=summary.last_paid_period,
        last_paid_date=summary.last_paid_date,
        initial_due_date=summary.initial_due_date,
        first_overdue_period=summary.first_overdue_period,
    )


@router.get("/members/{member_id}/timeline", response_model=list[TimelineEntryResponse])
def get_timeline(
    member_id: int,
    as_of: date | None = None,
    past: int | None = Query(default=None, ge=0, le=120),  # noqa: B008
    future: int | None = Query(default=None, ge=0, le=120),  # noqa: B008
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[TimelineEntryResponse]:
    """Get the bounded timeline around the current period."""
    try:
        entries = service.get_timeline(member_id, _as_of(as_of), past, future)
    except DuesError as e:
        raise_dues_error(e)
    return [
        TimelineEntryResponse(period_key=entry.period_key, label=entry.label.value)
        for entry in entries
    ]


@router.post("/members/{member_id}/payments", response_model=MarkPaidResponse)
def mark_paid(
    member_id: int,
    request: MarkPaidRequest,
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> MarkPaidResponse:
    """Mark a period paid (idempotent upsert)."""
    try:
        result = service.mark_paid(
            member_id,
            request.period_key,
            request.interval,
            request.amount,
            request.voucher_id,
            request.actor_id,
        )
    except DuesError as e:
        raise_dues_error(e)
    return MarkPaidResponse(
        payment=PaymentResponse.model_validate(result.record),
        warnings=[w.message for w in result.warnings],
    )


@router.delete("/members/{member_id}/payments/{period_key}", status_code=204)
def unmark(
    member_id: int,
    period_key: str,
    actor_id: int | None = None,
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> Response:
    """Remove a payment record; succeeds even when the period was not paid."""
    try:
        service.unmark(member_id, period_key, actor_id)
    except DuesError as e:
        raise_dues_error(e)
    return Response(status_code=204)


@router.get("/members/{member_id}/payments", response_model=list[PaymentResponse])
def get_history(
    member_id: int,
    limit: int | None = Query(default=None, ge=1, le=200),  # noqa: B008
    offset: int = Query(default=0, ge=0),  # noqa: B008
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[PaymentResponse]:
    """Get payment history, most recently paid first."""
    try:
        records = service.get_history(member_id, limit, offset)
    except DuesError as e:
        raise_dues_error(e)
    return [PaymentResponse.model_validate(r) for r in records]


@router.get("/members/{member_id}/audit", response_model=list[AuditEntryResponse])
def get_audit_trail(
    member_id: int,
    limit: int | None = Query(default=None, ge=1, le=200),  # noqa: B008
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[AuditEntryResponse]:
    """Get who changed which payment records, newest first."""
    try:
        entries = service.get_audit_trail(member_id, limit)
    except DuesError as e:
        raise_dues_error(e)
    return [AuditEntryResponse.model_validate(entry) for entry in entries]


@router.get("/members/{member_id}/suggestions", response_model=list[SuggestionResponse])
def suggest_transactions(
    member_id: int,
    period_key: str,
    limit: int | None = Query(default=None, ge=1, le=50),  # noqa: B008
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[SuggestionResponse]:
    """Get ranked voucher suggestions for a member period."""
    try:
        candidates = service.suggest_transactions(member_id, period_key, limit)
    except DuesError as e:
        raise_dues_error(e)
    return [
        SuggestionResponse(
            id=c.transaction.id,
            voucher_no=c.transaction.voucher_no,
            date=c.transaction.date,
            amount=c.transaction.amount,
            description=c.transaction.description,
            counterparty=c.transaction.counterparty,
            amount_match=c.amount_match,
            multiple=c.multiple,
            in_window=c.in_window,
            name_score=c.name_score,
            days_from_due=c.days_from_due,
        )
        for c in candidates
    ]


@router.get("/transactions", response_model=list[TransactionResponse])
def search_transactions(
    date_from: date,
    date_to: date,
    q: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),  # noqa: B008
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[TransactionResponse]:
    """Manual voucher search by text and date range."""
    try:
        rows = service.search_transactions(q, date_from, date_to, limit)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return [TransactionResponse.model_validate(r) for r in rows]


@router.get("/due", response_model=list[DueRowResponse])
def list_due(
    interval: ContributionInterval,
    period_key: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    q: str | None = None,
    include_paid: bool = False,
    as_of: date | None = None,
    service: DuesService = Depends(get_dues_service),  # noqa: B008
) -> list[DueRowResponse]:
    """Batch due list for one billing run.

    Without period_key or a complete date range, lists the period
    containing as_of (default: today).
    """
    if period_key is None and (date_from is None or date_to is None):
        as_of = _as_of(as_of)
    try:
        rows = service.list_due_periods_across_members(
            interval,
            period_key=period_key,
            date_from=date_from,
            date_to=date_to,
            filter_text=q,
            include_paid=include_paid,
            as_of=as_of,
        )
    except DuesError as e:
        raise_dues_error(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return [DueRowResponse.model_validate(r) for r in rows]
