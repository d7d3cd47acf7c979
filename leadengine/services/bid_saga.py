"""
Bid placement saga.

Placing a bid spans four writes that share no transaction: the bid itself,
the lead access record, the lead counter and the job's bid reference. The
bid is committed first as a tentative record, then the three dependent
writes fan out concurrently, each in its own session. If any of them fails,
every write that landed is undone and the bid is deleted.
"""
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from leadengine.core.clock import utcnow, to_naive_utc
from leadengine.core.config import BID_FAN_OUT_WORKERS
from leadengine.core.errors import (
    LimitExceededError,
    NotFoundError,
    SagaCompensationError,
    ValidationError,
)
from leadengine.db.models.bid import Bid
from leadengine.db.models.job import Job, JobBidRef
from leadengine.db.models.lead_access import LeadAccessRecord
from leadengine.schemas.bid import BidCreate, BidResponse, BidResult
from leadengine.services.access_gate import can_access_job
from leadengine.services.benefit_resolver import get_effective_plan
from leadengine.services.lead_ledger import (
    check_lead_limit,
    counter_field,
    increment_lead_usage_if_below,
    increment_period_counter,
)

logger = logging.getLogger(__name__)

LEAD_ACCESS = "lead_access"
LEAD_COUNTER = "lead_counter"
JOB_BID_REF = "job_bid_ref"


@dataclass(frozen=True)
class FanOutContext:
    """Everything a fan-out writer needs, resolved before the bid is created."""
    bid_id: int
    job_id: int
    contractor_id: int
    membership_tier: str
    billing_period: str
    period_id: Optional[int]
    counter_field: str
    lead_limit: Optional[int]
    accessed_at: datetime


# A writer returns True when it changed something that compensation must undo
FanOutWriter = Callable[[Session, FanOutContext], bool]


def write_lead_access(db: Session, ctx: FanOutContext) -> bool:
    db.add(LeadAccessRecord(
        contractor_id=ctx.contractor_id,
        job_id=ctx.job_id,
        bid_id=ctx.bid_id,
        membership_tier=ctx.membership_tier,
        billing_period=ctx.billing_period,
        accessed_at=ctx.accessed_at,
    ))
    db.commit()
    return True


def write_lead_counter(db: Session, ctx: FanOutContext) -> bool:
    # Default-plan users are metered from the access log alone
    if ctx.period_id is None:
        return False
    if not increment_lead_usage_if_below(db, ctx.period_id, ctx.counter_field, ctx.lead_limit, commit=False):
        db.rollback()
        raise LimitExceededError(
            "Lead limit reached by a concurrent bid",
            reason="lead_limit_reached",
        )
    # Commits together with the increment; compensation reads it back
    db.query(Bid).filter(Bid.id == ctx.bid_id).update({Bid.lead_counted: True}, synchronize_session=False)
    db.commit()
    return True


def write_job_bid_ref(db: Session, ctx: FanOutContext) -> bool:
    db.add(JobBidRef(job_id=ctx.job_id, bid_id=ctx.bid_id, created_at=ctx.accessed_at))
    db.commit()
    return True


DEFAULT_FAN_OUT_WRITERS: Dict[str, FanOutWriter] = {
    LEAD_ACCESS: write_lead_access,
    LEAD_COUNTER: write_lead_counter,
    JOB_BID_REF: write_job_bid_ref,
}


def validate_bid_input(bid_input: BidCreate) -> None:
    """
    Validate a bid request before touching any state.

    Raises:
        ValidationError: Missing or malformed fields
    """
    timeline = bid_input.timeline
    missing = []
    if bid_input.job_id is None:
        missing.append("job_id")
    if bid_input.bid_amount is None:
        missing.append("bid_amount")
    if not bid_input.message or not bid_input.message.strip():
        missing.append("message")
    if timeline is None or timeline.start_date is None:
        missing.append("timeline.start_date")
    if timeline is None or timeline.end_date is None:
        missing.append("timeline.end_date")
    if missing:
        raise ValidationError("Missing required fields", fields=missing)

    if bid_input.bid_amount <= 0:
        raise ValidationError("Bid amount must be greater than zero", bid_amount=bid_input.bid_amount)
    if to_naive_utc(timeline.end_date) < to_naive_utc(timeline.start_date):
        raise ValidationError("Timeline end date must not be before its start date")


def _run_writer(session_factory: sessionmaker, writer: FanOutWriter, ctx: FanOutContext) -> bool:
    session = session_factory()
    try:
        return writer(session, ctx)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _fan_out(
    session_factory: sessionmaker,
    writers: Dict[str, FanOutWriter],
    ctx: FanOutContext,
    executor: Optional[Executor],
) -> tuple:
    """Run every writer concurrently and wait for all of them."""
    landed: Dict[str, bool] = {}
    failures: Dict[str, Exception] = {}

    def collect(pool: Executor) -> None:
        futures = {name: pool.submit(_run_writer, session_factory, writer, ctx) for name, writer in writers.items()}
        for name, future in futures.items():
            try:
                landed[name] = bool(future.result())
            except Exception as exc:
                failures[name] = exc

    if executor is not None:
        collect(executor)
    else:
        with ThreadPoolExecutor(max_workers=BID_FAN_OUT_WORKERS, thread_name_prefix="bid-fan-out") as pool:
            collect(pool)

    return landed, failures


def _compensate(db: Session, ctx: FanOutContext) -> None:
    """
    Undo every fan-out write that landed, then delete the tentative bid.

    Everything is keyed on the bid: records are deleted by ``bid_id`` and the
    counter is decremented only when the bid carries ``lead_counted``. The
    decrement and the deletes commit together.
    """
    db.rollback()
    counted = db.query(Bid.lead_counted).filter(Bid.id == ctx.bid_id).scalar()

    db.query(LeadAccessRecord).filter(LeadAccessRecord.bid_id == ctx.bid_id).delete(synchronize_session=False)
    db.query(JobBidRef).filter(JobBidRef.bid_id == ctx.bid_id).delete(synchronize_session=False)
    if counted and ctx.period_id is not None:
        increment_period_counter(db, ctx.period_id, ctx.counter_field, delta=-1, commit=False)
    db.query(Bid).filter(Bid.id == ctx.bid_id).delete(synchronize_session=False)
    db.commit()

    db.expire_all()


def create_bid(
    db: Session,
    user_id: int,
    bid_input: BidCreate,
    now: Optional[datetime] = None,
    session_factory: Optional[sessionmaker] = None,
    fan_out_writers: Optional[Dict[str, FanOutWriter]] = None,
    executor: Optional[Executor] = None,
) -> BidResult:
    """
    Place a bid on a job, consuming one lead.

    Args:
        db: Database session
        user_id: Contractor user ID
        bid_input: Bid request
        now: Evaluation time (defaults to current UTC time)
        session_factory: Session factory for fan-out writes (defaults to one
            bound to ``db``'s engine)
        fan_out_writers: Writers keyed by name (defaults to the three standard writes)
        executor: Executor for the fan-out (defaults to a fresh thread pool)

    Returns:
        BidResult with the committed bid and the post-increment lead status

    Raises:
        ValidationError: Bad input, job not open, or duplicate bid
        NotFoundError: Job does not exist
        LimitExceededError: Job not accessible yet, or lead limit reached
        SagaCompensationError: A fan-out write failed and the bid was rolled back
    """
    now = now or utcnow()
    validate_bid_input(bid_input)

    job = db.get(Job, bid_input.job_id)
    if job is None:
        raise NotFoundError("Job not found", job_id=bid_input.job_id)
    if job.status != "open":
        raise ValidationError("Job is not open for bidding", job_id=job.id, status=job.status)

    existing = db.query(Bid).filter(Bid.contractor_id == user_id, Bid.job_id == job.id).first()
    if existing:
        raise ValidationError("You have already placed a bid on this job", job_id=job.id, bid_id=existing.id)

    decision = can_access_job(db, user_id, job, now)
    if not decision.can_access:
        raise LimitExceededError(
            "You cannot bid on this job yet",
            reason=decision.reason,
            access_time=decision.access_time,
            reasons=decision.reasons,
        )

    lead_status = check_lead_limit(db, user_id, now)
    if not lead_status.can_access:
        raise LimitExceededError(
            lead_status.reason,
            reason="lead_limit_reached",
            reset_date=lead_status.reset_date,
            leads_used=lead_status.leads_used,
            leads_limit=lead_status.leads_limit,
        )

    plan = get_effective_plan(db, user_id, now)

    timeline = bid_input.timeline
    materials = bid_input.materials
    warranty = bid_input.warranty
    bid = Bid(
        job_id=job.id,
        contractor_id=user_id,
        bid_amount=bid_input.bid_amount,
        message=bid_input.message.strip(),
        status="pending",
        start_date=to_naive_utc(timeline.start_date),
        end_date=to_naive_utc(timeline.end_date),
        materials_included=bool(materials and materials.included),
        materials_description=materials.description if materials else None,
        warranty_months=warranty.period_months if warranty else None,
        warranty_description=warranty.description if warranty else None,
        created_at=now,
    )
    db.add(bid)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("You have already placed a bid on this job", job_id=job.id)
    db.refresh(bid)

    ctx = FanOutContext(
        bid_id=bid.id,
        job_id=job.id,
        contractor_id=user_id,
        membership_tier=plan.tier,
        billing_period=plan.billing_period,
        period_id=plan.period_id,
        counter_field=counter_field(plan.billing_period),
        lead_limit=lead_status.leads_limit,
        accessed_at=now,
    )

    session_factory = session_factory or sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    writers = fan_out_writers if fan_out_writers is not None else DEFAULT_FAN_OUT_WRITERS
    landed, failures = _fan_out(session_factory, writers, ctx, executor)

    if failures:
        for name, exc in failures.items():
            logger.error(f"Bid fan-out write failed: bid_id={ctx.bid_id}, write={name}, error={exc!r}")
        cause = next(iter(failures.values()))
        try:
            _compensate(db, ctx)
        except Exception as exc:
            logger.exception(f"Bid compensation failed: bid_id={ctx.bid_id}, landed={landed}")
            raise SagaCompensationError() from exc

        logger.warning(f"Bid saga compensated: bid_id={ctx.bid_id}, job_id={ctx.job_id}, user_id={user_id}")
        if isinstance(cause, LimitExceededError):
            raise cause
        raise SagaCompensationError() from cause

    db.expire_all()
    committed = db.get(Bid, ctx.bid_id)

    logger.info(f"Bid placed: bid_id={ctx.bid_id}, job_id={ctx.job_id}, user_id={user_id}, tier={plan.tier}")

    return BidResult(
        bid=BidResponse.model_validate(committed),
        lead_status=check_lead_limit(db, user_id, now),
    )
