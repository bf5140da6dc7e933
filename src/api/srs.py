import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, Field

from src.srs.models import ReviewSubmission
from src.srs.scheduler import MAX_DUE_PAGE_SIZE, ReviewScheduler

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/srs", tags=["srs"])


# Request models
class RecordPerformanceRequest(BaseModel):
    topic_id: str
    quality_rating: int = Field(ge=0, le=5, strict=True)
    reminder_id: Optional[str] = None
    response_time_seconds: Optional[int] = Field(default=None, gt=0, strict=True)
    schedule_next: bool = True
    expected_last_record_id: Optional[str] = None


class ScheduleReviewRequest(BaseModel):
    topic_id: str
    review_at: datetime


def get_scheduler(request: Request) -> ReviewScheduler:
    return request.app.state.scheduler


def get_caller(x_user_id: str = Header(..., min_length=1)) -> str:
    """Identity of the already-authenticated caller, set by the gateway."""
    return x_user_id


@router.post("/record-performance")
async def record_performance(
    body: RecordPerformanceRequest,
    caller: str = Depends(get_caller),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    """Record a graded review and schedule the next one."""
    outcome = await scheduler.submit_review(
        caller,
        ReviewSubmission(
            topic_id=body.topic_id,
            quality_rating=body.quality_rating,
            reminder_id=body.reminder_id,
            response_time_seconds=body.response_time_seconds,
            schedule_next=body.schedule_next,
            expected_last_record_id=body.expected_last_record_id,
        ),
    )
    return {
        "success": True,
        "performance": outcome.record.to_dict(),
        "next_interval_days": outcome.record.next_interval_days,
        "ease_factor": outcome.record.ease_factor,
        "cramming": outcome.cramming,
        "next_reminder": outcome.next_reminder.to_dict() if outcome.next_reminder else None,
        "message": outcome.message,
    }


@router.get("/performance/{topic_id}")
async def get_performance(
    topic_id: str,
    caller: str = Depends(get_caller),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    record = await scheduler.get_performance_history(caller, topic_id)
    return record.to_dict()


@router.get("/next-review")
async def get_next_review(
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_DUE_PAGE_SIZE),
    caller: str = Depends(get_caller),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> List[Dict[str, Any]]:
    """Due reminders, oldest first, one page at most."""
    reminders = await scheduler.get_due_reviews(caller, limit=limit)
    return [reminder.to_dict() for reminder in reminders]


@router.post("/schedule-review")
async def schedule_review(
    body: ScheduleReviewRequest,
    caller: str = Depends(get_caller),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    reminder = await scheduler.schedule_review(caller, body.topic_id, body.review_at)
    LOGGER.info("Manual review scheduled for topic %s at %s", body.topic_id, body.review_at)
    return reminder.to_dict()


@router.get("/statistics")
async def get_statistics(
    caller: str = Depends(get_caller),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    summary = await scheduler.get_statistics(caller)
    return summary.to_dict()
