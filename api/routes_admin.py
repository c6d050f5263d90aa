from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
import logging

from core.response import ok, error
from core.singleton import get_scheduler
from models.dispatch import CycleStatus
from services.scheduler import DisruptionScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check")
async def manual_check(
    force: bool = Query(False, description="Diagnostic only: notify every notification-worthy disruption, bypassing dedup"),
    scheduler: DisruptionScheduler = Depends(get_scheduler),
):
    """
    Admin: run one disruption cycle synchronously and report per disruption.

    - 200: cycle completed (or seeded, on a cold process)
    - 409: another cycle was in flight; this trigger was ignored
    - 502: the feed could not be fetched; nothing was committed or dispatched
    """
    if force:
        logger.warning("Manual check with force=true: dedup bypassed")
    report = await scheduler.run_cycle(trigger="manual", force=force)
    summary = report.summary()
    if report.status == CycleStatus.SKIPPED:
        return JSONResponse(status_code=409, content=error(code="cycle_in_flight", message="A cycle is already running", details=summary))
    if report.status == CycleStatus.FAILED:
        return JSONResponse(status_code=502, content=error(code="cycle_failed", message=report.error or "Cycle failed", details=summary))
    return ok(summary)


@router.post("/test-notification")
async def send_test_notification(
    token: str | None = Query(None),
    scheduler: DisruptionScheduler = Depends(get_scheduler),
):
    """Admin: send one test notification straight to a device token."""
    if not token:
        raise HTTPException(status_code=400, detail="Device token is required")
    try:
        message_id = await scheduler.dispatcher.send_test(token)
    except Exception as e:
        logger.error("Error sending test notification: %s", e)
        return JSONResponse(status_code=502, content=error(code="publish_failed", message=str(e) or type(e).__name__))
    return ok({"message_id": message_id})
