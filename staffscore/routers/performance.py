import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from staffscore.database import get_db, get_session_factory
from staffscore.models.employee import Employee
from staffscore.models.performance import PerformanceMonthlyScore
from staffscore.schemas.performance import MonthlyScoreResponse, SnapshotErrorResponse, SnapshotResponse
from staffscore.services.period import parse_month
from staffscore.services.pipeline import SnapshotRun, run_monthly_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/performance", tags=["performance"])


async def _requested_month(request: Request) -> Optional[str]:
    # A missing or malformed body just means "previous month"
    try:
        body = await request.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("month")
    return None


@router.post(
    "/snapshot-monthly-scores",
    response_model=SnapshotResponse,
    responses={500: {"model": SnapshotErrorResponse}},
)
async def snapshot_monthly_scores(
    request: Request,
    session_factory = Depends(get_session_factory)
):
    month = await _requested_month(request)
    run = SnapshotRun()
    try:
        await run_monthly_snapshot(session_factory, month, run=run)
    except Exception as e:
        logger.exception("Monthly score snapshot failed (month=%s)", run.month or month)
        error = SnapshotErrorResponse(error=str(e), upserted=run.upserted)
        return JSONResponse(status_code=500, content=error.model_dump())

    return SnapshotResponse(
        upserted=run.upserted,
        month=run.month,
        failed_companies=run.failed_companies
    )


@router.get("/monthly-scores", response_model=List[MonthlyScoreResponse])
async def list_monthly_scores(
    company_id: int,
    month: str,
    location_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    first_of_month = parse_month(month)
    if first_of_month is None:
        raise HTTPException(400, "Invalid month, expected YYYY-MM-01")

    query = (
        select(PerformanceMonthlyScore, Employee.location_id)
        .join(Employee, Employee.id == PerformanceMonthlyScore.employee_id)
        .where(PerformanceMonthlyScore.company_id == company_id)
        .where(PerformanceMonthlyScore.month == first_of_month)
    )
    if location_id is not None:
        query = query.where(Employee.location_id == location_id)

    # Leaderboard order: by location, ranked rows first, unranked after
    query = query.order_by(
        Employee.location_id.is_(None),
        Employee.location_id,
        PerformanceMonthlyScore.rank_in_location.is_(None),
        PerformanceMonthlyScore.rank_in_location,
        PerformanceMonthlyScore.employee_id,
    )
    result = await db.execute(query)

    scores = []
    for snapshot, employee_location in result.all():
        item = MonthlyScoreResponse.model_validate(snapshot)
        item.location_id = employee_location
        scores.append(item)
    return scores
