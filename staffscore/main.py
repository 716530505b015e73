from fastapi import FastAPI
from staffscore.config import settings
from staffscore.database import engine, Base
from staffscore.routers import performance
from staffscore.models.employee import Employee
from staffscore.models.shift import Shift, ShiftAssignment
from staffscore.models.attendance import AttendanceLog
from staffscore.models.task import Task, TaskCompletion
from staffscore.models.training import TestSubmission
from staffscore.models.staff_audit import StaffAudit
from staffscore.models.staff_event import StaffEvent
from staffscore.models.performance import PerformanceMonthlyScore
import logging
from sqlalchemy import exc as sa_exc


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(title="StaffScore - Monthly Performance Snapshots", version="1.0")

# Include Routers
app.include_router(performance.router)

# Create DB Tables (development only, use Alembic in prod)
@app.on_event("startup")
async def startup_event():
    # ignore duplicate-object errors from previous partial runs.
    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except sa_exc.IntegrityError as e:
            msg = str(getattr(e, "orig", e))
            if "duplicate key value violates unique constraint" in msg or "already exists" in msg:
                logging.warning("Ignored duplicate DDL error during create_all: %s", msg)
            else:
                raise

@app.get("/")
def read_root():
    return {"message": "Welcome to StaffScore"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("staffscore.main:app", host="0.0.0.0", port=8000, reload=True)
