from pydantic import BaseModel
from datetime import date
from typing import Optional, List

class SnapshotResponse(BaseModel):
    success: bool = True
    upserted: int
    month: str  # YYYY-MM-01
    failed_companies: List[int] = []

class SnapshotErrorResponse(BaseModel):
    success: bool = False
    error: str
    upserted: int = 0  # rows committed before the failure

class MonthlyScoreResponse(BaseModel):
    employee_id: int
    company_id: int
    month: date
    effective_score: Optional[float]
    used_components: int
    attendance_score: Optional[float]
    punctuality_score: Optional[float]
    task_score: Optional[float]
    test_score: Optional[float]
    review_score: Optional[float]
    warning_penalty: float
    rank_in_location: Optional[int]
    location_id: Optional[int] = None

    model_config = {"from_attributes": True}
