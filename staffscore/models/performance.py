from sqlalchemy import Column, Integer, Float, Date, ForeignKey, UniqueConstraint
from staffscore.database import Base

class PerformanceMonthlyScore(Base):
    __tablename__ = "performance_monthly_scores"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    company_id = Column(Integer, nullable=False, index=True)
    month = Column(Date, nullable=False)  # first day of the month
    effective_score = Column(Float, nullable=True)  # null iff used_components == 0
    used_components = Column(Integer, nullable=False, default=0)

    # null → component not applicable for the month
    attendance_score = Column(Float, nullable=True)
    punctuality_score = Column(Float, nullable=True)
    task_score = Column(Float, nullable=True)
    test_score = Column(Float, nullable=True)
    review_score = Column(Float, nullable=True)

    warning_penalty = Column(Float, nullable=False, default=0.0)
    rank_in_location = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", name="uq_employee_month"),
    )
