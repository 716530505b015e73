from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey
from staffscore.database import Base

class TestSubmission(Base):
    __tablename__ = "test_submissions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    score = Column(Float, nullable=True)  # 0–100
    passed = Column(Boolean, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
