from sqlalchemy import Column, Integer, Float, Date, ForeignKey
from staffscore.database import Base

class StaffAudit(Base):
    """Manager review of an employee."""
    __tablename__ = "staff_audits"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    auditor_id = Column(Integer, nullable=True)
    score = Column(Float, nullable=True)  # 0–100
    audit_date = Column(Date, nullable=False)
