from sqlalchemy import Column, Integer, String, Date, Time, ForeignKey
from staffscore.database import Base

class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    location_id = Column(Integer, nullable=True)
    shift_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

class ShiftAssignment(Base):
    __tablename__ = "shift_assignments"

    id = Column(Integer, primary_key=True, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    approval_status = Column(String, nullable=False, default="pending")  # pending, approved, rejected
