from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from staffscore.database import Base

class AttendanceLog(Base):
    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=True)  # kiosk check-ins may have no shift
    check_in_at = Column(DateTime(timezone=True), nullable=False)
    check_out_at = Column(DateTime(timezone=True), nullable=True)
    is_late = Column(Boolean, nullable=False, default=False)
    late_minutes = Column(Integer, nullable=True)
