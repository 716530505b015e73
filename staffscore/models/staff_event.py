from sqlalchemy import Column, Integer, String, Date, JSON, ForeignKey
from staffscore.database import Base

class StaffEvent(Base):
    __tablename__ = "staff_events"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    event_type = Column(String, nullable=False)  # warning, commendation, ...
    event_date = Column(Date, nullable=False)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)  # {"severity": "minor" | "major", ...}
