from sqlalchemy import Column, Integer, String, DateTime, func
from staffscore.database import Base

class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    location_id = Column(Integer, nullable=True, index=True)
    full_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active")  # active, inactive, terminated
    created_at = Column(DateTime(timezone=True), server_default=func.now())
