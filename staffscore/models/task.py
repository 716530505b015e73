from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, func
from staffscore.database import Base

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    assigned_to = Column(Integer, ForeignKey("employees.id"), nullable=True)  # null → shared task
    status = Column(String, default="pending")  # pending, in_progress, completed
    completed_late = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    completed_by_employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    occurrence_date = Column(Date, nullable=False)
    completed_late = Column(Boolean, nullable=True)
