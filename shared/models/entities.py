"""SQLAlchemy ORM database models."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class MirroredLessonPlan(Base):
    """Local copy of a lesson plan visible to one supervisor."""
    __tablename__ = "mirrored_lesson_plans"

    supervisor_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    trainee_id = Column(String, nullable=False)
    title = Column(String, nullable=False, default="")
    subject = Column(String, nullable=False, default="")
    class_name = Column(String, nullable=True)
    date = Column(String, nullable=False, default="")  # YYYY-MM-DD
    start_time = Column(String, nullable=True)  # HH:MM
    end_time = Column(String, nullable=True)
    objectives = Column(Text, nullable=True)
    activities = Column(Text, nullable=True)
    resources = Column(Text, nullable=True)
    status = Column(String, nullable=False)  # PENDING, SUBMITTED, APPROVED, REJECTED
    ai_generated = Column(Boolean, default=False, nullable=False)
    trainee_name = Column(String, nullable=True)
    school_name = Column(String, nullable=True)
    pdf_url = Column(String, nullable=True)
    remote_created_at = Column(String, nullable=True)
    synced_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_mirror_plan_supervisor_status", "supervisor_id", "status"),
    )


class MirroredSchedule(Base):
    """Local copy of an observation schedule owned by one supervisor."""
    __tablename__ = "mirrored_schedules"

    supervisor_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    trainee_id = Column(String, nullable=False)
    lesson_plan_id = Column(String, nullable=False)
    date = Column(String, nullable=False)
    start_time = Column(String, nullable=False, default="")
    end_time = Column(String, nullable=False, default="")
    status = Column(String, nullable=False)  # SCHEDULED, ONGOING, COMPLETED
    lesson_plan_title = Column(String, nullable=True)
    trainee_name = Column(String, nullable=True)
    remote_created_at = Column(String, nullable=True)
    synced_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_mirror_schedule_supervisor_status", "supervisor_id", "status"),
    )


class ObservationFeedbackRecord(Base):
    """Feedback ledger - at most one row per observation schedule."""
    __tablename__ = "observation_feedback"

    id = Column(String, primary_key=True)
    schedule_id = Column(String, nullable=False)
    supervisor_id = Column(String, nullable=False)
    trainee_id = Column(String, nullable=False)
    lesson_plan_id = Column(String, nullable=True)
    score = Column(Integer, nullable=False)
    comments = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="reserved")  # reserved, submitted
    remote_feedback_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    submitted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("schedule_id", name="uq_feedback_schedule"),
        Index("idx_feedback_supervisor", "supervisor_id"),
    )
