"""
Feedback ledger - at most one feedback per observation schedule.

Lifecycle of a ledger row: reserved → submitted, or reserved → (deleted).
A reservation is taken before the remote submission so two concurrent
submissions for the same schedule cannot both reach the TPMA API.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import ObservationFeedbackRecord
from shared.utils.exceptions import DatabaseException, DuplicateFeedbackException

logger = logging.getLogger(__name__)

RESERVED = "reserved"
SUBMITTED = "submitted"


class FeedbackRepository:
    """Repository for the observation feedback ledger."""

    def __init__(self, db: DBSession):
        self.db = db

    def reserve(
        self,
        schedule_id: str,
        supervisor_id: str,
        trainee_id: str,
        score: int,
        comments: str,
        lesson_plan_id: Optional[str] = None,
    ) -> str:
        """
        Claim the feedback slot for a schedule. Returns the ledger row id.

        Raises DuplicateFeedbackException if the schedule already has a
        reserved or submitted row.
        """
        if self.get_by_schedule(schedule_id):
            raise DuplicateFeedbackException(schedule_id)

        record = ObservationFeedbackRecord(
            id=str(uuid.uuid4()),
            schedule_id=schedule_id,
            supervisor_id=supervisor_id,
            trainee_id=trainee_id,
            lesson_plan_id=lesson_plan_id,
            score=score,
            comments=comments,
            status=RESERVED,
        )
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateFeedbackException(schedule_id) from e

        logger.info(f"Feedback slot {record.id} reserved for schedule {schedule_id}")
        return record.id

    def confirm(self, record_id: str, remote_feedback_id: Optional[str] = None) -> None:
        """Mark a reservation as submitted once the TPMA API accepted it."""
        record = self._get(record_id)
        if not record:
            logger.warning(f"Cannot confirm feedback: record {record_id} not found")
            return
        record.status = SUBMITTED
        record.remote_feedback_id = remote_feedback_id
        record.submitted_at = datetime.utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("feedback confirm", e) from e
        logger.info(f"Feedback {record_id} for schedule {record.schedule_id} submitted")

    def release(self, record_id: str) -> None:
        """Drop a reservation whose remote submission failed."""
        record = self._get(record_id)
        if not record:
            return
        if record.status != RESERVED:
            logger.warning(f"Cannot release feedback {record_id} in '{record.status}' state")
            return
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("feedback release", e) from e
        logger.info(f"Feedback slot {record_id} released")

    def get_by_schedule(self, schedule_id: str) -> Optional[ObservationFeedbackRecord]:
        return self.db.query(ObservationFeedbackRecord).filter(
            ObservationFeedbackRecord.schedule_id == schedule_id
        ).first()

    def count_by_supervisor(self, supervisor_id: str) -> int:
        """Number of feedback submissions the supervisor completed through this service."""
        return self.db.query(ObservationFeedbackRecord).filter(
            ObservationFeedbackRecord.supervisor_id == supervisor_id,
            ObservationFeedbackRecord.status == SUBMITTED,
        ).count()

    def _get(self, record_id: str) -> Optional[ObservationFeedbackRecord]:
        return self.db.query(ObservationFeedbackRecord).filter(
            ObservationFeedbackRecord.id == record_id
        ).first()
