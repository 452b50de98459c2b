"""Pull-based refresh of a supervisor's mirror from the TPMA API."""
import logging
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from shared.repositories.mirror_repository import MirrorRepository
from supervision.normalization import normalize_lesson_plan, normalize_schedule
from tpma.client import TPMAClient
from tpma.exceptions import TPMAError
from tpma.request_gate import FetchGate, get_fetch_gate

logger = logging.getLogger(__name__)


class SupervisorStateSync:
    """Re-fetches the supervisor profile and swaps it into the local mirror."""

    def __init__(self, db: DBSession, client: TPMAClient, gate: Optional[FetchGate] = None):
        self.client = client
        self.mirror = MirrorRepository(db)
        self.gate = gate or get_fetch_gate()

    def refresh(self, supervisor_id: str, force: bool = False) -> bool:
        """
        Replace the supervisor's mirror with the remote state.

        Returns False when a non-forced refresh was suppressed by the fetch
        gate. Forced refreshes always run (after waiting out an in-flight one).
        Remote errors propagate and leave the previous mirror untouched.
        """
        with self.gate.acquire(supervisor_id, force=force) as acquired:
            if not acquired:
                return False

            profile = self.client.get_supervisor_profile(supervisor_id)
            lesson_plans = [normalize_lesson_plan(plan) for plan in profile.lesson_plans]
            schedules = [
                normalize_schedule(schedule, lesson_plans, supervisor_id)
                for schedule in profile.schedules
            ]
            self.mirror.replace_supervisor_state(supervisor_id, lesson_plans, schedules)

        logger.info(
            f"Refreshed supervisor {supervisor_id} (force={force}): "
            f"{len(lesson_plans)} lesson plans, {len(schedules)} schedules"
        )
        return True

    def ensure_loaded(self, supervisor_id: str) -> None:
        """Populate the mirror on first use."""
        if not self.mirror.has_state(supervisor_id):
            self.refresh(supervisor_id, force=True)

    def refresh_after_mutation(self, supervisor_id: str) -> bool:
        """
        Forced refresh following a successful remote write.

        The write already landed, so a failed read-back is logged rather than
        reported as a failure of the write. The mirror is caught up by the
        next refresh.
        """
        try:
            return self.refresh(supervisor_id, force=True)
        except TPMAError as e:
            logger.warning(f"Mirror refresh after write failed for supervisor {supervisor_id}: {e}")
            return False
