import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from database.models import Application
from database.repositories.base import BaseRepository, as_uuid

logger = logging.getLogger(__name__)


class ApplicationRepository(BaseRepository):
    def get_by_id(self, application_id: Any) -> Optional[Application]:
        app_uuid = as_uuid(application_id)
        if app_uuid is None:
            return None
        stmt = select(Application).where(Application.id == app_uuid)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_ids_by_status(self, status: str) -> List[str]:
        stmt = (
            select(Application.id)
            .where(Application.status == status)
            .order_by(Application.created_at)
        )
        return [str(app_id) for app_id in self.db.execute(stmt).scalars().all()]

    def mark_processing(self, application_id: Any, expected_status: str) -> bool:
        """
        Move an application to PROCESSING only if it is still in
        expected_status. A worker that already wrote a decision wins.
        """
        app_uuid = as_uuid(application_id)
        if app_uuid is None:
            return False
        stmt = (
            update(Application)
            .where(Application.id == app_uuid, Application.status == expected_status)
            .values(status='PROCESSING')
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount > 0

    def apply_score(
        self,
        application: Application,
        score: float,
        score_breakdown: Dict[str, Any],
        passing_threshold: float,
        status: str
    ) -> None:
        application.score = score
        application.score_breakdown = score_breakdown
        application.passing_threshold = passing_threshold
        application.status = status
        self.db.flush()
