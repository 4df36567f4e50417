import logging
from typing import Any, List, Optional

from sqlalchemy import select, or_

from database.models import User
from database.repositories.base import BaseRepository, as_uuid

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository):
    def get_by_id(self, user_id: Any) -> Optional[User]:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return None
        stmt = select(User).where(User.id == user_uuid)
        return self.db.execute(stmt).scalar_one_or_none()

    def set_status(self, user: User, status: str) -> None:
        user.status = status
        self.db.flush()

    def list_with_linked_identities(self) -> List[User]:
        """Users with at least one provider identity, for periodic refresh."""
        stmt = select(User).where(
            or_(
                User.github_username.isnot(None),
                User.codeforces_handle.isnot(None),
                User.leetcode_handle.isnot(None),
            )
        ).order_by(User.created_at)
        return list(self.db.execute(stmt).scalars().all())
