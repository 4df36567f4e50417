import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select

from database.models import ScoringWeight
from database.repositories.base import BaseRepository, as_uuid

logger = logging.getLogger(__name__)

# Seed values for a fresh database
DEFAULT_WEIGHTS = [
    {
        'key': 'github_contributions',
        'weight': 0.35,
        'threshold': 1000,
        'minimum': 100,
        'description': 'GitHub contributions in the last year. 1000+ scores 100.',
    },
    {
        'key': 'codeforces_rating',
        'weight': 0.25,
        'threshold': 2100,
        'minimum': 1200,
        'description': 'Peak Codeforces rating. 2100+ scores 100.',
    },
    {
        'key': 'leetcode_problems',
        'weight': 0.25,
        'threshold': 500,
        'minimum': 50,
        'description': 'Total LeetCode problems solved. 500+ scores 100.',
    },
    {
        'key': 'portfolio_quality',
        'weight': 0.15,
        'threshold': 100,
        'minimum': 20,
        'description': 'Manual portfolio review score (0-100). Assigned during human review.',
    },
]


class ScoringWeightRepository(BaseRepository):
    def list_all(self) -> List[ScoringWeight]:
        stmt = select(ScoringWeight).order_by(ScoringWeight.key)
        return list(self.db.execute(stmt).scalars().all())

    def list_rows(self) -> List[Dict[str, Any]]:
        """Plain dict rows, safe to use after the session closes."""
        return [row.to_dict() for row in self.list_all()]

    def get_by_key(self, key: str) -> Optional[ScoringWeight]:
        stmt = select(ScoringWeight).where(ScoringWeight.key == key)
        return self.db.execute(stmt).scalar_one_or_none()

    def update_weight(
        self,
        row: ScoringWeight,
        changes: Dict[str, float],
        updated_by: Any = None
    ) -> ScoringWeight:
        for field_name, value in changes.items():
            setattr(row, field_name, value)
        row.updated_by_id = as_uuid(updated_by) if updated_by else None
        self.db.flush()
        return row

    def seed_defaults(self, weights: Iterable[Dict[str, Any]] = DEFAULT_WEIGHTS) -> int:
        """Insert missing default weights; existing rows are left untouched."""
        created = 0
        for data in weights:
            if self.get_by_key(data['key']) is None:
                self.db.add(ScoringWeight(**data))
                created += 1
        self.db.flush()
        return created
