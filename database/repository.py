from sqlalchemy.orm import Session

from database.repositories import (
    ApplicationRepository,
    UserRepository,
    ScoringWeightRepository,
)


class AdmissionRepository:
    """Facade over the per-entity repositories sharing one Session."""

    def __init__(self, db: Session):
        self.db = db
        self.applications = ApplicationRepository(db)
        self.users = UserRepository(db)
        self.weights = ScoringWeightRepository(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
