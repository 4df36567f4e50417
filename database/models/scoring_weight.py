from sqlalchemy import Column, Integer, String, Text, Float, DateTime, Uuid, func

from .base import Base


class ScoringWeight(Base):
    """Administrator-owned weight for one signal key."""
    __tablename__ = 'scoring_weights'

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    weight = Column(Float, nullable=False)
    threshold = Column(Float, nullable=False)
    minimum = Column(Float, nullable=False)
    description = Column(Text)

    updated_by_id = Column(Uuid)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'weight': self.weight,
            'threshold': self.threshold,
            'minimum': self.minimum,
            'description': self.description,
        }
