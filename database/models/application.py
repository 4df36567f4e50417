import uuid

from sqlalchemy import Column, Text, Float, DateTime, Uuid, ForeignKey, Index, JSON, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .base import Base


class Application(Base):
    """
    Admission application with proof links.

    status: PENDING -> PROCESSING -> APPROVED | REJECTED | UNDER_REVIEW
    """
    __tablename__ = 'applications'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    # Proof links / handles
    github_url = Column(Text)
    codeforces_handle = Column(Text)
    leetcode_handle = Column(Text)
    portfolio_url = Column(Text)

    status = Column(Text, nullable=False, default='PENDING')
    score = Column(Float)
    score_breakdown = Column(JSON().with_variant(JSONB(), 'postgresql'))
    passing_threshold = Column(Float)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User")

    __table_args__ = (
        Index('idx_applications_status', 'status'),
        Index('idx_applications_user_id', 'user_id'),
    )
