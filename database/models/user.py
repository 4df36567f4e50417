import uuid

from sqlalchemy import Column, Text, DateTime, Uuid, Index, func

from .base import Base


class User(Base):
    """
    Community member. Only the fields the admission pipeline reads or
    writes are modelled here; authentication lives with the auth service.
    """
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    username = Column(Text, nullable=False, unique=True)

    # PENDING until an admission decision is mirrored here
    status = Column(Text, nullable=False, default='PENDING')

    # Linked developer identities
    github_username = Column(Text)
    # OAuth token written by the auth service, AES-256-GCM hex (iv + tag + ciphertext)
    source_control_token_enc = Column(Text)
    codeforces_handle = Column(Text)
    leetcode_handle = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_users_status', 'status'),
    )
