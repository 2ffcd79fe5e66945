"""
RefreshToken model: stores the SHA-256 digest of each issued refresh token
so sessions can be looked up and revoked without keeping the raw token.
Fields:
- hashed_token (unique)
- user_id (String(36)) - FK to users.id
- created_at, expires_at
"""
from sqlalchemy import Column, String, ForeignKey, Index
from sqlalchemy.orm import relationship
from models.base_model import BaseModel, Base, UTCDateTime


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    hashed_token = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (Index("ix_refresh_tokens_expires_at", "expires_at"),)

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} expires_at={self.expires_at}>"
