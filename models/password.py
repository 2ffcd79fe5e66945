"""
Password model: one row per user holding the salted argon2 hash.
The plaintext is never stored; a user without this row cannot log in.
"""
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from models.base_model import BaseModel, Base


class Password(BaseModel, Base):
    __tablename__ = "passwords"

    hash = Column(String(255), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    user = relationship("User", back_populates="password")

    def __repr__(self):
        return f"<Password user_id={self.user_id}>"
