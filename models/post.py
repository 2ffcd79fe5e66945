from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Post(BaseModel, Base):
    __tablename__ = "posts"

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    published = Column(Boolean, nullable=False, default=False)  # drafts by default

    # Deleting a user removes their posts
    author_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    author = relationship("User", back_populates="posts")

    __table_args__ = (
        CheckConstraint("length(title) >= 1", name="ck_posts_title_not_empty"),
        Index("ix_posts_published_created_at", "published", "created_at"),
    )
