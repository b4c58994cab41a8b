from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from .basemodel import BaseModel

class Comment(BaseModel):
    __tablename__ = 'comments'

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    content = Column(Text, nullable=False)
    # Глубина вложенности, заполняется при создании ответа
    level = Column(Integer, default=0)
    likes_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    user_id = Column(String, ForeignKey('users.id', ondelete="CASCADE"), nullable=False)
    post_id = Column(String, ForeignKey('posts.id', ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(String, ForeignKey('comments.id', ondelete="CASCADE"))

    # Relationships
    post = relationship("Posts", back_populates="comments")
    author = relationship("Users", back_populates="comments", lazy="selectin")

    def __repr__(self):
        return f"<Comment {self.id} by {self.user_id}>"
