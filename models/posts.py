from sqlalchemy import Column, ForeignKey, Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from .basemodel import BaseModel


class Posts(BaseModel):
    __tablename__ = 'posts'

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String)
    content = Column(Text, nullable=False)
    # Прикреплённый трек Spotify в сокращённом виде (id, name, artist, image, preview_url, external_urls)
    spotify_track = Column(JSON)

    likes_count = Column(Integer, default=0)
    comments_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    author_id = Column(String, ForeignKey('users.id', ondelete="CASCADE"), nullable=False)
    author = relationship("Users", back_populates="posts", lazy="selectin")

    comments = relationship("Comment", back_populates="post", cascade="all, delete")
