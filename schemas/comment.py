from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from utils.comments import SortPolicy


class CommentAuthor(BaseModel):
    id: str
    nickname: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    parent_id: Optional[str] = None
    content: str
    level: int = 0
    likes_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: Optional[CommentAuthor] = None

    model_config = ConfigDict(from_attributes=True)


class TreeCommentResponse(CommentResponse):
    replies: List['TreeCommentResponse'] = []


class CommentThreadResponse(BaseModel):
    count: int
    sort: SortPolicy
    threads: List[TreeCommentResponse]
