from typing import Any, Dict, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException
import logging

from models.comments import Comment
from models.posts import Posts
from utils.comments import SortPolicy, build_tree, flatten_tree, sort_threads

logger = logging.getLogger(__name__)


class CommentService:

    @staticmethod
    def comment_to_dict(comment: Comment) -> Dict[str, Any]:
        """Плоская запись комментария в том виде, в каком её отдаёт API"""
        author = comment.author
        return {
            "id": comment.id,
            "post_id": comment.post_id,
            "parent_id": comment.parent_id,
            "content": comment.content,
            "level": comment.level or 0,
            "likes_count": comment.likes_count or 0,
            "created_at": comment.created_at,
            "updated_at": comment.updated_at,
            "author": {
                "id": author.id,
                "nickname": author.nickname,
                "display_name": author.display_name,
                "avatar_url": author.avatar_url,
            } if author is not None else None,
        }

    @staticmethod
    async def get_post_by_id(db: AsyncSession, post_id: str) -> Posts | None:
        try:
            result = await db.execute(select(Posts).where(Posts.id == post_id))
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f'Error getting post by id: {e}'
            )

        return result.scalar_one_or_none()

    @staticmethod
    async def get_comments_by_post(db: AsyncSession, post_id: str) -> List[Dict[str, Any]]:
        try:
            result = await db.execute(
                select(Comment)
                .where(Comment.post_id == post_id)
                .order_by(Comment.created_at)
            )
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f'Error getting comments for post: {e}'
            )

        return [CommentService.comment_to_dict(c) for c in result.scalars().all()]

    @staticmethod
    async def get_comment_by_id(db: AsyncSession, comment_id: str) -> Comment | None:
        try:
            result = await db.execute(select(Comment).where(Comment.id == comment_id))
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f'Error getting comment by id: {e}'
            )

        return result.scalar_one_or_none()

    @staticmethod
    async def get_replies(db: AsyncSession, comment_id: str) -> List[Dict[str, Any]]:
        try:
            result = await db.execute(
                select(Comment)
                .where(Comment.parent_id == comment_id)
                .order_by(Comment.created_at)
            )
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f'Error getting replies: {e}'
            )

        return [CommentService.comment_to_dict(c) for c in result.scalars().all()]

    @staticmethod
    def build_thread(comments: List[Dict[str, Any]], sort: SortPolicy = SortPolicy.NEWEST) -> Dict[str, Any]:
        threads = sort_threads(build_tree(comments), sort)
        count = sum(1 for _ in flatten_tree(threads))

        dropped = len(comments) - count
        if dropped:
            logger.info(f"Dropped {dropped} unlinked comments while building thread")

        return {"count": count, "sort": sort, "threads": threads}
