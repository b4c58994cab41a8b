from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from schemas.comment import CommentResponse, CommentThreadResponse
from services.CommentService import CommentService
from utils.comments import SortPolicy


router = APIRouter(
    prefix='/api',
    tags=['comments']
)


async def _get_post_or_404(db: AsyncSession, post_id: str):
    post = await CommentService.get_post_by_id(db, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


# Плоский список, дерево строит клиент
@router.get('/posts/{post_id}/comments', response_model=List[CommentResponse], status_code=status.HTTP_200_OK)
async def get_post_comments(post_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await _get_post_or_404(db, post_id)
        return await CommentService.get_comments_by_post(db, post_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch comments: {e}"
        )


@router.get('/posts/{post_id}/comments/thread', response_model=CommentThreadResponse, status_code=status.HTTP_200_OK)
async def get_post_comment_thread(
    post_id: str,
    sort: SortPolicy = Query(SortPolicy.NEWEST),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_post_or_404(db, post_id)
        comments = await CommentService.get_comments_by_post(db, post_id)

        return CommentService.build_thread(comments, sort)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build comment thread: {e}"
        )


@router.get('/comments/{comment_id}/replies', response_model=List[CommentResponse], status_code=status.HTTP_200_OK)
async def get_comment_replies(comment_id: str, db: AsyncSession = Depends(get_db)):
    try:
        comment = await CommentService.get_comment_by_id(db, comment_id)
        if not comment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

        return await CommentService.get_replies(db, comment_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch replies: {e}"
        )
