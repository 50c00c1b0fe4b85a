from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from blog.database import get_db
from blog.schemas import CommentResponse
from blog.services import comment_service

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])

@router.post("/{comment_id}/allow", response_model=CommentResponse)
async def allow_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.set_moderation(db, comment_id, True)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment

@router.post("/{comment_id}/disallow", response_model=CommentResponse)
async def disallow_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.set_moderation(db, comment_id, False)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment
