"""Feed 条目 API."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from feedinbox.core.store import FeedStore
from feedinbox.models.database import get_session

router = APIRouter(prefix="/api/items", tags=["items"])


class MarkSeenRequest(BaseModel):
    """批量标记已看."""

    user_id: str
    item_ids: list[str]


@router.get("")
async def list_items(
    user_id: str = Query(..., description="用户 ID"),
    seen: bool | None = Query(None, description="按已看状态筛选"),
    category_id: str | None = Query(None, description="按分类筛选"),
    limit: int = Query(100, ge=1, le=500, description="数量上限"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取条目列表，按发布时间倒序."""
    rows = await FeedStore(session).list_items(
        user_id, seen=seen, category_id=category_id, limit=limit
    )
    return {
        "total": len(rows),
        "items": [
            {**item.to_dict(), "feed_title": feed_title} for item, feed_title in rows
        ],
    }


@router.get("/unseen-count")
async def unseen_count(
    user_id: str = Query(..., description="用户 ID"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """未看条目数（侧边栏角标）."""
    count = await FeedStore(session).count_unseen(user_id)
    return {"count": count}


@router.post("/seen")
async def mark_seen(
    body: MarkSeenRequest,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """标记条目已看."""
    updated = await FeedStore(session).mark_seen(body.user_id, body.item_ids)
    return {"success": True, "updated": updated}


@router.patch("/{item_id}/saved")
async def set_saved(
    item_id: str,
    user_id: str = Query(..., description="用户 ID"),
    saved: bool = Query(True, description="是否已存入收藏库"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """标记条目已保存到收藏库."""
    store = FeedStore(session)
    item = await store.get_item(user_id, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")

    await store.set_saved(item, saved)
    return {"id": item_id, "is_saved": saved}
