"""Feed 订阅管理 API."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedinbox.core.store import FeedStore
from feedinbox.models.database import get_session

router = APIRouter(prefix="/api/feeds", tags=["feeds"])


@router.get("")
async def list_feeds(
    user_id: str = Query(..., description="用户 ID"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取订阅列表（含分类 ID）."""
    store = FeedStore(session)
    feeds = await store.list_feeds(user_id)
    categories = await store.category_ids_by_feed(user_id)

    return {
        "total": len(feeds),
        "items": [
            {**feed.to_dict(), "category_ids": categories.get(feed.id, [])}
            for feed in feeds
        ],
    }


@router.delete("/{feed_id}")
async def unsubscribe(
    feed_id: str,
    user_id: str = Query(..., description="用户 ID"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """取消订阅，同时删除该 Feed 的全部条目."""
    store = FeedStore(session)
    feed = await store.get_feed(user_id, feed_id)
    if not feed:
        raise HTTPException(status_code=404, detail="Feed not found")

    await store.delete_feed(feed)
    return {"success": True, "id": feed_id}


@router.patch("/{feed_id}/paused")
async def set_paused(
    feed_id: str,
    user_id: str = Query(..., description="用户 ID"),
    paused: bool = Query(..., description="是否暂停刷新"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """暂停 / 恢复 Feed 的批量刷新."""
    store = FeedStore(session)
    feed = await store.get_feed(user_id, feed_id)
    if not feed:
        raise HTTPException(status_code=404, detail="Feed not found")

    await store.set_paused(feed, paused)
    return {"id": feed_id, "is_paused": paused}
