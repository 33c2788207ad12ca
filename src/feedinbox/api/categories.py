"""Feed 分类 API."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from feedinbox.core.store import FeedStore
from feedinbox.models.category import FeedCategory
from feedinbox.models.database import get_session

router = APIRouter(prefix="/api/categories", tags=["categories"])


class CategoryCreate(BaseModel):
    """新建分类."""

    user_id: str
    name: str = Field(min_length=1, max_length=100)
    color: str = "#6366f1"


def _to_dict(category: FeedCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "color": category.color,
        "sort_order": category.sort_order,
    }


@router.get("")
async def list_categories(
    user_id: str = Query(..., description="用户 ID"),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """获取分类列表."""
    categories = await FeedStore(session).list_categories(user_id)
    return {"items": [_to_dict(c) for c in categories]}


@router.post("")
async def create_category(
    body: CategoryCreate,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """新建分类，追加到末尾."""
    store = FeedStore(session)
    existing = await store.list_categories(body.user_id)
    category = await store.add_category(
        FeedCategory(
            user_id=body.user_id,
            name=body.name.strip(),
            color=body.color,
            sort_order=len(existing),
        )
    )
    return {"success": True, "category": _to_dict(category)}
