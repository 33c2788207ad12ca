"""订阅源摄取 API（discover / subscribe / fetch / fetch_all）."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from feedinbox.api.deps import get_fetcher
from feedinbox.core.ingestion import IngestionService
from feedinbox.errors import ValidationError
from feedinbox.fetcher.client import FeedFetcher
from feedinbox.models.database import get_session

router = APIRouter(tags=["ingest"])

ACTIONS = ("discover", "subscribe", "fetch", "fetch_all")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class IngestRequest(BaseModel):
    """摄取请求，action 决定需要哪些字段."""

    action: str | None = None
    user_id: str | None = None
    url: str | None = None
    feed_id: str | None = None
    category_ids: list[str] | None = None


def _require(value: str | None, name: str) -> str:
    if not value or not value.strip():
        msg = f"{name} required"
        raise ValidationError(msg)
    return value.strip()


@router.options("")
async def preflight() -> Response:
    """CORS 预检."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("")
async def ingest(
    body: IngestRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
    fetcher: FeedFetcher = Depends(get_fetcher),
) -> dict:
    """按 action 分发摄取操作."""
    if not body.action or not body.user_id:
        msg = "action and user_id required"
        raise ValidationError(msg)
    if body.action not in ACTIONS:
        msg = "Unknown action"
        raise ValidationError(msg)

    user_id = body.user_id
    service = IngestionService(session, fetcher)

    if body.action == "discover":
        url = _require(body.url, "url")
        discovered = await service.discover(url)
        return {"success": True, **asdict(discovered)}

    if body.action == "subscribe":
        url = _require(body.url, "url")
        feed, items_added = await service.subscribe(
            user_id, url, category_ids=body.category_ids
        )
        return {"success": True, "feed": feed.to_dict(), "items_added": items_added}

    if body.action == "fetch":
        feed_id = _require(body.feed_id, "feed_id")
        new_items = await service.fetch(user_id, feed_id)
        return {"success": True, "new_items": new_items}

    summary = await service.fetch_all(user_id, is_cancelled=request.is_disconnected)
    return {"success": True, **summary.to_dict()}
