"""Push notification API endpoints."""

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from pushwire.config import get_settings
from pushwire.webpush.models import DeliveryOutcome, NotificationPayload

logger = structlog.get_logger()

router = APIRouter()


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1, max_length=500)
    auth: str = Field(min_length=1, max_length=500)


class SubscriptionBody(BaseModel):
    endpoint: str = Field(max_length=2000, pattern=r"^https?://")
    keys: SubscriptionKeys


class SubscribeRequest(BaseModel):
    user_id: str = Field(min_length=1)
    subscription: SubscriptionBody


class UnsubscribeRequest(BaseModel):
    user_id: str = Field(min_length=1)
    endpoint: str


class SendRequest(BaseModel):
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=1000)
    icon: str | None = None


class SendResponse(BaseModel):
    sent: int
    gone: int
    failed: int


@router.get("/vapid-key")
async def vapid_key(request: Request) -> dict:
    """Return the VAPID application server key."""
    return {"public_key": request.app.state.vapid_public_key}


@router.post("/subscribe", status_code=201)
async def subscribe(body: SubscribeRequest, request: Request) -> dict:
    """Register (or refresh) a user's push subscription."""
    store = request.app.state.push_store
    store.subscribe(
        user_id=body.user_id,
        endpoint=body.subscription.endpoint,
        p256dh=body.subscription.keys.p256dh,
        auth=body.subscription.keys.auth,
    )
    return {"ok": True}


@router.post("/unsubscribe")
async def unsubscribe(body: UnsubscribeRequest, request: Request) -> dict:
    """Remove a user's push subscription."""
    store = request.app.state.push_store
    store.unsubscribe(user_id=body.user_id, endpoint=body.endpoint)
    return {"ok": True}


@router.get("/subscriptions")
async def subscriptions(endpoint: str, request: Request) -> list[str]:
    """Return user IDs subscribed from an endpoint."""
    store = request.app.state.push_store
    return store.get_user_ids_for_endpoint(endpoint)


@router.post("/send")
async def send(body: SendRequest, request: Request) -> SendResponse:
    """Push a notification to every subscription of a user."""
    sender = request.app.state.push_sender
    store = request.app.state.push_store
    subs = store.get_subscriptions_for_user(body.user_id)
    if not subs:
        return SendResponse(sent=0, gone=0, failed=0)

    payload = NotificationPayload(
        title=body.title,
        body=body.body,
        icon=body.icon or get_settings().default_icon,
    )
    results = await sender.send_batch(subs, payload)
    signals = request.app.state.outcome_handler.handle_all(results)

    sent = sum(1 for r in results if r.outcome is DeliveryOutcome.DELIVERED)
    failed = len(results) - sent - len(signals)
    logger.info(
        "push_batch_done",
        user_id=body.user_id,
        sent=sent,
        gone=len(signals),
        failed=failed,
    )
    return SendResponse(sent=sent, gone=len(signals), failed=failed)
