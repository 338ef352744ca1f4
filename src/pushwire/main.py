from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI

from pushwire.api.router import api_router
from pushwire.config import Settings, get_settings
from pushwire.notifications.store import PushSubscriptionStore
from pushwire.webpush.errors import VapidConfigError
from pushwire.webpush.outcome import DeliveryOutcomeHandler
from pushwire.webpush.sender import WebPushSender
from pushwire.webpush.transport import PushTransport
from pushwire.webpush.vapid import load_vapid_keys

logger = structlog.get_logger()

load_dotenv()


def build_sender(settings: Settings, transport: PushTransport) -> WebPushSender:
    """Wire the sender from settings.

    Raises:
        VapidConfigError: keys or subject are missing or malformed. The
            service must not start without a signing identity.
    """
    keys = load_vapid_keys(settings.vapid_public_key, settings.vapid_private_key)
    return WebPushSender(
        keys=keys,
        subject=settings.vapid_subject,
        transport=transport,
        ttl=settings.push_ttl_s,
        max_concurrency=settings.push_max_concurrency,
    )


@asynccontextmanager
async def lifespan(
    app: FastAPI,
) -> AsyncGenerator[None]:
    settings = get_settings()
    logger.info("starting_up", version=settings.app_version)

    Path(settings.state_dir).mkdir(parents=True, exist_ok=True)
    push_store = PushSubscriptionStore(settings.push_subs_path)

    transport = PushTransport(timeout_s=settings.push_timeout_s)
    try:
        sender = build_sender(settings, transport)
    except VapidConfigError as e:
        transport.close()
        logger.error("vapid_config_invalid", error=str(e))
        raise

    app.state.push_store = push_store
    app.state.push_sender = sender
    app.state.outcome_handler = DeliveryOutcomeHandler(sink=push_store.apply_deletion)
    app.state.vapid_public_key = sender.public_key
    logger.info("push_notifications_enabled")

    yield

    transport.close()
    logger.info("shutting_down")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.include_router(api_router, prefix="/api/v1")
    return application


app = create_app()
