"""JSON-file-backed push subscription store."""

import json
from dataclasses import asdict, dataclass
from pathlib import Path

import structlog

from pushwire.webpush.models import DeletionSignal, PushSubscription

logger = structlog.get_logger()


@dataclass
class SubscriptionRecord:
    """A stored subscription, unique per (user_id, endpoint)."""

    endpoint: str
    p256dh: str
    auth: str
    user_id: str

    @property
    def subscription(self) -> PushSubscription:
        return PushSubscription(
            endpoint=self.endpoint,
            p256dh=self.p256dh,
            auth=self.auth,
        )


class PushSubscriptionStore:
    """Minimal push subscription store backed by a JSON file.

    All writes happen on the event loop thread, so no locking.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._subs: list[SubscriptionRecord] = []
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            self._subs = []
            return
        try:
            data = json.loads(self._path.read_text())
            self._subs = [SubscriptionRecord(**s) for s in data]
        except (json.JSONDecodeError, OSError, TypeError):
            logger.warning("push_store_unreadable", path=str(self._path))
            self._subs = []

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps([asdict(s) for s in self._subs], indent=2))

    def subscribe(
        self,
        user_id: str,
        endpoint: str,
        p256dh: str,
        auth: str,
    ) -> None:
        """Add or upsert a subscription."""
        # New keys for a known endpoint replace the old record
        self._subs = [
            s
            for s in self._subs
            if not (s.endpoint == endpoint and s.user_id == user_id)
        ]
        self._subs.append(
            SubscriptionRecord(
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                user_id=user_id,
            )
        )
        self._save()

    def unsubscribe(self, user_id: str, endpoint: str) -> None:
        """Remove one user's subscription for an endpoint."""
        before = len(self._subs)
        self._subs = [
            s
            for s in self._subs
            if not (s.endpoint == endpoint and s.user_id == user_id)
        ]
        if len(self._subs) != before:
            self._save()

    def get_subscriptions_for_user(self, user_id: str) -> list[PushSubscription]:
        """All subscriptions belonging to a user."""
        return [s.subscription for s in self._subs if s.user_id == user_id]

    def get_user_ids_for_endpoint(self, endpoint: str) -> list[str]:
        """Users subscribed from a given endpoint."""
        return [s.user_id for s in self._subs if s.endpoint == endpoint]

    def remove_endpoint(self, endpoint: str) -> None:
        """Remove all subscriptions for an endpoint (410 cleanup)."""
        before = len(self._subs)
        self._subs = [s for s in self._subs if s.endpoint != endpoint]
        if len(self._subs) != before:
            self._save()

    def apply_deletion(self, signal: DeletionSignal) -> None:
        """Deletion sink for ``DeliveryOutcomeHandler``."""
        self.remove_endpoint(signal.endpoint)
