"""Turn delivery results into subscription deletion signals."""

from collections.abc import Callable, Iterable

import structlog

from pushwire.webpush.models import (
    DeletionSignal,
    DeliveryOutcome,
    DeliveryResult,
)

logger = structlog.get_logger()

DeletionSink = Callable[[DeletionSignal], None]


class DeliveryOutcomeHandler:
    """Signal the storage owner when a subscription is gone.

    Only ``gone`` produces a signal. The handler never touches storage;
    whoever owns it supplies ``sink``. Applying a signal twice must be
    harmless.
    """

    def __init__(self, sink: DeletionSink | None = None) -> None:
        self._sink = sink

    def handle(self, result: DeliveryResult) -> DeletionSignal | None:
        if result.outcome is not DeliveryOutcome.GONE:
            return None
        signal = DeletionSignal(endpoint=result.subscription.endpoint)
        logger.info("push_endpoint_gone", endpoint=signal.endpoint)
        if self._sink is not None:
            self._sink(signal)
        return signal

    def handle_all(self, results: Iterable[DeliveryResult]) -> list[DeletionSignal]:
        """Handle a batch; returns the signals emitted."""
        signals = []
        for result in results:
            signal = self.handle(result)
            if signal is not None:
                signals.append(signal)
        return signals
