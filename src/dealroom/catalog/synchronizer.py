"""
Catalog synchronizer.

Wraps a backend's push subscriptions over the deals collection and enforces
the delivery contract consumers rely on:

- every snapshot is the complete list, handed over as an immutable tuple
  that replaces whatever the consumer held before
- a transport or permission failure reaches ``on_error`` exactly once, as
  a SubscriptionError, and terminates the subscription
- a malformed document is skipped, not fatal; the rest of the snapshot
  is still delivered
- once ``unsubscribe`` is called (or the subscription has failed) neither
  callback fires again, even for deliveries the backend already queued
"""

from typing import Any, Callable, Iterable

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..backend.base import Backend, ErrorCallback, SnapshotCallback, Unsubscribe
from ..errors import SubscriptionError
from ..models.deal import Deal

logger = structlog.get_logger(__name__)

Snapshot = tuple[Deal, ...]
SnapshotHandler = Callable[[Snapshot], None]
ErrorHandler = Callable[[SubscriptionError], None]


class Subscription:
    """
    Handle for one live query.

    Calling the handle (or ``unsubscribe``) is idempotent; after the first
    call the backend subscription is released and no callback fires again.
    """

    def __init__(self, name: str):
        self.name = name
        self._active = True
        self._release: Unsubscribe | None = None

    @property
    def active(self) -> bool:
        return self._active

    def _attach(self, release: Unsubscribe) -> None:
        if self._active:
            self._release = release
        else:
            release()

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        release, self._release = self._release, None
        if release is not None:
            release()
        logger.debug('catalog.unsubscribed', subscription=self.name)

    __call__ = unsubscribe


def _to_snapshot(deals: Iterable[Deal | dict[str, Any]], log: Any) -> Snapshot:
    """Validate each document on its own; malformed ones are logged and left out."""
    snapshot: list[Deal] = []
    for deal in deals:
        if isinstance(deal, Deal):
            snapshot.append(deal)
            continue
        try:
            snapshot.append(Deal.model_validate(deal))
        except PydanticValidationError as exc:
            deal_id = deal.get('id') if isinstance(deal, dict) else None
            log.warning(
                'catalog.document_skipped',
                deal_id=deal_id,
                error_count=exc.error_count(),
            )
    return tuple(snapshot)


class CatalogSynchronizer:
    """Opens guarded subscriptions over a backend's deal collections."""

    def __init__(self, backend: Backend):
        self.backend = backend

    def subscribe_approved(
        self,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        """Live mirror of every approved deal."""
        return self._open(
            'approved',
            self.backend.subscribe_approved_deals,
            on_snapshot,
            on_error,
        )

    def subscribe_by_submitter(
        self,
        submitter_uid: str,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        """Live mirror of every deal owned by ``submitter_uid``."""

        def opener(snapshot_cb: SnapshotCallback, error_cb: ErrorCallback) -> Unsubscribe:
            return self.backend.subscribe_deals_by_submitter(submitter_uid, snapshot_cb, error_cb)

        return self._open(f'submitter:{submitter_uid}', opener, on_snapshot, on_error)

    def _open(
        self,
        name: str,
        opener: Callable[[SnapshotCallback, ErrorCallback], Unsubscribe],
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler,
    ) -> Subscription:
        subscription = Subscription(name)
        log = logger.bind(subscription=name)

        def handle_error(exc: Exception) -> None:
            if not subscription.active:
                return
            subscription.unsubscribe()
            if isinstance(exc, SubscriptionError):
                error = exc
            else:
                error = SubscriptionError(
                    getattr(exc, 'message', None) or str(exc) or 'Catalog subscription failed.',
                    context={'subscription': name, 'error_type': type(exc).__name__},
                )
            log.warning('catalog.subscription_failed', error=error.message)
            on_error(error)

        def handle_snapshot(deals: Iterable[Deal | dict[str, Any]]) -> None:
            if not subscription.active:
                log.debug('catalog.snapshot_dropped')
                return
            snapshot = _to_snapshot(deals, log)
            log.debug('catalog.snapshot', count=len(snapshot))
            on_snapshot(snapshot)

        log.info('catalog.subscribing')
        try:
            release = opener(handle_snapshot, handle_error)
        except Exception as exc:
            handle_error(exc)
            return subscription
        subscription._attach(release)
        return subscription
