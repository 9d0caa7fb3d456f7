"""
Live catalog state for the rendering layer.

LiveCatalog owns the raw catalog mirror fed by a CatalogSynchronizer
subscription and derives the displayed list on demand. The derived list is
never cached: ``view`` re-runs the query engine against the latest snapshot
each time, so a new snapshot and a new search/filter/sort are both picked
up no matter which changed last.
"""

from dataclasses import dataclass
from typing import Callable

import structlog

from ..errors import SubscriptionError
from .query import CatalogQuery, run_query
from .synchronizer import CatalogSynchronizer, Snapshot, Subscription

logger = structlog.get_logger(__name__)

Listener = Callable[['LiveCatalog'], None]


@dataclass(frozen=True)
class CatalogView:
    """
    What the rendering layer draws.

    ``deals`` is None while the catalog is unavailable (still loading, or
    the subscription failed) so it is never mistaken for an empty catalog.
    """

    deals: tuple | None
    total: int | None
    loading: bool
    error: str | None

    @property
    def available(self) -> bool:
        return self.deals is not None


class LiveCatalog:
    """Mirror of approved deals, or of one submitter's deals."""

    def __init__(
        self,
        synchronizer: CatalogSynchronizer,
        submitter_uid: str | None = None,
    ):
        self.synchronizer = synchronizer
        self.submitter_uid = submitter_uid
        self._snapshot: Snapshot | None = None
        self._error: SubscriptionError | None = None
        self._loading = False
        self._subscription: Subscription | None = None
        self._listeners: list[Listener] = []
        self.snapshot_count = 0

    # -- State ----------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot | None:
        """Latest backend snapshot, or None before the first one or after failure."""
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> SubscriptionError | None:
        return self._error

    @property
    def running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    # -- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        """Open the subscription. Also used to retry after a failure."""
        if self.running:
            return
        self._loading = True
        self._error = None
        if self.submitter_uid is None:
            self._subscription = self.synchronizer.subscribe_approved(
                self._on_snapshot, self._on_error
            )
        else:
            self._subscription = self.synchronizer.subscribe_by_submitter(
                self.submitter_uid, self._on_snapshot, self._on_error
            )

    def stop(self) -> None:
        """Close the subscription; no further updates are applied."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._loading = False

    # -- Listeners ------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every snapshot or error. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- Subscription callbacks -----------------------------------------------

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._loading = False
        self._error = None
        self.snapshot_count += 1
        self._notify()

    def _on_error(self, error: SubscriptionError) -> None:
        logger.warning('live_catalog.unavailable', error=error.message)
        self._snapshot = None
        self._loading = False
        self._error = error
        self._notify()

    # -- Derivation -----------------------------------------------------------

    def view(self, query: CatalogQuery | None = None) -> CatalogView:
        """Derive the displayed list from the current snapshot."""
        error = self._error.message if self._error else None
        if self._snapshot is None:
            return CatalogView(deals=None, total=None, loading=self._loading, error=error)
        deals = run_query(self._snapshot, query or CatalogQuery())
        return CatalogView(
            deals=tuple(deals),
            total=len(self._snapshot),
            loading=self._loading,
            error=error,
        )
