"""
In-process reference backend.

Implements every Backend operation against dictionaries so the core can run
without an external store (local development, the HTTP service's default
wiring, and tests). Push semantics mirror a document store with live
queries:

- A subscription receives the complete matching list on start and again
  after every write that touches the collection.
- Deliveries are scheduled with ``loop.call_soon`` on the running event
  loop, in write order; without a running loop they happen inline.
- ``fail_subscriptions`` terminates every live subscription through its
  error callback, like a revoked permission or dropped transport.
"""

import asyncio
import itertools
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import structlog

from ..errors import BackendError, NotFoundError
from ..models.deal import Deal, DealStatus
from ..models.identity import Identity, Profile
from ..models.negotiation import (
    NegotiationRecord,
    NegotiationRequest,
    NegotiationStatus,
    Party,
    Proposal,
)
from ..utils import new_id
from .base import (
    BackendAuthFailure,
    ErrorCallback,
    IdentityCallback,
    SnapshotCallback,
    Unsubscribe,
)

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _DealQuery:
    """A live query over the deals collection."""

    name: str
    predicate: Callable[[Deal], bool]
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class MemoryStore:
    """Dictionary-backed implementation of the Backend protocol."""

    def __init__(self) -> None:
        self._deals: dict[str, Deal] = {}
        self._profiles: dict[str, Profile] = {}
        self._users: dict[str, tuple[str, Identity]] = {}
        self._negotiations: dict[str, NegotiationRecord] = {}
        self._current: Identity | None = None

        self._tokens = itertools.count(1)
        self._queries: dict[int, _DealQuery] = {}
        self._identity_listeners: dict[int, IdentityCallback] = {}

        # Set to make the next start_negotiation call fail with this error
        self.negotiation_failure: Exception | None = None

    # =========================================================================
    # Scheduling
    # =========================================================================

    @staticmethod
    def _schedule(fn: Callable[..., None], *args: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            fn(*args)
        else:
            loop.call_soon(fn, *args)

    # =========================================================================
    # Deals
    # =========================================================================

    @property
    def subscription_count(self) -> int:
        """Number of live deal subscriptions."""
        return len(self._queries)

    def _subscribe(
        self,
        name: str,
        predicate: Callable[[Deal], bool],
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        token = next(self._tokens)
        self._queries[token] = _DealQuery(name, predicate, on_snapshot, on_error)
        logger.debug('memory_store.subscribed', query=name, token=token)
        self._schedule(self._deliver, token)

        def unsubscribe() -> None:
            if self._queries.pop(token, None) is not None:
                logger.debug('memory_store.unsubscribed', query=name, token=token)

        return unsubscribe

    def _deliver(self, token: int) -> None:
        query = self._queries.get(token)
        if query is None:
            return
        snapshot = [deal for deal in self._deals.values() if query.predicate(deal)]
        query.on_snapshot(snapshot)

    def _publish(self) -> None:
        for token in list(self._queries):
            self._schedule(self._deliver, token)

    def subscribe_approved_deals(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        return self._subscribe(
            'approved', lambda deal: deal.is_approved, on_snapshot, on_error
        )

    def subscribe_deals_by_submitter(
        self,
        submitter_uid: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        return self._subscribe(
            f'submitter:{submitter_uid}',
            lambda deal: deal.submitter_uid == submitter_uid,
            on_snapshot,
            on_error,
        )

    def put_deal(self, deal: Deal | dict[str, Any]) -> Deal:
        """Insert or replace a deal, assigning ``id``/``createdAt`` when absent."""
        if isinstance(deal, dict):
            deal = Deal.model_validate(deal)
        updates: dict[str, Any] = {}
        if not deal.id:
            updates['id'] = new_id()
        if deal.created_at is None:
            updates['created_at'] = _now()
        if updates:
            deal = deal.model_copy(update=updates)
        self._deals[deal.id] = deal
        self._publish()
        return deal

    def remove_deal(self, deal_id: str) -> None:
        if self._deals.pop(deal_id, None) is None:
            raise NotFoundError('Deal not found', context={'deal_id': deal_id})
        self._publish()

    def set_deal_status(self, deal_id: str, status: DealStatus | str) -> Deal:
        deal = self._deals.get(deal_id)
        if deal is None:
            raise NotFoundError('Deal not found', context={'deal_id': deal_id})
        value = status.value if isinstance(status, DealStatus) else status
        deal = deal.model_copy(update={'status': value, 'updated_at': _now()})
        self._deals[deal_id] = deal
        self._publish()
        return deal

    def get_deal(self, deal_id: str) -> Deal | None:
        return self._deals.get(deal_id)

    def fail_subscriptions(self, message: str = 'Missing or insufficient permissions.') -> None:
        """Terminate every live deal subscription through its error callback."""
        queries = list(self._queries.values())
        self._queries.clear()
        logger.warning('memory_store.subscriptions_failed', count=len(queries), error=message)
        for query in queries:
            self._schedule(query.on_error, BackendError(message, context={'query': query.name}))

    # =========================================================================
    # Profiles
    # =========================================================================

    async def fetch_profile(self, identity_id: str) -> Profile | None:
        return self._profiles.get(identity_id)

    async def create_profile_document(
        self,
        identity: Identity,
        attrs: dict[str, Any],
    ) -> None:
        if identity.id in self._profiles:
            return
        profile = Profile.model_validate({
            'uid': identity.id,
            'email': identity.email,
            'createdAt': _now(),
            **attrs,
        })
        self._profiles[identity.id] = profile
        logger.info('memory_store.profile_created', uid=identity.id, role=profile.role.value)

    def put_profile(self, profile: Profile | dict[str, Any]) -> Profile:
        if isinstance(profile, dict):
            profile = Profile.model_validate(profile)
        self._profiles[profile.uid] = profile
        return profile

    # =========================================================================
    # Negotiations
    # =========================================================================

    async def start_negotiation(self, request: NegotiationRequest) -> str:
        if self.negotiation_failure is not None:
            failure, self.negotiation_failure = self.negotiation_failure, None
            raise failure
        timestamp = _now()
        record = NegotiationRecord(
            id=new_id(),
            deal_id=request.deal_id,
            deal_address=request.deal_address,
            borrower_id=request.borrower_id,
            lender_id=request.lender_id,
            status=NegotiationStatus.PENDING_BORROWER_RESPONSE,
            initial_proposal=Proposal(
                terms=request.proposed_terms,
                proposed_at=timestamp,
                proposed_by=Party.LENDER,
            ),
            original_terms=request.original_terms,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._negotiations[record.id] = record
        return record.id

    async def get_negotiation(self, negotiation_id: str) -> NegotiationRecord:
        record = self._negotiations.get(negotiation_id)
        if record is None:
            raise NotFoundError(
                'Negotiation document not found.',
                context={'negotiation_id': negotiation_id},
            )
        return record

    async def update_negotiation(
        self,
        negotiation_id: str,
        changes: dict[str, Any],
    ) -> NegotiationRecord:
        record = await self.get_negotiation(negotiation_id)
        updated = NegotiationRecord.model_validate(
            {**dict(record), **changes, 'updated_at': _now()}
        )
        self._negotiations[negotiation_id] = updated
        return updated

    def negotiations_for(self, identity_id: str) -> list[NegotiationRecord]:
        """Negotiations where ``identity_id`` is borrower or lender."""
        return [
            record
            for record in self._negotiations.values()
            if identity_id in (record.borrower_id, record.lender_id)
        ]

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def current_identity(self) -> Identity | None:
        return self._current

    def _set_identity(self, identity: Identity | None) -> None:
        self._current = identity
        for token in list(self._identity_listeners):
            self._schedule(self._emit_identity, token, identity)

    def _emit_identity(self, token: int, identity: Identity | None) -> None:
        callback = self._identity_listeners.get(token)
        if callback is not None:
            callback(identity)

    async def sign_in(self, email: str, password: str) -> Identity:
        entry = self._users.get(email.lower())
        if entry is None:
            raise BackendAuthFailure('auth/user-not-found')
        stored_password, identity = entry
        if stored_password != password:
            raise BackendAuthFailure('auth/wrong-password')
        self._set_identity(identity)
        return identity

    async def sign_up(
        self,
        email: str,
        password: str,
        attrs: dict[str, Any],
    ) -> Identity:
        key = email.lower()
        if key in self._users:
            raise BackendAuthFailure('auth/email-already-in-use')
        if len(password) < MIN_PASSWORD_LENGTH:
            raise BackendAuthFailure('auth/weak-password')
        identity = Identity(id=new_id(), email=email)
        self._users[key] = (password, identity)
        logger.info('memory_store.user_created', uid=identity.id)
        self._set_identity(identity)
        return identity

    async def sign_out(self) -> None:
        self._set_identity(None)

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        token = next(self._tokens)
        self._identity_listeners[token] = callback
        self._schedule(self._emit_identity, token, self._current)

        def unsubscribe() -> None:
            self._identity_listeners.pop(token, None)

        return unsubscribe

    # =========================================================================
    # Seeding
    # =========================================================================

    def load_seed(self, path: str | Path) -> None:
        """Load ``{"deals": [...], "profiles": [...]}`` from a JSON file."""
        data = json.loads(Path(path).read_text())
        for profile in data.get('profiles', []):
            self.put_profile(profile)
        for deal in data.get('deals', []):
            self.put_deal(deal)
        logger.info(
            'memory_store.seed_loaded',
            path=str(path),
            deals=len(data.get('deals', [])),
            profiles=len(data.get('profiles', [])),
        )
