"""
Persistence/identity backend interface consumed by the deal room core.

The backend owns deals, profiles and negotiation records. This core reads
deals through push subscriptions, resolves profiles, appends negotiation
records, and drives sign-in/sign-up/sign-out.
"""

from typing import Any, Callable, Protocol

from ..models.deal import Deal
from ..models.identity import Identity, Profile
from ..models.negotiation import NegotiationRecord, NegotiationRequest

Unsubscribe = Callable[[], None]
SnapshotCallback = Callable[[list[Deal]], None]
ErrorCallback = Callable[[Exception], None]
IdentityCallback = Callable[[Identity | None], None]


class BackendAuthFailure(Exception):
    """Credential problem reported by a backend, tagged with a provider code."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code


class Backend(Protocol):
    """Operations a backend must expose."""

    # -- Live deal collections ------------------------------------------------

    def subscribe_approved_deals(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Push the full approved-deal list now and after every change."""
        ...

    def subscribe_deals_by_submitter(
        self,
        submitter_uid: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Push the full list of deals owned by ``submitter_uid``."""
        ...

    # -- Profiles -------------------------------------------------------------

    async def fetch_profile(self, identity_id: str) -> Profile | None: ...

    async def create_profile_document(
        self,
        identity: Identity,
        attrs: dict[str, Any],
    ) -> None: ...

    # -- Negotiations ---------------------------------------------------------

    async def start_negotiation(self, request: NegotiationRequest) -> str:
        """Create a negotiation record and return its backend-assigned ID."""
        ...

    async def get_negotiation(self, negotiation_id: str) -> NegotiationRecord: ...

    async def update_negotiation(
        self,
        negotiation_id: str,
        changes: dict[str, Any],
    ) -> NegotiationRecord: ...

    # -- Identity -------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_up(
        self,
        email: str,
        password: str,
        attrs: dict[str, Any],
    ) -> Identity: ...

    async def sign_out(self) -> None: ...

    def on_identity_change(self, callback: IdentityCallback) -> Unsubscribe:
        """Register ``callback``; it receives the current identity right away."""
        ...
