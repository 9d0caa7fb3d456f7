"""
Negotiation lifecycle after the initial proposal.

Each status says whose move it is:

    pending_borrower_response           borrower accepts, rejects or counters
    pending_lender_response             lender accepts, rejects or counters
    rejected_pending_lender_revision    lender counters with revised terms
    rejected_pending_borrower_revision  borrower counters with revised terms
    accepted / rejected / withdrawn     closed

The transition functions are pure: they check the acting party against
the record and return the field changes for the backend to apply.
NegotiationDesk wires them to a backend.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from ..backend.base import Backend
from ..errors import DealroomError, NegotiationStateError, SubmissionError, ValidationError
from ..logging import logging_context
from ..models.identity import Identity
from ..models.negotiation import (
    NegotiationRecord,
    NegotiationStatus,
    NegotiationTermSet,
    Party,
    Proposal,
)
from .terms import ProposalForm, proposed_terms_from_form

logger = structlog.get_logger(__name__)

# status -> party whose response is awaited
_RESPONDER: dict[NegotiationStatus, Party] = {
    NegotiationStatus.PENDING_BORROWER_RESPONSE: Party.BORROWER,
    NegotiationStatus.PENDING_LENDER_RESPONSE: Party.LENDER,
}

_REJECTED_STATUS: dict[Party, NegotiationStatus] = {
    Party.BORROWER: NegotiationStatus.REJECTED_PENDING_LENDER_REVISION,
    Party.LENDER: NegotiationStatus.REJECTED_PENDING_BORROWER_REVISION,
}

# status -> party allowed to counter, and the status after they do
_COUNTER: dict[NegotiationStatus, tuple[Party, NegotiationStatus]] = {
    NegotiationStatus.PENDING_BORROWER_RESPONSE: (
        Party.BORROWER, NegotiationStatus.PENDING_LENDER_RESPONSE,
    ),
    NegotiationStatus.REJECTED_PENDING_BORROWER_REVISION: (
        Party.BORROWER, NegotiationStatus.PENDING_LENDER_RESPONSE,
    ),
    NegotiationStatus.PENDING_LENDER_RESPONSE: (
        Party.LENDER, NegotiationStatus.PENDING_BORROWER_RESPONSE,
    ),
    NegotiationStatus.REJECTED_PENDING_LENDER_REVISION: (
        Party.LENDER, NegotiationStatus.PENDING_BORROWER_RESPONSE,
    ),
}

CLOSED_STATUSES = frozenset({
    NegotiationStatus.ACCEPTED,
    NegotiationStatus.REJECTED,
    NegotiationStatus.WITHDRAWN,
})


def awaiting(record: NegotiationRecord) -> Party | None:
    """Party expected to act next, or None when the negotiation is closed."""
    if record.status in _RESPONDER:
        return _RESPONDER[record.status]
    if record.status in _COUNTER:
        return _COUNTER[record.status][0]
    return None


def _require_party(record: NegotiationRecord, acting_id: str, expected: Party) -> None:
    if record.party_of(acting_id) is not expected:
        raise NegotiationStateError(
            f'User {acting_id} is not the expected party ({expected.value}) to act on this negotiation',
            context={'negotiation_id': record.id, 'status': record.status.value},
        )


def accept_changes(record: NegotiationRecord, acting_id: str) -> dict[str, Any]:
    """Accept the latest proposal."""
    expected = _RESPONDER.get(record.status)
    if expected is None:
        raise NegotiationStateError(
            f"Negotiation status '{record.status.value}' does not allow acceptance.",
            context={'negotiation_id': record.id},
        )
    _require_party(record, acting_id, expected)
    return {
        'status': NegotiationStatus.ACCEPTED,
        'accepted_terms': record.latest_proposal.terms,
    }


def reject_changes(record: NegotiationRecord, acting_id: str) -> dict[str, Any]:
    """Reject the latest proposal and send it back to its author for revision."""
    expected = _RESPONDER.get(record.status)
    if expected is None:
        raise NegotiationStateError(
            f"Negotiation status '{record.status.value}' cannot be rejected in this manner.",
            context={'negotiation_id': record.id},
        )
    _require_party(record, acting_id, expected)
    return {'status': _REJECTED_STATUS[expected]}


def counter_changes(
    record: NegotiationRecord,
    acting_id: str,
    terms: NegotiationTermSet,
    message: str | None = None,
    proposed_at: datetime | None = None,
) -> dict[str, Any]:
    """Append a counter proposal and hand the move to the other party."""
    if record.status not in _COUNTER:
        raise NegotiationStateError(
            f"Negotiation status '{record.status.value}' does not allow counter-proposals.",
            context={'negotiation_id': record.id},
        )
    expected, next_status = _COUNTER[record.status]
    _require_party(record, acting_id, expected)
    proposal = Proposal(
        terms=terms,
        proposed_at=proposed_at or datetime.now(timezone.utc),
        proposed_by=expected,
        message=message or None,
    )
    return {
        'status': next_status,
        'counter_proposals': (*record.counter_proposals, proposal),
    }


class NegotiationDesk:
    """Applies lifecycle transitions through a backend."""

    def __init__(self, backend: Backend):
        self.backend = backend

    async def accept_proposal(self, negotiation_id: str, actor: Identity) -> NegotiationRecord:
        with logging_context(identity_id=actor.id, negotiation_id=negotiation_id):
            record = await self.backend.get_negotiation(negotiation_id)
            return await self._apply(record, accept_changes(record, actor.id), 'accept')

    async def reject_proposal(self, negotiation_id: str, actor: Identity) -> NegotiationRecord:
        with logging_context(identity_id=actor.id, negotiation_id=negotiation_id):
            record = await self.backend.get_negotiation(negotiation_id)
            return await self._apply(record, reject_changes(record, actor.id), 'reject')

    async def submit_counter_proposal(
        self,
        negotiation_id: str,
        actor: Identity,
        form: ProposalForm,
        message: str | None = None,
    ) -> NegotiationRecord:
        if message is not None and not isinstance(message, str):
            raise ValidationError('Message must be text.', field='message')
        terms = proposed_terms_from_form(form)
        with logging_context(identity_id=actor.id, negotiation_id=negotiation_id):
            record = await self.backend.get_negotiation(negotiation_id)
            changes = counter_changes(record, actor.id, terms, message=message)
            return await self._apply(record, changes, 'counter')

    async def _apply(
        self,
        record: NegotiationRecord,
        changes: dict[str, Any],
        action: str,
    ) -> NegotiationRecord:
        log = logger.bind(negotiation_id=record.id, action=action)
        try:
            updated = await self.backend.update_negotiation(record.id, changes)
        except DealroomError:
            raise
        except Exception as exc:
            log.error('negotiation.update_failed', error=str(exc))
            raise SubmissionError(
                f'Failed to {action} negotiation proposal.',
                context={'negotiation_id': record.id, 'error_type': type(exc).__name__},
            ) from exc
        log.info('negotiation.updated', status=updated.status.value)
        return updated
