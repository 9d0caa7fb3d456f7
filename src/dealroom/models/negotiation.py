"""
Negotiation models.

NegotiationTermSet has one shape for both the deal's original terms and a
proposal, so two sets can be diffed field by field. NegotiationRequest is
what the initiator sends to the backend; NegotiationRecord is the stored
document the backend owns afterwards (status, proposal history).
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .deal import ExitStrategy, FundingType

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class NegotiationStatus(str, Enum):
    """Whose move it is, or how the negotiation ended."""

    PENDING_BORROWER_RESPONSE = 'pending_borrower_response'
    PENDING_LENDER_RESPONSE = 'pending_lender_response'
    REJECTED_PENDING_LENDER_REVISION = 'rejected_pending_lender_revision'
    REJECTED_PENDING_BORROWER_REVISION = 'rejected_pending_borrower_revision'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'


class Party(str, Enum):
    """Side of a negotiation."""

    BORROWER = 'borrower'
    LENDER = 'lender'


class NegotiationTermSet(BaseModel):
    """Funding terms: amount, rate, product, exit, duration in days."""

    model_config = _MODEL_CONFIG

    amount: float = 0.0
    return_rate: float = Field(default=0.0, alias='returnRate', description='Percent, e.g. 12 for 12%')
    funding_type: FundingType | None = Field(default=None, alias='fundingType')
    exit_strategy: ExitStrategy | None = Field(default=None, alias='exitStrategy')
    length_of_funding: float = Field(default=0.0, alias='lengthOfFunding')

    def diff(self, other: 'NegotiationTermSet') -> dict[str, tuple[Any, Any]]:
        """Fields whose values differ, mapped to (self value, other value)."""
        changes: dict[str, tuple[Any, Any]] = {}
        for name in type(self).model_fields:
            ours, theirs = getattr(self, name), getattr(other, name)
            if ours != theirs:
                changes[name] = (ours, theirs)
        return changes


class NegotiationRequest(BaseModel):
    """Payload for the backend's startNegotiation operation."""

    model_config = _MODEL_CONFIG

    deal_id: str = Field(..., min_length=1, alias='dealId')
    borrower_id: str = Field(..., min_length=1, alias='borrowerId')
    lender_id: str = Field(..., min_length=1, alias='lenderId')
    proposed_terms: NegotiationTermSet = Field(..., alias='proposedTerms')
    original_terms: NegotiationTermSet = Field(..., alias='originalTerms')
    deal_address: str = Field(..., min_length=1, alias='dealAddress')


class Proposal(BaseModel):
    """One entry in a negotiation's proposal history."""

    model_config = _MODEL_CONFIG

    terms: NegotiationTermSet
    proposed_at: datetime | None = Field(default=None, alias='proposedAt')
    proposed_by: Party = Field(..., alias='proposedBy')
    message: str | None = None


class NegotiationRecord(BaseModel):
    """Negotiation document as stored by the backend."""

    model_config = _MODEL_CONFIG

    id: str
    deal_id: str = Field(..., alias='dealId')
    deal_address: str = Field(default='', alias='dealAddress')
    borrower_id: str = Field(..., alias='borrowerId')
    lender_id: str = Field(..., alias='lenderId')
    status: NegotiationStatus = NegotiationStatus.PENDING_BORROWER_RESPONSE
    initial_proposal: Proposal = Field(..., alias='initialProposal')
    counter_proposals: tuple[Proposal, ...] = Field(default=(), alias='counterProposals')
    accepted_terms: NegotiationTermSet | None = Field(default=None, alias='acceptedTerms')
    original_terms: NegotiationTermSet = Field(..., alias='originalDealTerms')
    created_at: datetime | None = Field(default=None, alias='createdAt')
    updated_at: datetime | None = Field(default=None, alias='updatedAt')

    @property
    def latest_proposal(self) -> Proposal:
        """Most recent proposal: the last counter, else the initial one."""
        if self.counter_proposals:
            return self.counter_proposals[-1]
        return self.initial_proposal

    def party_of(self, identity_id: str) -> Party | None:
        """Which side ``identity_id`` is on, if either."""
        if identity_id == self.borrower_id:
            return Party.BORROWER
        if identity_id == self.lender_id:
            return Party.LENDER
        return None
