"""
Negotiations: opening one on a deal, and moving it through its lifecycle.
"""

from .initiator import NegotiationInitiator, ProposalSubmission, build_request
from .lifecycle import (
    CLOSED_STATUSES,
    NegotiationDesk,
    accept_changes,
    awaiting,
    counter_changes,
    reject_changes,
)
from .terms import ProposalForm, original_terms_from_deal, proposed_terms_from_form

__all__ = [
    'CLOSED_STATUSES',
    'NegotiationDesk',
    'NegotiationInitiator',
    'ProposalForm',
    'ProposalSubmission',
    'accept_changes',
    'awaiting',
    'build_request',
    'counter_changes',
    'original_terms_from_deal',
    'proposed_terms_from_form',
    'reject_changes',
]
