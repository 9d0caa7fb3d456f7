"""
Data models for the deal room core.

Provides identity/profile models, the backend-mirrored Deal, and the
negotiation term set, request and record models.
"""

from .identity import Identity, Profile, Role
from .deal import (
    Attachment,
    BasicInfo,
    Deal,
    DealStatus,
    DescriptionInfo,
    ExitStrategy,
    FundingInfo,
    FundingType,
    to_number,
)
from .negotiation import (
    NegotiationRecord,
    NegotiationRequest,
    NegotiationStatus,
    NegotiationTermSet,
    Party,
    Proposal,
)

__all__ = [
    # Identity
    'Identity',
    'Profile',
    'Role',
    # Deal
    'Attachment',
    'BasicInfo',
    'Deal',
    'DealStatus',
    'DescriptionInfo',
    'ExitStrategy',
    'FundingInfo',
    'FundingType',
    'to_number',
    # Negotiation
    'NegotiationRecord',
    'NegotiationRequest',
    'NegotiationStatus',
    'NegotiationTermSet',
    'Party',
    'Proposal',
]
