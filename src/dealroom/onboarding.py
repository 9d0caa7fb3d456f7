"""Transient onboarding answers collected before a role profile exists."""

from dataclasses import dataclass
from enum import Enum


class OnboardingRole(str, Enum):
    INVESTOR = 'Investor / Buyer'
    LENDER = 'Lender / Capital Provider'
    AGENT = 'Agent'
    WHOLESALER = 'Wholesaler'
    SELLER = 'Property Owner / Seller'
    OTHER = 'Other'


@dataclass(frozen=True)
class OnboardingDraft:
    role: OnboardingRole | None = None
    # Strategy, funding type, "has property now?" or free text, depending on role
    second_answer: str | None = None


class OnboardingDraftStore:
    """Holds at most one draft; the session manager resets it on identity change."""

    def __init__(self) -> None:
        self._draft: OnboardingDraft | None = None

    @property
    def draft(self) -> OnboardingDraft | None:
        return self._draft

    def set(self, draft: OnboardingDraft) -> None:
        self._draft = draft

    def reset(self) -> None:
        self._draft = None
