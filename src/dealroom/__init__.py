"""
Deal Room Core

Live catalog of approved real-estate funding deals, identity-aware
sessions with route guarding, and lender-initiated funding negotiations
over a pluggable document-store backend.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .session import SessionManager, SessionState
from .guard import RouteDecision, RouteGuard, RouteOutcome, decide
from .catalog import (
    CatalogQuery,
    CatalogSynchronizer,
    CatalogView,
    LiveCatalog,
    SortKey,
    display,
)
from .negotiation import (
    NegotiationDesk,
    NegotiationInitiator,
    ProposalForm,
    ProposalSubmission,
)
from .backend import Backend, MemoryStore
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
)
from .errors import (
    DealroomError,
    ValidationError,
    AuthError,
    SubscriptionError,
    SubmissionError,
    NegotiationStateError,
    BackendError,
    NotFoundError,
)

__all__ = [
    # Version
    '__version__',
    # Session and routing
    'SessionManager',
    'SessionState',
    'RouteDecision',
    'RouteGuard',
    'RouteOutcome',
    'decide',
    # Catalog
    'CatalogQuery',
    'CatalogSynchronizer',
    'CatalogView',
    'LiveCatalog',
    'SortKey',
    'display',
    # Negotiation
    'NegotiationDesk',
    'NegotiationInitiator',
    'ProposalForm',
    'ProposalSubmission',
    # Backend
    'Backend',
    'MemoryStore',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    # Errors
    'DealroomError',
    'ValidationError',
    'AuthError',
    'SubscriptionError',
    'SubmissionError',
    'NegotiationStateError',
    'BackendError',
    'NotFoundError',
]
