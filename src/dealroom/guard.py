"""
Route guard.

Decides, from the session manager's current state, whether a protected
route renders, redirects, or shows a loading placeholder. Rules, first
match wins:

1. session loading                 -> placeholder, nothing else
2. no identity                     -> redirect to sign-in, keeping the
                                      requested location for the return trip
3. route needs a role the profile
   does not carry                  -> redirect to the home destination
4. otherwise                       -> render

Decisions are never cached; call ``evaluate`` on every render.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from .config import config
from .models.identity import Identity, Profile, Role
from .session import SessionManager

logger = structlog.get_logger(__name__)


class RouteOutcome(str, Enum):
    PLACEHOLDER = 'placeholder'
    REDIRECT = 'redirect'
    RENDER = 'render'


@dataclass(frozen=True)
class RouteDecision:
    """
    Result of evaluating a protected route.

    ``destination`` is set for redirects; ``return_to`` carries the
    originally requested location on sign-in redirects.
    """

    outcome: RouteOutcome
    destination: str | None = None
    return_to: str | None = None

    @property
    def renders(self) -> bool:
        return self.outcome is RouteOutcome.RENDER


PLACEHOLDER = RouteDecision(RouteOutcome.PLACEHOLDER)
RENDER = RouteDecision(RouteOutcome.RENDER)


def decide(
    loading: bool,
    identity: Identity | None,
    profile: Profile | None,
    location: str,
    required_role: Role | None = None,
    sign_in_path: str = '/login',
    home_path: str = '/',
) -> RouteDecision:
    """Pure decision table for a protected route."""
    if loading:
        return PLACEHOLDER
    if identity is None:
        return RouteDecision(RouteOutcome.REDIRECT, destination=sign_in_path, return_to=location)
    if required_role is not None and (profile is None or profile.role is not required_role):
        logger.warning(
            'guard.role_denied',
            identity_id=identity.id,
            required_role=required_role.value,
            location=location,
        )
        return RouteDecision(RouteOutcome.REDIRECT, destination=home_path)
    return RENDER


class RouteGuard:
    """Evaluates routes against a live SessionManager."""

    def __init__(
        self,
        session: SessionManager,
        sign_in_path: str | None = None,
        home_path: str | None = None,
    ):
        self.session = session
        self.sign_in_path = sign_in_path or config.SIGN_IN_PATH
        self.home_path = home_path or config.HOME_PATH

    def evaluate(self, location: str, required_role: Role | None = None) -> RouteDecision:
        return decide(
            loading=self.session.loading,
            identity=self.session.identity,
            profile=self.session.profile,
            location=location,
            required_role=required_role,
            sign_in_path=self.sign_in_path,
            home_path=self.home_path,
        )

    def protected(self, location: str) -> RouteDecision:
        """Any signed-in identity."""
        return self.evaluate(location)

    def admin_only(self, location: str) -> RouteDecision:
        return self.evaluate(location, required_role=Role.ADMIN)
