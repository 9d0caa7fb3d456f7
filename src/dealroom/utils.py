"""
Utility helpers for the deal room core.

new_id() wraps fastuuid.uuid7() so reference backends hand out time-sortable,
opaque string identifiers for deals, negotiations and identities.
"""

import fastuuid
from uuid import UUID


def uuid7() -> UUID:
    """Generate a UUIDv7 (time-sortable) as a stdlib uuid.UUID."""
    return UUID(str(fastuuid.uuid7()))


def new_id() -> str:
    """Generate an opaque record identifier."""
    return uuid7().hex
