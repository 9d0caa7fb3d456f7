"""
Identity and role profile models.

An Identity is the authenticated principal handed out by the backend. Its
role Profile is a separate document resolved asynchronously after sign-in;
an Identity whose profile has not resolved is authenticated but not ready.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Role carried by a resolved profile."""

    INVESTOR = 'investor'
    LENDER = 'lender'
    ADMIN = 'admin'


class Identity(BaseModel):
    """Authenticated principal. ``id`` is opaque and stable across sessions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description='Backend-assigned identity ID')
    email: str | None = Field(default=None, description='Sign-in email, if known')


class Profile(BaseModel):
    """Role profile document stored by the backend under the identity's ID."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='allow')

    uid: str = Field(..., description='Owning identity ID')
    role: Role = Field(..., description='Resolved role')
    email: str | None = None
    display_name: str = Field(default='', alias='displayName')
    phone_number: str = Field(default='', alias='phoneNumber')
    is_verified: bool = Field(default=False, alias='isVerified')
    created_at: datetime | None = Field(default=None, alias='createdAt')
