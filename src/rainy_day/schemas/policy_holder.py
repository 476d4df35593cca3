"""Pydantic models for registered policy holders."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SocialIdentity(BaseModel):
    """Profile captured from a social login provider (Facebook or Google)."""

    id: Optional[str] = Field(default=None, description="Provider account id")
    token: Optional[str] = Field(default=None, description="Provider access token")
    name: Optional[str] = Field(default=None, description="Display name on the provider")
    email: Optional[str] = Field(default=None, description="Email reported by the provider")


class PolicyHolder(BaseModel):
    """A registered user who may own one policy."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id", description="Storage identity")
    policy_holder_id: str = Field(..., alias="policyHolderID", description="Short unique external code")
    email: Optional[str] = Field(default=None, description="Registration email (password holders)")
    password: Optional[str] = Field(default=None, description="bcrypt hash of the password")
    confirmation_id: str = Field(
        ..., alias="confirmationID", description="Single-use token proving control of the email"
    )
    balance_blck: float = Field(default=0, alias="balanceBLCK")
    facebook: SocialIdentity = Field(default_factory=SocialIdentity)
    google: SocialIdentity = Field(default_factory=SocialIdentity)

    def display_name(self) -> Optional[str]:
        """Facebook name, then Google name, then the registration email."""
        return _first_filled(self.facebook.name, self.google.name, self.email)

    def social_name(self) -> Optional[str]:
        """Facebook name when set, otherwise the Google name."""
        return _first_filled(self.facebook.name) or self.google.name

    def social_email(self) -> Optional[str]:
        """Facebook email when set, otherwise the Google email."""
        return _first_filled(self.facebook.email) or self.google.email


def _first_filled(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value
    return None
