"""Pydantic schemas for policies, policy holders and request bodies."""

from rainy_day.schemas.policy import CoveredCity, Policy, PolicyStatus
from rainy_day.schemas.policy_holder import PolicyHolder, SocialIdentity
from rainy_day.schemas.requests import (
    GetPolicyRequest,
    LoginRequest,
    NewPolicyRequest,
    SetEthereumAddressRequest,
)

__all__ = [
    "CoveredCity",
    "Policy",
    "PolicyStatus",
    "PolicyHolder",
    "SocialIdentity",
    "LoginRequest",
    "NewPolicyRequest",
    "GetPolicyRequest",
    "SetEthereumAddressRequest",
]
