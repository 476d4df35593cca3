"""Request bodies accepted by the public and secured routes.

Every field is optional at parse time: blank and missing values are judged by
the workflows, which answer with descriptive 400 errors.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rainy_day.schemas.policy import CoveredCity
from rainy_day.schemas.policy_holder import SocialIdentity


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(_CamelModel):
    """Email/password login guarded by a reCAPTCHA token."""

    email: Optional[str] = None
    password: Optional[str] = None
    recaptcha_token: Optional[str] = Field(default=None, alias="recaptchaToken")


class PolicyHolderReference(_CamelModel):
    policy_holder_id: Optional[str] = Field(default=None, alias="policyHolderID")


class NewPolicyRequest(_CamelModel):
    """New-policy submission, either for a returning holder or a new account."""

    policy_holder: PolicyHolderReference = Field(
        default_factory=PolicyHolderReference, alias="policyHolder"
    )
    covered_city: CoveredCity = Field(default_factory=CoveredCity, alias="coveredCity")
    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    password: Optional[str] = None
    facebook: SocialIdentity = Field(default_factory=SocialIdentity)
    google: SocialIdentity = Field(default_factory=SocialIdentity)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "policyHolder": {"policyHolderID": ""},
                    "coveredCity": {"name": "Seattle", "latitude": 47.6062, "longitude": -122.3321},
                    "emailAddress": "jane@example.com",
                    "password": "s3cret-pass",
                }
            ]
        },
    )


class GetPolicyRequest(_CamelModel):
    policy_holder_id: Optional[str] = Field(default=None, alias="policyHolderID")


class SetEthereumAddressRequest(_CamelModel):
    policy_id: Optional[str] = Field(default=None, alias="policyID")
    ethereum_address: Optional[str] = Field(default=None, alias="ethereumAddress")
