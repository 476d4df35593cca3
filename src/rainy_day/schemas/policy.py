"""Pydantic models for insurance policies."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PolicyStatus(str, Enum):
    """Lifecycle states of a policy (``Unconfirmed`` → ``Confirmed`` only)."""

    UNCONFIRMED = "Unconfirmed"
    CONFIRMED = "Confirmed"


class CoveredCity(BaseModel):
    """The location whose weather the policy covers."""

    name: Optional[str] = Field(default=None, description="City display name")
    latitude: Optional[Union[float, str]] = Field(default=None, description="Latitude of the city")
    longitude: Optional[Union[float, str]] = Field(default=None, description="Longitude of the city")


class Policy(BaseModel):
    """A weather-contingent insurance contract owned by one policy holder."""

    id: Optional[str] = Field(default=None, alias="_id", description="Storage identity")
    policy_id: str = Field(..., alias="policyID", description="Opaque external policy identifier")
    policy_holder: str = Field(
        ..., alias="policyHolder", description="Storage identity of the owning policy holder"
    )
    covered_city: CoveredCity = Field(default_factory=CoveredCity, alias="coveredCity")
    start_date_iso_string: str = Field(..., alias="startDateISOString")
    end_date_iso_string: str = Field(..., alias="endDateISOString")
    status: PolicyStatus = Field(default=PolicyStatus.UNCONFIRMED)
    ethereum_address: Optional[str] = Field(
        default=None, alias="ethereumAddress", description="Payout destination, set after creation"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "policyID": "5wbwf6yUxVBcr48AMbz9cb",
                    "policyHolder": "64b7f0c2a1e4d3b2c1a09f8e",
                    "coveredCity": {"name": "Seattle", "latitude": 47.6062, "longitude": -122.3321},
                    "startDateISOString": "2018-06-01T00:00:00.000Z",
                    "endDateISOString": "2018-11-01T00:00:00.000Z",
                    "status": "Unconfirmed",
                }
            ]
        },
    )
