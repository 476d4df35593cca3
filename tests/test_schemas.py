"""Tests for Pydantic schemas: Policy, PolicyHolder and request bodies."""

from __future__ import annotations

from rainy_day.schemas.policy import Policy, PolicyStatus
from rainy_day.schemas.policy_holder import PolicyHolder, SocialIdentity
from rainy_day.schemas.requests import LoginRequest, NewPolicyRequest, SetEthereumAddressRequest

# ═══════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════


class TestPolicy:
    def test_parses_camel_case_document(self) -> None:
        policy = Policy.model_validate(
            {
                "_id": "abc",
                "policyID": "pol-1",
                "policyHolder": "holder-1",
                "coveredCity": {"name": "Oslo", "latitude": 59.91, "longitude": 10.75},
                "startDateISOString": "2018-06-01T00:00:00.000Z",
                "endDateISOString": "2018-11-01T00:00:00.000Z",
                "status": "Confirmed",
            }
        )
        assert policy.id == "abc"
        assert policy.status is PolicyStatus.CONFIRMED
        assert policy.covered_city.name == "Oslo"
        assert policy.ethereum_address is None

    def test_dumps_with_wire_names(self) -> None:
        policy = Policy(
            policy_id="pol-1",
            policy_holder="holder-1",
            start_date_iso_string="2018-06-01T00:00:00.000Z",
            end_date_iso_string="2018-11-01T00:00:00.000Z",
        )
        dumped = policy.model_dump(by_alias=True, mode="json")
        assert dumped["policyID"] == "pol-1"
        assert dumped["policyHolder"] == "holder-1"
        assert dumped["status"] == "Unconfirmed"
        assert "startDateISOString" in dumped


# ═══════════════════════════════════════════════════════════════════════
# PolicyHolder
# ═══════════════════════════════════════════════════════════════════════


class TestPolicyHolder:
    def test_defaults(self) -> None:
        holder = PolicyHolder(policy_holder_id="ph", confirmation_id="c")
        assert holder.balance_blck == 0
        assert holder.facebook.id is None
        assert holder.google.name is None

    def test_display_name_fallback_order(self) -> None:
        holder = PolicyHolder(policy_holder_id="ph", confirmation_id="c", email="a@b.c")
        assert holder.display_name() == "a@b.c"

        holder.google = SocialIdentity(id="g", name="Gee")
        assert holder.display_name() == "Gee"

        holder.facebook = SocialIdentity(id="f", name="Eff")
        assert holder.display_name() == "Eff"

    def test_blank_facebook_falls_back_to_google(self) -> None:
        holder = PolicyHolder(
            policy_holder_id="ph",
            confirmation_id="c",
            facebook=SocialIdentity(name="  ", email=""),
            google=SocialIdentity(name="Gee", email="gee@example.com"),
        )
        assert holder.social_name() == "Gee"
        assert holder.social_email() == "gee@example.com"


# ═══════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════


class TestRequests:
    def test_new_policy_request_tolerates_missing_sections(self) -> None:
        request = NewPolicyRequest.model_validate({})
        assert request.policy_holder.policy_holder_id is None
        assert request.covered_city.name is None
        assert request.facebook.id is None

    def test_login_request_aliases(self) -> None:
        request = LoginRequest.model_validate(
            {"email": "a@b.c", "password": "pw", "recaptchaToken": "tok"}
        )
        assert request.recaptcha_token == "tok"

    def test_set_address_request_aliases(self) -> None:
        request = SetEthereumAddressRequest.model_validate(
            {"policyID": "pol-1", "ethereumAddress": "0xabc"}
        )
        assert request.policy_id == "pol-1"
        assert request.ethereum_address == "0xabc"
