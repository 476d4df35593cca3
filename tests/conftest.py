"""Shared fixtures for the Rainy Day Insurance test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from omegaconf import OmegaConf

from rainy_day.core.security import TokenIssuer, hash_password
from rainy_day.schemas.policy import CoveredCity, Policy, PolicyStatus
from rainy_day.schemas.policy_holder import PolicyHolder, SocialIdentity
from rainy_day.schemas.requests import NewPolicyRequest
from rainy_day.storage.memory import InMemoryPolicyStore
from rainy_day.workflows.public import PublicWorkflow
from rainy_day.workflows.secured import SecuredWorkflow

HOLDER_PASSWORD = "correct-horse"

# ---------------------------------------------------------------------------
# Config fixture (test overrides)
# ---------------------------------------------------------------------------


@pytest.fixture()
def public_dir(tmp_path: Path) -> Path:
    """Directory holding a minimal application shell."""
    web = tmp_path / "public"
    web.mkdir()
    (web / "index.html").write_text("<html><body>rainy day shell</body></html>")
    return web


@pytest.fixture()
def test_cfg(public_dir: Path) -> Any:
    """Return a minimal OmegaConf DictConfig with test overrides."""
    cfg_dict = {
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
            "debug": False,
            "cors_origins": ["http://localhost:4200"],
        },
        "logging": {"level": "WARNING", "colored": False, "format": "pretty"},
        "storage": {"type": "memory", "mongo_uri": "", "database": "rainy_day_test"},
        "auth": {
            "jwt_secret": "test-secret",
            "jwt_algorithm": "HS256",
            "jwt_expiration_minutes": 60,
            "bcrypt_rounds": 4,
        },
        "recaptcha": {
            "secret_key": "captcha-secret",
            "verify_url": "https://captcha.test/siteverify",
            "timeout_seconds": 5,
        },
        "mail": {
            "api_key": "sg-key",
            "template_id": "tmpl-123",
            "api_url": "https://mail.test/v3/mail/send",
            "sender": "info@black.insure",
            "subject": 'Confirm your "Rainy Day Insurance" policy',
            "confirmation_base_url": "",
            "timeout_seconds": 5,
        },
        "facebook": {"graph_url": "https://graph.test/v19.0", "timeout_seconds": 5},
        "policy": {"coverage_end_date": "2018-11-01"},
        "web": {"public_dir": str(public_dir)},
    }
    return OmegaConf.create(cfg_dict)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    """A clock frozen mid-afternoon so start dates must be truncated to midnight."""
    return lambda: datetime(2018, 6, 15, 13, 45, 12, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> InMemoryPolicyStore:
    return InMemoryPolicyStore()


@pytest.fixture()
def tokens(test_cfg: Any) -> TokenIssuer:
    return TokenIssuer(test_cfg.auth)


@pytest.fixture()
def mock_recaptcha() -> MagicMock:
    """A verifier that accepts every token."""
    verifier = MagicMock()
    verifier.verify = AsyncMock(return_value=None)
    return verifier


@pytest.fixture()
def mock_mailer() -> MagicMock:
    mailer = MagicMock()
    mailer.send = AsyncMock(return_value=None)
    return mailer


@pytest.fixture()
def facebook_profile() -> SocialIdentity:
    return SocialIdentity(id="fb-1001", token="fb-token", name="Sunny Day", email="sunny@example.com")


@pytest.fixture()
def mock_facebook(facebook_profile: SocialIdentity) -> MagicMock:
    client = MagicMock()
    client.fetch_profile = AsyncMock(return_value=facebook_profile)
    return client


@pytest.fixture()
def public_workflow(
    test_cfg: Any,
    store: InMemoryPolicyStore,
    tokens: TokenIssuer,
    mock_recaptcha: MagicMock,
    fixed_clock: Callable[[], datetime],
) -> PublicWorkflow:
    return PublicWorkflow(test_cfg, store, tokens, mock_recaptcha, clock=fixed_clock)


@pytest.fixture()
def secured_workflow(
    test_cfg: Any,
    store: InMemoryPolicyStore,
    tokens: TokenIssuer,
    fixed_clock: Callable[[], datetime],
) -> SecuredWorkflow:
    return SecuredWorkflow(test_cfg, store, tokens, clock=fixed_clock)


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def password_holder(store: InMemoryPolicyStore) -> PolicyHolder:
    """A holder registered with email/password and no policy yet."""
    return await store.insert_policy_holder(
        PolicyHolder(
            policy_holder_id="ph-password",
            email="rain@example.com",
            password=hash_password(HOLDER_PASSWORD, rounds=4),
            confirmation_id="confirm-password",
        )
    )


@pytest_asyncio.fixture()
async def social_holder(store: InMemoryPolicyStore, facebook_profile: SocialIdentity) -> PolicyHolder:
    """A holder registered through Facebook and no policy yet."""
    return await store.insert_policy_holder(
        PolicyHolder(
            policy_holder_id="ph-facebook",
            confirmation_id="confirm-facebook",
            facebook=facebook_profile,
        )
    )


@pytest_asyncio.fixture()
async def unconfirmed_policy(store: InMemoryPolicyStore, password_holder: PolicyHolder) -> Policy:
    return await store.insert_policy(
        Policy(
            policy_id="pol-1",
            policy_holder=password_holder.id,
            covered_city=CoveredCity(name="Seattle", latitude=47.6062, longitude=-122.3321),
            start_date_iso_string="2018-06-01T00:00:00.000Z",
            end_date_iso_string="2018-11-01T00:00:00.000Z",
            status=PolicyStatus.UNCONFIRMED,
        )
    )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@pytest.fixture()
def seattle() -> dict[str, Any]:
    return {"name": "Seattle", "latitude": 47.6062, "longitude": -122.3321}


@pytest.fixture()
def new_account_request(seattle: dict[str, Any]) -> NewPolicyRequest:
    """Submission that registers a brand-new email/password holder."""
    return NewPolicyRequest.model_validate(
        {
            "policyHolder": {"policyHolderID": ""},
            "coveredCity": seattle,
            "emailAddress": "new@example.com",
            "password": "hunter22",
        }
    )


@pytest.fixture()
def returning_facebook_request(
    seattle: dict[str, Any], facebook_profile: SocialIdentity
) -> NewPolicyRequest:
    """Submission from the Facebook holder created by ``social_holder``."""
    return NewPolicyRequest.model_validate(
        {
            "policyHolder": {"policyHolderID": "ph-facebook"},
            "coveredCity": seattle,
            "facebook": {"id": facebook_profile.id, "name": facebook_profile.name},
        }
    )
