"""JWT issuance, password hashing and short identifier generation."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Optional

import bcrypt
import jwt
from loguru import logger

if TYPE_CHECKING:
    from omegaconf import DictConfig

_BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_SHORT_ID_LENGTH = 22

# bcrypt only reads the first 72 bytes; newer releases refuse anything longer
MAX_PASSWORD_BYTES = 72


class TokenIssuer:
    """Sign and verify the session tokens handed to policy holders.

    Parameters
    ----------
    cfg:
        The ``auth`` config section with ``jwt_secret``, ``jwt_algorithm`` and
        ``jwt_expiration_minutes``.
    """

    def __init__(self, cfg: DictConfig) -> None:
        self._secret: str = cfg.jwt_secret
        self._algorithm: str = cfg.jwt_algorithm
        self._expiration = timedelta(minutes=int(cfg.jwt_expiration_minutes))

    def create_token(
        self,
        name: Optional[str],
        policy_holder_id: str,
        covered_city: Optional[str],
    ) -> str:
        """Return a signed token carrying the holder's name, ID and covered city."""
        now = datetime.now(timezone.utc)
        payload = {
            "name": name,
            "policyHolderID": policy_holder_id,
            "coveredCity": covered_city,
            "iat": now,
            "exp": now + self._expiration,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> Optional[dict[str, Any]]:
        """Verify *token* and return its claims, or ``None`` if invalid or expired."""
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid token: {err}", err=exc)
            return None


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash *password* with bcrypt.

    Raises
    ------
    ValueError
        If the UTF-8 encoded password is longer than ``MAX_PASSWORD_BYTES``.
    """
    if password_too_long(password):
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    """Check *password* against a stored bcrypt hash."""
    if not hashed_password or password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def new_short_id() -> str:
    """Return a random UUID4 encoded as a fixed-width base62 string."""
    value = uuid.uuid4().int
    chars: list[str] = []
    while value:
        value, rem = divmod(value, 62)
        chars.append(_BASE62_ALPHABET[rem])
    return "".join(reversed(chars)).rjust(_SHORT_ID_LENGTH, _BASE62_ALPHABET[0])
