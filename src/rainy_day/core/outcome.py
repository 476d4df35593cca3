"""Workflow outcomes and the single outcome-to-HTTP-status table.

Workflows return a :class:`WorkflowOutcome` instead of writing to the
response; each route turns it into exactly one HTTP response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class OutcomeKind(str, Enum):
    """Taxonomy of workflow results."""

    OK = "ok"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UPSTREAM_ERROR = "upstream_error"
    STORAGE_ERROR = "storage_error"


STATUS_BY_KIND: dict[OutcomeKind, int] = {
    OutcomeKind.OK: 200,
    OutcomeKind.INVALID_INPUT: 400,
    OutcomeKind.CONFLICT: 400,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.UPSTREAM_ERROR: 500,
    OutcomeKind.STORAGE_ERROR: 400,
}


@dataclass(frozen=True)
class ConfirmationEmail:
    """A confirmation email to dispatch once the response has been sent."""

    to: str
    confirmation_id: str


@dataclass
class WorkflowOutcome:
    """Result of one workflow operation.

    Attributes
    ----------
    kind:
        Where the result falls in the taxonomy; decides the HTTP status.
    body:
        JSON body for the response (``None`` when serving the app shell).
    token:
        Signed JWT to return in the ``Authorization`` header.
    set_cookie:
        Also set the token as the ``jwt`` cookie.
    serve_shell:
        Respond with the application shell (``index.html``) instead of JSON.
    emails:
        Confirmation emails to dispatch in the background.
    """

    kind: OutcomeKind
    body: Optional[dict[str, Any]] = None
    token: Optional[str] = None
    set_cookie: bool = False
    serve_shell: bool = False
    emails: list[ConfirmationEmail] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @classmethod
    def success(cls, body: Optional[dict[str, Any]] = None, **kwargs: Any) -> WorkflowOutcome:
        return cls(kind=OutcomeKind.OK, body=body, **kwargs)

    @classmethod
    def failure(cls, kind: OutcomeKind, error: Optional[str], **extra: Any) -> WorkflowOutcome:
        """Build a failed outcome whose body carries ``error`` plus *extra* fields."""
        return cls(kind=kind, body={**extra, "error": error})

    @classmethod
    def shell(cls, token: Optional[str] = None) -> WorkflowOutcome:
        """Serve the application shell, optionally logging the visitor in."""
        return cls(kind=OutcomeKind.OK, token=token, set_cookie=token is not None, serve_shell=True)
