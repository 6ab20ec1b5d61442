"""Request authorization.

Each request moves Unauthenticated -> Authenticated -> Authorized | Denied.
:func:`evaluate` returns that outcome as a value; :func:`require` is the route
layer's adapter that turns a denial into an error response.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from fastapi import Depends, Request
from sqlmodel import Session

from engconnect.config import require_secret_key
from engconnect.db import fetch, get_session
from engconnect.errors import DEFAULT_MESSAGES, ApiError, ErrorKind
from engconnect.models import User
from engconnect.schemas import IdentityOut, Role
from engconnect.tokens import TokenFailure, TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authorized:
    identity: IdentityOut


@dataclass(frozen=True)
class Denied:
    kind: ErrorKind
    message: str = ""

    def __post_init__(self):
        if not self.message:
            object.__setattr__(self, "message", DEFAULT_MESSAGES[self.kind])


GuardResult = Union[Authorized, Denied]


@dataclass(frozen=True)
class Policy:
    """Roles a route admits; ``None`` admits any authenticated identity."""

    roles: Optional[FrozenSet[Role]] = None
    label: str = "any authenticated user"

    def admits(self, role: str) -> bool:
        return self.roles is None or Role(role) in self.roles


AUTHENTICATED = Policy()
STUDENT = Policy(frozenset({Role.student}), "student")
ADMIN = Policy(frozenset({Role.admin}), "admin")
ADMIN_OR_COMPANY = Policy(frozenset({Role.admin, Role.company}), "admin or company")


def get_token_service() -> TokenService:
    return TokenService(require_secret_key())


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, credential = (authorization or "").strip().partition(" ")
    credential = credential.strip()
    if scheme.lower() != "bearer" or not credential:
        return None
    return credential


def evaluate(authorization: Optional[str], policy: Policy, session: Session, tokens: TokenService) -> GuardResult:
    token = bearer_token(authorization)
    if token is None:
        return Denied(ErrorKind.NO_CREDENTIAL)

    claims = tokens.verify(token)
    if isinstance(claims, TokenFailure):
        logger.info("Token rejected: %s", claims.value)
        return Denied(ErrorKind.INVALID_CREDENTIAL)

    # the token's role is not trusted; the stored identity is re-read on every request
    identity = fetch(session, User, claims.identity_id)
    if identity is None:
        logger.info("Token for missing user %s", claims.identity_id)
        return Denied(ErrorKind.IDENTITY_GONE)

    if not policy.admits(identity.role):
        logger.info("Role %s denied, route requires %s (user %s)", identity.role, policy.label, identity.id)
        return Denied(ErrorKind.ROLE_NOT_PERMITTED, f"Access denied. Not authorized as {policy.label}.")
    # the row carries the password hash; only the view leaves the guard
    return Authorized(IdentityOut.model_validate(identity))


def raise_if_denied(result: GuardResult) -> IdentityOut:
    if isinstance(result, Denied):
        raise ApiError(result.kind, result.message)
    return result.identity


def require(policy: Policy):
    """Dependency resolving the caller for routes guarded by ``policy``."""

    def dependency(
        request: Request,
        session: Session = Depends(get_session),
        tokens: TokenService = Depends(get_token_service),
    ) -> IdentityOut:
        identity = raise_if_denied(evaluate(request.headers.get("Authorization"), policy, session, tokens))
        request.state.identity = identity
        return identity

    return dependency


def optional_identity(
    request: Request,
    session: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[IdentityOut]:
    """Caller identity on public routes, or ``None`` when absent or not valid."""
    result = evaluate(request.headers.get("Authorization"), AUTHENTICATED, session, tokens)
    return result.identity if isinstance(result, Authorized) else None
