from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from engconnect.schemas import Role

ALGORITHM = "HS256"


class TokenFailure(str, Enum):
    MALFORMED = "Malformed"
    EXPIRED = "Expired"
    INVALID_SIGNATURE = "InvalidSignature"


@dataclass(frozen=True)
class TokenClaims:
    identity_id: int
    role: Role
    issued_at: datetime
    expires_at: datetime


class TokenService:
    def __init__(self, secret_key: str, algorithm: str = ALGORITHM):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm

    def issue(self, identity_id: int, role: Role, ttl: timedelta, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        to_encode = {
            "sub": str(identity_id),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> Union[TokenClaims, TokenFailure]:
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            return TokenFailure.MALFORMED

        # signature is checked before any claim, so a forged expired token reads as forged
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            return TokenFailure.EXPIRED
        except JWTClaimsError:
            return TokenFailure.MALFORMED
        except JWTError:
            return TokenFailure.INVALID_SIGNATURE

        try:
            return TokenClaims(
                identity_id=int(payload["sub"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            return TokenFailure.MALFORMED
