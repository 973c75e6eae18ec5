from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

from jose import JWTError, jwt

from app.core.config import Settings
from app.core.errors import InvalidToken
from app.models.user import Role

logger = logging.getLogger(__name__)


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPayload:
    """Claims shared by access and refresh tokens."""

    sub: str
    tenant_id: str
    email: str
    role: Role

    def to_claims(self) -> Dict[str, Any]:
        return {
            "sub": self.sub,
            "tenant_id": self.tenant_id,
            "email": self.email,
            "role": self.role.value,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, stateless tokens bound to a tenant and role.

    Access and refresh tokens are signed with different secrets, so a leaked
    access secret cannot mint refresh tokens. Expiry lives inside the signed
    claims; there is no server-side revocation list.
    """

    def __init__(self, settings: Settings, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._secrets = {
            TokenKind.ACCESS: settings.jwt_secret,
            TokenKind.REFRESH: settings.jwt_refresh_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: settings.access_token_ttl_seconds,
            TokenKind.REFRESH: settings.refresh_token_ttl_seconds,
        }
        self._algorithm = settings.jwt_algorithm
        self._clock = clock

    @property
    def access_token_ttl_seconds(self) -> int:
        return self._ttls[TokenKind.ACCESS]

    def issue_access_token(self, payload: TokenPayload) -> str:
        return self._issue(payload, TokenKind.ACCESS)

    def issue_refresh_token(self, payload: TokenPayload) -> str:
        return self._issue(payload, TokenKind.REFRESH)

    def verify(self, token: str, kind: TokenKind = TokenKind.ACCESS) -> TokenPayload:
        """Decode ``token`` as ``kind`` or raise :class:`InvalidToken`.

        Expired, malformed, badly signed and wrong-kind tokens all produce the
        same error so callers cannot probe the signature.
        """
        try:
            claims = jwt.decode(token, self._secrets[kind], algorithms=[self._algorithm])
        except JWTError as exc:
            logger.info("token rejected kind=%s reason=%s", kind.value, type(exc).__name__)
            raise InvalidToken() from None

        if claims.get("type") != kind.value:
            logger.info("token rejected kind=%s reason=wrong_type", kind.value)
            raise InvalidToken()

        try:
            return TokenPayload(
                sub=str(claims["sub"]),
                tenant_id=str(claims["tenant_id"]),
                email=str(claims["email"]),
                role=Role(claims["role"]),
            )
        except (KeyError, ValueError):
            logger.info("token rejected kind=%s reason=bad_claims", kind.value)
            raise InvalidToken() from None

    def _issue(self, payload: TokenPayload, kind: TokenKind) -> str:
        now = self._clock()
        claims = payload.to_claims()
        claims.update(
            {
                "type": kind.value,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(seconds=self._ttls[kind])).timestamp()),
            }
        )
        return jwt.encode(claims, self._secrets[kind], algorithm=self._algorithm)
