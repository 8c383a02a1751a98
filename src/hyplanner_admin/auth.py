"""
Admin authentication.

There is exactly one administrator, configured through the environment. The
credential lookup sits behind :class:`CredentialStore` so token issuing and
verification can be exercised independently of where that record lives.
Tokens are stateless HS256 JWTs: logging out is the client discarding it.
"""

from __future__ import annotations

import hmac
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from .config import AuthConfig
from .errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

_EXPIRY_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_EXPIRY_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
DEFAULT_EXPIRY = timedelta(days=1)


def parse_expires_in(raw: Optional[str]) -> timedelta:
    """Parse ``"3600"``, ``"45m"``, ``"12h"`` or ``"7d"``; anything else gives one day."""
    match = _EXPIRY_PATTERN.match(raw or "")
    if not match:
        return DEFAULT_EXPIRY
    amount, unit = match.groups()
    seconds = int(amount) * _EXPIRY_UNITS[unit.lower()]
    return timedelta(seconds=seconds) if seconds > 0 else DEFAULT_EXPIRY


@dataclass(frozen=True)
class AdminIdentity:
    id: str
    username: str
    role: str = "admin"
    email: Optional[str] = None
    name: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "role": self.role}

    def profile(self) -> Dict[str, Any]:
        return {**self.as_dict(), "email": self.email, "name": self.name}


class CredentialStore:
    def authenticate(self, username: str, password: str) -> Optional[AdminIdentity]:
        raise NotImplementedError

    def lookup(self, username: str) -> Optional[AdminIdentity]:
        raise NotImplementedError

    def administrator(self) -> AdminIdentity:
        raise NotImplementedError


class SingleAdminCredentialStore(CredentialStore):
    def __init__(self, username: str, password: str, email: Optional[str] = None, name: Optional[str] = None):
        self._password = password
        self.identity = AdminIdentity(id=username, username=username, email=email, name=name)

    @classmethod
    def from_config(cls, config: AuthConfig) -> "SingleAdminCredentialStore":
        return cls(
            username=config.admin_username,
            password=config.admin_password,
            email=f"{config.admin_username}@hyplanner.com",
            name="Admin User",
        )

    def authenticate(self, username: str, password: str) -> Optional[AdminIdentity]:
        username_ok = hmac.compare_digest(username.encode(), self.identity.username.encode())
        password_ok = hmac.compare_digest(password.encode(), self._password.encode())
        return self.identity if username_ok and password_ok else None

    def lookup(self, username: str) -> Optional[AdminIdentity]:
        return self.identity if username == self.identity.username else None

    def administrator(self) -> AdminIdentity:
        return self.identity


class TokenService:
    algorithm = "HS256"

    def __init__(self, secret: str, expires_in: timedelta = DEFAULT_EXPIRY):
        self.secret = secret
        self.expires_in = expires_in

    def issue(self, identity: AdminIdentity, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "userId": identity.id,
            "username": identity.username,
            "role": identity.role,
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc


class AdminAuthService:
    def __init__(self, credentials: CredentialStore, tokens: TokenService):
        self.credentials = credentials
        self.tokens = tokens

    @classmethod
    def from_config(cls, config: AuthConfig) -> "AdminAuthService":
        return cls(
            credentials=SingleAdminCredentialStore.from_config(config),
            tokens=TokenService(config.jwt_secret, parse_expires_in(config.jwt_expires_in)),
        )

    def login(self, username: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not username or not password:
            raise ValidationError("Username and password are required")
        identity = self.credentials.authenticate(username, password)
        if identity is None:
            logger.warning("Rejected admin login for %r", username)
            raise AuthenticationError("Invalid credentials")
        return {"token": self.tokens.issue(identity), "user": identity.as_dict()}

    def verify(self, authorization: Optional[str]) -> AdminIdentity:
        token = (authorization or "").replace("Bearer ", "", 1).strip()
        if not token:
            raise AuthenticationError("No token provided")
        claims = self.tokens.decode(token)
        identity = self.credentials.lookup(str(claims.get("username", "")))
        if identity is None:
            raise AuthenticationError("Invalid token")
        return identity
