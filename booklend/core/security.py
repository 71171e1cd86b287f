"""Password hashing and signed session tokens.

A session token is a JWT carrying the user id (``sub``) and role, signed with
the configured secret and valid for ``session_ttl_minutes``.  Decoding a token
yields an :class:`Identity`, which is what the rest of the application passes
around instead of a request object.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from booklend.core.config import Settings
from booklend.core.errors import Unauthorized
from booklend.models.models import Role

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class SessionIssuer:
    def __init__(self, settings: Settings):
        if not settings.jwt_secret_key:
            raise RuntimeError("JWT_SECRET_KEY must be set")
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.ttl = timedelta(minutes=settings.session_ttl_minutes)

    def issue(self, user_id: int, role: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {"sub": str(user_id), "role": Role(role).value, "exp": now + self.ttl}
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def authenticate(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthorized("Unauthorized")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return Identity(user_id=int(payload["sub"]), role=Role(payload["role"]))
        except (JWTError, KeyError, ValueError) as exc:
            raise Unauthorized("Invalid token") from exc
