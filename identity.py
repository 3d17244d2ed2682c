"""Identity collaborator: who is calling, and which borrower they act as.

The reservation core never looks the user up itself; routers resolve a
borrower id here and pass it down explicitly.
"""

from typing import Optional, Protocol, TypedDict

import structlog
from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext

import config
from errors import NotFoundError
from store import Store

logger = structlog.get_logger(__name__)

serializer = URLSafeTimedSerializer(config.SECRET_KEY)

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


class AuthUser(TypedDict):
    id: int
    email: str


class Identity(Protocol):
    def current_user(self) -> Optional[AuthUser]: ...

    def borrower_id_for(self, user_id: int) -> int: ...


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user_id: int) -> str:
    """
    Store the user id in the signed token.
    Example data:
        {"user_id": 3}
    """
    return serializer.dumps({"user_id": user_id})


def verify_session_token(token: str, max_age_seconds: int = config.SESSION_MAX_AGE) -> Optional[dict]:
    """
    Returns {'user_id': ...} if valid,
    or None if token is invalid/expired.
    """
    try:
        return serializer.loads(token, max_age=max_age_seconds)
    except BadSignature:
        return None


class SessionIdentity:
    """Identity resolved from a signed session cookie against the local users table."""

    def __init__(self, store: Store, session_token: Optional[str]):
        self.store = store
        self.session_token = session_token

    def current_user(self) -> Optional[AuthUser]:
        if not self.session_token:
            return None

        data = verify_session_token(self.session_token)
        if not data:
            logger.info("identity.session_rejected")
            return None

        rows = self.store.query("users", {"id": data["user_id"]})
        if not rows:
            return None
        return {"id": rows[0]["id"], "email": rows[0]["email"]}

    def borrower_id_for(self, user_id: int) -> int:
        rows = self.store.query("borrowers", {"auth_id": user_id})
        if not rows:
            raise NotFoundError("Borrower not found")
        return rows[0]["id"]
