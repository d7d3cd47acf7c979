import logging
from datetime import timedelta
from jose import jwt
from leadengine.core.clock import utcnow
from leadengine.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)


class TokenConfigError(RuntimeError):
    """Raised when tokens are used without a configured signing key."""


def _signing_key() -> str:
    if not SECRET_KEY:
        raise TokenConfigError("SECRET_KEY not configured - bearer tokens disabled")
    return SECRET_KEY


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _signing_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a bearer token.

    Raises:
        TokenConfigError: SECRET_KEY is not set
        JWTError: Invalid signature, malformed or expired token
    """
    return jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
