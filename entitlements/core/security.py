from datetime import timedelta
from typing import Optional
from jose import jwt

from entitlements.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from entitlements.core.timeutils import utcnow


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT. Tokens are issued by the identity service; this is used by tooling and tests."""
    to_encode = data.copy()
    expire = utcnow() + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
