# prayer_attendance/backend/api/utilities/limiter.py

from fastapi import Request
import jwt

from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config.config import settings

def get_limiter_key(request: Request) -> str:
    """
    Rate-limit key: the signed-in username when the request carries a valid
    bearer token, otherwise the client address. Scanner stations behind one
    school NAT therefore do not share a single budget once logged in.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ")[1]
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            username = payload.get("username")
            if username:
                return f"user:{username}"
        except jwt.PyJWTError:
            pass

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_limiter_key,
    storage_uri=settings.RATE_LIMITER_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)
