import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import OAuth2PasswordBearer
from datetime import datetime, timezone
from uuid import uuid4
from typing import List
import jwt
from pydantic import ValidationError

from .schemas.auth import LoginMode, LoginRequest, LoginResponse, Token, TokenData
from ..config.config import settings
from ..db.cache_client import CacheClient
from ..models.cache_models import AuthSession
from ..models.domain_models import Role, Student
from ..services.sync_service import SyncService
from .dependencies import get_cache_client, get_sync_service
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

# --- Router and Security Setup ---
router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


# --- Helper Functions ---
def create_access_token(data: dict) -> str:
    """
    Signs a JWT for the given claims. No expiry claim is added: a session only
    ends on logout.
    """
    return jwt.encode(data.copy(), settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# --- Dependencies for Protected Routes ---
async def get_current_session(
    token: str = Depends(oauth2_scheme),
    cache_client: CacheClient = Depends(get_cache_client)
) -> AuthSession:
    """
    Decodes the token and checks that the session it names is still stored.
    Tokens of logged-out sessions are refused.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
    except (jwt.PyJWTError, ValidationError) as e:
        logger.warning(f"Token validation error: {e}")
        raise credentials_exception

    if not token_data.username or not token_data.session_id:
        logger.warning(f"Token is valid but incomplete: {payload}")
        raise credentials_exception

    session = await cache_client.load_session(token_data.session_id)
    if session is None or str(session.session_id) != token_data.session_id:
        logger.warning(f"User '{token_data.username}' presented a token for a session that is no longer active.")
        raise credentials_exception

    return session


def require_roles(*roles: Role):
    """Dependency factory: the current session must have one of `roles`."""
    async def checker(session: AuthSession = Depends(get_current_session)) -> AuthSession:
        if session.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This operation is not available to the {session.role.value} role."
            )
        return session
    return checker


# --- Login Logic ---

def _authenticate_staff(username: str, password: str) -> Role:
    """Returns the staff role for valid credentials, raises 401 otherwise."""
    if username == settings.ADMIN_USERNAME:
        if password != settings.ADMIN_PASSWORD:
            logger.warning("Administrator login failed (wrong password).")
            raise HTTPException(status_code=401, detail="Wrong administrator password.")
        return Role.ADMIN

    if settings.STAFF_NAMES and username not in settings.STAFF_NAMES:
        logger.warning(f"Login attempt for unknown staff member '{username}'.")
        raise HTTPException(status_code=401, detail="Unknown staff member.")
    if password != settings.STAFF_PASSWORD:
        logger.warning(f"Staff login failed for '{username}' (wrong password).")
        raise HTTPException(status_code=401, detail="Wrong password.")
    return Role.TEACHER


def _parent_username(student: Student) -> str:
    return f"Wali {student.name.split(' ')[0]}"


async def _perform_login(login_request: LoginRequest, cache_client: CacheClient, sync_service: SyncService) -> LoginResponse:
    student_data = None
    if login_request.mode is LoginMode.PARENT:
        students = await sync_service.cached_students()
        student_data = next((s for s in students if s.id == login_request.student_id), None)
        if student_data is None:
            logger.warning(f"Parent login for unknown student '{login_request.student_id}'.")
            raise HTTPException(status_code=401, detail="Unknown student.")
        username, role = _parent_username(student_data), Role.PARENT
    else:
        username = login_request.username
        role = _authenticate_staff(username, login_request.password or "")

    session = AuthSession(
        username=username,
        role=role,
        student_data=student_data,
        session_id=uuid4(),
        created_at=datetime.now(timezone.utc),
    )
    await cache_client.save_session(session)

    access_token = create_access_token({"username": username, "sid": str(session.session_id)})
    logger.info(f"User '{username}' ({role.value}) logged in.")
    return LoginResponse(token=Token(access_token=access_token), session=session)


# --- API Endpoints ---

@router.post("/login", response_model=LoginResponse)
@limiter.limit("30/minute")
async def login(
    request: Request,
    login_request: LoginRequest,
    cache_client: CacheClient = Depends(get_cache_client),
    sync_service: SyncService = Depends(get_sync_service)
):
    """Login for staff (name + password) and parents (student id)."""
    return await _perform_login(login_request, cache_client, sync_service)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def logout(
    request: Request,
    cache_client: CacheClient = Depends(get_cache_client),
    session: AuthSession = Depends(get_current_session)
):
    """Removes this session only; its token stops working, other sessions stay valid."""
    logger.info(f"User '{session.username}' logging out.")
    await cache_client.clear_session(session.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=AuthSession)
@limiter.limit("120/minute")
async def me(request: Request, session: AuthSession = Depends(get_current_session)):
    return session


@router.get("/staff", response_model=List[str])
@limiter.limit("120/minute")
async def staff_names(request: Request):
    """Names offered on the staff login screen, administrator first."""
    return [settings.ADMIN_USERNAME] + list(settings.STAFF_NAMES)
