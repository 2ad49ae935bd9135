"""Account routes plus the dependencies that resolve who is calling and which day it is."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import BaseModel

from app.database import get_database
from app.errors import AuthenticationError, NotFoundError, ValidationError
from app.models.user import User, UserCreate
from app.services.auth_service import AuthService
from app.utils.auth import verify_access_token
from app.utils.dates import local_today


router = APIRouter(prefix="/auth", tags=["auth"])
bearer_scheme = HTTPBearer(auto_error=False)


class Credentials(BaseModel):
    email: str
    password: str


class AccessToken(BaseModel):
    """Bearer token handed out by ``/auth/login``."""

    access_token: str
    token_type: str = "bearer"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def sign_up(payload: UserCreate, db=Depends(get_database)):
    """Create an account; ``timezone`` decides the user's calendar day. 400 on a taken email."""
    try:
        return await AuthService(db).register_user(
            email=payload.email,
            password=payload.password,
            name=payload.name,
            timezone=payload.timezone,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=AccessToken)
async def issue_token(credentials: Credentials, db=Depends(get_database)):
    try:
        token = await AuthService(db).login(email=credentials.email, password=credentials.password)
    except AuthenticationError as e:
        raise _unauthorized(str(e))
    return AccessToken(access_token=token)


async def get_current_user_id(
    bearer: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Resolve the caller's user id from the bearer token.

    Raises:
        HTTPException: 401 when no token was sent or it does not verify
    """
    if bearer is None:
        raise _unauthorized("Not authenticated")
    try:
        return verify_access_token(bearer.credentials)
    except JWTError:
        raise _unauthorized("Invalid authentication credentials")


async def get_user_today(
    on: Optional[date] = Query(None, description="Calendar day to act on (YYYY-MM-DD)"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
) -> date:
    """
    Resolve the calendar day a request refers to.

    An explicit ``on`` wins; otherwise it is today in the user's timezone,
    or in the service timezone when the user has none.
    """
    if on is not None:
        return on
    return local_today(await AuthService(db).get_user_timezone(user_id))


@router.get("/me", response_model=User)
async def read_profile(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    try:
        return await AuthService(db).get_user_by_id(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
