import jwt
from fastapi import APIRouter, Cookie, HTTPException, Response, status
from sqlalchemy import or_, select

from cinelist.config import settings
from cinelist.dependencies import (
    CurrentUser,
    DbSession,
    create_access_token,
    create_refresh_token,
)
from cinelist.models.user import User
from cinelist.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    RegisterRequest,
    UserRead,
)

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE_NAME = "cinelist_refresh_token"
REFRESH_COOKIE_MAX_AGE = settings.refresh_token_expire_days * 86400


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=True,
        samesite="none",
        path="/auth",
        max_age=REFRESH_COOKIE_MAX_AGE,
    )


def delete_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        httponly=True,
        secure=True,
        samesite="none",
        path="/auth",
    )


@router.post("/login", response_model=AccessTokenResponse)
def login(request: LoginRequest, response: Response, db: DbSession):
    user = db.execute(
        select(User).where(User.email == request.email.strip().lower())
    ).scalar_one_or_none()

    if user is None or not user.check_password(request.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    set_refresh_cookie(response, create_refresh_token(user))
    return AccessTokenResponse(access_token=create_access_token(user))


@router.post(
    "/register",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(request: RegisterRequest, response: Response, db: DbSession):
    email = request.email.strip().lower()
    existing = db.execute(
        select(User).where(or_(User.username == request.username, User.email == email))
    ).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already registered.",
        )

    user = User(username=request.username, email=email, password_hash="")
    user.set_password(request.password)
    db.add(user)
    db.flush()

    set_refresh_cookie(response, create_refresh_token(user))
    return AccessTokenResponse(access_token=create_access_token(user))


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh(
    response: Response,
    db: DbSession,
    cinelist_refresh_token: str | None = Cookie(default=None),
):
    if cinelist_refresh_token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        payload = jwt.decode(
            cinelist_refresh_token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    if payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    user = db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    set_refresh_cookie(response, create_refresh_token(user))
    return AccessTokenResponse(access_token=create_access_token(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response):
    delete_refresh_cookie(response)


@router.get("/me", response_model=UserRead)
def me(user: CurrentUser, db: DbSession):
    return db.get(User, user.user_id)
