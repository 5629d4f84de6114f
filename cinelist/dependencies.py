from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cinelist.cache import SlidingWindowLimiter, TTLStore
from cinelist.config import settings
from cinelist.database import SessionLocal
from cinelist.errors import rate_limited
from cinelist.models.user import User
from cinelist.services.comment_service import CommentService
from cinelist.services.list_service import ListService
from cinelist.services.recommendation_engine import RecommendationEngine
from cinelist.services.tmdb import CatalogClient
from cinelist.stores.comment_store import CommentStore
from cinelist.stores.list_movie_store import ListMovieStore
from cinelist.stores.membership_store import MembershipStore
from cinelist.stores.movie_store import MovieStore


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]

security = HTTPBearer()


@dataclass(frozen=True)
class AuthResult:
    user_id: int
    token_type: str


def create_access_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "type": "access",
        "exp": datetime.now(timezone.utc)
        + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "type": "refresh",
        "exp": datetime.now(timezone.utc)
        + timedelta(days=settings.refresh_token_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> AuthResult:
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    token_type = payload.get("type", "access")
    if token_type == "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return AuthResult(user_id=user.id, token_type=token_type)


CurrentUser = Annotated[AuthResult, Depends(get_current_user)]


def get_catalog_client(request: Request) -> CatalogClient:
    return request.app.state.catalog


def get_recommendation_cache(request: Request) -> TTLStore:
    return request.app.state.recommendation_cache


Catalog = Annotated[CatalogClient, Depends(get_catalog_client)]


def get_list_service(db: DbSession, catalog: Catalog) -> ListService:
    return ListService(
        memberships=MembershipStore(db),
        list_movies=ListMovieStore(db),
        movies=MovieStore(db),
        catalog=catalog,
    )


def get_comment_service(
    lists: Annotated[ListService, Depends(get_list_service)], db: DbSession
) -> CommentService:
    return CommentService(lists, CommentStore(db))


def get_recommendation_engine(
    db: DbSession,
    catalog: Catalog,
    cache: Annotated[TTLStore, Depends(get_recommendation_cache)],
) -> RecommendationEngine:
    return RecommendationEngine(
        memberships=MembershipStore(db),
        list_movies=ListMovieStore(db),
        catalog=catalog,
        cache=cache,
    )


Lists = Annotated[ListService, Depends(get_list_service)]
Comments = Annotated[CommentService, Depends(get_comment_service)]
Recommendations = Annotated[RecommendationEngine, Depends(get_recommendation_engine)]


def _throttle(limiter: SlidingWindowLimiter, user: AuthResult, message: str) -> None:
    if not limiter.allow(user.user_id):
        raise rate_limited(message)


def limit_deletes(request: Request, user: CurrentUser) -> None:
    _throttle(
        request.app.state.delete_limiter,
        user,
        "Too many delete requests, please try again later",
    )


def limit_searches(request: Request, user: CurrentUser) -> None:
    _throttle(
        request.app.state.search_limiter,
        user,
        "Too many search requests, please try again later",
    )
