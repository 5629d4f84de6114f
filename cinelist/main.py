import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cinelist.cache import SlidingWindowLimiter, TTLStore
from cinelist.config import settings
from cinelist.dependencies import DbSession
from cinelist.errors import DomainError, domain_error_handler
from cinelist.routers import auth, comments, list_movies, lists, recommendations, search
from cinelist.services.tmdb import CatalogClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    yield
    application.state.catalog.close()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="Cinelist API", lifespan=lifespan)

    application.state.catalog = CatalogClient(
        token=settings.tmdb_api_token,
        base_url=settings.tmdb_base_url,
        language=settings.tmdb_language,
        timeout=settings.tmdb_timeout_seconds,
    )
    application.state.recommendation_cache = TTLStore(
        ttl_seconds=settings.recommendation_cache_ttl_hours * 3600
    )
    application.state.delete_limiter = SlidingWindowLimiter(
        settings.delete_rate_limit, settings.rate_limit_window_seconds
    )
    application.state.search_limiter = SlidingWindowLimiter(
        settings.search_rate_limit, settings.rate_limit_window_seconds
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(DomainError, domain_error_handler)

    application.include_router(auth.router)
    application.include_router(lists.router)
    application.include_router(list_movies.router)
    application.include_router(comments.router)
    application.include_router(recommendations.router)
    application.include_router(search.router)

    @application.get("/health")
    def health(db: DbSession):
        try:
            db.execute(text("SELECT 1"))
            return {"status": "healthy"}
        except SQLAlchemyError:
            logger.exception("health check failed")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy"},
            )

    return application


app = create_app()
