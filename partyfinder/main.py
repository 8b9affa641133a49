from contextlib import asynccontextmanager
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from partyfinder.api.routes import (
    auth as auth_router,
    checkins as checkins_router,
    events as events_router,
    friends as friends_router,
    health as health_router,
    media as media_router,
)
from partyfinder.cache.redis_client import cache
from partyfinder.core.config import settings
from partyfinder.core.logging import logger
from partyfinder.core.rate_limit import limiter
from partyfinder.db.session import Base, engine
from partyfinder.middleware.security_headers import SecurityHeadersMiddleware
import partyfinder.db.models  # noqa: F401  registers tables on Base.metadata


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT == "production" and settings.SECRET_KEY == "change-me":
        raise RuntimeError("SECRET_KEY must be set in production")
    # create tables (migrations are not managed here)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("PartyFinder API started")
    yield
    cache.close()
    await engine.dispose()


app = FastAPI(title="PartyFinder", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def jsonable_errors(errors) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Clients read ``error``; ``detail`` is kept for FastAPI tooling."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content={"error": message, "detail": jsonable_errors(errors)},
    )


api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router.router)
api_router.include_router(events_router.router)
api_router.include_router(media_router.router)
api_router.include_router(checkins_router.router)
api_router.include_router(friends_router.router)
api_router.include_router(health_router.router)

app.include_router(api_router)
