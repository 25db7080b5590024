from contextlib import asynccontextmanager

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
import structlog

from app.core.logging_config import configure_logging
from app.core.config import settings
from app.core.error_handlers import register_exception_handlers
from app.core.middleware import register_middleware
from app.core.rate_limiter import limiter
from app.db.session import SessionLocal, engine
from app.models.user import User, UserRole
from app.api.v1 import categories, coupons, events, orders, organizers, payments, settings as site_settings, users

API_VERSION = "1.0.0"

logger = structlog.get_logger()

configure_logging()

if settings.ENVIRONMENT == "production" and settings.SENTRY_DSN:
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("sentry_initialized")
    except Exception as e:
        # Application continues without Sentry monitoring
        logger.warning("sentry_init_failed", error=str(e))


def ensure_admin_exists() -> None:
    """Fail fast in production when no admin account exists."""
    db = SessionLocal()
    try:
        admin_exists = db.query(User.id).filter(User.role == UserRole.ADMIN).first() is not None
    finally:
        db.close()

    if not admin_exists:
        raise RuntimeError(
            "No admin user found in production. "
            "Run `python -m app.db.init_db` before starting the API."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT == "production":
        ensure_admin_exists()
    logger.info("application_started", environment=settings.ENVIRONMENT, version=API_VERSION)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=API_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=None,
    lifespan=lifespan,
)
app.state.limiter = limiter

register_middleware(app)
register_exception_handlers(app)

app.include_router(categories.router, prefix=f"{settings.API_V1_STR}/categories", tags=["Categories"])
app.include_router(events.router, prefix=f"{settings.API_V1_STR}/events", tags=["Events"])
app.include_router(coupons.router, prefix=f"{settings.API_V1_STR}/coupons", tags=["Coupons"])
app.include_router(orders.router, prefix=f"{settings.API_V1_STR}/orders", tags=["Orders"])
app.include_router(payments.router, prefix=f"{settings.API_V1_STR}/payments", tags=["Payments"])
app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])
app.include_router(organizers.router, prefix=f"{settings.API_V1_STR}/organizers", tags=["Organizers"])
app.include_router(site_settings.router, prefix=f"{settings.API_V1_STR}/settings", tags=["Settings"])


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION,
    }


@app.get("/health/database")
def database_health_check():
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
    except SQLAlchemyError as exc:
        logger.error("database_health_check_failed", error=str(exc))
        return {"status": "unhealthy", "database": engine.dialect.name}
    return {"status": "healthy", "database": engine.dialect.name}
