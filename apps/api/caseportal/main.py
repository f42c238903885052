"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from caseportal.core.config import settings
from caseportal.core.structured_logging import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    build_log_context,
    configure_logging,
)
from caseportal.db.session import engine

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # medical data must never leave in error reports
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from caseportal.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Case Portal API",
    description="Medical case review portal for patients, clinicians and admins",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestContextMiddleware)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER, "Content-Disposition"],
)


# ============================================================================
# Error Responses
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render errors as {"error": detail}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    context = build_log_context(
        request_id=getattr(request.state, "request_id", None),
        route=request.url.path,
        method=request.method,
    )
    logger.exception("unhandled_exception", extra={"context": context})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ============================================================================
# Routers
# ============================================================================

from caseportal.routers import (
    admin,
    auth,
    cases,
    clinician,
    consent,
    documents,
    messages,
    navigation,
    portal,
    public,
    reports,
    trials,
    users,
)

# Auth and accounts
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(consent.router, prefix="/api/consent", tags=["users"])

# Cases module routers
app.include_router(cases.router, prefix="/api/cases", tags=["cases"])
app.include_router(documents.router, prefix="/api/cases", tags=["documents"])
app.include_router(reports.router, prefix="/api/cases", tags=["reports"])
app.include_router(messages.router, prefix="/api", tags=["messages"])  # Mixed paths: /cases/{id}/messages and /messages/unread-count
app.include_router(clinician.router, prefix="/api", tags=["clinician"])  # Mixed paths: /cases/{id}/assign and /clinician/*

# Patient extras
app.include_router(trials.router, prefix="/api/trials", tags=["trials"])
app.include_router(portal.router, prefix="/api/portal", tags=["portal"])

# Admin (approvals, overviews, audit trail)
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

# Public forms (unauthenticated, rate limited)
app.include_router(public.router, prefix="/api", tags=["public"])

# Navigation guard and localized labels
app.include_router(navigation.router, prefix="/api", tags=["navigation"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
