import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ✅ Import All API Routes
from leadengine.api.routes import bids, health, jobs, leads, membership
from leadengine.core.cache import TTLCache
from leadengine.core.config import PLAN_CACHE_TTL_SECONDS, SECRET_KEY
from leadengine.core.errors import (
    EngineError,
    ForbiddenError,
    LimitExceededError,
    NotFoundError,
    PlanMismatchError,
    SagaCompensationError,
    ValidationError,
)
from leadengine.core.logging_config import sanitize_log_data, setup_logging

setup_logging()
logger = logging.getLogger(__name__)

if not SECRET_KEY:
    logger.warning("SECRET_KEY not configured - authenticated routes will return 503")


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Lead Engine")
app.state.plan_cache = TTLCache(ttl_seconds=PLAN_CACHE_TTL_SECONDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(health.router)
app.include_router(membership.router)
app.include_router(leads.router)
app.include_router(jobs.router)
app.include_router(bids.router)


# ============================================
# ✅ ENGINE ERROR -> HTTP STATUS
# ============================================

ERROR_STATUS = {
    ValidationError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    PlanMismatchError: 409,
    SagaCompensationError: 503,
}


def status_for(exc: EngineError) -> int:
    if isinstance(exc, LimitExceededError):
        return 429 if exc.is_lead_limit else 403
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {sanitize_log_data(exc.to_dict())}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ============================================
# ✅ HEALTH CHECK ROOT ENDPOINT
# ============================================

@app.get("/")
def root():
    return {"status": "Lead Engine API running"}
