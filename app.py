from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.config import settings, tags_metadata

from common.logging import setup_logging, get_logger
from common.middleware import setup_middleware
from common.exceptions import BaseFlowException
from common.responses import create_error_response

setup_logging(
    level=settings.log_level,
    format_type=settings.log_format
)

limiter = Limiter(
    key_func=get_remote_address,
    headers_enabled=True,
    default_limits=["200/minute"],
    enabled=settings.rate_limit_enabled,
)

logger = get_logger("main")

app = FastAPI(
    title="Submission Flow API",
    version="1.0.0",
    description="Photo reporting and chat interest selection with guarded submissions and timed feedback",
    openapi_tags=tags_metadata,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

setup_middleware(app)


@app.get("/",
    summary="Root endpoint",
    description="Simple health check and API info"
)
async def root():
    """Root endpoint for basic health check."""
    return {
        "message": "Submission Flow API",
        "version": "1.0.0",
        "status": "healthy",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.exception_handler(BaseFlowException)
async def flow_exception_handler(request: Request, exc: BaseFlowException):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"Flow exception: {exc.error_code}", extra={
        "error_code": exc.error_code,
        "context": exc.context,
        "path": str(request.url.path),
        "method": request.method
    })
    return create_error_response(
        error_code=exc.error_code,
        message=exc.detail,
        status_code=exc.status_code,
        context=exc.context
    )

# Import routers
from api.health import router as health_router
from api.reports import router as reports_router
from api.interests import router as interests_router

# Include all routers with v1 prefix
app.include_router(health_router, prefix="/v1")
app.include_router(reports_router, prefix="/v1")
app.include_router(interests_router, prefix="/v1")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
