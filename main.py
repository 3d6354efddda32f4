import os

from dotenv import load_dotenv

# Load environment-specific .env file BEFORE any app imports
env = os.getenv("ENV", "local")
dotenv_file = f".env.{env}"
load_dotenv(dotenv_file)

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from beta_signup import __version__
from beta_signup.db import get_db
from beta_signup.middleware import RequestContextMiddleware
from beta_signup.utils import (
    logger,
    configure_sentry,
    is_debug,
    API_PREFIX,
    BetaSignupError,
    domain_error_response,
)
from beta_signup.utils.response_utils import internal_error
from beta_signup.utils.sentry_utils import capture_exception
from beta_signup.routers import apps_router, signup_router

# Initialize Sentry for error tracking (only in non-debug environments)
sentry_enabled = configure_sentry()
if sentry_enabled:
    logger.info("Sentry error tracking initialized")


app = FastAPI(
    title="Beta Signup",
    description="Closed-testing signup and promotional code distribution for Android apps",
    version=__version__,
)

# CORS configuration - allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

# Register routers
app.include_router(apps_router, prefix=API_PREFIX)
app.include_router(signup_router, prefix=API_PREFIX)


@app.exception_handler(BetaSignupError)
async def domain_exception_handler(request: Request, exc: BetaSignupError):
    """Map expected domain failures to their HTTP error body."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return domain_error_response(exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}: {exc}",
        exc_info=True,
    )

    capture_exception(exc, path=request.url.path)

    return internal_error()


@app.get("/")
async def root():
    return {"message": "Welcome to Beta Signup API", "version": __version__}


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint."""
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    return {
        "status": "healthy",
        "database": db_status,
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Beta Signup (env={env}, debug={is_debug()})")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=is_debug())
