"""
FastAPI Application Entry Point
"""
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pricemyfloor.core.config import settings
from pricemyfloor.api.v1.router import api_router
from pricemyfloor.database.connection import DatabasePool
from pricemyfloor.database.session import init_db, init_session_factory
from pricemyfloor.utils.logging import get_logger, app_logger

logger = get_logger(__name__)


def warn_on_unsafe_settings() -> List[str]:
    """Log a warning for each setting that weakens production behaviour"""
    warnings = []
    if settings.sms.test_mode:
        warnings.append("SMS test mode is enabled: any well-formed code verifies an SMS lead")
    for message in warnings:
        app_logger.warning(f"⚠️  [bold yellow]{message}[/bold yellow]")
    return warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup and shutdown.
    Initializes database pool on startup and closes it on shutdown.
    """
    # Startup
    app_logger.info("🚀 [bold green]Initializing application...[/bold green]")
    try:
        app_logger.info("📊 [cyan]Initializing database connection pool...[/cyan]")
        DatabasePool.initialize()
        init_session_factory()
        if settings.database.is_sqlite:
            init_db()
        warn_on_unsafe_settings()
        app_logger.info("✅ [bold green]Application initialized successfully[/bold green]")
    except Exception as e:
        app_logger.error(f"❌ [bold red]Failed to initialize application:[/bold red] {e}")
        raise

    yield

    # Shutdown
    app_logger.info("🛑 [yellow]Shutting down application...[/yellow]")
    try:
        app_logger.info("📊 [cyan]Closing database connection pool...[/cyan]")
        DatabasePool.close()
        app_logger.info("✅ [bold green]Application shut down successfully[/bold green]")
    except Exception as e:
        app_logger.error(f"❌ [bold red]Error during application shutdown:[/bold red] {e}")


app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description=settings.description,
    openapi_url=f"{settings.api_v1_str}/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
if settings.backend_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.backend_cors_origins],
        allow_credentials="*" not in settings.backend_cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as {"success": false, "error": ...}"""
    if exc.status_code >= 500:
        logger.error(f"[red]{request.method} {request.url.path} -> {exc.status_code}:[/red] {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400 with the first problem"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "error": message})


# Include API router
app.include_router(api_router, prefix=settings.api_v1_str)


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "API is running", "version": settings.version}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        pool_status = DatabasePool.get_pool_status()
        return {
            "status": "healthy",
            "database": {
                "pool_initialized": pool_status["initialized"],
                "pool_size": pool_status["size"],
                "connections_checked_out": pool_status["checked_out"],
            }
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
