# portfolio/main.py
import uvicorn
import os
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio.core.config import settings
from portfolio.core.database import engine, Base
from portfolio.api.routes import auth, categories, entries, dashboard
import portfolio.models.user  # noqa: F401
import portfolio.models.category  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create all tables on startup (migrations live in alembic/ for deployed databases)
async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    openapi_tags=[
        {"name": "Authentication", "description": "Sign up, sign in, 2FA and account recovery"},
        {"name": "categories", "description": "Investment categories"},
        {"name": "entries", "description": "Holdings inside a category"},
        {"name": "dashboard", "description": "Portfolio summary and CSV export"},
    ],
)

# CORS Configuration
origins = [
    settings.FRONTEND_URL,
    "http://localhost:3000",  # Local development
    "http://localhost:3001",  # Backup local port
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------------------------------------
# ERROR HANDLERS
# ------------------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every handled failure is reported as {"success": false, "error": ...}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "error": message})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unexpected failures: log the detail, keep it out of the response"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!r}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )

# ------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------
app.include_router(auth.router, prefix="/api/auth")
app.include_router(categories.router, prefix="/api")
app.include_router(entries.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": f"{settings.APP_NAME} is running!",
        "version": settings.VERSION
    }

@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

# ------------------------------------------------------------
# STARTUP EVENT
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    """Startup event to create database tables"""
    try:
        await create_db_and_tables()
        logger.info("✅ Database tables created successfully")
        logger.info(f"✅ Frontend URL: {settings.FRONTEND_URL}")
        if not settings.SENDGRID_API_KEY:
            logger.warning("⚠️ SendGrid API key not configured - one-time codes cannot be emailed")
    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("portfolio.main:app", host="0.0.0.0", port=port, reload=False)
