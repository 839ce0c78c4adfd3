from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware
from config import settings
from utils.responses import error_response
import uvicorn
import logging
import os

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Import routes
from routes import (
    auth_router,
    users_router,
    complaint_categories_router,
    complaints_router,
    complaint_logs_router,
    notifications_router,
    ratings_router
)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Citizen Complaints - submission, tracking and resolution API",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

# Proxies such as Render terminate TLS upstream
if os.getenv("RENDER") or os.getenv("FORCE_HTTPS"):
    app.add_middleware(HTTPSRedirectMiddleware)


# Error handlers: every failure leaves as {"success": False, "message": ...}
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", [])[1:]) or None,
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    logger.warning(f"⚠️ Validation failed on {request.method} {request.url.path}: {errors}")
    return error_response("Validation failed", errors=errors, status_code=400)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {str(exc)}", exc_info=True)
    return error_response(
        "Internal server error",
        errors=str(exc) if settings.DEBUG else None,
        status_code=500
    )


# Health check endpoints
@app.get("/")
def root():
    return {
        "success": True,
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION
    }


@app.get("/health")
def health_check():
    from database import check_db_connection
    from utils.cache import cache
    from utils.cloudinary_manager import CloudinaryManager

    db_ok = check_db_connection()
    return {
        "success": db_ok,
        "message": "Service is healthy" if db_ok else "Database connection failed",
        "data": {
            "database": "ok" if db_ok else "error",
            "cache": "ok" if cache.ping() else "disabled",
            "storage": "ok" if CloudinaryManager.health_check() else "error",
        }
    }


# Include routers with /api prefix
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(complaint_categories_router, prefix="/api")
app.include_router(complaints_router, prefix="/api")
app.include_router(complaint_logs_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(ratings_router, prefix="/api")


# Startup event
@app.on_event("startup")
def startup_event():
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} is starting...")
    logger.info("📚 Documentation available at: /docs")

    # Initialize Redis cache
    from utils.cache import cache
    if cache.enabled:
        if cache.ping():
            logger.info("✅ Redis cache is connected and ready!")
        else:
            logger.warning("⚠️ Redis is configured but not reachable - caching disabled")
    else:
        logger.info("ℹ️ Redis caching is disabled (REDIS_ENABLED is off)")

    # Initialize database tables, then the first admin account
    from database import init_db, SessionLocal
    from services.user_service import UserService
    try:
        logger.info("📊 Initializing database tables...")
        init_db()
        logger.info("✅ Database tables initialized successfully")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {str(e)}", exc_info=True)
        return

    db = SessionLocal()
    try:
        UserService(db).seed_bootstrap_admin()
    except Exception as e:
        logger.error(f"❌ Bootstrap admin creation failed: {str(e)}", exc_info=True)
    finally:
        db.close()

    logger.info("✅ API ready to receive requests")
    logger.info("=" * 70)


# Shutdown event
@app.on_event("shutdown")
def shutdown_event():
    logger.info(f"👋 Shutting down {settings.APP_NAME}...")


# Run the application
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
        log_level="info"
    )
