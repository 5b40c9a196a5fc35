from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.config import settings
from src.database import Base, SessionLocal, engine
from src.logging_config import setup_logging
from src.auth import router as auth_router
from src.monuments import router as monuments_router
from src.bookings.router import router as bookings_router
from src.monuments.service import MonumentService
import src.models  # noqa: F401  registers tables on Base.metadata

setup_logging()
logger = logging.getLogger(__name__)

def initialize_data() -> None:
    """Create tables and seed the sample catalog on an empty database"""
    Base.metadata.create_all(bind=engine)
    if not settings.SEED_SAMPLE_DATA:
        return
    db = SessionLocal()
    try:
        MonumentService.seed_sample_monuments(db)
    finally:
        db.close()

@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_data()
    logger.info(f"{settings.PROJECT_NAME} started (environment={settings.ENVIRONMENT})")
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Monument visit booking and ticket verification API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path} - Origin: {request.headers.get('origin', 'none')}")
    return await call_next(request)

# Include routers
app.include_router(
    auth_router.router,
    prefix=f"{settings.API_V1_STR}/auth",
    tags=["Authentication"]
)

app.include_router(
    monuments_router.router,
    prefix=f"{settings.API_V1_STR}/monuments",
    tags=["Monuments"]
)

app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Booking & Ticketing"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "status": "Running",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = "disconnected"
    finally:
        db.close()
    return {"status": "healthy" if database == "connected" else "degraded", "database": database}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
