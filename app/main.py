"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from app.config import settings
from app.database import database
from app.errors import PersistenceError
from app.routers import auth, recurring_goals, tasks

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await database.connect()
    yield
    # Shutdown
    await database.disconnect()


app = FastAPI(
    title="Habit Planner API",
    description="Recurring goals, daily task generation and streak tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(recurring_goals.router)
app.include_router(tasks.router)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    """Storage failures are retryable; report them as 503 with their kind."""
    return JSONResponse(status_code=503, content=exc.to_dict())


@app.exception_handler(PyMongoError)
async def mongo_error_handler(request: Request, exc: PyMongoError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content=PersistenceError("Storage temporarily unavailable").to_dict(),
    )


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Habit Planner API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
