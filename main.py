import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filedrive.config import settings
from filedrive.database import db, ensure_indexes
from filedrive.routes import auth, folders
from filedrive.utils.exceptions import register_exception_handlers
from filedrive.utils.logging import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


# Lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(db)
    logger.info("FileDrive API started (database %s)", settings.db_name)
    yield


# FastAPI app initialization
app = FastAPI(
    title="FileDrive API",
    description="Multi-user folder storage with time-limited share links.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Health check
@app.get("/health", tags=["Health"])
def health():
    return {"status": "OK", "message": "Server is running"}


# Include Routers
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["Authentication"])
app.include_router(folders.router, prefix=f"{settings.api_prefix}/folders", tags=["Folders"])
