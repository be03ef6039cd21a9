"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from proposal_files.config import settings
from proposal_files.database import engine, get_db
from proposal_files.errors import register_exception_handlers
from proposal_files.models import Base
from proposal_files.routes.files import router as files_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, create tables and the storage root on startup."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Path(settings.FILE_STORAGE_PATH).mkdir(parents=True, exist_ok=True)
    logger.info("Proposal files API ready")

    yield

    await engine.dispose()


app = FastAPI(
    title="Proposal Files API",
    version="1.0.0",
    description="Uploads, links and access control for proposal attachments.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


app.include_router(files_router)

# Public URLs of uploaded blobs resolve here
app.mount("/uploads", StaticFiles(directory=settings.FILE_STORAGE_PATH, check_dir=False), name="uploads")
