import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skillforge.api import admin, dependencies, learner, quiz
from skillforge.config import get_settings
from skillforge.errors import ProgressionError
from skillforge.services.storage.database import DatabaseClient

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    try:
        db_client = DatabaseClient(settings.mongodb_uri, settings.database_name)
        await db_client.init_indexes()
        dependencies.init_services(db_client, settings)
        logger.info("Successfully initialized services and database")
    except Exception as e:
        logger.error(f"Failed to initialize: {str(e)}")
        raise
    yield
    await dependencies.quiz_generator.close()
    db_client.close()


app = FastAPI(
    title="SkillForge API",
    description="Progression engine for the SkillForge learning platform",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProgressionError)
async def progression_error_handler(request: Request, exc: ProgressionError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    logger.error("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(learner.router)
app.include_router(admin.router)
app.include_router(quiz.router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
