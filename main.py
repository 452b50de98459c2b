"""
TP Supervision Service - FastAPI Application

Backend for the teaching practice dashboard: lesson plan review, observation
scheduling and feedback on top of the TPMA API.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth.api import auth_routes
from config import get_settings, validate_required_settings
from database import get_db_manager
from lesson_plans.api import routes as lesson_plan_routes
from shared.api import health
from supervision.api import routes as supervision_routes

# Validate configuration on startup
validate_required_settings()

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="TP Supervision Service",
    description="Lesson plan review and observation scheduling for teaching practice",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(auth_routes.router)
app.include_router(supervision_routes.router)
app.include_router(lesson_plan_routes.router)


@app.on_event("startup")
async def startup_event():
    """Create mirror tables and validate the database connection."""
    logger.info("Starting TP Supervision Service...")

    db_manager = get_db_manager()
    db_manager.create_tables()

    if not db_manager.health_check():
        logger.warning("Database health check failed on startup")
    else:
        logger.info("Database connection healthy")


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
