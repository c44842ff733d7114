import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from intake.config.settings import IntakeConfigs
from intake.connections.database import close_db_pool, create_tables
from intake.logging.utils import initialize_logging, get_app_logger
from intake.middlewares.logging_middleware import AuditMiddleware

configs = IntakeConfigs()

# Initialize Sentry (must be done early, before other imports)
from intake.config.sentry import init_sentry
init_sentry()

# Initialize structured logging
initialize_logging()
logger = get_app_logger('intake.main')

DEBUG = configs.DEBUG
logger.info(f"Running in {'debug' if DEBUG else 'production'} mode")

# Uploaded profile photos are served from UPLOAD_DIR/candidate_profile
from intake.services.file_storage import get_file_storage
profile_photo_dir = get_file_storage().ensure_upload_dir()


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(f"Starting {configs.APP_NAME}")
    if configs.AUTO_CREATE_TABLES:
        create_tables()
        logger.info("Database tables ensured")
    yield
    logger.info(f"Shutting down {configs.APP_NAME}")
    close_db_pool()

# Disable docs in production (when DEBUG=false)
docs_url = "/docs" if DEBUG else None
redoc_url = "/redoc" if DEBUG else None

app = FastAPI(
    title="Candidate Intake",
    version=configs.APP_VERSION,
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url
)

# Request/Audit logging middleware (place early)
app.add_middleware(AuditMiddleware)

# Middlewares
from intake.middlewares.admin_token_validation import AdminTokenValidationMiddleware
app.add_middleware(AdminTokenValidationMiddleware)

logger.info(f"Configuring CORS with allowed origins: {configs.ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=configs.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register custom exception handlers
from intake.middlewares.handlers import register_exception_handlers
register_exception_handlers(app)


# Routes
from intake.routes.candidates import candidates_router
from intake.routes.admin import admin_router
from intake.routes.health import router as health_router

app.include_router(candidates_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/admin/v1")
app.include_router(health_router, tags=["health"])

app.mount(
    configs.PROFILE_PHOTO_URL_PREFIX,
    StaticFiles(directory=os.path.abspath(profile_photo_dir)),
    name="candidate_profile",
)
