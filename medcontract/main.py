from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from medcontract.api.middleware import RequestLogMiddleware
from medcontract.api.v1.router import v1_router
from medcontract.common.exceptions import register_exception_handlers
from medcontract.common.logging import get_logger, setup_logging
from medcontract.config import settings
from medcontract.db.session import create_tables
from medcontract.integrations.storage import StorageClient

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Ensure the upload directory exists before the first request
    StorageClient().ensure_root()
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    logger.info("MedContract API started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="MedContract API",
    description="Contracts and documents for medical software engagements",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)

register_exception_handlers(app)

# API routes
app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    storage_ok = await StorageClient().health_check()
    return {
        "status": "healthy" if storage_ok else "degraded",
        "service": "medcontract",
        "version": "1.0.0",
        "env": settings.APP_ENV,
        "storage": storage_ok,
    }
