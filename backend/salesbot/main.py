from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salesbot.api.routes import chat, health, policies
from salesbot.core.config import settings
from salesbot.core.logging import get_logger, setup_logging
from salesbot.services.templates import response_templates

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: refuse to serve with an incomplete template table
    response_templates.validate()
    logger.info("%s is starting up (environment=%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    logger.info("%s is shutting down", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set all CORS enabled origins
allowed_origins = ["http://localhost:5173", "http://localhost:8080", "http://localhost:3000"]
if settings.ALLOWED_ORIGINS and settings.ALLOWED_ORIGINS != "*":
    allowed_origins = [str(origin).strip() for origin in settings.ALLOWED_ORIGINS.split(",")] + allowed_origins
elif settings.ALLOWED_ORIGINS == "*":
    allowed_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with proper prefixes
app.include_router(health.router, tags=["Health"])
app.include_router(chat.router, prefix=f"{settings.API_V1_STR}/chat", tags=["Chat"])
app.include_router(policies.router, prefix=f"{settings.API_V1_STR}/policies", tags=["Policies"])
