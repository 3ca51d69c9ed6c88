"""Main FastAPI application"""
import os
import logging
import logging.config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from routes import router as api_router
from services.database import create_pool, SchemaInitializer
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False
        },
    },
    "loggers": {
        "uvicorn": {
             "handlers": ["default"],
             "level": "INFO",
             "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": { # Root logger for our application
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DB_POOL_MAX_SIZE = int(os.getenv("DB_POOL_MAX_SIZE", "10"))
API_PREFIX = "/api"
PUBLIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "public")
INVALID_PAYLOAD_MESSAGE = "Invalid payload"

if not DATABASE_URL:
    logger.error("DATABASE_URL environment variable not set! Database connection will fail.")

# Application state to hold the pool and the schema initializer
app_state = {}

# --- Middleware to keep API responses out of every cache ---
class NoStoreCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(API_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        return response

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the PostgreSQL pool (no connection is opened yet)
    app_state["db_pool"] = None
    app_state["schema_initializer"] = None
    if DATABASE_URL:
        try:
            app_state["db_pool"] = await create_pool(DATABASE_URL, max_size=DB_POOL_MAX_SIZE)
            app_state["schema_initializer"] = SchemaInitializer(app_state["db_pool"])
            logger.info("PostgreSQL pool created.")
        except Exception as e:
            logger.error(f"Failed to create PostgreSQL pool: {e}")

    yield # Application runs here

    # Shutdown: Close the pool
    if app_state.get("db_pool"):
        logger.info("Closing PostgreSQL pool...")
        await app_state["db_pool"].close()
        logger.info("PostgreSQL pool closed.")

app = FastAPI(
    title="Expense Tracker API",
    description="API for recording, listing and deleting personal expenses.",
    version="0.1.0",
    lifespan=lifespan
)

# --- Error responses are always {"message": ...} ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected invalid payload on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"message": INVALID_PAYLOAD_MESSAGE})

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # Adjust in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(NoStoreCacheMiddleware)

app.include_router(
    api_router,
    prefix=API_PREFIX,
    tags=["api"],
)

# Mount static files directory (MUST be after API router)
app.mount("/", StaticFiles(directory=PUBLIC_DIR, html=True), name="static")

# Make app state accessible via middleware
@app.middleware("http")
async def add_app_config_to_request(request: Request, call_next):
    """Adds the database pool and schema initializer to the request state."""
    request.state.db_pool = app_state.get("db_pool")
    request.state.schema_initializer = app_state.get("schema_initializer")
    response = await call_next(request)
    return response

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True
    )
