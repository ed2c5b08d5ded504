"""GeoAttend - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from geoattend.api import attendance, classes
from geoattend.config import settings
from geoattend.db import db_shutdown, init_db
from geoattend.errors import AttendanceError

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == "mongo":
        try:
            await init_db()
        except ServerSelectionTimeoutError as e:
            logger.error("MongoDB is not running. Start it with: docker compose up -d")
            raise RuntimeError("MongoDB connection failed. Start MongoDB (e.g. docker compose up -d).") from e
    else:
        logger.warning("Using the in-memory storage backend; data is lost on restart")
    yield
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Proximity-gated, time-boxed attendance codes",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(AttendanceError)
async def attendance_exception_handler(request: Request, exc: AttendanceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "reason": exc.reason},
    )


@app.exception_handler(PyMongoError)
async def storage_exception_handler(request: Request, exc: PyMongoError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Something went wrong, please try again", "reason": "storage_unavailable"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(classes.router, prefix="/api/classes", tags=["Classes (teacher)"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance (student)"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name, "storage": settings.storage_backend}
