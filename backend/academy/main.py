import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .db import Base, engine
from .responses import ErrorCodes, error_response, success_response
from .routers import finance, kiosk, payhere, payments, schedules, students, teachers

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # DEV ONLY: create tables on startup; use migrations in production
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")
    yield


app = FastAPI(title="Piano Academy API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------------------------------------------------
# ERROR ENVELOPE
# --------------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = getattr(exc, "code", None)
    extra = getattr(exc, "extra", None) or {}
    return error_response(str(exc.detail), exc.status_code, code, **extra)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        "Invalid request",
        400,
        ErrorCodes.VALIDATION_ERROR,
        details=[{"loc": list(e.get("loc", [])), "message": e.get("msg")} for e in exc.errors()],
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response("Internal server error", 500, ErrorCodes.INTERNAL_ERROR)


# --------------------------------------------------------
# ROUTES
# --------------------------------------------------------
app.include_router(students.router)
app.include_router(students.family_router)
app.include_router(teachers.router)
app.include_router(schedules.router)
app.include_router(payments.router)
app.include_router(finance.router)
app.include_router(payhere.router)
app.include_router(kiosk.router)


@app.get("/")
def root():
    return success_response({"message": "Backend is running!"})
