from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.auth import router as auth_router
from app.api.catalog import router as catalog_router
from app.api.clients import router as clients_router
from app.api.company import router as company_router
from app.api.credits import router as credits_router
from app.api.invoices import router as invoices_router
from app.api.public import router as public_router
from app.core import messages
from app.core.auth import parse_session_token, token_from_request
from app.core.config import settings
from app.core.errors import AppError
from app.db.base import Base
from app.db.session import engine
import app.models  # noqa: F401 - register models with Base.metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s %(message)s",
)
request_logger = logging.getLogger("app.request")
error_logger = logging.getLogger("app.errors")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create DB tables
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Invoice Desk API",
    description="Companies, clients, invoices, credits and public invoice links",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app_cors_origins.split(",") if settings.app_cors_origins else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PROTECTED_API_PREFIXES = (
    "/company",
    "/clients",
    "/services",
    "/invoices",
    "/user",
    "/auth/me",
)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    user = parse_session_token(token_from_request(request))
    request.state.user = user
    if request.url.path.startswith(PROTECTED_API_PREFIXES) and not user:
        return JSONResponse(status_code=401, content={"error": messages.UNAUTHORIZED})
    return await call_next(request)


@app.middleware("http")
async def request_logging_middleware(request, call_next):
    req_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        request_logger.exception(
            "request_failed id=%s method=%s path=%s ms=%s",
            req_id,
            request.method,
            request.url.path,
            elapsed_ms,
        )
        raise
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    response.headers["x-request-id"] = req_id
    request_logger.info(
        "request_done id=%s method=%s path=%s status=%s ms=%s",
        req_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        error_logger.warning("app_error path=%s status=%s error=%s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else messages.GENERIC_FAILURE
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": messages.INVALID_DATA, "details": details})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    error_logger.error("database_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": messages.GENERIC_FAILURE})


app.include_router(auth_router)
app.include_router(company_router)
app.include_router(clients_router)
app.include_router(catalog_router)
app.include_router(invoices_router)
app.include_router(public_router)
app.include_router(credits_router)


@app.get("/health", include_in_schema=False)
def health() -> dict:
    return {"ok": True}
